# biz_agent/billing.py
"""Line item pricing, invoice composition and the draft/finalize lifecycle."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional, Union

from .catalog import Catalog, ProductMatcher, TaxTable
from .config import DEFAULT_CATEGORY, FALLBACK_UNIT, MANUAL_PRODUCT_ID
from .context import CUSTOMER_UPSERTED, DRAFT_CLEARED, DRAFT_SET, INVOICE_FINALIZED, ConversationContext
from .lang_utils import parse_decimal, parse_quantity
from .ledger import CustomerLedger
from .models import Invoice, LineItem, RawBillingItem, TaxCategory

logger = logging.getLogger(__name__)

NO_DRAFT = "NoDraft"
DRAFT_PENDING = "DraftPending"

RawItem = Union[RawBillingItem, dict]


class LineItemComputer:
    def __init__(self, catalog: Catalog, tax_table: TaxTable):
        self.matcher = ProductMatcher(catalog)
        self.tax_table = tax_table

    def compute(self, raw: RawItem) -> LineItem:
        """Price and tax one extracted item.

        Unmatched items fall back to the default category and, without an
        explicit price, a price of zero. Nothing here raises for odd input.
        """
        if not isinstance(raw, RawBillingItem):
            raw = RawBillingItem.model_validate(raw if isinstance(raw, dict) else {})

        product = self.matcher.match(raw.name)
        category = product.category if product else TaxCategory(DEFAULT_CATEGORY)

        explicit_price = parse_decimal(raw.price)
        if explicit_price is not None and explicit_price > 0:
            price = explicit_price
        elif product is not None:
            price = product.price
        else:
            price = Decimal("0")

        return LineItem(
            product_id=product.id if product else MANUAL_PRODUCT_ID,
            name=raw.name or (product.name if product else ""),
            quantity=parse_quantity(raw.quantity),
            unit=raw.unit or (product.unit if product else FALLBACK_UNIT),
            price_per_unit=price,
            gst_rate=self.tax_table.rate_for(category),
        )


class InvoiceComposer:
    def compose(
        self,
        ctx: ConversationContext,
        items: Iterable[RawItem],
        customer: Optional[str] = None,
        mobile: Optional[str] = None,
    ) -> Invoice:
        computer = LineItemComputer(ctx.catalog, ctx.tax_table)
        line_items = tuple(computer.compute(raw) for raw in items)
        return Invoice(
            id=ctx.ids.next("INV"),
            items=line_items,
            date=ctx.now(),
            payment_status="Pending",
            customer_name=customer,
            customer_mobile=mobile,
        )


class InvoiceLifecycle:
    """Draft -> Finalized | Discarded, at most one Draft per context.

    A ``compose`` while a Draft is pending replaces it (last billing intent
    wins). ``confirm`` and ``discard`` without a Draft are no-ops.
    """

    def __init__(self, composer: InvoiceComposer = None, ledger: CustomerLedger = None):
        self.composer = composer or InvoiceComposer()
        self.ledger = ledger or CustomerLedger()

    def state(self, ctx: ConversationContext) -> str:
        return DRAFT_PENDING if ctx.draft is not None else NO_DRAFT

    def compose(
        self,
        ctx: ConversationContext,
        items: Iterable[RawItem],
        customer: Optional[str] = None,
        mobile: Optional[str] = None,
    ) -> Invoice:
        draft = self.composer.compose(ctx, items, customer=customer, mobile=mobile)
        if ctx.draft is not None:
            logger.info("draft %s replaced by %s", ctx.draft.id, draft.id)
        ctx.draft = draft
        ctx.emit(DRAFT_SET, draft)
        return draft

    def confirm(self, ctx: ConversationContext) -> Optional[Invoice]:
        draft = ctx.draft
        if draft is None:
            return None

        invoice = draft
        customer = None
        if draft.customer_name or draft.customer_mobile:
            customer = self.ledger.record_visit(
                ctx,
                draft.customer_name or draft.customer_mobile,
                draft.grand_total,
                mobile=draft.customer_mobile,
            )
            invoice = draft.model_copy(update={"customer_id": customer.id})

        ctx.invoices.insert(0, invoice)
        ctx.draft = None
        logger.info("invoice %s finalized, grand total %s", invoice.id, invoice.grand_total)

        # all state is settled before anyone hears about it
        if customer is not None:
            ctx.emit(CUSTOMER_UPSERTED, customer)
        ctx.emit(INVOICE_FINALIZED, invoice)
        ctx.emit(DRAFT_CLEARED, None)
        return invoice

    def discard(self, ctx: ConversationContext) -> Optional[Invoice]:
        draft = ctx.draft
        if draft is None:
            return None
        ctx.draft = None
        logger.info("draft %s discarded", draft.id)
        ctx.emit(DRAFT_CLEARED, None)
        return draft
