# biz_agent/ledger.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from .config import PAYMENT_MODES
from .context import INVOICE_PAID, ConversationContext
from .models import Customer, Invoice

logger = logging.getLogger(__name__)


def normalize_payment_mode(mode: Optional[str]) -> Optional[str]:
    if not mode:
        return None
    return PAYMENT_MODES.get(mode.strip().lower())


class CustomerLedger:
    """Per-customer visit count and spend.

    ``record_visit`` is not idempotent: each call counts one visit, so callers
    invoke it exactly once per finalized invoice or payment event. It does not
    publish ``customer.upserted``; the caller does once its own transition is
    complete.
    """

    def find(
        self, ctx: ConversationContext, key: Optional[str], mobile: Optional[str] = None
    ) -> Optional[Customer]:
        handles = {h.strip().lower() for h in (key, mobile) if h and h.strip()}
        if not handles:
            return None
        for customer in ctx.customers:
            if customer.mobile and customer.mobile.lower() in handles:
                return customer
        for customer in ctx.customers:
            if customer.name.lower() in handles:
                return customer
        return None

    def record_visit(
        self,
        ctx: ConversationContext,
        key: str,
        amount: Decimal,
        mobile: Optional[str] = None,
    ) -> Customer:
        now = ctx.now()
        customer = self.find(ctx, key, mobile)
        if customer is None:
            customer = Customer(
                id=ctx.ids.next("CUST"),
                name=key.strip(),
                mobile=(mobile or "").strip(),
            )
            ctx.customers.append(customer)
            logger.info("new customer %s (%s)", customer.name, customer.id)
        elif mobile and not customer.mobile:
            customer.mobile = mobile.strip()

        customer.visit_count += 1
        customer.total_spent += amount
        customer.last_visit = now
        return customer

    def mark_latest_pending_paid(
        self, ctx: ConversationContext, customer: Customer, mode: Optional[str] = None
    ) -> Optional[Invoice]:
        """Mark the most recent (by date) Pending invoice of ``customer`` Paid.

        Older Pending invoices of the same customer are left alone.
        """
        candidates = [
            (i, inv)
            for i, inv in enumerate(ctx.invoices)
            if inv.payment_status == "Pending" and inv.customer_id == customer.id
        ]
        if not candidates:
            return None

        index, latest = max(candidates, key=lambda pair: pair[1].date)
        paid = latest.mark_paid(normalize_payment_mode(mode))
        ctx.invoices[index] = paid
        logger.info("invoice %s marked Paid (%s)", paid.id, paid.payment_mode or "no mode")
        ctx.emit(INVOICE_PAID, paid)
        return paid
