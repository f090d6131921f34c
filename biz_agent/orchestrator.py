# biz_agent/orchestrator.py
"""Routes one classified utterance to billing, ledger, reminders or reports."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from .billing import InvoiceLifecycle
from .config import ERROR_REPLY, INVOICE_CREATED_REPLY, INVOICE_CREATED_SPEECH, UNKNOWN_REPLY
from .context import CUSTOMER_UPSERTED, ConversationContext
from .lang_utils import detect_language, parse_decimal
from .ledger import CustomerLedger
from .models import (
    ZERO,
    AIResponse,
    BillingPayload,
    Invoice,
    PaymentPayload,
    ReminderPayload,
    TurnResult,
)
from .reminders import ReminderQueue
from .reports import business_summary

logger = logging.getLogger(__name__)

Classifier = Callable[[str], Any]
Speaker = Callable[[str], None]


class MalformedPayload(ValueError):
    """Extracted data that validates but cannot drive its intent."""


class ConversationOrchestrator:
    """One conversation, one sequential caller.

    ``nlu`` is the external classifier (raw text -> ``{intent, message,
    extractedData}``) and is the only call that may fail; ``speaker`` is an
    optional text-to-speech sink whose failures are ignored.
    """

    def __init__(
        self,
        ctx: ConversationContext,
        nlu: Classifier,
        speaker: Optional[Speaker] = None,
        lifecycle: Optional[InvoiceLifecycle] = None,
        ledger: Optional[CustomerLedger] = None,
        reminders: Optional[ReminderQueue] = None,
    ):
        self.ctx = ctx
        self.nlu = nlu
        self.speaker = speaker
        self.ledger = ledger or CustomerLedger()
        self.lifecycle = lifecycle or InvoiceLifecycle(ledger=self.ledger)
        self.reminders = reminders or ReminderQueue()

        self._handlers: Dict[str, Callable[[str, Any], Any]] = {
            "billing": self._handle_billing,
            "reminder": self._handle_reminder,
            "payment": self._handle_payment,
            "query": self._handle_query,
        }

    # ---------------------------------------------------------
    # Turn handling
    # ---------------------------------------------------------
    def handle_message(self, text: str) -> Optional[TurnResult]:
        if not text or not text.strip():
            return None

        text = text.strip()
        self.ctx.add_message("user", text, language=detect_language(text))

        try:
            raw = self.nlu(text)
        except Exception:
            logger.exception("NLU call failed")
            self.ctx.add_message("agent", ERROR_REPLY)
            return self._result("unknown", ERROR_REPLY)

        response = self._coerce_response(raw)
        handler = self._handlers.get(response.intent)

        data = None
        if handler is not None:
            try:
                data = handler(text, response.extracted_data)
            except (ValidationError, MalformedPayload) as e:
                logger.warning("malformed %s payload, treating as unknown: %s", response.intent, e)
                response = AIResponse(intent="unknown", message=UNKNOWN_REPLY)

        reply = response.message or UNKNOWN_REPLY
        self.ctx.add_message("agent", reply, data=response.extracted_data)
        self.speak(reply)
        return self._result(response.intent, reply, data)

    def confirm_draft(self) -> Optional[Invoice]:
        invoice = self.lifecycle.confirm(self.ctx)
        if invoice is not None:
            self.ctx.add_message("agent", INVOICE_CREATED_REPLY.format(invoice_id=invoice.id))
            self.speak(INVOICE_CREATED_SPEECH)
        return invoice

    def discard_draft(self) -> Optional[Invoice]:
        return self.lifecycle.discard(self.ctx)

    def speak(self, text: str) -> None:
        if self.speaker is None:
            return
        try:
            self.speaker(text)
        except Exception as e:
            logger.debug("speech playback failed: %s", e)

    # ---------------------------------------------------------
    # Intent handlers
    # ---------------------------------------------------------
    def _handle_billing(self, text: str, extracted: Any) -> Invoice:
        payload = BillingPayload.model_validate(extracted if extracted is not None else [])
        if not payload.items:
            raise MalformedPayload("billing payload carries no items")
        return self.lifecycle.compose(
            self.ctx, payload.items, customer=payload.customer, mobile=payload.mobile
        )

    def _handle_reminder(self, text: str, extracted: Any):
        payload = ReminderPayload.model_validate(extracted if isinstance(extracted, dict) else {})
        return self.reminders.schedule(self.ctx, payload.text or text, payload.date)

    def _handle_payment(self, text: str, extracted: Any) -> dict:
        payload = PaymentPayload.model_validate(extracted if isinstance(extracted, dict) else {})
        amount = parse_decimal(payload.amount)
        if amount is None or amount < 0:
            amount = ZERO

        customer = self.ledger.record_visit(self.ctx, payload.customer, amount)
        invoice = self.ledger.mark_latest_pending_paid(self.ctx, customer, payload.mode)
        self.ctx.emit(CUSTOMER_UPSERTED, customer)
        logger.info("payment of %s recorded for %s", amount, customer.name)
        return {"customer": customer, "invoice": invoice}

    def _handle_query(self, text: str, extracted: Any):
        return business_summary(self.ctx)

    # ---------------------------------------------------------
    def _coerce_response(self, raw: Any) -> AIResponse:
        if isinstance(raw, AIResponse):
            return raw
        try:
            return AIResponse.model_validate(raw if isinstance(raw, dict) else {})
        except ValidationError as e:
            logger.warning("malformed NLU response: %s", e)
            return AIResponse(intent="unknown", message=UNKNOWN_REPLY)

    def _result(self, intent: str, reply: str, data: Any = None) -> TurnResult:
        return TurnResult(intent=intent, reply=reply, data=data, draft=self.ctx.draft)
