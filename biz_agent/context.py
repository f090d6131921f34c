# biz_agent/context.py
"""Explicit per-conversation state.

Every operation in the pipeline receives the context it mutates; there is no
module-level state. A context is owned by a single sequential caller.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .catalog import Catalog, TaxTable
from .models import ChatMessage, Customer, Invoice, Reminder

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]

# Event names published on each caller-visible state transition
DRAFT_SET = "draft.set"
DRAFT_CLEARED = "draft.cleared"
INVOICE_FINALIZED = "invoice.finalized"
INVOICE_PAID = "invoice.paid"
CUSTOMER_UPSERTED = "customer.upserted"
REMINDER_CREATED = "reminder.created"
REMINDER_COMPLETED = "reminder.completed"


class IdSequence:
    """Time-ordered identifiers: prefix + epoch millis, bumped on collision."""

    def __init__(self, millis: Callable[[], int] = None):
        self._millis = millis or (lambda: int(time.time() * 1000))
        self._last = 0

    def next(self, prefix: str = "") -> str:
        value = max(self._millis(), self._last + 1)
        self._last = value
        return f"{prefix}{value}"


class ConversationContext:
    def __init__(
        self,
        catalog: Optional[Catalog] = None,
        tax_table: Optional[TaxTable] = None,
        clock: Callable[[], datetime] = datetime.now,
        ids: Optional[IdSequence] = None,
    ):
        self.catalog = catalog or Catalog.default()
        self.tax_table = tax_table or TaxTable.default()
        self.clock = clock
        self.ids = ids or IdSequence()

        self.messages: List[ChatMessage] = []
        self.draft: Optional[Invoice] = None
        # most recent first
        self.invoices: List[Invoice] = []
        self.customers: List[Customer] = []
        self.reminders: List[Reminder] = []

        self._listeners: List[Listener] = []

    def now(self) -> datetime:
        return self.clock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(event_name, obj)``; returns an unsubscribe hook."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def emit(self, event: str, obj: Any = None) -> None:
        logger.debug("event %s", event)
        for listener in list(self._listeners):
            try:
                listener(event, obj)
            except Exception:
                logger.exception("listener failed on %s", event)

    def add_message(self, role: str, text: str, data: Any = None, language: str = None) -> ChatMessage:
        msg = ChatMessage(role=role, text=text, data=data, language=language)
        self.messages.append(msg)
        return msg

    def snapshot(self) -> Dict[str, Any]:
        return {
            "draft": self.draft,
            "invoices": list(self.invoices),
            "customers": [c.model_copy() for c in self.customers],
            "reminders": [r.model_copy() for r in self.reminders],
        }
