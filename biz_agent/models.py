# biz_agent/models.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Literal, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from .lang_utils import optional_text

PaymentStatus = Literal["Pending", "Paid"]
PaymentMode = Literal["UPI", "Cash", "Card"]
ReminderStatus = Literal["Pending", "Completed"]
Intent = Literal["billing", "query", "payment", "reminder", "unknown"]

INTENTS = ("billing", "query", "payment", "reminder", "unknown")

ZERO = Decimal("0")


class TaxCategory(str, Enum):
    FOOD_ITEMS = "food_items"
    GENERAL_GOODS = "general_goods"
    LUXURY_ITEMS = "luxury_items"


# ---------------------------------------------------------
# Domain records
# ---------------------------------------------------------
class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: Decimal = Field(..., ge=0)
    unit: str
    category: TaxCategory


class LineItem(BaseModel):
    """A priced, taxed invoice line.

    The tax rate is a snapshot taken when the line was computed. Totals are
    derived on access and are never stored independently.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    quantity: Decimal = Field(..., gt=0)
    unit: str
    price_per_unit: Decimal = Field(..., ge=0)
    gst_rate: Decimal = Field(..., ge=0, lt=1)

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.price_per_unit

    @computed_field
    @property
    def gst_amount(self) -> Decimal:
        return self.subtotal * self.gst_rate

    @computed_field
    @property
    def total(self) -> Decimal:
        return self.subtotal + self.gst_amount


class Invoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    items: Tuple[LineItem, ...]
    date: datetime
    payment_status: PaymentStatus = "Pending"
    payment_mode: Optional[PaymentMode] = None

    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_mobile: Optional[str] = None

    @computed_field
    @property
    def sub_total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), ZERO)

    @computed_field
    @property
    def gst_total(self) -> Decimal:
        return sum((item.gst_amount for item in self.items), ZERO)

    @computed_field
    @property
    def grand_total(self) -> Decimal:
        return self.sub_total + self.gst_total

    def mark_paid(self, mode: Optional[str] = None) -> "Invoice":
        """Return a copy marked Paid; items and totals are untouched."""
        return self.model_copy(update={"payment_status": "Paid", "payment_mode": mode})


class Customer(BaseModel):
    id: str
    name: str
    mobile: str = ""
    visit_count: int = 0
    total_spent: Decimal = ZERO
    last_visit: Optional[datetime] = None


class Reminder(BaseModel):
    id: str
    text: str
    due_date: str
    status: ReminderStatus = "Pending"
    created_at: Optional[datetime] = None


class ChatMessage(BaseModel):
    role: Literal["user", "agent"]
    text: str
    data: Any = None
    language: Optional[str] = None


# ---------------------------------------------------------
# NLU output contract (validated at the orchestrator boundary)
# ---------------------------------------------------------
class AIResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    intent: Intent = "unknown"
    message: str = ""
    extracted_data: Any = Field(None, alias="extractedData")

    @field_validator("intent", mode="before")
    @classmethod
    def normalize_intent(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in INTENTS:
            return value.strip().lower()
        return "unknown"

    @field_validator("message", mode="before")
    @classmethod
    def message_as_text(cls, value: Any) -> str:
        return optional_text(value) or ""


class RawBillingItem(BaseModel):
    name: str = ""
    quantity: Any = None
    unit: Optional[str] = None
    price: Any = None

    @field_validator("name", mode="before")
    @classmethod
    def name_as_text(cls, value: Any) -> str:
        return optional_text(value) or ""

    @field_validator("unit", mode="before")
    @classmethod
    def unit_as_text(cls, value: Any) -> Optional[str]:
        return optional_text(value)


class BillingPayload(BaseModel):
    items: List[RawBillingItem] = []
    customer: Optional[str] = None
    mobile: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def accept_bare_item_lists(cls, data: Any) -> Any:
        # The NLU usually sends a bare list of items; a single item object is
        # also seen in the wild.
        if isinstance(data, list):
            return {"items": data}
        if isinstance(data, dict) and "items" not in data and "name" in data:
            return {"items": [data]}
        return data

    @field_validator("items", mode="before")
    @classmethod
    def keep_item_like_entries(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        items = []
        for entry in value:
            if isinstance(entry, dict):
                items.append(entry)
            elif isinstance(entry, str) and entry.strip():
                items.append({"name": entry})
        return items

    @field_validator("customer", "mobile", mode="before")
    @classmethod
    def link_as_text(cls, value: Any) -> Optional[str]:
        return optional_text(value)


class ReminderPayload(BaseModel):
    text: Optional[str] = None
    date: Optional[str] = None

    @field_validator("text", "date", mode="before")
    @classmethod
    def as_text(cls, value: Any) -> Optional[str]:
        return optional_text(value)


class PaymentPayload(BaseModel):
    customer: str
    amount: Any = None
    mode: Optional[str] = None

    @field_validator("customer", mode="before")
    @classmethod
    def customer_required(cls, value: Any) -> str:
        text = optional_text(value)
        if not text:
            raise ValueError("customer is required")
        return text

    @field_validator("mode", mode="before")
    @classmethod
    def mode_as_text(cls, value: Any) -> Optional[str]:
        return optional_text(value)


# ---------------------------------------------------------
# Results and summaries
# ---------------------------------------------------------
class TurnResult(BaseModel):
    intent: Intent
    reply: str
    data: Any = None
    draft: Optional[Invoice] = None


class BusinessSummary(BaseModel):
    today_sales: Decimal
    pending_payments: Decimal
    pending_invoice_count: int
    customer_count: int
    active_reminders: int
    recent_invoices: List[Invoice]


class InvoiceValidationResult(BaseModel):
    invoice_id: str
    is_valid: bool
    errors: List[str]


class AuditSummary(BaseModel):
    total_invoices: int
    valid_invoices: int
    invalid_invoices: int
    error_counts: dict
