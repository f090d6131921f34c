# biz_agent/reports.py
"""Read-only aggregation over a conversation's records (query intent)."""
from __future__ import annotations

from .context import ConversationContext
from .lang_utils import format_amount
from .models import ZERO, BusinessSummary

RECENT_INVOICES = 5


def business_summary(ctx: ConversationContext) -> BusinessSummary:
    today = ctx.now().date()
    pending = [inv for inv in ctx.invoices if inv.payment_status == "Pending"]

    return BusinessSummary(
        today_sales=sum(
            (inv.grand_total for inv in ctx.invoices if inv.date.date() == today), ZERO
        ),
        pending_payments=sum((inv.grand_total for inv in pending), ZERO),
        pending_invoice_count=len(pending),
        customer_count=len(ctx.customers),
        active_reminders=sum(1 for r in ctx.reminders if r.status == "Pending"),
        recent_invoices=ctx.invoices[:RECENT_INVOICES],
    )


def summary_text(summary: BusinessSummary) -> str:
    return (
        f"Today's sales: {format_amount(summary.today_sales)}. "
        f"Pending payments: {format_amount(summary.pending_payments)} "
        f"across {summary.pending_invoice_count} invoices. "
        f"Customers: {summary.customer_count}. "
        f"Active reminders: {summary.active_reminders}."
    )
