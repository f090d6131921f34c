# biz_agent/reminders.py
from __future__ import annotations

import logging
from typing import List, Optional

from .context import REMINDER_COMPLETED, REMINDER_CREATED, ConversationContext
from .lang_utils import parse_due_date
from .models import Reminder

logger = logging.getLogger(__name__)


class ReminderQueue:
    """Pending -> Completed only. Reminders are never deleted."""

    def schedule(
        self, ctx: ConversationContext, text: str, due_date: Optional[str] = None
    ) -> Reminder:
        now = ctx.now()
        reminder = Reminder(
            id=ctx.ids.next("REM"),
            text=text,
            due_date=parse_due_date(due_date, now),
            status="Pending",
            created_at=now,
        )
        ctx.reminders.append(reminder)
        logger.info("reminder %s scheduled for %s", reminder.id, reminder.due_date)
        ctx.emit(REMINDER_CREATED, reminder)
        return reminder

    def complete(self, ctx: ConversationContext, reminder_id: str) -> Optional[Reminder]:
        """Mark a reminder Completed; unknown or already completed ids are a no-op."""
        for reminder in ctx.reminders:
            if reminder.id != reminder_id:
                continue
            if reminder.status == "Completed":
                return reminder
            reminder.status = "Completed"
            ctx.emit(REMINDER_COMPLETED, reminder)
            return reminder

        logger.debug("complete() for unknown reminder %s ignored", reminder_id)
        return None

    def pending(self, ctx: ConversationContext) -> List[Reminder]:
        return [r for r in ctx.reminders if r.status == "Pending"]
