# main.py
import logging
import os
import threading
from typing import Any, Dict, List

from fastapi import Body, FastAPI
from pydantic import BaseModel

from biz_agent.billing import InvoiceLifecycle
from biz_agent.context import ConversationContext
from biz_agent.models import Product
from biz_agent.nlu import classify_utterance
from biz_agent.orchestrator import ConversationOrchestrator
from biz_agent.reminders import ReminderQueue
from biz_agent.reports import business_summary
from biz_agent.validator import validate_invoices

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

app = FastAPI(title="Bharat Biz-Agent")

# One shop, one conversation: requests are handled against this context.
orchestrator = ConversationOrchestrator(ConversationContext(), nlu=classify_utterance)

# Sync endpoints run on the threadpool; the context has a single writer.
_lock = threading.Lock()


def _ctx() -> ConversationContext:
    return orchestrator.ctx


# ---------------------------------------------------------
# HEALTH
# ---------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok", "gemini_key_loaded": bool(os.getenv("GEMINI_API_KEY"))}


# ---------------------------------------------------------
# CHAT + DRAFT LIFECYCLE
# ---------------------------------------------------------
class ChatRequest(BaseModel):
    text: str


@app.post("/chat")
def chat(req: ChatRequest):
    with _lock:
        result = orchestrator.handle_message(req.text)
        if result is None:
            return {"intent": "unknown", "reply": "", "data": None, "draft": _ctx().draft}
        return result


@app.get("/messages")
def messages():
    with _lock:
        return list(_ctx().messages)


@app.get("/draft")
def draft():
    with _lock:
        ctx = _ctx()
        return {"state": InvoiceLifecycle().state(ctx), "draft": ctx.draft}


@app.post("/draft/confirm")
def confirm_draft():
    with _lock:
        invoice = orchestrator.confirm_draft()
    return {"finalized": invoice is not None, "invoice": invoice}


@app.post("/draft/discard")
def discard_draft():
    with _lock:
        discarded = orchestrator.discard_draft()
    return {"discarded": discarded is not None}


# ---------------------------------------------------------
# RECORDS
# ---------------------------------------------------------
@app.get("/invoices")
def invoices():
    with _lock:
        return list(_ctx().invoices)


@app.get("/customers")
def customers():
    with _lock:
        return [c.model_copy() for c in _ctx().customers]


@app.get("/reminders")
def reminders():
    with _lock:
        return [r.model_copy() for r in _ctx().reminders]


@app.post("/reminders/{reminder_id}/complete")
def complete_reminder(reminder_id: str):
    with _lock:
        reminder = ReminderQueue().complete(_ctx(), reminder_id)
    return {"reminder": reminder}


@app.get("/products")
def products():
    with _lock:
        ctx = _ctx()
        return {"products": ctx.catalog.products(), "gst_rates": ctx.tax_table.as_dict()}


@app.post("/products")
def upsert_product(product: Product):
    with _lock:
        return _ctx().catalog.upsert(product)


@app.get("/summary")
def summary():
    with _lock:
        return business_summary(_ctx())


# ---------------------------------------------------------
# AUDIT (exported invoice JSON, or the live ledger when empty)
# ---------------------------------------------------------
@app.post("/audit")
def audit(invoices: List[Dict[str, Any]] = Body(None)):
    with _lock:
        records = invoices if invoices else list(_ctx().invoices)
    results, summary = validate_invoices(records)
    return {
        "summary": summary.model_dump(),
        "results": [r.model_dump() for r in results],
    }
