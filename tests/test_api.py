import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

import main
from biz_agent.orchestrator import ConversationOrchestrator

BILL = {
    "intent": "billing",
    "message": "Bill ready.",
    "extractedData": [{"name": "rice", "quantity": "2"}],
}


@pytest.fixture
def client(ctx, nlu, monkeypatch):
    monkeypatch.setattr(main, "orchestrator", ConversationOrchestrator(ctx, nlu=nlu))
    return TestClient(main.app)


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_chat_confirm_flow(client, nlu):
    nlu.queue(BILL)
    res = client.post("/chat", json={"text": "2 kilo chawal"})
    body = res.json()
    assert body["intent"] == "billing"
    assert float(body["draft"]["grand_total"]) == 252.0
    assert client.get("/draft").json()["state"] == "DraftPending"

    confirmed = client.post("/draft/confirm").json()
    assert confirmed["finalized"] is True

    invoices = client.get("/invoices").json()
    assert [inv["id"] for inv in invoices] == [confirmed["invoice"]["id"]]
    assert client.get("/draft").json() == {"state": "NoDraft", "draft": None}


def test_confirm_and_discard_without_draft_are_noops(client):
    assert client.post("/draft/confirm").json() == {"finalized": False, "invoice": None}
    assert client.post("/draft/discard").json() == {"discarded": False}
    assert client.get("/invoices").json() == []


def test_nlu_failure_returns_apology(client, nlu):
    nlu.queue(RuntimeError("quota exceeded"))
    res = client.post("/chat", json={"text": "ek sabun"})
    assert res.status_code == 200
    assert res.json()["reply"] == "Sorry, I encountered an error. Please try again."


def test_reminder_complete(client, nlu):
    nlu.queue({"intent": "reminder", "message": "ok", "extractedData": {"text": "Call Riya"}})
    client.post("/chat", json={"text": "Riya ko call"})
    reminder = client.get("/reminders").json()[0]

    done = client.post(f"/reminders/{reminder['id']}/complete").json()
    assert done["reminder"]["status"] == "Completed"
    assert client.post("/reminders/nope/complete").json() == {"reminder": None}


def test_products_and_upsert(client):
    catalog = client.get("/products").json()
    assert len(catalog["products"]) == 10
    assert float(catalog["gst_rates"]["luxury_items"]) == 0.28

    res = client.post(
        "/products",
        json={"id": "11", "name": "Mustard Oil", "price": "190", "unit": "liter", "category": "food_items"},
    )
    assert res.status_code == 200
    assert len(client.get("/products").json()["products"]) == 11


def test_product_with_unknown_category_rejected(client):
    res = client.post(
        "/products",
        json={"id": "12", "name": "Gold", "price": "1", "unit": "g", "category": "jewellery"},
    )
    assert res.status_code == 422


def test_summary_and_audit(client, nlu):
    nlu.queue(BILL)
    client.post("/chat", json={"text": "2 kilo chawal"})
    client.post("/draft/confirm")

    summary = client.get("/summary").json()
    assert float(summary["today_sales"]) == 252.0
    assert summary["pending_invoice_count"] == 1

    report = client.post("/audit").json()
    assert report["summary"]["total_invoices"] == 1
    assert report["summary"]["invalid_invoices"] == 0


def test_concurrent_confirms_finalize_once(client, ctx, monkeypatch):
    main.orchestrator.lifecycle.compose(ctx, [{"name": "sugar", "quantity": "2"}], customer="Rahul")

    ledger = main.orchestrator.lifecycle.ledger
    record_visit = ledger.record_visit

    def slow_record_visit(*args, **kwargs):
        time.sleep(0.05)
        return record_visit(*args, **kwargs)

    monkeypatch.setattr(ledger, "record_visit", slow_record_visit)

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(lambda _: main.confirm_draft(), range(4)))

    assert [o["finalized"] for o in outcomes].count(True) == 1
    assert len(ctx.invoices) == 1
    assert ctx.customers[0].visit_count == 1
    assert ctx.customers[0].total_spent == ctx.invoices[0].grand_total

