# app.py
import os

import requests
import streamlit as st

BACKEND_URL = os.getenv("BIZ_AGENT_BACKEND_URL", "http://127.0.0.1:8000")

st.set_page_config(
    page_title="Bharat Biz-Agent",
    layout="wide",
    page_icon="🧾",
)

st.title("🧾 Bharat Biz-Agent")


def _get(path: str):
    try:
        res = requests.get(f"{BACKEND_URL}{path}", timeout=10)
    except Exception as e:
        st.error(f"❌ Could not reach backend: {e}")
        st.stop()
    return res.json()


def _post(path: str, payload=None):
    try:
        res = requests.post(f"{BACKEND_URL}{path}", json=payload, timeout=60)
    except Exception as e:
        st.error(f"❌ Could not reach backend: {e}")
        st.stop()
    if res.status_code != 200:
        st.error("❌ Backend returned an error.")
        st.text(res.text)
        st.stop()
    return res.json()


# ============================================================
# SIDEBAR → DASHBOARD
# ============================================================
summary = _get("/summary")
st.sidebar.header("📊 Business Overview")
st.sidebar.metric("Today's Sales", f"₹{float(summary['today_sales']):,.2f}")
st.sidebar.metric(
    "Pending Payments",
    f"₹{float(summary['pending_payments']):,.2f}",
    f"{summary['pending_invoice_count']} invoices",
    delta_color="off",
)
st.sidebar.metric("Customers", summary["customer_count"])
st.sidebar.metric("Active Reminders", summary["active_reminders"])

st.sidebar.subheader("🔔 Reminders")
for rem in _get("/reminders"):
    if rem["status"] != "Pending":
        continue
    if st.sidebar.button(f"✅ {rem['text']} ({rem['due_date']})", key=rem["id"]):
        _post(f"/reminders/{rem['id']}/complete")
        st.rerun()


# ============================================================
# CHAT
# ============================================================
chat_tab, invoices_tab, customers_tab, products_tab = st.tabs(
    ["💬 AI Biz-Agent", "🧾 Invoices", "👥 Customers", "📦 Products"]
)

with chat_tab:
    for msg in _get("/messages"):
        role = "🧑 You" if msg["role"] == "user" else "🤖 Agent"
        st.markdown(f"**{role}:** {msg['text']}")

    draft = _get("/draft")["draft"]
    if draft:
        st.subheader(f"Draft invoice {draft['id']}")
        st.table(
            [
                {
                    "Item": item["name"],
                    "Qty": f"{item['quantity']} {item['unit']}",
                    "Rate": f"₹{float(item['price_per_unit']):,.2f}",
                    "GST": f"{float(item['gst_rate']) * 100:.0f}%",
                    "Total": f"₹{float(item['total']):,.2f}",
                }
                for item in draft["items"]
            ]
        )
        st.markdown(f"**Grand total: ₹{float(draft['grand_total']):,.2f}**")
        col_ok, col_cancel = st.columns(2)
        if col_ok.button("Confirm & Save"):
            _post("/draft/confirm")
            st.rerun()
        if col_cancel.button("Cancel"):
            _post("/draft/discard")
            st.rerun()

    user_input = st.text_input("Type in English, Hindi or Hinglish:")
    if st.button("Send"):
        if not user_input.strip():
            st.warning("Please type a message.")
        else:
            _post("/chat", {"text": user_input})
            st.rerun()

with invoices_tab:
    for inv in _get("/invoices"):
        st.markdown(
            f"**{inv['id']}** · {inv['date'][:10]} · ₹{float(inv['grand_total']):,.2f} · "
            f"{inv['payment_status']}{' (' + inv['payment_mode'] + ')' if inv['payment_mode'] else ''}"
        )

with customers_tab:
    customers = _get("/customers")
    if not customers:
        st.info("Register your first customer by mentioning them in a bill!")
    for c in customers:
        st.markdown(
            f"**{c['name']}** {c['mobile']} · visits: {c['visit_count']} · "
            f"spent: ₹{float(c['total_spent']):,.2f}"
        )

with products_tab:
    catalog = _get("/products")
    st.table(
        [
            {
                "Name": p["name"],
                "Price": f"₹{float(p['price']):,.2f} / {p['unit']}",
                "GST": f"{float(catalog['gst_rates'][p['category']]) * 100:.0f}%",
            }
            for p in catalog["products"]
        ]
    )
