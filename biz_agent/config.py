# biz_agent/config.py
"""Seed catalog, tax rates and reply strings used across the agent."""
from __future__ import annotations

import os
from decimal import Decimal

# Product seed data: (id, name, price, unit, category)
INITIAL_PRODUCTS = [
    ("1", "Basmati Rice", "120", "kg", "food_items"),
    ("2", "Sugar", "42", "kg", "food_items"),
    ("3", "Sunflower Oil", "160", "liter", "food_items"),
    ("4", "Toor Dal", "140", "kg", "food_items"),
    ("5", "Wheat Flour", "45", "kg", "food_items"),
    ("6", "Bath Soap", "35", "piece", "general_goods"),
    ("7", "Detergent Powder", "90", "kg", "general_goods"),
    ("8", "Shampoo Bottle", "180", "bottle", "general_goods"),
    ("9", "Chocolate Box", "450", "box", "luxury_items"),
    ("10", "Perfume", "850", "bottle", "luxury_items"),
]

GST_RATES = {
    "food_items": Decimal("0.05"),
    "general_goods": Decimal("0.18"),
    "luxury_items": Decimal("0.28"),
}

DEFAULT_CATEGORY = "general_goods"
FALLBACK_UNIT = "unit"
MANUAL_PRODUCT_ID = "manual"

PAYMENT_MODES = {"upi": "UPI", "cash": "Cash", "card": "Card"}

DISPLAY_PRECISION = Decimal("0.01")
AUDIT_EPSILON = Decimal("0.01")  # tolerance when re-checking exported totals

GREETING = "Namaste! I am Bharat Biz-Agent. How can I help your business today?"
UNKNOWN_REPLY = "Sorry, I couldn't understand that. Please try again."
ERROR_REPLY = "Sorry, I encountered an error. Please try again."
INVOICE_CREATED_REPLY = "Invoice {invoice_id} has been created successfully!"
INVOICE_CREATED_SPEECH = "Invoice create ho gayi hai."

# Environment
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
PREFERRED_MODELS = [
    m.strip()
    for m in os.getenv("BIZ_AGENT_MODELS", "gemini-1.5-flash-latest,gemini-1.5-pro-latest").split(",")
    if m.strip()
]
