# biz_agent/lang_utils.py
"""Lenient coercion of loosely-typed NLU fields (amounts, quantities, dates)."""
from __future__ import annotations

import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

import dateparser
from langdetect import DetectorFactory, detect

from .config import DISPLAY_PRECISION

DetectorFactory.seed = 0

AMOUNT_TOKEN = r"[-+]?\d[\d,]*(?:\.\d+)?(?:[eE][-+]?\d+)?"
EXPONENT_RE = re.compile(r"[eE][-+]?\d+$")
AMOUNT_RE = re.compile(AMOUNT_TOKEN)
GROUPED_THOUSANDS_RE = re.compile(r"^\d{1,3}(?:,\d{2,3})+(?:\.\d+)?$")

# Spoken quantities that show up in mixed Hindi/English orders
NUMBER_WORDS = {
    "half": Decimal("0.5"),
    "aadha": Decimal("0.5"),
    "one": Decimal("1"),
    "ek": Decimal("1"),
    "two": Decimal("2"),
    "do": Decimal("2"),
    "three": Decimal("3"),
    "teen": Decimal("3"),
    "four": Decimal("4"),
    "char": Decimal("4"),
    "five": Decimal("5"),
    "paanch": Decimal("5"),
    "dozen": Decimal("12"),
}

ONE = Decimal("1")


def detect_language(text: str) -> str:
    try:
        return detect(text)
    except Exception:
        return "unknown"


def optional_text(value: Any) -> Optional[str]:
    """Stringify scalars; blank strings and containers become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def parse_decimal(raw: Any) -> Optional[Decimal]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    if isinstance(raw, int):
        return Decimal(raw)
    if isinstance(raw, float):
        value = Decimal(str(raw))
        return value if value.is_finite() else None
    if not isinstance(raw, str):
        return None

    s = raw.strip().lower()
    if s in NUMBER_WORDS:
        return NUMBER_WORDS[s]

    # first number in the text; currency symbols and units are skipped
    m = AMOUNT_RE.search(s)
    if not m:
        return None
    token = m.group(0)
    exp = EXPONENT_RE.search(token)
    suffix = exp.group(0) if exp else ""
    token = token[: len(token) - len(suffix)].rstrip(",")
    if GROUPED_THOUSANDS_RE.match(token.lstrip("+-")):
        token = token.replace(",", "")
    elif "," in token and "." not in token:
        token = token.replace(",", ".")
    else:
        token = token.replace(",", "")
    try:
        value = Decimal(token + suffix)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def parse_quantity(raw: Any) -> Decimal:
    """Quantity is never zero or negative: anything unusable becomes 1."""
    value = parse_decimal(raw)
    if value is None or value <= 0:
        return ONE
    return value


def parse_due_date(raw: Optional[str], now: datetime) -> str:
    if not raw:
        return now.date().isoformat()
    dt = dateparser.parse(
        raw,
        settings={
            "DATE_ORDER": "DMY",
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": now,
        },
    )
    if not dt:
        return raw
    return dt.date().isoformat()


def display_amount(value: Decimal) -> Decimal:
    """Round for presentation only; stored values keep full precision."""
    return value.quantize(DISPLAY_PRECISION, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    return f"₹{display_amount(value):,}"
