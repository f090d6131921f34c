# biz_agent/validator.py
"""Audit exported invoices: re-derive every total and flag drift."""
from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Union

from .config import AUDIT_EPSILON, PAYMENT_MODES
from .lang_utils import parse_decimal
from .models import AuditSummary, Invoice, InvoiceValidationResult

InvoiceLike = Union[Invoice, dict]

LARGE_TOTAL = Decimal("1000000000")


def _as_record(inv: InvoiceLike) -> dict:
    if isinstance(inv, Invoice):
        return inv.model_dump()
    return inv if isinstance(inv, dict) else {}


def _differs(reported: Optional[Decimal], expected: Decimal) -> bool:
    return reported is not None and abs(reported - expected) > AUDIT_EPSILON


def _check_completeness_and_format(rec: dict) -> List[str]:
    errors: List[str] = []

    if not str(rec.get("id") or "").strip():
        errors.append("missing_field: id")
    if not rec.get("items"):
        errors.append("missing_field: items")
    if rec.get("payment_status") not in ("Pending", "Paid"):
        errors.append("format: invalid_payment_status")

    mode = rec.get("payment_mode")
    if mode is not None and mode not in PAYMENT_MODES.values():
        errors.append("format: invalid_payment_mode")

    return errors


def _check_line_items(rec: dict) -> List[str]:
    errors: List[str] = []

    for n, item in enumerate(rec.get("items") or [], start=1):
        if not isinstance(item, dict):
            errors.append(f"format: line_{n}_not_an_object")
            continue
        qty = parse_decimal(item.get("quantity"))
        price = parse_decimal(item.get("price_per_unit"))
        rate = parse_decimal(item.get("gst_rate"))

        if qty is None or qty <= 0:
            errors.append(f"business_rule_failed: line_{n}_quantity_not_positive")
        if price is None:
            errors.append(f"format: line_{n}_price_invalid")
        elif price < 0:
            errors.append(f"business_rule_failed: line_{n}_price_negative")
        if rate is None or not (0 <= rate < 1):
            errors.append(f"business_rule_failed: line_{n}_gst_rate_out_of_range")
        if None in (qty, price, rate):
            continue

        subtotal = qty * price
        if _differs(parse_decimal(item.get("total")), subtotal + subtotal * rate):
            errors.append(f"business_rule_failed: line_{n}_total_mismatch")

    return errors


def _check_totals(rec: dict) -> List[str]:
    errors: List[str] = []

    sub = Decimal("0")
    gst = Decimal("0")
    for item in rec.get("items") or []:
        if not isinstance(item, dict):
            continue
        qty = parse_decimal(item.get("quantity"))
        price = parse_decimal(item.get("price_per_unit"))
        rate = parse_decimal(item.get("gst_rate"))
        if None in (qty, price, rate):
            continue
        sub += qty * price
        gst += qty * price * rate

    reported_sub = parse_decimal(rec.get("sub_total"))
    reported_gst = parse_decimal(rec.get("gst_total"))
    reported_grand = parse_decimal(rec.get("grand_total"))

    if _differs(reported_sub, sub):
        errors.append("business_rule_failed: sub_total_mismatch")
    if _differs(reported_gst, gst):
        errors.append("business_rule_failed: gst_total_mismatch")
    if reported_sub is not None and reported_gst is not None:
        if _differs(reported_grand, reported_sub + reported_gst):
            errors.append("business_rule_failed: totals_mismatch")
    elif _differs(reported_grand, sub + gst):
        errors.append("business_rule_failed: totals_mismatch")

    if (reported_grand if reported_grand is not None else sub + gst) > LARGE_TOTAL:
        errors.append("anomaly: total_too_large")

    return errors


def validate_invoices(
    invoices: Iterable[InvoiceLike],
) -> tuple[List[InvoiceValidationResult], AuditSummary]:
    records = [_as_record(inv) for inv in invoices]
    results: List[InvoiceValidationResult] = []

    id_counts = Counter(str(rec.get("id") or "").strip() for rec in records)
    error_counter: Counter[str] = Counter()

    for rec in records:
        errors: List[str] = []

        errors.extend(_check_completeness_and_format(rec))
        errors.extend(_check_line_items(rec))
        errors.extend(_check_totals(rec))

        key = str(rec.get("id") or "").strip()
        if key and id_counts[key] > 1:
            errors.append("anomaly: duplicate_invoice_id")

        for e in errors:
            error_counter[e] += 1

        results.append(
            InvoiceValidationResult(
                invoice_id=key,
                is_valid=not errors,
                errors=errors,
            )
        )

    total = len(records)
    invalid = sum(1 for r in results if not r.is_valid)

    summary = AuditSummary(
        total_invoices=total,
        valid_invoices=total - invalid,
        invalid_invoices=invalid,
        error_counts=dict(error_counter),
    )

    return results, summary


def check_invoice(inv: Any) -> List[str]:
    """Errors for a single invoice (empty when it audits clean)."""
    results, _ = validate_invoices([inv])
    return results[0].errors
