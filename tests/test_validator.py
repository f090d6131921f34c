from decimal import Decimal

from biz_agent.billing import InvoiceLifecycle
from biz_agent.validator import validate_invoices

ITEMS = [{"name": "rice", "quantity": "2"}, {"name": "soap"}]


def _exported(ctx, n=1):
    lifecycle = InvoiceLifecycle()
    for _ in range(n):
        lifecycle.compose(ctx, ITEMS)
        lifecycle.confirm(ctx)
    return [inv.model_dump(mode="json") for inv in ctx.invoices]


class TestValidateInvoices:
    def test_finalized_invoices_audit_clean(self, ctx):
        results, summary = validate_invoices(_exported(ctx, 3))
        assert summary.total_invoices == 3
        assert summary.invalid_invoices == 0
        assert all(r.is_valid for r in results)

    def test_models_are_accepted_directly(self, ctx):
        _exported(ctx)
        _, summary = validate_invoices(ctx.invoices)
        assert summary.valid_invoices == 1

    def test_tampered_grand_total(self, ctx):
        records = _exported(ctx)
        records[0]["grand_total"] = "999.00"
        results, summary = validate_invoices(records)
        assert "business_rule_failed: totals_mismatch" in results[0].errors
        assert summary.error_counts["business_rule_failed: totals_mismatch"] == 1

    def test_tampered_line_total(self, ctx):
        records = _exported(ctx)
        records[0]["items"][1]["total"] = "10"
        results, _ = validate_invoices(records)
        assert "business_rule_failed: line_2_total_mismatch" in results[0].errors

    def test_tampered_sub_total(self, ctx):
        records = _exported(ctx)
        records[0]["sub_total"] = "1"
        results, _ = validate_invoices(records)
        assert "business_rule_failed: sub_total_mismatch" in results[0].errors

    def test_duplicate_ids(self, ctx):
        records = _exported(ctx)
        results, _ = validate_invoices(records + records)
        assert all("anomaly: duplicate_invoice_id" in r.errors for r in results)

    def test_incomplete_record(self):
        results, summary = validate_invoices([{"payment_status": "Overdue"}])
        errors = results[0].errors
        assert "missing_field: id" in errors
        assert "missing_field: items" in errors
        assert "format: invalid_payment_status" in errors
        assert summary.invalid_invoices == 1

    def test_bad_line_values(self):
        record = {
            "id": "INV1",
            "payment_status": "Pending",
            "items": [{"quantity": "0", "price_per_unit": "-5", "gst_rate": "1.2"}],
        }
        errors = validate_invoices([record])[0][0].errors
        assert "business_rule_failed: line_1_quantity_not_positive" in errors
        assert "business_rule_failed: line_1_price_negative" in errors
        assert "business_rule_failed: line_1_gst_rate_out_of_range" in errors
        assert not any("price_invalid" in e for e in errors)

    def test_missing_price_is_a_format_error(self):
        record = {
            "id": "INV2",
            "payment_status": "Pending",
            "items": [
                {"quantity": "1", "gst_rate": "0.05"},
                {"quantity": "1", "price_per_unit": "n/a", "gst_rate": "0.05"},
            ],
        }
        errors = validate_invoices([record])[0][0].errors
        assert "format: line_1_price_invalid" in errors
        assert "format: line_2_price_invalid" in errors
        assert not any("price_negative" in e for e in errors)

    def test_scientific_notation_totals(self, ctx):
        records = _exported(ctx)
        records[0]["grand_total"] = f"{Decimal(records[0]['grand_total']):E}"
        records[0]["items"][0]["total"] = f"{Decimal(records[0]['items'][0]['total']):E}"
        results, summary = validate_invoices(records)
        assert results[0].errors == []
        assert summary.valid_invoices == 1
