import argparse
import json
from decimal import Decimal

from biz_agent.cli import cmd_audit, cmd_bill

ITEMS = {"items": [{"name": "rice", "quantity": 2}], "customer": "Rahul"}


def _items_file(tmp_path):
    path = tmp_path / "items.json"
    path.write_text(json.dumps(ITEMS), encoding="utf-8")
    return path


class TestBill:
    def test_prints_invoice_json(self, tmp_path, capsys):
        args = argparse.Namespace(input=str(_items_file(tmp_path)), output=None)
        assert cmd_bill(args) == 0

        record = json.loads(capsys.readouterr().out)
        assert record["payment_status"] == "Pending"
        assert record["customer_name"] == "Rahul"
        assert Decimal(record["grand_total"]) == Decimal("252")
        assert [item["name"] for item in record["items"]] == ["rice"]

    def test_output_file_feeds_audit(self, tmp_path, capsys):
        out = tmp_path / "invoices.json"
        report = tmp_path / "report.json"
        assert cmd_bill(argparse.Namespace(input=str(_items_file(tmp_path)), output=str(out))) == 0
        assert "Wrote invoice" in capsys.readouterr().out

        records = json.loads(out.read_text(encoding="utf-8"))
        assert len(records) == 1

        assert cmd_audit(argparse.Namespace(input=str(out), report=str(report))) == 0
        summary = json.loads(report.read_text(encoding="utf-8"))["summary"]
        assert summary["valid_invoices"] == 1


def test_audit_flags_tampered_export(tmp_path, capsys):
    out = tmp_path / "invoices.json"
    cmd_bill(argparse.Namespace(input=str(_items_file(tmp_path)), output=str(out)))
    records = json.loads(out.read_text(encoding="utf-8"))
    records[0]["grand_total"] = "1"
    out.write_text(json.dumps(records), encoding="utf-8")

    report = tmp_path / "report.json"
    assert cmd_audit(argparse.Namespace(input=str(out), report=str(report))) == 1
    assert "business_rule_failed: totals_mismatch" in capsys.readouterr().out
