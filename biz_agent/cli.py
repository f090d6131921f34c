# biz_agent/cli.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from .billing import InvoiceLifecycle
from .context import ConversationContext
from .lang_utils import format_amount
from .models import BillingPayload, Invoice
from .orchestrator import ConversationOrchestrator
from .reports import business_summary, summary_text
from .validator import validate_invoices


def _print_invoice(inv: Invoice) -> None:
    print(f"Invoice {inv.id} ({inv.payment_status})")
    for item in inv.items:
        print(
            f"  {item.name:<20} {item.quantity} {item.unit} x {format_amount(item.price_per_unit)}"
            f"  GST {item.gst_rate * 100}%  = {format_amount(item.total)}"
        )
    print(f"  Subtotal: {format_amount(inv.sub_total)}")
    print(f"  GST:      {format_amount(inv.gst_total)}")
    print(f"  Total:    {format_amount(inv.grand_total)}")


def cmd_chat(args: argparse.Namespace) -> int:
    from .nlu import classify_utterance

    orchestrator = ConversationOrchestrator(ConversationContext(), nlu=classify_utterance)
    print("Type a sale, payment, reminder or question. Commands: /confirm /discard /summary /quit")

    for line in sys.stdin:
        text = line.strip()
        if text in ("/quit", "/exit"):
            break
        if text == "/confirm":
            inv = orchestrator.confirm_draft()
            print(orchestrator.ctx.messages[-1].text if inv else "No draft to confirm.")
            continue
        if text == "/discard":
            print("Draft discarded." if orchestrator.discard_draft() else "No draft to discard.")
            continue
        if text == "/summary":
            print(summary_text(business_summary(orchestrator.ctx)))
            continue

        result = orchestrator.handle_message(text)
        if result is None:
            continue
        print(result.reply)
        if result.intent == "billing" and result.draft is not None:
            _print_invoice(result.draft)
            print("(/confirm to save, /discard to drop)")

    return 0


def _load_items(path: str) -> BillingPayload:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return BillingPayload.model_validate(data)


def cmd_bill(args: argparse.Namespace) -> int:
    payload = _load_items(args.input)
    ctx = ConversationContext()
    lifecycle = InvoiceLifecycle()
    lifecycle.compose(ctx, payload.items, customer=payload.customer, mobile=payload.mobile)
    invoice = lifecycle.confirm(ctx)

    record = invoice.model_dump(mode="json")
    if args.output:
        # a list, so the file feeds straight into `audit --input`
        Path(args.output).write_text(
            json.dumps([record], indent=2, ensure_ascii=False), encoding="utf-8"
        )
        print(f"Wrote invoice {invoice.id} to {args.output}")
    else:
        print(json.dumps(record, indent=2, ensure_ascii=False))
    return 0


def _load_invoices_from_json(path: str) -> List[dict]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return data if isinstance(data, list) else [data]


def cmd_audit(args: argparse.Namespace) -> int:
    invoices = _load_invoices_from_json(args.input)
    results, summary = validate_invoices(invoices)

    report = {
        "summary": summary.model_dump(),
        "results": [r.model_dump() for r in results],
    }
    Path(args.report).write_text(
        json.dumps(report, indent=2, default=str), encoding="utf-8"
    )

    print(f"Total invoices: {summary.total_invoices}")
    print(f"Valid invoices: {summary.valid_invoices}")
    print(f"Invalid invoices: {summary.invalid_invoices}")
    if summary.error_counts:
        print("Top errors:")
        for err, count in sorted(
            summary.error_counts.items(), key=lambda kv: -kv[1]
        )[:5]:
            print(f"  {err}: {count}")

    return 0 if summary.invalid_invoices == 0 else 1


def main() -> None:
    parser = argparse.ArgumentParser(prog="biz-agent")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_chat = sub.add_parser("chat", help="Interactive shopkeeper chat (needs GEMINI_API_KEY)")
    p_chat.set_defaults(func=cmd_chat)

    p_bill = sub.add_parser("bill", help="Compute an invoice from extracted items JSON")
    p_bill.add_argument("--input", required=True, help="JSON list of {name, quantity, unit, price}")
    p_bill.add_argument("--output", help="Write the finalized invoice as JSON")
    p_bill.set_defaults(func=cmd_bill)

    p_audit = sub.add_parser("audit", help="Re-check totals of exported invoices")
    p_audit.add_argument("--input", required=True, help="Input JSON file")
    p_audit.add_argument("--report", required=True, help="Output audit report JSON")
    p_audit.set_defaults(func=cmd_audit)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
