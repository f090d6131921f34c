from decimal import Decimal

from biz_agent.billing import InvoiceLifecycle
from biz_agent.ledger import CustomerLedger, normalize_payment_mode

RICE = {"name": "rice", "quantity": "2"}


class TestRecordVisit:
    def test_first_reference_creates_customer(self, ctx, events):
        customer = CustomerLedger().record_visit(ctx, "Rahul", Decimal("500"))
        assert customer.name == "Rahul"
        assert customer.visit_count == 1
        assert customer.total_spent == Decimal("500")
        assert customer.last_visit == ctx.now()
        assert events == []

    def test_name_match_is_case_insensitive(self, ctx):
        ledger = CustomerLedger()
        ledger.record_visit(ctx, "Rahul", Decimal("100"))
        again = ledger.record_visit(ctx, "  rahul ", Decimal("50"))
        assert len(ctx.customers) == 1
        assert again.visit_count == 2
        assert again.total_spent == Decimal("150")

    def test_mobile_match(self, ctx):
        ledger = CustomerLedger()
        first = ledger.record_visit(ctx, "Riya", Decimal("10"), mobile="9000000001")
        second = ledger.record_visit(ctx, "9000000001", Decimal("20"))
        assert second is first
        assert first.visit_count == 2

    def test_mobile_is_filled_in_later(self, ctx):
        ledger = CustomerLedger()
        ledger.record_visit(ctx, "Riya", Decimal("10"))
        customer = ledger.record_visit(ctx, "Riya", Decimal("10"), mobile="9000000001")
        assert customer.mobile == "9000000001"

    def test_duplicate_calls_double_count(self, ctx):
        ledger = CustomerLedger()
        ledger.record_visit(ctx, "Rahul", Decimal("100"))
        ledger.record_visit(ctx, "Rahul", Decimal("100"))
        assert ctx.customers[0].visit_count == 2
        assert ctx.customers[0].total_spent == Decimal("200")

    def test_last_visit_tracks_latest_event(self, ctx, clock):
        ledger = CustomerLedger()
        ledger.record_visit(ctx, "Rahul", Decimal("1"))
        clock.advance(days=1)
        ledger.record_visit(ctx, "Rahul", Decimal("1"))
        assert ctx.customers[0].last_visit == clock()


class TestMarkLatestPendingPaid:
    def _bill(self, ctx, lifecycle, customer="Rahul"):
        lifecycle.compose(ctx, [RICE], customer=customer)
        return lifecycle.confirm(ctx)

    def test_most_recent_pending_invoice_is_paid(self, ctx, clock):
        lifecycle = InvoiceLifecycle()
        older = self._bill(ctx, lifecycle)
        clock.advance(hours=2)
        newer = self._bill(ctx, lifecycle)

        ledger = CustomerLedger()
        customer = ledger.find(ctx, "rahul")
        paid = ledger.mark_latest_pending_paid(ctx, customer, "upi")

        assert paid.id == newer.id
        assert paid.payment_status == "Paid"
        assert paid.payment_mode == "UPI"
        by_id = {inv.id: inv for inv in ctx.invoices}
        assert by_id[older.id].payment_status == "Pending"
        assert by_id[newer.id].grand_total == newer.grand_total

    def test_other_customers_untouched(self, ctx):
        lifecycle = InvoiceLifecycle()
        self._bill(ctx, lifecycle, customer="Riya")
        ledger = CustomerLedger()
        rahul = ledger.record_visit(ctx, "Rahul", Decimal("0"))
        assert ledger.mark_latest_pending_paid(ctx, rahul) is None
        assert ctx.invoices[0].payment_status == "Pending"

    def test_paid_invoice_event(self, ctx, events):
        lifecycle = InvoiceLifecycle()
        self._bill(ctx, lifecycle)
        ledger = CustomerLedger()
        paid = ledger.mark_latest_pending_paid(ctx, ledger.find(ctx, "Rahul"), "Cash")
        assert events[-1] == ("invoice.paid", paid)


def test_normalize_payment_mode():
    assert normalize_payment_mode("upi") == "UPI"
    assert normalize_payment_mode(" CASH ") == "Cash"
    assert normalize_payment_mode("card") == "Card"
    assert normalize_payment_mode("cheque") is None
    assert normalize_payment_mode(None) is None
