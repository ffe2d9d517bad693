"""Tests for payment recording."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from shopledger.domain.entities import (
    AccountRef,
    BankTransferPayment,
    CashPayment,
    RecordKind,
    TransactionSource,
)
from shopledger.domain.errors import (
    AccountInactive,
    ConcurrentBalanceConflict,
    InvalidAccountReference,
    NotFoundError,
    ValidationError,
)

AT = datetime(2024, 1, 1, 10, 0)


class TestRecordPayments:
    """Tests for recording sales, purchases and expenses."""

    def test_sale_posts_one_transaction_per_payment(self, payments, store, bank_account):
        record = payments.record_sale(
            [CashPayment(Decimal("300")), BankTransferPayment(Decimal("200"), bank_account.id)],
            reference="INV-1",
            description="Walk-in customer",
            occurred_at=AT,
        )

        assert record.kind is RecordKind.SALE
        assert record.business_date == date(2024, 1, 1)
        assert [line.position for line in record.payment_lines] == [1, 2]
        assert record.paid_total == Decimal("500")

        transactions = store.list_transactions()
        assert [t.source for t in transactions] == [TransactionSource.SALE_PAYMENT] * 2
        assert {t.account_key for t in transactions} == {"cash", f"bank:{bank_account.id}"}
        assert all(t.source_id == record.id for t in transactions)
        assert all(t.amount > 0 for t in transactions)

    def test_purchase_and_expense_are_outflows(self, payments, store):
        payments.record_purchase([CashPayment(Decimal("40"))], reference="SUP-1", occurred_at=AT)
        payments.record_expense([CashPayment(Decimal("10"))], reference="Tea", occurred_at=AT)

        amounts = [t.amount for t in store.list_transactions()]
        assert amounts == [Decimal("-40"), Decimal("-10")]
        assert store.current_balance(AccountRef.cash(), date(2024, 1, 1)) == Decimal("-50")

    def test_add_payment_to_existing_record(self, payments, store):
        record = payments.record_purchase([CashPayment(Decimal("40"))], occurred_at=AT)
        updated = payments.add_payment(
            record.id, CashPayment(Decimal("60")), occurred_at=datetime(2024, 1, 2, 9, 0)
        )

        assert updated.paid_total == Decimal("100")
        assert updated.payment_lines[1].business_date == date(2024, 1, 2)
        latest = store.list_transactions()[-1]
        assert latest.amount == Decimal("-60")
        assert latest.before_balance == Decimal("-40")

    def test_defaults_to_clock(self, payments, clock):
        expected = clock.now
        record = payments.record_expense([CashPayment(Decimal("1"))])
        assert record.created_at == expected


class TestRejectedPayments:
    """Tests for payments that write nothing."""

    def test_requires_a_payment(self, payments):
        with pytest.raises(ValidationError):
            payments.record_sale([], occurred_at=AT)

    @pytest.mark.parametrize("amount", ["0", "-5", "0.001"])
    def test_rejects_bad_amounts(self, payments, store, amount):
        with pytest.raises(ValidationError):
            payments.record_sale([CashPayment(Decimal(amount))], occurred_at=AT)
        assert store.list_transactions() == []

    def test_unknown_bank_writes_nothing(self, payments, store, temp_db):
        with pytest.raises(InvalidAccountReference):
            payments.record_sale(
                [CashPayment(Decimal("10")), BankTransferPayment(Decimal("5"), 999)], occurred_at=AT
            )

        assert store.list_transactions() == []
        assert temp_db.list_business_records() == []

    def test_inactive_bank_rejected(self, payments, bank_service, bank_account):
        bank_service.deactivate(bank_account.id)

        with pytest.raises(AccountInactive):
            payments.record_sale([BankTransferPayment(Decimal("5"), bank_account.id)], occurred_at=AT)

    def test_back_dated_payment_rejected(self, payments, store):
        payments.record_sale([CashPayment(Decimal("10"))], occurred_at=AT)

        with pytest.raises(ValidationError):
            payments.record_sale([CashPayment(Decimal("10"))], occurred_at=datetime(2024, 1, 1, 9, 0))
        assert len(store.list_transactions()) == 1

    def test_add_payment_to_missing_record(self, payments):
        with pytest.raises(NotFoundError):
            payments.add_payment(42, CashPayment(Decimal("1")), occurred_at=AT)


class TestAtomicRecording:
    """Tests that a record, its lines and its transactions commit together."""

    def test_later_sale_during_recording_leaves_report_and_ledger_agreeing(
        self, payments, store, engine, temp_db, monkeypatch
    ):
        create_business_record = temp_db.create_business_record
        interleaved = []

        def create_after_later_sale(**kwargs):
            if not interleaved:
                interleaved.append(True)
                payments.record_sale([CashPayment(Decimal("10"))], occurred_at=datetime(2024, 1, 1, 12, 0))
            return create_business_record(**kwargs)

        monkeypatch.setattr(temp_db, "create_business_record", create_after_later_sale)

        with pytest.raises(ValidationError):
            payments.record_sale([CashPayment(Decimal("100"))], occurred_at=datetime(2024, 1, 1, 11, 0))

        report = engine.compute_daily_report(date(2024, 1, 1))
        ledger_cash = store.current_balance(AccountRef.cash(), date(2024, 1, 1))
        assert report.sales.cash == sum((t.amount for t in store.list_transactions()), Decimal("0"))
        assert report.closing_balance.cash == ledger_cash
        assert temp_db.list_business_records() == []
        assert temp_db.list_payment_lines() == []
        assert store.verify_chain() == []

    def test_failed_append_leaves_no_record(self, payments, store, temp_db, monkeypatch):
        def lose_every_race(**kwargs):
            raise ConcurrentBalanceConflict(kwargs["account_key"])

        monkeypatch.setattr(temp_db, "append_transaction", lose_every_race)

        with pytest.raises(ConcurrentBalanceConflict):
            payments.record_sale([CashPayment(Decimal("100"))], occurred_at=AT)

        monkeypatch.undo()
        assert temp_db.list_business_records() == []
        assert temp_db.list_payment_lines() == []
        assert store.list_transactions() == []

    def test_failed_add_payment_keeps_existing_lines(self, payments, store, temp_db, monkeypatch):
        record = payments.record_sale([CashPayment(Decimal("100"))], occurred_at=AT)

        def lose_every_race(**kwargs):
            raise ConcurrentBalanceConflict(kwargs["account_key"])

        monkeypatch.setattr(temp_db, "append_transaction", lose_every_race)
        with pytest.raises(ConcurrentBalanceConflict):
            payments.add_payment(record.id, CashPayment(Decimal("50")), occurred_at=datetime(2024, 1, 1, 12, 0))

        monkeypatch.undo()
        assert temp_db.get_business_record(record.id).paid_total == Decimal("100")
        assert len(store.list_transactions()) == 1
