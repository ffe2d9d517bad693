"""Tests for the balance transaction store."""

import threading
from datetime import date, datetime
from decimal import Decimal

import pytest

from shopledger.domain.entities import AccountRef, PaymentType, TransactionSource
from shopledger.domain.errors import (
    AccountInactive,
    ConcurrentBalanceConflict,
    InvalidAccountReference,
    ValidationError,
)

CASH = AccountRef.cash()
ADDITION = TransactionSource.OPENING_BALANCE_ADDITION


def _record(store, amount, at, account=CASH, source=ADDITION):
    return store.record_transaction(
        account=account,
        source=source,
        source_id=None,
        payment_type=account.payment_type,
        amount=Decimal(amount),
        occurred_at=at,
    )


class TestRecordTransaction:
    """Tests for appending to the ledger."""

    def test_first_transaction_starts_from_zero(self, store):
        txn = _record(store, "100", datetime(2024, 1, 1, 10, 0))

        assert txn.before_balance == Decimal("0")
        assert txn.after_balance == Decimal("100")
        assert txn.account_key == "cash"
        assert txn.account_seq == 1
        assert txn.business_date == date(2024, 1, 1)

    def test_transactions_chain_within_a_day(self, store):
        first = _record(store, "100", datetime(2024, 1, 1, 10, 0))
        second = _record(
            store, "-30", datetime(2024, 1, 1, 11, 0), source=TransactionSource.PURCHASE_PAYMENT
        )
        third = _record(store, "50.25", datetime(2024, 1, 1, 12, 0))

        assert second.before_balance == first.after_balance
        assert third.before_balance == second.after_balance
        assert third.after_balance == Decimal("120.25")
        assert [t.account_seq for t in (first, second, third)] == [1, 2, 3]

    def test_accounts_keep_separate_balances(self, store, bank_account):
        bank = AccountRef.bank(bank_account.id)
        _record(store, "100", datetime(2024, 1, 1, 10, 0))
        bank_txn = _record(store, "40", datetime(2024, 1, 1, 10, 5), account=bank)

        assert bank_txn.before_balance == Decimal("0")
        assert bank_txn.after_balance == Decimal("40")
        assert bank_txn.account_key == f"bank:{bank_account.id}"
        assert store.current_balance(CASH, date(2024, 1, 1)) == Decimal("100")

    def test_additions_carry_into_next_day(self, store):
        _record(store, "100", datetime(2024, 1, 1, 10, 0))
        txn = _record(store, "10", datetime(2024, 1, 2, 8, 0))

        assert txn.before_balance == Decimal("100")
        assert txn.after_balance == Decimal("110")

    def test_defaults_to_clock_time(self, store, clock):
        expected = clock.now
        txn = store.record_transaction(CASH, ADDITION, None, PaymentType.CASH, Decimal("5"))
        assert txn.created_at == expected

    def test_rejects_zero_amount(self, store):
        with pytest.raises(ValidationError, match="non-zero"):
            _record(store, "0", datetime(2024, 1, 1, 10, 0))

    def test_rejects_sub_cent_amount(self, store):
        with pytest.raises(ValidationError):
            _record(store, "1.005", datetime(2024, 1, 1, 10, 0))

    def test_rejects_out_of_order_append(self, store, bank_account):
        _record(store, "100", datetime(2024, 1, 1, 10, 0))

        with pytest.raises(ValidationError, match="already has a transaction"):
            _record(store, "5", datetime(2024, 1, 1, 9, 0))

        # Other accounts are unaffected
        txn = _record(store, "5", datetime(2024, 1, 1, 9, 0), account=AccountRef.bank(bank_account.id))
        assert txn.after_balance == Decimal("5")

    def test_rejects_inactive_bank_account(self, store, bank_service, bank_account):
        bank_service.deactivate(bank_account.id)

        with pytest.raises(AccountInactive):
            _record(store, "10", datetime(2024, 1, 1, 10, 0), account=AccountRef.bank(bank_account.id))

    def test_rejects_payment_type_mismatch(self, store, bank_account):
        with pytest.raises(InvalidAccountReference, match="does not match"):
            store.record_transaction(
                AccountRef.bank(bank_account.id),
                ADDITION,
                None,
                PaymentType.CASH,
                Decimal("10"),
                occurred_at=datetime(2024, 1, 1, 10, 0),
            )

    def test_rejects_unknown_bank_account(self, store):
        with pytest.raises(InvalidAccountReference):
            _record(store, "10", datetime(2024, 1, 1, 10, 0), account=AccountRef.bank(999))


class TestConcurrentAppends:
    """Tests for the per-account sequence guard."""

    def test_retries_after_losing_a_race(self, store, temp_db, monkeypatch):
        original = temp_db.append_transaction
        seqs = []

        def racing_append(**kwargs):
            seqs.append(kwargs["account_seq"])
            if len(seqs) == 1:
                # Another writer takes the slot first
                original(
                    **{
                        **kwargs,
                        "amount": Decimal("5.00"),
                        "after_balance": kwargs["before_balance"] + Decimal("5.00"),
                    }
                )
            return original(**kwargs)

        monkeypatch.setattr(temp_db, "append_transaction", racing_append)
        txn = _record(store, "100", datetime(2024, 1, 1, 10, 0))

        assert seqs == [1, 2]
        assert txn.account_seq == 2
        assert txn.before_balance == Decimal("5")
        assert txn.after_balance == Decimal("105")
        assert store.verify_chain() == []

    def test_gives_up_after_max_retries(self, store, temp_db, monkeypatch):
        def always_conflict(**kwargs):
            raise ConcurrentBalanceConflict(kwargs["account_key"])

        monkeypatch.setattr(temp_db, "append_transaction", always_conflict)

        with pytest.raises(ConcurrentBalanceConflict) as excinfo:
            _record(store, "100", datetime(2024, 1, 1, 10, 0))

        assert excinfo.value.attempts == store.max_retries
        assert store.list_transactions() == []

    def test_threads_never_share_a_before_balance(self, store):
        at = datetime(2024, 1, 1, 10, 0)
        errors = []

        def worker():
            try:
                for _ in range(10):
                    _record(store, "1", at)
            except Exception as e:  # pragma: no cover - surfaced by the assert below
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        transactions = store.list_transactions(account=CASH)
        assert len(transactions) == 30
        assert transactions[-1].after_balance == Decimal("30")
        assert store.verify_chain() == []


class TestQueries:
    """Tests for listing, balances and verification."""

    def test_list_transactions_filters(self, store, bank_account):
        bank = AccountRef.bank(bank_account.id)
        _record(store, "100", datetime(2024, 1, 1, 10, 0))
        _record(store, "20", datetime(2024, 1, 1, 10, 0), account=bank)
        _record(store, "-5", datetime(2024, 1, 2, 10, 0), source=TransactionSource.EXPENSE_PAYMENT)

        assert len(store.list_transactions()) == 3
        assert [t.account_key for t in store.list_transactions(account=bank)] == [bank.key]
        assert len(store.list_transactions(start_date=date(2024, 1, 2))) == 1
        assert len(store.list_transactions(end_date=date(2024, 1, 1))) == 2
        expenses = store.list_transactions(sources=["expense_payment"])
        assert [t.amount for t in expenses] == [Decimal("-5")]

    def test_list_orders_by_time_then_id(self, store, bank_account):
        bank = AccountRef.bank(bank_account.id)
        late = _record(store, "1", datetime(2024, 1, 1, 12, 0))
        early = _record(store, "2", datetime(2024, 1, 1, 8, 0), account=bank)
        same_time = _record(store, "3", datetime(2024, 1, 1, 12, 0), account=bank)

        ids = [t.id for t in store.list_transactions()]
        assert ids == [early.id, late.id, same_time.id]

    def test_current_balance_of_past_date(self, store):
        _record(store, "100", datetime(2024, 1, 1, 10, 0))
        _record(store, "50", datetime(2024, 1, 3, 10, 0))

        assert store.current_balance(CASH, date(2024, 1, 2)) == Decimal("100")
        assert store.current_balance(CASH, date(2024, 1, 3)) == Decimal("150")
        assert store.current_balance(CASH, date(2024, 1, 4)) == Decimal("150")

    def test_verify_chain_reports_breaks(self, store, temp_db):
        _record(store, "100", datetime(2024, 1, 1, 10, 0))
        # Write a row that does not continue from the previous one
        temp_db.append_transaction(
            account_key="cash",
            account_seq=2,
            source=ADDITION,
            source_id=None,
            payment_type=PaymentType.CASH,
            bank_account_id=None,
            amount=Decimal("10"),
            before_balance=Decimal("90"),
            after_balance=Decimal("100"),
            description=None,
            created_at=datetime(2024, 1, 1, 11, 0),
        )

        breaks = store.verify_chain()
        assert len(breaks) == 1
        assert breaks[0].expected_before == Decimal("100")
        assert breaks[0].actual_before == Decimal("90")
