"""Tests for opening balance management."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from shopledger.domain.entities import AccountRef, CashPayment, TransactionSource
from shopledger.domain.errors import AccountInactive, ValidationError

DAY_1 = date(2024, 1, 1)
DAY_2 = date(2024, 1, 2)


@pytest.fixture
def first_day(opening_manager, payments):
    """Open day 1 with 1000 cash and sell for 500 cash."""
    opening_manager.apply_addition(
        DAY_1, "cash", Decimal("1000"), mode="set", occurred_at=datetime(2024, 1, 1, 8, 0)
    )
    payments.record_sale([CashPayment(Decimal("500"))], occurred_at=datetime(2024, 1, 1, 10, 0))


class TestGetOpeningBalance:
    """Tests for reading opening balances."""

    def test_empty_ledger_opens_at_zero(self, opening_manager, bank_account):
        opening = opening_manager.get_opening_balance(DAY_1)

        assert opening.cash == Decimal("0")
        assert opening.bank_balance(bank_account.id) == Decimal("0")
        assert opening.total == Decimal("0")
        assert opening.is_explicit is False

    def test_carries_forward_previous_closing(self, opening_manager, first_day):
        opening = opening_manager.get_opening_balance(DAY_2)

        assert opening.cash == Decimal("1500")
        assert opening.is_explicit is False

    def test_carries_forward_across_many_days(self, opening_manager, first_day):
        assert opening_manager.get_opening_balance(date(2024, 3, 1)).cash == Decimal("1500")

    def test_closing_balance(self, opening_manager, first_day):
        assert opening_manager.closing_balance(DAY_1).cash == Decimal("1500")
        assert opening_manager.closing_balance(date(2023, 12, 31)).cash == Decimal("0")

    def test_inactive_bank_listed_only_with_balance(
        self, opening_manager, bank_service, bank_account
    ):
        empty_id = bank_service.create_bank_account("Other Bank", "002-200")
        opening_manager.apply_addition(
            DAY_1, "bank_transfer", Decimal("250"), bank_account_id=bank_account.id
        )
        bank_service.deactivate(bank_account.id)
        bank_service.deactivate(empty_id)

        opening = opening_manager.get_opening_balance(DAY_2)
        listed = [b.bank_account_id for b in opening.bank_balances]
        assert listed == [bank_account.id]
        assert opening.bank_balance(bank_account.id) == Decimal("250")


class TestApplyAdditionSet:
    """Tests for "set" mode."""

    def test_set_on_empty_day(self, opening_manager, store):
        opening = opening_manager.apply_addition(DAY_1, "cash", Decimal("1000"), mode="set")

        assert opening.cash == Decimal("1000")
        assert opening.is_explicit is True
        (txn,) = store.list_transactions()
        assert txn.source is TransactionSource.OPENING_BALANCE_CORRECTION
        assert txn.before_balance == Decimal("0")
        assert txn.after_balance == Decimal("1000")

    def test_set_over_carried_forward_balance(self, opening_manager, store, first_day):
        opening = opening_manager.apply_addition(DAY_2, "cash", Decimal("2000"), mode="set")

        assert opening.cash == Decimal("2000")
        correction = store.list_transactions(
            start_date=DAY_2, sources=[TransactionSource.OPENING_BALANCE_CORRECTION]
        )[0]
        assert correction.before_balance == Decimal("1500")
        assert correction.after_balance == Decimal("2000")
        assert correction.amount == Decimal("500")
        assert store.verify_chain() == []

    def test_set_after_same_day_sale(self, opening_manager, store, engine, first_day):
        opening = opening_manager.apply_addition(
            DAY_1, "cash", Decimal("2000"), mode="set", occurred_at=datetime(2024, 1, 1, 12, 0)
        )

        assert opening.cash == Decimal("2000")
        correction = store.list_transactions(sources=[TransactionSource.OPENING_BALANCE_CORRECTION])[-1]
        assert correction.amount == Decimal("1000")
        assert correction.before_balance == Decimal("1500")
        assert correction.after_balance == Decimal("2500")
        assert opening_manager.closing_balance(DAY_1).cash == Decimal("2500")
        assert engine.compute_daily_report(DAY_1).closing_balance.cash == Decimal("2500")
        assert store.current_balance(AccountRef.cash(), DAY_1) == Decimal("2500")
        assert store.verify_chain() == []

    def test_set_lower_records_negative_correction(self, opening_manager, store, first_day):
        opening = opening_manager.apply_addition(DAY_2, "cash", Decimal("1200"), mode="set")

        assert opening.cash == Decimal("1200")
        assert store.list_transactions(start_date=DAY_2)[0].amount == Decimal("-300")

    def test_set_to_current_value_writes_nothing(self, opening_manager, store, first_day):
        before = len(store.list_transactions())
        opening = opening_manager.apply_addition(DAY_2, "cash", Decimal("1500"), mode="set")

        assert opening.cash == Decimal("1500")
        assert opening.is_explicit is True
        assert len(store.list_transactions()) == before

    def test_set_bank_account(self, opening_manager, bank_account):
        opening = opening_manager.apply_addition(
            DAY_1, "bank_transfer", Decimal("700"), mode="set", bank_account_id=bank_account.id
        )

        assert opening.bank_balance(bank_account.id) == Decimal("700")
        assert opening.cash == Decimal("0")

    def test_set_carries_into_following_days(self, opening_manager, first_day):
        opening_manager.apply_addition(DAY_2, "cash", Decimal("2000"), mode="set")

        assert opening_manager.get_opening_balance(date(2024, 1, 5)).cash == Decimal("2000")


class TestApplyAdditionAdd:
    """Tests for "add" mode."""

    def test_add_records_income_and_keeps_opening(self, opening_manager, store, first_day):
        opening = opening_manager.apply_addition(
            DAY_2, "cash", Decimal("300"), mode="add", description="Owner top-up"
        )

        assert opening.cash == Decimal("1500")
        assert opening.notes == "Owner top-up"
        addition = store.list_transactions(start_date=DAY_2)[0]
        assert addition.source is TransactionSource.OPENING_BALANCE_ADDITION
        assert addition.before_balance == Decimal("1500")
        assert addition.after_balance == Decimal("1800")
        assert opening_manager.closing_balance(DAY_2).cash == Decimal("1800")

    def test_notes_are_appended(self, opening_manager):
        opening_manager.apply_addition(DAY_1, "cash", Decimal("10"), description="float")
        opening = opening_manager.apply_addition(DAY_1, "cash", Decimal("5"), description="more")

        assert opening.notes == "float\nmore"
        rows = opening_manager.list_opening_balances()
        assert [row.date for row in rows] == [DAY_1]
        assert rows[0].cash_balance is None

    def test_default_timestamp_follows_existing_entries(self, opening_manager, store, payments):
        payments.record_sale([CashPayment(Decimal("20"))], occurred_at=datetime(2024, 1, 1, 23, 0))
        opening_manager.apply_addition(DAY_1, "cash", Decimal("5"))

        latest = store.list_transactions()[-1]
        assert latest.created_at == datetime(2024, 1, 1, 23, 0)
        assert latest.before_balance == Decimal("20")


class TestApplyAdditionValidation:
    """Tests for rejected opening balance changes."""

    def test_rejects_negative_amount(self, opening_manager):
        with pytest.raises(ValidationError, match="negative"):
            opening_manager.apply_addition(DAY_1, "cash", Decimal("-1"))

    def test_rejects_unknown_mode(self, opening_manager):
        with pytest.raises(ValidationError, match="mode"):
            opening_manager.apply_addition(DAY_1, "cash", Decimal("1"), mode="replace")

    def test_rejects_date_with_later_history(self, opening_manager, payments):
        payments.record_sale([CashPayment(Decimal("20"))], occurred_at=datetime(2024, 1, 3, 9, 0))

        with pytest.raises(ValidationError, match="later dates"):
            opening_manager.apply_addition(DAY_2, "cash", Decimal("100"), mode="set")

    def test_other_accounts_stay_open(self, opening_manager, payments, bank_account):
        payments.record_sale([CashPayment(Decimal("20"))], occurred_at=datetime(2024, 1, 3, 9, 0))

        opening = opening_manager.apply_addition(
            DAY_2, "bank_transfer", Decimal("100"), mode="set", bank_account_id=bank_account.id
        )
        assert opening.bank_balance(bank_account.id) == Decimal("100")

    def test_rejects_timestamp_on_other_date(self, opening_manager):
        with pytest.raises(ValidationError):
            opening_manager.apply_addition(
                DAY_1, "cash", Decimal("1"), occurred_at=datetime(2024, 1, 2, 9, 0)
            )

    def test_rejects_inactive_bank(self, opening_manager, bank_service, bank_account):
        bank_service.deactivate(bank_account.id)

        with pytest.raises(AccountInactive):
            opening_manager.apply_addition(
                DAY_1, "bank_transfer", Decimal("1"), bank_account_id=bank_account.id
            )

    def test_failed_change_leaves_opening_untouched(self, opening_manager, payments):
        payments.record_sale([CashPayment(Decimal("20"))], occurred_at=datetime(2024, 1, 3, 9, 0))

        with pytest.raises(ValidationError):
            opening_manager.apply_addition(DAY_2, "cash", Decimal("100"), mode="set")
        assert opening_manager.list_opening_balances() == []
        assert opening_manager.get_opening_balance(DAY_2).cash == Decimal("0")
