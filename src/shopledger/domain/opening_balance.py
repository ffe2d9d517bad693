"""Opening balance management: explicit values, carry-forward and additions."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from shopledger.domain.entities import (
    ZERO,
    AccountRef,
    BalanceMode,
    BalanceSnapshot,
    BankBalance,
    OpeningBalance,
    OpeningBalanceRow,
    PaymentType,
    TransactionSource,
)
from shopledger.domain.errors import ValidationError, history_continues
from shopledger.domain.ledger import BalanceTransactionStore
from shopledger.utils.amount_parser import to_money

logger = logging.getLogger(__name__)


class OpeningBalanceManager:
    """Service for reading and adjusting per-date opening balances.

    A date's opening balance is any value stored explicitly for it, otherwise
    the previous date's closing balance. Nothing derived is ever stored.
    """

    def __init__(self, store: BalanceTransactionStore):
        """Initialize opening balance manager.

        Args:
            store: Transaction store whose database, locks and clock are shared
        """
        self.store = store
        self.db = store.db
        self.registry = store.registry
        self.calculator = store.calculator

    def _bank_balances(self, values: dict[int, Decimal]) -> tuple[BankBalance, ...]:
        balances = []
        for bank in self.db.list_bank_accounts():
            value = values[bank.id]
            if bank.is_active or value != ZERO:
                balances.append(
                    BankBalance(
                        bank_account_id=bank.id,
                        balance=value,
                        bank_name=bank.bank_name,
                        account_number=bank.account_number,
                    )
                )
        return tuple(balances)

    def get_opening_balance(self, on_date: date) -> OpeningBalance:
        """Get the opening balance of every account for a date.

        Args:
            on_date: Calendar date

        Returns:
            OpeningBalance with explicit values merged with carried-forward ones.
            Inactive bank accounts are listed only when their balance is non-zero.
        """
        with self.db.read_snapshot():
            row = self.db.get_opening_balance_row(on_date)
            cash = self.calculator.opening_value(AccountRef.cash(), on_date)
            banks = {
                bank.id: self.calculator.opening_value(AccountRef.bank(bank.id), on_date)
                for bank in self.db.list_bank_accounts()
            }
            bank_balances = self._bank_balances(banks)

        return OpeningBalance(
            cash=cash,
            bank_balances=bank_balances,
            date=on_date,
            is_explicit=row is not None,
            notes=row.notes if row else None,
        )

    def closing_balance(self, on_date: date) -> BalanceSnapshot:
        """Get the balance of every account at the end of a date."""
        with self.db.read_snapshot():
            cash = self.calculator.closing_value(AccountRef.cash(), on_date)
            banks = {
                bank.id: self.calculator.closing_value(AccountRef.bank(bank.id), on_date)
                for bank in self.db.list_bank_accounts()
            }
            bank_balances = self._bank_balances(banks)
        return BalanceSnapshot(cash=cash, bank_balances=bank_balances)

    def apply_addition(
        self,
        on_date: date,
        payment_type: Union[PaymentType, str],
        amount: Union[Decimal, int, str],
        mode: Union[BalanceMode, str] = BalanceMode.ADD,
        bank_account_id: Optional[int] = None,
        description: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> OpeningBalance:
        """Add money to an account's opening balance, or set it outright.

        In "add" mode the amount is recorded as an opening balance addition,
        an inflow of the date. In "set" mode the date's opening balance of the
        account becomes exactly ``amount``; the difference to the previous
        opening is recorded as an opening balance correction, which moves the
        running balance by the same amount so flows already recorded that
        day stay on top of the new opening.

        The transaction and the stored opening value are committed together.

        Args:
            on_date: Date whose opening balance changes
            payment_type: "cash" or "bank_transfer"
            amount: Amount to add, or target balance; never negative
            mode: "add" or "set"
            bank_account_id: Bank account ID for bank transfers
            description: Note stored on the date's row and the transaction
            occurred_at: Timestamp of the transaction (defaults to the current
                time of day on ``on_date``)

        Returns:
            The date's opening balance after the change

        Raises:
            ValidationError: If the amount is negative, the mode is unknown,
                ``occurred_at`` is not on ``on_date``, or the account already
                has transactions after ``on_date``
            InvalidAccountReference: If the account cannot be used
        """
        try:
            amount = to_money(amount)
        except ValueError as e:
            raise ValidationError(str(e))
        if amount < 0:
            raise ValidationError("Opening balance amount cannot be negative")
        try:
            mode = BalanceMode(mode)
        except ValueError:
            raise ValidationError(f"Unknown opening balance mode '{mode}'. Use 'add' or 'set'")
        if occurred_at is not None and occurred_at.date() != on_date:
            raise ValidationError(
                f"Timestamp {occurred_at.isoformat()} is not on {on_date.isoformat()}"
            )

        account = self.registry.resolve_account(payment_type, bank_account_id)

        with self.store.locks.hold(account.key), self.db.write_transaction():
            if self.db.has_transactions_after(account.key, on_date):
                raise ValidationError(history_continues(account.key, on_date))

            occurred_at = self._timestamp(account, on_date, occurred_at)
            if mode is BalanceMode.ADD:
                self._add(account, on_date, amount, description, occurred_at)
            else:
                self._set(account, on_date, amount, description, occurred_at)

        return self.get_opening_balance(on_date)

    def _timestamp(
        self, account: AccountRef, on_date: date, occurred_at: Optional[datetime]
    ) -> datetime:
        if occurred_at is not None:
            return occurred_at
        occurred_at = datetime.combine(on_date, self.store.clock().time())
        latest = self.db.get_latest_transaction(account.key)
        if latest is not None and latest.created_at > occurred_at:
            # Keep appends in order when the date already has later entries
            occurred_at = latest.created_at
        return occurred_at

    def _add(
        self,
        account: AccountRef,
        on_date: date,
        amount: Decimal,
        description: Optional[str],
        occurred_at: datetime,
    ) -> None:
        if amount > 0:
            self.store.record_transaction(
                account=account,
                source=TransactionSource.OPENING_BALANCE_ADDITION,
                source_id=None,
                payment_type=account.payment_type,
                amount=amount,
                occurred_at=occurred_at,
                description=description or "Opening balance addition",
            )
        self.db.save_opening_balance(on_date, note=description)
        logger.info("Added %s to opening balance of %s on %s", amount, account.key, on_date)

    def _set(
        self,
        account: AccountRef,
        on_date: date,
        target: Decimal,
        description: Optional[str],
        occurred_at: datetime,
    ) -> None:
        opening = self.calculator.opening_value(account, on_date)
        current = self.store.current_balance(account, on_date)
        delta = target - opening
        if delta != 0:
            # Moves the running balance by the same amount the opening moves
            self.store.record_transaction(
                account=account,
                source=TransactionSource.OPENING_BALANCE_CORRECTION,
                source_id=None,
                payment_type=account.payment_type,
                amount=delta,
                occurred_at=occurred_at,
                description=description or "Opening balance set",
            )
        self.db.save_opening_balance(on_date, account_key=account.key, balance=target, note=description)
        logger.info(
            "Set opening balance of %s on %s to %s (was %s, correction %s, running balance %s)",
            account.key,
            on_date,
            target,
            opening,
            delta,
            current + delta,
        )

    def list_opening_balances(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[OpeningBalanceRow]:
        """List dates that carry explicitly stored opening values or notes."""
        return self.db.list_opening_balance_rows(start_date=start_date, end_date=end_date)
