"""Balance transaction store: the append-only per-account ledger."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional, Union

from shopledger.database.base import Database
from shopledger.domain.account import AccountRegistry
from shopledger.domain.balances import BalanceCalculator
from shopledger.domain.entities import (
    AccountRef,
    BalanceTransaction,
    ChainBreak,
    PaymentType,
    TransactionSource,
)
from shopledger.domain.errors import (
    ConcurrentBalanceConflict,
    InvalidAccountReference,
    ValidationError,
    out_of_order_append,
)
from shopledger.domain.locks import AccountLocks
from shopledger.utils.amount_parser import to_money

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class BalanceTransactionStore:
    """Records balance movements and answers "what is the balance now".

    Every append reads the account's current balance and writes the new row
    in one database transaction while holding that account's lock. The
    database additionally rejects two rows claiming the same position in an
    account's sequence; such a loser re-reads and retries.
    """

    def __init__(
        self,
        db: Database,
        registry: Optional[AccountRegistry] = None,
        calculator: Optional[BalanceCalculator] = None,
        locks: Optional[AccountLocks] = None,
        clock: Clock = datetime.now,
        max_retries: int = 3,
    ):
        """Initialize the transaction store.

        Args:
            db: Database instance
            registry: Account registry (created over ``db`` if omitted)
            calculator: Balance calculator (created over ``db`` if omitted)
            locks: Per-account lock registry shared with other writers
            clock: Returns the current local time
            max_retries: Append attempts before giving up on a contended account
        """
        self.db = db
        self.registry = registry or AccountRegistry(db)
        self.calculator = calculator or BalanceCalculator(db)
        self.locks = locks or AccountLocks()
        self.clock = clock
        self.max_retries = max(1, max_retries)

    def record_transaction(
        self,
        account: AccountRef,
        source: Union[TransactionSource, str],
        source_id: Optional[int],
        payment_type: Union[PaymentType, str],
        amount: Union[Decimal, int, str],
        occurred_at: Optional[datetime] = None,
        description: Optional[str] = None,
    ) -> BalanceTransaction:
        """Append one signed movement to an account's ledger.

        Args:
            account: Account the money moves in or out of
            source: Business event kind that caused the movement
            source_id: ID of the originating record, if any
            payment_type: Must agree with ``account``
            amount: Signed amount, positive for inflow, never zero
            occurred_at: Timestamp of the movement (defaults to now)
            description: Free text shown in the timeline

        Returns:
            The stored transaction

        Raises:
            ValidationError: If the amount is zero or malformed, or the
                timestamp precedes the account's latest transaction
            InvalidAccountReference: If the account cannot receive transactions
            ConcurrentBalanceConflict: If every append attempt lost a race
        """
        try:
            amount = to_money(amount)
        except ValueError as e:
            raise ValidationError(str(e))
        if amount == 0:
            raise ValidationError("Transaction amount must be non-zero")

        try:
            source = TransactionSource(source)
        except ValueError:
            raise ValidationError(f"Unknown transaction source '{source}'")

        resolved = self.registry.resolve_account(account.payment_type, account.bank_account_id)
        if PaymentType(payment_type) is not resolved.payment_type:
            raise InvalidAccountReference(
                f"Payment type '{PaymentType(payment_type).value}' does not match account '{resolved.key}'"
            )

        occurred_at = occurred_at or self.clock()
        with self.locks.hold(resolved.key), self.db.write_transaction():
            return self._append(resolved, source, source_id, amount, occurred_at, description)

    def _append(
        self,
        account: AccountRef,
        source: TransactionSource,
        source_id: Optional[int],
        amount: Decimal,
        occurred_at: datetime,
        description: Optional[str],
    ) -> BalanceTransaction:
        for attempt in range(1, self.max_retries + 1):
            latest = self.db.get_latest_transaction(account.key)
            if latest is not None and occurred_at < latest.created_at:
                raise ValidationError(
                    out_of_order_append(account.key, occurred_at.isoformat(), latest.created_at.isoformat())
                )

            before = self._balance_from(latest, account, occurred_at.date())
            try:
                txn = self.db.append_transaction(
                    account_key=account.key,
                    account_seq=(latest.account_seq if latest else 0) + 1,
                    source=source,
                    source_id=source_id,
                    payment_type=account.payment_type,
                    bank_account_id=account.bank_account_id,
                    amount=amount,
                    before_balance=before,
                    after_balance=before + amount,
                    description=description,
                    created_at=occurred_at,
                )
            except ConcurrentBalanceConflict:
                logger.warning(
                    "Append to %s lost a race (attempt %d/%d), re-reading balance",
                    account.key,
                    attempt,
                    self.max_retries,
                )
                continue

            logger.info(
                "Recorded %s %s on %s: %s -> %s",
                source.value,
                amount,
                account.key,
                txn.before_balance,
                txn.after_balance,
            )
            return txn

        raise ConcurrentBalanceConflict(account.key, attempts=self.max_retries)

    def _balance_from(
        self, latest: Optional[BalanceTransaction], account: AccountRef, on_date: date
    ) -> Decimal:
        if latest is None or latest.business_date < on_date:
            return self.calculator.opening_value(account, on_date)
        if latest.business_date == on_date:
            return latest.after_balance
        return self.calculator.closing_value(account, on_date)

    def current_balance(self, account: AccountRef, on_date: Optional[date] = None) -> Decimal:
        """Balance of an account as of its latest movement on a date.

        For a date before the account's latest transaction this is the
        account's closing balance of that date.
        """
        on_date = on_date or self.clock().date()
        latest = self.db.get_latest_transaction(account.key)
        return self._balance_from(latest, account, on_date)

    def list_transactions(
        self,
        account: Optional[AccountRef] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        sources: Optional[Iterable[Union[TransactionSource, str]]] = None,
    ) -> list[BalanceTransaction]:
        """List transactions in (created_at, id) order."""
        if sources is not None:
            sources = [TransactionSource(s) for s in sources]
        return self.db.list_transactions(
            account_key=account.key if account else None,
            start_date=start_date,
            end_date=end_date,
            sources=sources,
        )

    def verify_chain(self, account: Optional[AccountRef] = None) -> list[ChainBreak]:
        """Check that every account's ledger links up.

        Each transaction must satisfy after = before + amount, and its before
        balance must equal the after balance of the account's previous
        transaction.

        Returns:
            Every break found, empty when the ledger is consistent
        """
        by_account: dict[str, list[BalanceTransaction]] = {}
        with self.db.read_snapshot():
            for txn in self.list_transactions(account=account):
                by_account.setdefault(txn.account_key, []).append(txn)

        breaks = []
        for account_key, transactions in by_account.items():
            transactions.sort(key=lambda t: t.account_seq)
            previous = None
            for txn in transactions:
                if txn.before_balance + txn.amount != txn.after_balance:
                    breaks.append(
                        ChainBreak(
                            account_key=account_key,
                            previous_id=txn.id,
                            transaction_id=txn.id,
                            expected_before=txn.after_balance - txn.amount,
                            actual_before=txn.before_balance,
                        )
                    )
                if previous is not None and txn.before_balance != previous.after_balance:
                    breaks.append(
                        ChainBreak(
                            account_key=account_key,
                            previous_id=previous.id,
                            transaction_id=txn.id,
                            expected_before=previous.after_balance,
                            actual_before=txn.before_balance,
                        )
                    )
                previous = txn

        if breaks:
            logger.warning("Ledger verification found %d break(s)", len(breaks))
        return breaks
