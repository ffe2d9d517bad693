"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Iterable
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from shopledger.domain.entities import (
    BankAccount,
    BalanceTransaction,
    BusinessRecord,
    OpeningBalanceRow,
    PaymentLine,
    PaymentType,
    RecordKind,
    TransactionSource,
)


class Database(ABC):
    """Abstract database interface for shopledger."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def read_snapshot(self) -> AbstractContextManager["Database"]:
        """Pin one consistent view of the data for a multi-query read.

        Nested snapshots reuse the outermost one.
        """
        pass

    @abstractmethod
    def write_transaction(self) -> AbstractContextManager["Database"]:
        """Group writes so they are committed together or not at all.

        Every write method joins the open unit; the outermost block commits on
        success and rolls back on any exception. Reads inside the block see
        its uncommitted writes.
        """
        pass

    # Bank account operations
    @abstractmethod
    def create_bank_account(
        self,
        bank_name: str,
        account_number: str,
        label: str,
        is_default: bool = False,
        is_active: bool = True,
    ) -> int:
        """Create a bank account. Returns bank account ID."""
        pass

    @abstractmethod
    def get_bank_account(self, bank_account_id: int) -> Optional[BankAccount]:
        """Get bank account by ID."""
        pass

    @abstractmethod
    def list_bank_accounts(self, active_only: bool = False) -> list[BankAccount]:
        """List bank accounts, default account first."""
        pass

    @abstractmethod
    def update_bank_account_flags(
        self,
        bank_account_id: int,
        is_default: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update default/active flags. Setting default clears it elsewhere."""
        pass

    # Ledger operations
    @abstractmethod
    def append_transaction(
        self,
        account_key: str,
        account_seq: int,
        source: TransactionSource,
        source_id: Optional[int],
        payment_type: PaymentType,
        bank_account_id: Optional[int],
        amount: Decimal,
        before_balance: Decimal,
        after_balance: Decimal,
        description: Optional[str],
        created_at: datetime,
    ) -> BalanceTransaction:
        """Append one ledger row.

        Raises:
            ConcurrentBalanceConflict: If ``account_seq`` is already taken
        """
        pass

    @abstractmethod
    def get_latest_transaction(self, account_key: str) -> Optional[BalanceTransaction]:
        """Get the last transaction of an account's running sequence."""
        pass

    @abstractmethod
    def has_transactions_after(self, account_key: str, on_date: date) -> bool:
        """Check whether an account has transactions dated after ``on_date``."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_key: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        sources: Optional[Iterable[TransactionSource]] = None,
    ) -> list[BalanceTransaction]:
        """List transactions ordered by created_at then id."""
        pass

    # Opening balance operations
    @abstractmethod
    def get_opening_balance_row(self, on_date: date) -> Optional[OpeningBalanceRow]:
        """Get the explicit opening balance row for a date."""
        pass

    @abstractmethod
    def get_latest_explicit_opening(
        self, account_key: str, on_or_before: date
    ) -> Optional[tuple[date, Decimal]]:
        """Get the most recent explicit opening value of an account."""
        pass

    @abstractmethod
    def save_opening_balance(
        self,
        on_date: date,
        account_key: Optional[str] = None,
        balance: Optional[Decimal] = None,
        note: Optional[str] = None,
    ) -> OpeningBalanceRow:
        """Create or update the opening row of a date.

        When ``account_key`` is given its explicit value becomes ``balance``.
        ``note`` is appended to the row's notes.
        """
        pass

    @abstractmethod
    def list_opening_balance_rows(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[OpeningBalanceRow]:
        """List explicit opening rows in date order."""
        pass

    # Business record operations
    @abstractmethod
    def create_business_record(
        self,
        kind: RecordKind,
        reference: Optional[str],
        description: Optional[str],
        business_date: date,
        created_at: datetime,
    ) -> int:
        """Create a sale, purchase or expense record. Returns record ID."""
        pass

    @abstractmethod
    def add_payment_line(
        self,
        record_id: int,
        payment_type: PaymentType,
        bank_account_id: Optional[int],
        amount: Decimal,
        paid_at: datetime,
    ) -> PaymentLine:
        """Append a payment line to a record."""
        pass

    @abstractmethod
    def get_business_record(self, record_id: int) -> Optional[BusinessRecord]:
        """Get a record with all its payment lines."""
        pass

    @abstractmethod
    def list_business_records(
        self,
        kind: Optional[RecordKind] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        record_ids: Optional[Iterable[int]] = None,
    ) -> list[BusinessRecord]:
        """List records having payment lines in the window, lines filtered to it."""
        pass

    @abstractmethod
    def list_payment_lines(
        self,
        kind: Optional[RecordKind] = None,
        account_key: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[PaymentLine]:
        """List payment lines matching the filters."""
        pass
