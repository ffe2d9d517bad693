"""Domain model entities for shopledger.

These are pure data classes representing ledger concepts, independent of the
database schema. Services exchange these objects; the database layer maps its
ORM rows into them.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

ZERO = Decimal("0.00")

CASH_ACCOUNT_KEY = "cash"


class PaymentType(str, Enum):
    """Where a payment lands: the cash drawer or a bank account."""

    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"


class TransactionSource(str, Enum):
    """Business event that produced a balance transaction."""

    SALE_PAYMENT = "sale_payment"
    PURCHASE_PAYMENT = "purchase_payment"
    EXPENSE_PAYMENT = "expense_payment"
    OPENING_BALANCE_ADDITION = "opening_balance_addition"
    OPENING_BALANCE_CORRECTION = "opening_balance_correction"


class RecordKind(str, Enum):
    """Kind of business record a payment line belongs to."""

    SALE = "sale"
    PURCHASE = "purchase"
    EXPENSE = "expense"

    @property
    def transaction_source(self) -> TransactionSource:
        return _RECORD_SOURCES[self]

    @property
    def sign(self) -> int:
        """+1 for money coming in, -1 for money going out."""
        return 1 if self is RecordKind.SALE else -1


_RECORD_SOURCES = {
    RecordKind.SALE: TransactionSource.SALE_PAYMENT,
    RecordKind.PURCHASE: TransactionSource.PURCHASE_PAYMENT,
    RecordKind.EXPENSE: TransactionSource.EXPENSE_PAYMENT,
}


class BalanceMode(str, Enum):
    """How a manual opening balance entry is applied."""

    ADD = "add"
    SET = "set"


@dataclass(frozen=True)
class BankAccount:
    """Bank account domain entity."""

    id: int
    bank_name: str
    account_number: str
    label: str
    is_default: bool
    is_active: bool
    created_at: datetime

    @property
    def display_name(self) -> str:
        return f"{self.bank_name} ({self.account_number})"


@dataclass(frozen=True)
class AccountRef:
    """Identity of a place money is held.

    The cash drawer has no id; bank accounts carry their bank account id.
    """

    payment_type: PaymentType
    bank_account_id: Optional[int] = None

    @classmethod
    def cash(cls) -> "AccountRef":
        return cls(PaymentType.CASH)

    @classmethod
    def bank(cls, bank_account_id: int) -> "AccountRef":
        return cls(PaymentType.BANK_TRANSFER, bank_account_id)

    @classmethod
    def from_key(cls, key: str) -> "AccountRef":
        if key == CASH_ACCOUNT_KEY:
            return cls.cash()
        prefix, _, raw_id = key.partition(":")
        if prefix != "bank" or not raw_id.isdigit():
            raise ValueError(f"Unknown account key '{key}'")
        return cls.bank(int(raw_id))

    @property
    def is_cash(self) -> bool:
        return self.payment_type is PaymentType.CASH

    @property
    def key(self) -> str:
        """Stable string key used to scope the running balance sequence."""
        if self.is_cash:
            return CASH_ACCOUNT_KEY
        return f"bank:{self.bank_account_id}"

    def __post_init__(self):
        if self.payment_type is PaymentType.CASH and self.bank_account_id is not None:
            raise ValueError("Cash account cannot carry a bank account id")
        if self.payment_type is PaymentType.BANK_TRANSFER and self.bank_account_id is None:
            raise ValueError("Bank account reference requires a bank account id")


@dataclass(frozen=True)
class CashPayment:
    """Payment settled in cash."""

    amount: Decimal

    @property
    def payment_type(self) -> PaymentType:
        return PaymentType.CASH

    @property
    def bank_account_id(self) -> None:
        return None


@dataclass(frozen=True)
class BankTransferPayment:
    """Payment settled by bank transfer into or out of one bank account."""

    amount: Decimal
    bank_account_id: int

    @property
    def payment_type(self) -> PaymentType:
        return PaymentType.BANK_TRANSFER


Payment = Union[CashPayment, BankTransferPayment]


@dataclass(frozen=True)
class AccountListing:
    """Every account the ledger knows about."""

    cash: AccountRef
    bank_accounts: tuple[BankAccount, ...]


@dataclass(frozen=True)
class BalanceTransaction:
    """One signed movement of money against one account.

    Invariant: after_balance == before_balance + amount.
    """

    id: int
    account_key: str
    account_seq: int
    source: TransactionSource
    source_id: Optional[int]
    payment_type: PaymentType
    bank_account_id: Optional[int]
    amount: Decimal
    before_balance: Decimal
    after_balance: Decimal
    description: Optional[str]
    business_date: date
    created_at: datetime

    @property
    def account(self) -> AccountRef:
        return AccountRef(self.payment_type, self.bank_account_id)

    @property
    def is_income(self) -> bool:
        return self.amount > 0


@dataclass(frozen=True)
class PaymentLine:
    """One payment row of a sale, purchase or expense."""

    id: int
    record_id: int
    position: int
    payment_type: PaymentType
    bank_account_id: Optional[int]
    amount: Decimal
    paid_at: datetime
    business_date: date

    @property
    def account(self) -> AccountRef:
        return AccountRef(self.payment_type, self.bank_account_id)


@dataclass(frozen=True)
class BusinessRecord:
    """A sale, purchase or expense as seen by the ledger.

    ``payment_lines`` may be a subset of the record's payments when the record
    was loaded for a date range.
    """

    id: int
    kind: RecordKind
    reference: Optional[str]
    description: Optional[str]
    business_date: date
    created_at: datetime
    payment_lines: tuple[PaymentLine, ...] = ()

    @property
    def paid_total(self) -> Decimal:
        return sum((line.amount for line in self.payment_lines), ZERO)


@dataclass(frozen=True)
class BankBalance:
    """Balance of one bank account at a point in time."""

    bank_account_id: int
    balance: Decimal
    bank_name: Optional[str] = None
    account_number: Optional[str] = None


@dataclass(frozen=True)
class OpeningBalanceRow:
    """Explicitly stored opening balance values for one date.

    ``None`` cash and missing bank entries mean "carry forward".
    """

    id: int
    date: date
    cash_balance: Optional[Decimal]
    bank_balances: dict[int, Decimal]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class BalanceSnapshot:
    """Balances of every account at one instant of a date."""

    cash: Decimal
    bank_balances: tuple[BankBalance, ...] = ()

    @property
    def total(self) -> Decimal:
        return self.cash + sum((b.balance for b in self.bank_balances), ZERO)

    def bank_balance(self, bank_account_id: int) -> Decimal:
        for bank in self.bank_balances:
            if bank.bank_account_id == bank_account_id:
                return bank.balance
        return ZERO

    def balance_for(self, account: AccountRef) -> Decimal:
        if account.is_cash:
            return self.cash
        return self.bank_balance(account.bank_account_id)


@dataclass(frozen=True)
class OpeningBalance(BalanceSnapshot):
    """Opening balance of a date, explicit values merged with carry-forward."""

    date: Optional[date] = None
    is_explicit: bool = False
    notes: Optional[str] = None


@dataclass(frozen=True)
class FlowSummary:
    """Money moved by one kind of business record during a period."""

    cash: Decimal = ZERO
    bank_transfer: Decimal = ZERO
    by_bank: dict[int, Decimal] = field(default_factory=dict)
    count: int = 0
    items: tuple[BusinessRecord, ...] = ()

    @property
    def total(self) -> Decimal:
        return self.cash + self.bank_transfer

    def amount_for(self, account: AccountRef) -> Decimal:
        if account.is_cash:
            return self.cash
        return self.by_bank.get(account.bank_account_id, ZERO)


@dataclass(frozen=True)
class DailyReport:
    """Reconciliation of a single calendar date."""

    date: date
    opening_balance: OpeningBalance
    opening_balance_additions: tuple[BalanceTransaction, ...]
    opening_balance_corrections: tuple[BalanceTransaction, ...]
    sales: FlowSummary
    purchases: FlowSummary
    expenses: FlowSummary
    closing_balance: BalanceSnapshot

    @property
    def additions_total(self) -> Decimal:
        return sum((t.amount for t in self.opening_balance_additions), ZERO)


@dataclass(frozen=True)
class RangeSummary:
    """Range totals: flows summed, balances taken at the range edges."""

    opening_balance: OpeningBalance
    closing_balance: BalanceSnapshot
    sales_total: Decimal
    purchases_total: Decimal
    expenses_total: Decimal
    additions_total: Decimal
    sales_count: int
    purchases_count: int
    expenses_count: int

    @property
    def net_change(self) -> Decimal:
        return self.closing_balance.total - self.opening_balance.total


@dataclass(frozen=True)
class DateRangeReport:
    """Sequence of daily reports plus a range summary."""

    start_date: date
    end_date: date
    daily_reports: tuple[DailyReport, ...]
    summary: RangeSummary


@dataclass(frozen=True)
class TimelineRow:
    """One ledger movement joined back to its business event for display."""

    timestamp: datetime
    type: str
    source_label: str
    description: str
    payment_type: PaymentType
    bank_label: Optional[str]
    before_balance: Decimal
    after_balance: Decimal
    amount: Decimal
    transaction_id: int
    source: TransactionSource
    source_id: Optional[int]


@dataclass(frozen=True)
class ChainBreak:
    """A consecutive pair of transactions whose balances do not line up."""

    account_key: str
    previous_id: int
    transaction_id: int
    expected_before: Decimal
    actual_before: Decimal
