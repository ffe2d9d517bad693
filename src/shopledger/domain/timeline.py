"""Chronological timeline of ledger movements joined to their business events."""

import logging
from collections import deque
from datetime import date
from typing import Optional

from shopledger.database.base import Database
from shopledger.domain.entities import (
    BalanceTransaction,
    BankAccount,
    BusinessRecord,
    PaymentLine,
    RecordKind,
    TimelineRow,
    TransactionSource,
)
from shopledger.domain.errors import InvalidDateRange

logger = logging.getLogger(__name__)

SOURCE_LABELS = {
    TransactionSource.SALE_PAYMENT: "Sale",
    TransactionSource.PURCHASE_PAYMENT: "Purchase",
    TransactionSource.EXPENSE_PAYMENT: "Expense",
    TransactionSource.OPENING_BALANCE_ADDITION: "Opening Balance Addition",
    TransactionSource.OPENING_BALANCE_CORRECTION: "Opening Balance Correction",
}

_PAYMENT_SOURCES = {kind.transaction_source: kind for kind in RecordKind}

MatchKey = tuple[TransactionSource, Optional[int], str, Optional[int]]


def _match_key(source: TransactionSource, source_id: Optional[int], line_or_txn) -> MatchKey:
    return (source, source_id, line_or_txn.payment_type.value, line_or_txn.bank_account_id)


def _describe_record(record: BusinessRecord) -> str:
    label = SOURCE_LABELS[record.kind.transaction_source]
    text = f"{label} #{record.id}"
    if record.reference:
        text += f" ({record.reference})"
    if record.description:
        text += f" - {record.description}"
    return text


class TimelineBuilder:
    """Builds a read-only, time-ordered view of every balance movement."""

    def __init__(self, db: Database):
        """Initialize timeline builder.

        Args:
            db: Database instance
        """
        self.db = db

    def build_timeline(self, start_date: date, end_date: date) -> list[TimelineRow]:
        """Build the timeline of a date range.

        Each payment transaction is paired with a payment line of its record
        having the same payment type and bank account; when a record has
        several such lines, transactions claim them in creation order.
        Transactions without a matching line are still listed with a generic
        description.

        Args:
            start_date: First date, inclusive
            end_date: Last date, inclusive

        Returns:
            Rows ordered by timestamp, then transaction ID

        Raises:
            InvalidDateRange: If start_date is after end_date
        """
        if start_date > end_date:
            raise InvalidDateRange(start_date, end_date)

        with self.db.read_snapshot():
            transactions = self.db.list_transactions(start_date=start_date, end_date=end_date)
            record_ids = {t.source_id for t in transactions if t.source in _PAYMENT_SOURCES and t.source_id}
            records = (
                self.db.list_business_records(
                    start_date=start_date, end_date=end_date, record_ids=record_ids
                )
                if record_ids
                else []
            )
            banks = {bank.id: bank for bank in self.db.list_bank_accounts()}

        records_by_id = {record.id: record for record in records}
        unclaimed: dict[MatchKey, deque[PaymentLine]] = {}
        for record in records:
            source = record.kind.transaction_source
            lines = sorted(record.payment_lines, key=lambda line: (line.paid_at, line.position))
            for line in lines:
                unclaimed.setdefault(_match_key(source, record.id, line), deque()).append(line)

        rows = []
        for txn in sorted(transactions, key=lambda t: (t.created_at, t.id)):
            rows.append(self._row(txn, unclaimed, records_by_id, banks))
        return rows

    def _row(
        self,
        txn: BalanceTransaction,
        unclaimed: dict[MatchKey, deque[PaymentLine]],
        records_by_id: dict[int, BusinessRecord],
        banks: dict[int, BankAccount],
    ) -> TimelineRow:
        label = SOURCE_LABELS[txn.source]
        if txn.source in _PAYMENT_SOURCES:
            pending = unclaimed.get(_match_key(txn.source, txn.source_id, txn))
            if pending:
                pending.popleft()
                description = _describe_record(records_by_id[txn.source_id])
            else:
                logger.warning(
                    "No payment line found for transaction %s (%s #%s)",
                    txn.id,
                    txn.source.value,
                    txn.source_id,
                )
                description = txn.description or f"{label} #{txn.source_id}"
        else:
            description = txn.description or label

        bank_label = None
        if txn.bank_account_id is not None:
            bank = banks.get(txn.bank_account_id)
            bank_label = bank.label if bank else f"Bank account {txn.bank_account_id}"

        return TimelineRow(
            timestamp=txn.created_at,
            type="income" if txn.is_income else "expense",
            source_label=label,
            description=description,
            payment_type=txn.payment_type,
            bank_label=bank_label,
            before_balance=txn.before_balance,
            after_balance=txn.after_balance,
            amount=txn.amount,
            transaction_id=txn.id,
            source=txn.source,
            source_id=txn.source_id,
        )
