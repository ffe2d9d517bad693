"""Daily reconciliation: opening balance, categorized flows, closing balance."""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional

from shopledger.database.base import Database
from shopledger.domain.entities import (
    ZERO,
    AccountRef,
    BalanceSnapshot,
    BankAccount,
    BankBalance,
    BalanceTransaction,
    BusinessRecord,
    DailyReport,
    FlowSummary,
    PaymentType,
    RecordKind,
    TransactionSource,
)
from shopledger.domain.opening_balance import OpeningBalanceManager

logger = logging.getLogger(__name__)


def summarize_records(records: list[BusinessRecord], on_date: Optional[date] = None) -> FlowSummary:
    """Total the payment lines of records by payment type and bank account.

    With ``on_date`` only records created that date are counted, so a record
    paid over several days counts once across consecutive reports. Its lines
    are still totalled on the date they were paid.
    """
    cash = ZERO
    bank_transfer = ZERO
    by_bank: dict[int, Decimal] = {}
    for record in records:
        for line in record.payment_lines:
            if line.payment_type is PaymentType.CASH:
                cash += line.amount
            else:
                bank_transfer += line.amount
                by_bank[line.bank_account_id] = by_bank.get(line.bank_account_id, ZERO) + line.amount
    if on_date is None:
        count = len(records)
    else:
        count = sum(1 for record in records if record.business_date == on_date)
    return FlowSummary(
        cash=cash,
        bank_transfer=bank_transfer,
        by_bank=by_bank,
        count=count,
        items=tuple(records),
    )


class DailyReconciliationEngine:
    """Computes the reconciliation of a single calendar date.

    For every account: closing = opening + additions + sales - purchases - expenses.
    The computation only reads, so repeating it without intervening writes
    gives the same report.
    """

    def __init__(self, db: Database, opening_manager: OpeningBalanceManager):
        """Initialize reconciliation engine.

        Args:
            db: Database instance
            opening_manager: Source of opening balances
        """
        self.db = db
        self.opening_manager = opening_manager

    def compute_daily_report(self, on_date: date) -> DailyReport:
        """Compute the daily report of a date.

        Args:
            on_date: Calendar date

        Returns:
            DailyReport for the date
        """
        with self.db.read_snapshot():
            opening = self.opening_manager.get_opening_balance(on_date)
            adjustments = self.db.list_transactions(
                start_date=on_date,
                end_date=on_date,
                sources=[
                    TransactionSource.OPENING_BALANCE_ADDITION,
                    TransactionSource.OPENING_BALANCE_CORRECTION,
                ],
            )
            flows = {
                kind: summarize_records(
                    self.db.list_business_records(kind=kind, start_date=on_date, end_date=on_date),
                    on_date,
                )
                for kind in RecordKind
            }
            banks = self.db.list_bank_accounts()

        additions = tuple(t for t in adjustments if t.source is TransactionSource.OPENING_BALANCE_ADDITION)
        corrections = tuple(
            t for t in adjustments if t.source is TransactionSource.OPENING_BALANCE_CORRECTION
        )

        def closing_for(account: AccountRef) -> Decimal:
            value = opening.balance_for(account) + _additions_for(additions, account)
            for kind, summary in flows.items():
                value += kind.sign * summary.amount_for(account)
            return value

        opening_banks = []
        closing_banks = []
        for bank in banks:
            account = AccountRef.bank(bank.id)
            opening_value = opening.balance_for(account)
            closing_value = closing_for(account)
            active_today = any(
                t.bank_account_id == bank.id for t in adjustments
            ) or any(bank.id in summary.by_bank for summary in flows.values())
            if bank.is_active or opening_value != ZERO or closing_value != ZERO or active_today:
                opening_banks.append(_bank_balance(bank, opening_value))
                closing_banks.append(_bank_balance(bank, closing_value))

        report = DailyReport(
            date=on_date,
            opening_balance=replace(opening, bank_balances=tuple(opening_banks)),
            opening_balance_additions=additions,
            opening_balance_corrections=corrections,
            sales=flows[RecordKind.SALE],
            purchases=flows[RecordKind.PURCHASE],
            expenses=flows[RecordKind.EXPENSE],
            closing_balance=BalanceSnapshot(
                cash=closing_for(AccountRef.cash()), bank_balances=tuple(closing_banks)
            ),
        )
        logger.debug(
            "Daily report %s: opening %s, closing %s",
            on_date,
            report.opening_balance.total,
            report.closing_balance.total,
        )
        return report


def _additions_for(additions: tuple[BalanceTransaction, ...], account: AccountRef) -> Decimal:
    return sum((t.amount for t in additions if t.account_key == account.key), ZERO)


def _bank_balance(bank: BankAccount, value: Decimal) -> BankBalance:
    return BankBalance(
        bank_account_id=bank.id,
        balance=value,
        bank_name=bank.bank_name,
        account_number=bank.account_number,
    )
