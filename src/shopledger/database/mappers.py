"""Mapper functions to convert between SQLAlchemy models and domain entities.

This layer isolates the conversion logic, so services never see ORM rows.
"""

from typing import Optional
from datetime import date

from shopledger.domain import entities as domain
from shopledger.database.models import (
    BankAccount as ORMBankAccount,
    BalanceTransaction as ORMBalanceTransaction,
    OpeningBalance as ORMOpeningBalance,
    BusinessRecord as ORMBusinessRecord,
    PaymentLine as ORMPaymentLine,
)


def bank_account_to_domain(orm_account: ORMBankAccount) -> domain.BankAccount:
    """Convert SQLAlchemy BankAccount model to domain BankAccount entity."""
    return domain.BankAccount(
        id=orm_account.id,
        bank_name=orm_account.bank_name,
        account_number=orm_account.account_number,
        label=orm_account.label,
        is_default=orm_account.is_default,
        is_active=orm_account.is_active,
        created_at=orm_account.created_at,
    )


def balance_transaction_to_domain(orm_txn: ORMBalanceTransaction) -> domain.BalanceTransaction:
    """Convert SQLAlchemy BalanceTransaction model to domain entity."""
    return domain.BalanceTransaction(
        id=orm_txn.id,
        account_key=orm_txn.account_key,
        account_seq=orm_txn.account_seq,
        source=domain.TransactionSource(orm_txn.source),
        source_id=orm_txn.source_id,
        payment_type=domain.PaymentType(orm_txn.payment_type),
        bank_account_id=orm_txn.bank_account_id,
        amount=orm_txn.amount,
        before_balance=orm_txn.before_balance,
        after_balance=orm_txn.after_balance,
        description=orm_txn.description,
        business_date=orm_txn.business_date,
        created_at=orm_txn.created_at,
    )


def opening_balance_to_domain(orm_opening: ORMOpeningBalance) -> domain.OpeningBalanceRow:
    """Convert SQLAlchemy OpeningBalance model (with bank rows) to domain entity."""
    return domain.OpeningBalanceRow(
        id=orm_opening.id,
        date=orm_opening.date,
        cash_balance=orm_opening.cash_balance,
        bank_balances={b.bank_account_id: b.balance for b in orm_opening.bank_balances},
        notes=orm_opening.notes,
        created_at=orm_opening.created_at,
        updated_at=orm_opening.updated_at,
    )


def payment_line_to_domain(orm_line: ORMPaymentLine) -> domain.PaymentLine:
    """Convert SQLAlchemy PaymentLine model to domain PaymentLine entity."""
    return domain.PaymentLine(
        id=orm_line.id,
        record_id=orm_line.record_id,
        position=orm_line.position,
        payment_type=domain.PaymentType(orm_line.payment_type),
        bank_account_id=orm_line.bank_account_id,
        amount=orm_line.amount,
        paid_at=orm_line.paid_at,
        business_date=orm_line.business_date,
    )


def business_record_to_domain(
    orm_record: ORMBusinessRecord,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> domain.BusinessRecord:
    """Convert SQLAlchemy BusinessRecord model to domain entity.

    When a date window is given, only payment lines dated inside it are kept.
    """
    lines = [
        payment_line_to_domain(line)
        for line in orm_record.payment_lines
        if (start_date is None or line.business_date >= start_date)
        and (end_date is None or line.business_date <= end_date)
    ]
    return domain.BusinessRecord(
        id=orm_record.id,
        kind=domain.RecordKind(orm_record.kind),
        reference=orm_record.reference,
        description=orm_record.description,
        business_date=orm_record.business_date,
        created_at=orm_record.created_at,
        payment_lines=tuple(lines),
    )
