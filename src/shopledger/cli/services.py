"""Wiring of the domain services used by CLI commands."""

from dataclasses import dataclass

import click

from shopledger.config import LedgerSettings
from shopledger.database.base import Database
from shopledger.domain.account import AccountRegistry, BankAccountService
from shopledger.domain.balances import BalanceCalculator
from shopledger.domain.ledger import BalanceTransactionStore
from shopledger.domain.opening_balance import OpeningBalanceManager
from shopledger.domain.payments import PaymentRecordingService
from shopledger.domain.range_report import RangeAggregator
from shopledger.domain.reconciliation import DailyReconciliationEngine
from shopledger.domain.timeline import TimelineBuilder


@dataclass(frozen=True)
class Services:
    """Every service of one CLI invocation, sharing one database and lock registry."""

    registry: AccountRegistry
    bank_accounts: BankAccountService
    store: BalanceTransactionStore
    opening: OpeningBalanceManager
    payments: PaymentRecordingService
    engine: DailyReconciliationEngine
    ranges: RangeAggregator
    timeline: TimelineBuilder


def build_services(db: Database, settings: LedgerSettings) -> Services:
    registry = AccountRegistry(db)
    store = BalanceTransactionStore(
        db,
        registry=registry,
        calculator=BalanceCalculator(db),
        max_retries=settings.max_append_retries,
    )
    opening = OpeningBalanceManager(store)
    engine = DailyReconciliationEngine(db, opening)
    return Services(
        registry=registry,
        bank_accounts=BankAccountService(db),
        store=store,
        opening=opening,
        payments=PaymentRecordingService(store),
        engine=engine,
        ranges=RangeAggregator(engine),
        timeline=TimelineBuilder(db),
    )


def get_services(ctx: click.Context) -> Services:
    """Get (building once) the services of the current invocation."""
    obj = ctx.find_root().obj
    if "services" not in obj:
        obj["services"] = build_services(obj["db"], obj["settings"])
    return obj["services"]
