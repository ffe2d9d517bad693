"""Shared pytest fixtures for shopledger tests."""

import os
import tempfile
from datetime import datetime, timedelta

import pytest

from shopledger.database.factories import create_sqlite_database
from shopledger.domain.account import AccountRegistry, BankAccountService
from shopledger.domain.ledger import BalanceTransactionStore
from shopledger.domain.opening_balance import OpeningBalanceManager
from shopledger.domain.payments import PaymentRecordingService
from shopledger.domain.range_report import RangeAggregator
from shopledger.domain.reconciliation import DailyReconciliationEngine
from shopledger.domain.timeline import TimelineBuilder


class FixedClock:
    """Deterministic clock that moves forward one minute per reading."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(minutes=1)
        return current


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for CLI tests
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 1, 9, 0))


@pytest.fixture
def registry(temp_db):
    return AccountRegistry(temp_db)


@pytest.fixture
def bank_service(temp_db):
    return BankAccountService(temp_db)


@pytest.fixture
def store(temp_db, registry, clock):
    """Create a BalanceTransactionStore driven by the fixed clock."""
    return BalanceTransactionStore(temp_db, registry=registry, clock=clock)


@pytest.fixture
def opening_manager(store):
    return OpeningBalanceManager(store)


@pytest.fixture
def payments(store):
    return PaymentRecordingService(store)


@pytest.fixture
def engine(temp_db, opening_manager):
    return DailyReconciliationEngine(temp_db, opening_manager)


@pytest.fixture
def aggregator(engine):
    return RangeAggregator(engine)


@pytest.fixture
def timeline(temp_db):
    return TimelineBuilder(temp_db)


@pytest.fixture
def bank_account(bank_service, temp_db):
    """Create an active default bank account."""
    bank_account_id = bank_service.create_bank_account(
        bank_name="City Bank", account_number="001-100", label="City Main", is_default=True
    )
    return temp_db.get_bank_account(bank_account_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
