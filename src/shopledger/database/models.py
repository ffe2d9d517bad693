"""SQLAlchemy models for the shopledger database."""

from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    Index,
    create_engine,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(14, 2)


class BankAccount(Base):
    """Bank account model."""

    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True)
    bank_name = Column(String, nullable=False)
    account_number = Column(String, nullable=False, unique=True)
    label = Column(String, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)


class BalanceTransaction(Base):
    """Append-only ledger row.

    Rows are never updated or deleted. ``account_seq`` numbers the rows of one
    account; the unique constraint rejects two writers claiming the same slot.
    """

    __tablename__ = "balance_transactions"

    id = Column(Integer, primary_key=True)
    account_key = Column(String, nullable=False)
    account_seq = Column(Integer, nullable=False)
    source = Column(String, nullable=False)
    source_id = Column(Integer, nullable=True)
    payment_type = Column(String, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    amount = Column(MONEY, nullable=False)
    before_balance = Column(MONEY, nullable=False)
    after_balance = Column(MONEY, nullable=False)
    description = Column(String, nullable=True)
    business_date = Column(Date, nullable=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("account_key", "account_seq", name="uq_account_sequence"),
        Index("ix_balance_transactions_account_date", "account_key", "business_date"),
        Index("ix_balance_transactions_created_at", "created_at"),
    )

    bank_account = relationship("BankAccount")


class OpeningBalance(Base):
    """Explicit opening balance values for one calendar date."""

    __tablename__ = "opening_balances"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, unique=True)
    cash_balance = Column(MONEY, nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    bank_balances = relationship(
        "OpeningBankBalance", back_populates="opening_balance", cascade="all, delete-orphan"
    )


class OpeningBankBalance(Base):
    """Explicit opening balance of one bank account on one date."""

    __tablename__ = "opening_bank_balances"

    id = Column(Integer, primary_key=True)
    opening_balance_id = Column(Integer, ForeignKey("opening_balances.id"), nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    balance = Column(MONEY, nullable=False)

    __table_args__ = (
        UniqueConstraint("opening_balance_id", "bank_account_id", name="uq_opening_bank"),
    )

    opening_balance = relationship("OpeningBalance", back_populates="bank_balances")


class BusinessRecord(Base):
    """Sale, purchase or expense as far as the ledger needs it."""

    __tablename__ = "business_records"

    id = Column(Integer, primary_key=True)
    kind = Column(String, nullable=False)
    reference = Column(String, nullable=True)
    description = Column(String, nullable=True)
    business_date = Column(Date, nullable=False)
    created_at = Column(DateTime, nullable=False)

    payment_lines = relationship(
        "PaymentLine",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="PaymentLine.position",
    )


class PaymentLine(Base):
    """One payment of a business record."""

    __tablename__ = "payment_lines"

    id = Column(Integer, primary_key=True)
    record_id = Column(Integer, ForeignKey("business_records.id"), nullable=False)
    position = Column(Integer, nullable=False)
    payment_type = Column(String, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    amount = Column(MONEY, nullable=False)
    paid_at = Column(DateTime, nullable=False)
    business_date = Column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("record_id", "position", name="uq_record_position"),
        Index("ix_payment_lines_business_date", "business_date"),
    )

    record = relationship("BusinessRecord", back_populates="payment_lines")


def _enable_sqlite_transactions(engine) -> None:
    """Let SQLAlchemy, not pysqlite, decide when transactions begin.

    pysqlite defers BEGIN until the first write, which would leave report reads
    outside any transaction. Emitting BEGIN ourselves gives reads a stable view.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_transactions(engine)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
