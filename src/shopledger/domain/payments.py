"""Recording of sale, purchase and expense payments."""

import logging
from contextlib import ExitStack, contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterator, Optional, Sequence

from shopledger.domain.entities import (
    AccountRef,
    BankTransferPayment,
    BusinessRecord,
    CashPayment,
    Payment,
    RecordKind,
)
from shopledger.domain.errors import (
    NotFoundError,
    ValidationError,
    out_of_order_append,
    record_not_found,
)
from shopledger.domain.ledger import BalanceTransactionStore
from shopledger.utils.amount_parser import to_money

logger = logging.getLogger(__name__)


class PaymentRecordingService:
    """Service that stores business records and posts their payments to the ledger.

    Every payment line produces exactly one balance transaction against the
    account it was paid into or out of. A record is written under the locks
    of all its accounts and committed in one database transaction, so a
    rejected payment leaves neither record, line nor transaction behind.
    """

    def __init__(self, store: BalanceTransactionStore):
        """Initialize payment recording service.

        Args:
            store: Transaction store receiving one transaction per payment
        """
        self.store = store
        self.db = store.db

    def record_sale(
        self,
        payments: Sequence[Payment],
        reference: Optional[str] = None,
        description: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> BusinessRecord:
        """Record a sale paid by one or more payments (money in)."""
        return self._record(RecordKind.SALE, payments, reference, description, occurred_at)

    def record_purchase(
        self,
        payments: Sequence[Payment],
        reference: Optional[str] = None,
        description: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> BusinessRecord:
        """Record a supplier purchase paid by one or more payments (money out)."""
        return self._record(RecordKind.PURCHASE, payments, reference, description, occurred_at)

    def record_expense(
        self,
        payments: Sequence[Payment],
        reference: Optional[str] = None,
        description: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> BusinessRecord:
        """Record an expense paid by one or more payments (money out)."""
        return self._record(RecordKind.EXPENSE, payments, reference, description, occurred_at)

    def add_payment(
        self, record_id: int, payment: Payment, occurred_at: Optional[datetime] = None
    ) -> BusinessRecord:
        """Add a further payment to an existing record.

        Args:
            record_id: Business record ID
            payment: Cash or bank transfer payment
            occurred_at: When the payment was made (defaults to now)

        Returns:
            The record with all its payment lines

        Raises:
            NotFoundError: If the record does not exist
            ValidationError: If the amount is not positive
            InvalidAccountReference: If the payment account cannot be used
        """
        if self.db.get_business_record(record_id) is None:
            raise NotFoundError(record_not_found(record_id))

        occurred_at = occurred_at or self.store.clock()
        validated = self._validate(payment_list=[payment])
        with self._hold(validated), self.db.write_transaction():
            record = self.db.get_business_record(record_id)
            if record is None:
                raise NotFoundError(record_not_found(record_id))
            self._check_order(validated, occurred_at)
            self._post(record, validated, occurred_at)
        return self.db.get_business_record(record_id)

    def _record(
        self,
        kind: RecordKind,
        payments: Sequence[Payment],
        reference: Optional[str],
        description: Optional[str],
        occurred_at: Optional[datetime],
    ) -> BusinessRecord:
        if not payments:
            raise ValidationError(f"A {kind.value} needs at least one payment")

        occurred_at = occurred_at or self.store.clock()
        validated = self._validate(payment_list=list(payments))

        # The record, its lines and their transactions commit together
        with self._hold(validated), self.db.write_transaction():
            self._check_order(validated, occurred_at)
            record_id = self.db.create_business_record(
                kind=kind,
                reference=reference,
                description=description,
                business_date=occurred_at.date(),
                created_at=occurred_at,
            )
            record = self.db.get_business_record(record_id)
            self._post(record, validated, occurred_at)

        logger.info(
            "Recorded %s %s with %d payment(s)", kind.value, record_id, len(validated)
        )
        return self.db.get_business_record(record_id)

    def _validate(self, payment_list: list[Payment]) -> list[tuple[Decimal, AccountRef]]:
        """Resolve every payment before anything is written."""
        validated = []
        for payment in payment_list:
            if not isinstance(payment, (CashPayment, BankTransferPayment)):
                raise ValidationError(f"Unsupported payment {payment!r}")
            try:
                amount = to_money(payment.amount)
            except ValueError as e:
                raise ValidationError(str(e))
            if amount <= 0:
                raise ValidationError("Payment amount must be positive")

            validated.append((amount, self.store.registry.resolve_payment(payment)))
        return validated

    @contextmanager
    def _hold(self, validated: list[tuple[Decimal, AccountRef]]) -> Iterator[None]:
        """Hold the lock of every paid account, in key order."""
        with ExitStack() as stack:
            for key in sorted({account.key for _, account in validated}):
                stack.enter_context(self.store.locks.hold(key))
            yield

    def _check_order(self, validated: list[tuple[Decimal, AccountRef]], occurred_at: datetime) -> None:
        for _, account in validated:
            latest = self.db.get_latest_transaction(account.key)
            if latest is not None and occurred_at < latest.created_at:
                raise ValidationError(
                    out_of_order_append(account.key, occurred_at.isoformat(), latest.created_at.isoformat())
                )

    def _post(
        self,
        record: BusinessRecord,
        validated: list[tuple[Decimal, AccountRef]],
        occurred_at: datetime,
    ) -> None:
        for amount, account in validated:
            line = self.db.add_payment_line(
                record_id=record.id,
                payment_type=account.payment_type,
                bank_account_id=account.bank_account_id,
                amount=amount,
                paid_at=occurred_at,
            )
            self.store.record_transaction(
                account=account,
                source=record.kind.transaction_source,
                source_id=record.id,
                payment_type=account.payment_type,
                amount=record.kind.sign * amount,
                occurred_at=occurred_at,
                description=record.description or record.reference,
            )
            logger.debug("Posted payment line %s of record %s to %s", line.id, record.id, account.key)
