"""Account registry and bank account management."""

import logging
from typing import Optional, Union

from shopledger.database.base import Database
from shopledger.domain.entities import (
    AccountListing,
    AccountRef,
    BankAccount,
    Payment,
    PaymentType,
)
from shopledger.domain.errors import (
    AccountInactive,
    ConflictError,
    InvalidAccountReference,
    NotFoundError,
    ValidationError,
    bank_account_not_found,
    bank_account_required,
)

logger = logging.getLogger(__name__)


class AccountRegistry:
    """Read-only lookup of the accounts money can be held in."""

    def __init__(self, db: Database):
        """Initialize account registry.

        Args:
            db: Database instance
        """
        self.db = db

    def list_accounts(self, active_only: bool = False) -> AccountListing:
        """List the cash account and every bank account, default bank first."""
        return AccountListing(
            cash=AccountRef.cash(),
            bank_accounts=tuple(self.db.list_bank_accounts(active_only=active_only)),
        )

    def get_bank_account(self, bank_account_id: int) -> Optional[BankAccount]:
        return self.db.get_bank_account(bank_account_id)

    def resolve_account(
        self,
        payment_type: Union[PaymentType, str],
        bank_account_id: Optional[int] = None,
        require_active: bool = True,
    ) -> AccountRef:
        """Resolve a payment type and optional bank account ID into an account.

        Args:
            payment_type: "cash" or "bank_transfer"
            bank_account_id: Bank account ID, required for bank transfers
            require_active: Reject disabled bank accounts (new transactions)

        Returns:
            AccountRef for the cash drawer or the bank account

        Raises:
            InvalidAccountReference: If the type is unknown, the ID is missing
                or the bank account does not exist
            AccountInactive: If the bank account is disabled
        """
        try:
            payment_type = PaymentType(payment_type)
        except ValueError:
            raise InvalidAccountReference(f"Unknown payment type '{payment_type}'")

        if payment_type is PaymentType.CASH:
            if bank_account_id is not None:
                raise InvalidAccountReference("Cash payments cannot reference a bank account")
            return AccountRef.cash()

        if bank_account_id is None:
            raise InvalidAccountReference(bank_account_required())

        bank = self.db.get_bank_account(bank_account_id)
        if bank is None:
            raise InvalidAccountReference(bank_account_not_found(bank_account_id))
        if require_active and not bank.is_active:
            raise AccountInactive(bank_account_id)
        return AccountRef.bank(bank.id)

    def resolve_payment(self, payment: Payment) -> AccountRef:
        """Resolve the account a cash or bank transfer payment lands in."""
        return self.resolve_account(payment.payment_type, payment.bank_account_id)

    def get_default_bank_account(self) -> Optional[BankAccount]:
        """Get the active default bank account, if one is set."""
        for bank in self.db.list_bank_accounts(active_only=True):
            if bank.is_default:
                return bank
        return None


class BankAccountService:
    """Service for managing the shop's bank accounts."""

    def __init__(self, db: Database):
        """Initialize bank account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_bank_account(
        self,
        bank_name: str,
        account_number: str,
        label: Optional[str] = None,
        is_default: bool = False,
    ) -> int:
        """Create a new bank account.

        Args:
            bank_name: Bank name
            account_number: Account number, unique across accounts
            label: Display label (defaults to "<bank> (<number>)")
            is_default: Make this the default account, clearing any other

        Returns:
            Bank account ID

        Raises:
            ValidationError: If bank name or account number is blank
            ConflictError: If the account number already exists
        """
        bank_name = (bank_name or "").strip()
        account_number = (account_number or "").strip()
        if not bank_name or not account_number:
            raise ValidationError("Bank name and account number are required")

        for existing in self.db.list_bank_accounts():
            if existing.account_number == account_number:
                raise ConflictError(f"Bank account with number '{account_number}' already exists")

        label = (label or "").strip() or f"{bank_name} ({account_number})"
        bank_account_id = self.db.create_bank_account(
            bank_name=bank_name,
            account_number=account_number,
            label=label,
            is_default=is_default,
        )
        logger.info("Created bank account %s (%s)", bank_account_id, label)
        return bank_account_id

    def _require(self, bank_account_id: int) -> BankAccount:
        bank = self.db.get_bank_account(bank_account_id)
        if bank is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))
        return bank

    def set_default(self, bank_account_id: int) -> None:
        """Make a bank account the default.

        Raises:
            NotFoundError: If the account does not exist
            AccountInactive: If the account is disabled
        """
        bank = self._require(bank_account_id)
        if not bank.is_active:
            raise AccountInactive(bank_account_id)
        self.db.update_bank_account_flags(bank_account_id, is_default=True)
        logger.info("Bank account %s is now the default", bank_account_id)

    def deactivate(self, bank_account_id: int) -> None:
        """Disable an account for new transactions. History is kept.

        Raises:
            NotFoundError: If the account does not exist
        """
        self._require(bank_account_id)
        self.db.update_bank_account_flags(bank_account_id, is_default=False, is_active=False)
        logger.info("Deactivated bank account %s", bank_account_id)

    def activate(self, bank_account_id: int) -> None:
        """Re-enable a disabled account.

        Raises:
            NotFoundError: If the account does not exist
        """
        self._require(bank_account_id)
        self.db.update_bank_account_flags(bank_account_id, is_active=True)
        logger.info("Activated bank account %s", bank_account_id)
