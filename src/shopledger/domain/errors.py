"""Shared domain error messages and error types."""

from datetime import date


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class InvalidAccountReference(ValidationError):
    """Payment target cannot be resolved to a usable account."""


class AccountInactive(InvalidAccountReference):
    """Bank account exists but is disabled for new transactions."""

    def __init__(self, bank_account_id: int):
        super().__init__(bank_account_inactive(bank_account_id))
        self.bank_account_id = bank_account_id


class InvalidDateRange(ValidationError):
    """Report range whose start falls after its end."""

    def __init__(self, start_date: date, end_date: date):
        super().__init__(
            f"Start date {start_date.isoformat()} is after end date {end_date.isoformat()}"
        )
        self.start_date = start_date
        self.end_date = end_date


class ConcurrentBalanceConflict(ConflictError):
    """Another writer appended to the same account sequence first."""

    def __init__(self, account_key: str, attempts: int = 1):
        super().__init__(
            f"Balance of account '{account_key}' changed concurrently "
            f"({attempts} attempt{'s' if attempts != 1 else ''})"
        )
        self.account_key = account_key
        self.attempts = attempts


def bank_account_not_found(bank_account_id: int) -> str:
    """Return message for missing bank account."""
    return f"Bank account {bank_account_id} not found"


def bank_account_inactive(bank_account_id: int) -> str:
    """Return message for disabled bank account."""
    return f"Bank account {bank_account_id} is inactive"


def bank_account_required() -> str:
    """Return message for a bank transfer without a target account."""
    return "Bank account ID is required for bank transfer payments"


def record_not_found(record_id: int) -> str:
    """Return message for missing business record."""
    return f"Business record {record_id} not found"


def out_of_order_append(account_key: str, requested: str, latest: str) -> str:
    """Return message when an append would precede existing history."""
    return (
        f"Cannot record transaction for '{account_key}' at {requested}: "
        f"account already has a transaction at {latest}"
    )


def history_continues(account_key: str, on_date: date) -> str:
    """Return message when an opening balance date is already closed."""
    return (
        f"Cannot change opening balance of '{account_key}' for {on_date.isoformat()}: "
        "the account has transactions on later dates"
    )
