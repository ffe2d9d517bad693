"""Utility for resolving operator input to accounts and payments."""

from shopledger.domain.account import AccountRegistry
from shopledger.domain.entities import (
    CASH_ACCOUNT_KEY,
    AccountRef,
    BankTransferPayment,
    CashPayment,
    Payment,
)
from shopledger.domain.errors import InvalidAccountReference
from shopledger.utils.amount_parser import parse_amount


def resolve_bank_account_id(registry: AccountRegistry, account: str | int) -> int:
    """Resolve a bank account ID, account number or label to its ID.

    Args:
        registry: AccountRegistry instance
        account: ID (int or numeric string), account number or label

    Returns:
        Bank account ID

    Raises:
        InvalidAccountReference: If no bank account matches
    """
    if isinstance(account, int) or str(account).isdigit():
        account_id = int(account)
        if registry.get_bank_account(account_id) is not None:
            return account_id

    text = str(account).strip()
    for bank in registry.list_accounts().bank_accounts:
        if text in (bank.account_number, bank.label):
            return bank.id

    raise InvalidAccountReference(f"Bank account '{account}' not found")


def resolve_account_spec(registry: AccountRegistry, spec: str) -> AccountRef:
    """Resolve "cash" or a bank account reference to an account."""
    if spec.strip().lower() == CASH_ACCOUNT_KEY:
        return AccountRef.cash()
    return AccountRef.bank(resolve_bank_account_id(registry, spec))


def parse_bank_payment(registry: AccountRegistry, spec: str) -> Payment:
    """Parse a "<bank>=<amount>" payment option.

    Raises:
        ValueError: If the option is malformed or the amount is invalid
        InvalidAccountReference: If the bank account is unknown
    """
    bank, sep, amount = spec.rpartition("=")
    if not sep or not bank.strip():
        raise ValueError(f"Bank payment must look like BANK=AMOUNT, got '{spec}'")
    return BankTransferPayment(
        amount=parse_amount(amount), bank_account_id=resolve_bank_account_id(registry, bank)
    )


def build_payments(
    registry: AccountRegistry, cash: tuple[str, ...], bank: tuple[str, ...]
) -> list[Payment]:
    """Build the payment list of a record from repeated --cash and --bank options."""
    payments: list[Payment] = [CashPayment(amount=parse_amount(value)) for value in cash]
    payments.extend(parse_bank_payment(registry, spec) for spec in bank)
    return payments
