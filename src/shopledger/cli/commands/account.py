"""Bank account management commands."""

import click

from shopledger.cli.error_handling import handle_domain_error
from shopledger.cli.services import get_services
from shopledger.domain.errors import DomainError
from shopledger.utils.account_resolver import resolve_bank_account_id


@click.group()
def account_group():
    """Manage bank accounts. The cash drawer always exists."""
    pass


@account_group.command("create")
@click.argument("bank_name", metavar="BANK_NAME")
@click.argument("account_number", metavar="ACCOUNT_NUMBER")
@click.option("--label", help="Display label (defaults to 'BANK_NAME (ACCOUNT_NUMBER)')")
@click.option("--default", "is_default", is_flag=True, help="Make this the default bank account")
@click.pass_context
def create_account(ctx, bank_name: str, account_number: str, label: str | None, is_default: bool):
    """Create a new bank account.

    Examples:
        shopledger account create "City Bank" 001-2345
        shopledger account create "City Bank" 001-2345 --label "Main" --default
    """
    services = get_services(ctx)
    try:
        account_id = services.bank_accounts.create_bank_account(
            bank_name=bank_name, account_number=account_number, label=label, is_default=is_default
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created bank account '{bank_name} ({account_number})' (ID: {account_id})")


@account_group.command("list")
@click.option("--active-only", is_flag=True, help="Hide deactivated bank accounts")
@click.pass_context
def list_accounts(ctx, active_only: bool):
    """List the cash account and all bank accounts."""
    listing = get_services(ctx).registry.list_accounts(active_only=active_only)

    click.echo("\nAccounts:")
    click.echo("-" * 70)
    click.echo(f"{'cash':>7} | Cash drawer")
    for bank in listing.bank_accounts:
        flags = []
        if bank.is_default:
            flags.append("default")
        if not bank.is_active:
            flags.append("inactive")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"ID: {bank.id:3d} | {bank.label:25s} | {bank.display_name}{suffix}")


def _flag_command(name: str, action: str, done: str, help_text: str):
    @account_group.command(name, help=help_text)
    @click.argument("account", metavar="ACCOUNT")
    @click.pass_context
    def command(ctx, account: str):
        services = get_services(ctx)
        try:
            bank_account_id = resolve_bank_account_id(services.registry, account)
            getattr(services.bank_accounts, action)(bank_account_id)
        except DomainError as e:
            handle_domain_error(ctx, e)
        click.echo(f"Bank account {bank_account_id} {done}")

    return command


_flag_command("default", "set_default", "is now the default", "Make ACCOUNT (ID, number or label) the default bank account.")
_flag_command("deactivate", "deactivate", "deactivated", "Stop ACCOUNT (ID, number or label) from taking new payments.")
_flag_command("activate", "activate", "activated", "Allow ACCOUNT (ID, number or label) to take payments again.")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
