"""Account management commands."""

import click
from balancekit.cli.account_resolution import resolve_account_or_exit
from balancekit.cli.error_handling import handle_domain_error
from balancekit.domain.account import AccountService
from balancekit.domain.entities import ACCOUNT_TYPES, DEFAULT_UNIT
from balancekit.domain.errors import DomainError


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("add")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES),
    required=True,
    help="Account type",
)
@click.option("--unit", default=DEFAULT_UNIT, show_default=True, help="Currency or asset symbol")
@click.option("--parent", help="Parent account name or ID")
@click.pass_context
def add_account(ctx, name: str, account_type: str, unit: str, parent: str | None):
    """Create a new account.

    Examples:
        balancekit account add "Checking" --type asset
        balancekit account add "Groceries" --type expense --parent "Food"
        balancekit account add "Brokerage" --type asset --unit EUR
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    parent_id = None
    if parent is not None:
        parent_id = resolve_account_or_exit(ctx, service, parent)

    try:
        account_id = service.create_account(
            name=name, type=account_type, unit=unit, parent_id=parent_id
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    names = {acc.id: acc.name for acc in accounts}
    click.echo("\nAccounts:")
    click.echo("-" * 70)
    for acc in accounts:
        parent = f" | Parent: {names.get(acc.parent_id, acc.parent_id)}" if acc.parent_id else ""
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | {acc.type:9s} | {acc.unit}{parent}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID. Accounts with entries cannot be
    deleted. Rules that reference the account are marked invalid.

    Examples:
        balancekit account delete "Old Savings"
        balancekit account delete 4 --yes
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.get_account(account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to delete account '{account_obj.name}' (ID: {account_id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        invalidated = service.delete_account(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Deleted account '{account_obj.name}'")
    if invalidated:
        click.echo(f"Marked {invalidated} rule(s) as invalid")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
