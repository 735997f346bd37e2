"""Transaction management commands."""

import click
from balancekit.cli.account_resolution import resolve_account_or_exit
from balancekit.cli.date_filters import resolve_cli_date_range
from balancekit.cli.display import echo_transaction, echo_transaction_table
from balancekit.cli.error_handling import handle_domain_error
from balancekit.domain.account import AccountService
from balancekit.domain.entities import Entry
from balancekit.domain.errors import DomainError
from balancekit.domain.transaction import TransactionService
from balancekit.utils.date_parser import parse_date
from balancekit.utils.entry_parser import parse_entry


def _build_entries(ctx, account_service: AccountService, specs: tuple[str, ...]) -> list[Entry]:
    entries = []
    for spec in specs:
        try:
            parsed = parse_entry(spec)
        except DomainError as e:
            handle_domain_error(ctx, e)
        entries.append(
            Entry(
                account_id=resolve_account_or_exit(ctx, account_service, parsed.account),
                amount=parsed.amount,
                type=parsed.type,
            )
        )
    return entries


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("add")
@click.argument("description")
@click.option("--date", "txn_date", default="today", help="Transaction date (YYYY-MM-DD, 'today', ...)")
@click.option(
    "--entry",
    "entry_specs",
    multiple=True,
    help="Entry as ACCOUNT:debit|credit:AMOUNT (repeatable)",
)
@click.option("--reference", help="Reference number")
@click.option("--notes", help="Notes")
@click.option("--apply-rules", is_flag=True, help="Run auto-apply rules on the new transaction")
@click.pass_context
def add_transaction(
    ctx,
    description: str,
    txn_date: str,
    entry_specs: tuple[str, ...],
    reference: str | None,
    notes: str | None,
    apply_rules: bool,
):
    """Create a transaction with its entries.

    Examples:
        balancekit transaction add "Coffee" --entry "Cash:credit:4.50" --entry "Dining:debit:4.50"
        balancekit transaction add "Card payment" --date 2024-03-01 --entry "Checking:debit:100"
        balancekit transaction add "Grocery store" --entry "Checking:debit:80" --apply-rules
    """
    db = ctx.obj["db"]
    transaction_service = TransactionService(db)
    account_service = AccountService(db)

    entries = _build_entries(ctx, account_service, entry_specs)

    try:
        transaction_id = transaction_service.create_transaction(
            date=parse_date(txn_date),
            description=description,
            entries=entries,
            reference=reference,
            notes=notes,
            apply_rules=apply_rules,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    txn = transaction_service.get_transaction(transaction_id)
    status = "balanced" if txn.is_balanced else "unbalanced"
    click.echo(f"Created transaction {transaction_id} ({status})")


@transaction_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or 'today', 'yesterday')")
@click.option("--end-date", help="End date (YYYY-MM-DD or 'today', 'yesterday')")
@click.option("--period", help="Named period (this-month, last-month, this-year, ...)")
@click.option("--pattern", help="Regular expression matched against descriptions")
@click.option("--account", help="Account name or ID")
@click.option("--unbalanced", is_flag=True, help="Show only unbalanced transactions")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    pattern: str | None,
    account: str | None,
    unbalanced: bool,
):
    """View transactions with optional filters."""
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_service = AccountService(db)

    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, account_service, account)

    try:
        transactions = service.list_transactions(
            start_date=start,
            end_date=end,
            pattern=pattern,
            account_id=account_id,
            unbalanced_only=unbalanced,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not transactions:
        click.echo("No transactions found.")
        return

    echo_transaction_table(transactions)


@transaction_group.command("show")
@click.argument("transaction_id", type=int)
@click.pass_context
def show_transaction(ctx, transaction_id: int):
    """Show a transaction with its entries."""
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_service = AccountService(db)

    try:
        txn = service.require_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    names = {acc.id: acc.name for acc in account_service.list_accounts()}
    echo_transaction(txn, names)


@transaction_group.command("add-entry")
@click.argument("transaction_id", type=int)
@click.argument("entry_spec", metavar="ACCOUNT:TYPE:AMOUNT")
@click.option("--description", help="Entry description (defaults to the transaction's)")
@click.pass_context
def add_entry(ctx, transaction_id: int, entry_spec: str, description: str | None):
    """Append an entry to a transaction.

    Examples:
        balancekit transaction add-entry 12 "Groceries:credit:80.00"
    """
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_service = AccountService(db)

    entry = _build_entries(ctx, account_service, (entry_spec,))[0]
    if description:
        entry = Entry(
            account_id=entry.account_id,
            amount=entry.amount,
            type=entry.type,
            description=description,
        )

    try:
        entry_id = service.add_entry(transaction_id, entry)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    txn = service.get_transaction(transaction_id)
    click.echo(
        f"Added entry {entry_id} to transaction {transaction_id} "
        f"({'balanced' if txn.is_balanced else 'unbalanced'})"
    )


@transaction_group.command("delete-entry")
@click.argument("entry_id", type=int)
@click.pass_context
def delete_entry(ctx, entry_id: int):
    """Remove an entry. Removing the last entry deletes the transaction."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    try:
        transaction_deleted = service.delete_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Deleted entry {entry_id}")
    if transaction_deleted:
        click.echo("The transaction had no entries left and was deleted")


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, yes: bool):
    """Delete a transaction and all of its entries."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    try:
        txn = service.require_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not yes and not click.confirm(
        f"Delete transaction {transaction_id} '{txn.description or ''}' "
        f"with {len(txn.entries)} entries?"
    ):
        click.echo("Deletion cancelled.")
        return

    service.delete_transaction(transaction_id)
    click.echo(f"Deleted transaction {transaction_id}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
