"""Balancing commands: checks, rule application, matching and merging."""

import click
from balancekit.cli.display import echo_transaction, echo_transaction_table, format_entry
from balancekit.cli.error_handling import handle_domain_error
from balancekit.domain.account import AccountService
from balancekit.domain.balance import evaluate
from balancekit.domain.complementary import (
    DEFAULT_DATE_WINDOW_DAYS,
    DEFAULT_MAX_RESULTS,
    ComplementaryMatchService,
)
from balancekit.domain.errors import DomainError
from balancekit.domain.restructure import TransactionRestructureService
from balancekit.domain.rule_application import STATUS_FAILED, RuleApplicationService
from balancekit.domain.transaction import TransactionService


def _account_names(db) -> dict[int, str]:
    return {acc.id: acc.name for acc in AccountService(db).list_accounts()}


@click.group()
def balance_group():
    """Check and balance transactions."""
    pass


@balance_group.command("check")
@click.argument("transaction_id", type=int)
@click.pass_context
def check_balance(ctx, transaction_id: int):
    """Show debit and credit totals of a transaction."""
    service = TransactionService(ctx.obj["db"])
    try:
        txn = service.require_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    summary = evaluate(txn.entries)
    click.echo(f"Transaction {transaction_id}")
    click.echo(f"  Debits:  {summary.total_debits:,.2f}")
    click.echo(f"  Credits: {summary.total_credits:,.2f}")
    click.echo(f"  Net:     {summary.net_balance:,.2f}")
    if summary.is_balanced:
        click.echo("  Balanced")
    else:
        click.echo(f"  Unbalanced: {summary.imbalance:,.2f} more {summary.net_type}")


@balance_group.command("apply")
@click.argument("transaction_id", type=int)
@click.option("--auto-only", is_flag=True, help="Only consider auto-apply rules")
@click.pass_context
def apply_rule(ctx, transaction_id: int, auto_only: bool):
    """Apply the first applicable rule to a transaction."""
    service = RuleApplicationService(ctx.obj["db"])
    try:
        result = service.apply_rule(transaction_id, auto_apply_only=auto_only)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(result.message)
    if result.applied_rule is not None:
        names = _account_names(ctx.obj["db"])
        for entry in result.created_entries:
            click.echo(f"  + {format_entry(entry, names)}")
        click.echo(f"Balanced: {'yes' if result.is_now_balanced else 'no'}")


@balance_group.command("apply-all")
@click.option("--verbose", "-v", is_flag=True, help="Show the outcome for every transaction")
@click.pass_context
def apply_all(ctx, verbose: bool):
    """Apply rules to every unbalanced transaction."""
    service = RuleApplicationService(ctx.obj["db"])

    def report(snapshot):
        if verbose:
            click.echo(
                f"  processed {snapshot.processed}, matched {snapshot.matched}, "
                f"modified {snapshot.modified}",
                err=True,
            )

    result = service.apply_to_all(progress=report)

    if verbose:
        for detail in result.details:
            click.echo(f"  {detail.transaction_id:<6} {detail.status:<8} {detail.message}")
    click.echo(
        f"\nResults: {result.total} unbalanced, {result.successful} applied, "
        f"{result.skipped} skipped, {result.failed} failed"
    )
    if result.failed:
        for detail in result.details:
            if detail.status == STATUS_FAILED:
                click.echo(f"  Transaction {detail.transaction_id}: {detail.message}", err=True)
        ctx.exit(1)


@balance_group.command("apply-merge")
@click.argument("rule_id", type=int)
@click.argument("transaction_id", type=int)
@click.pass_context
def apply_merge(ctx, rule_id: int, transaction_id: int):
    """Merge a transaction with its counterpart using a merge rule."""
    service = RuleApplicationService(ctx.obj["db"])
    try:
        result = service.apply_merge_rule(rule_id, transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(result.message)


@balance_group.command("matches")
@click.argument("transaction_id", type=int)
@click.option("--entry", "entry_id", type=int, help="Match one entry instead of the whole transaction")
@click.option("--days", type=int, default=DEFAULT_DATE_WINDOW_DAYS, show_default=True, help="Date window")
@click.option("--limit", type=int, default=DEFAULT_MAX_RESULTS, show_default=True, help="Maximum results")
@click.option("--pattern", help="Only candidates whose description matches (entry mode)")
@click.pass_context
def find_matches(ctx, transaction_id: int, entry_id: int | None, days: int, limit: int, pattern: str | None):
    """Suggest unbalanced counterparts that would balance a transaction.

    Examples:
        balancekit balance matches 12
        balancekit balance matches 12 --entry 40 --days 5
    """
    db = ctx.obj["db"]
    service = ComplementaryMatchService(db)

    try:
        if entry_id is None:
            transactions = service.find_transaction_matches(
                transaction_id, date_window_days=days, max_results=limit
            )
            entries = None
        else:
            txn = TransactionService(db).require_transaction(transaction_id)
            if txn.entry(entry_id) is None:
                click.echo(f"Error: Entry {entry_id} is not part of transaction {transaction_id}", err=True)
                ctx.exit(1)
            entries = service.find_matches(
                entry_id, date_window_days=days, max_results=limit, pattern=pattern
            )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if entries is None:
        if not transactions:
            click.echo("No matching transactions found")
            return
        echo_transaction_table(transactions)
        return

    if not entries:
        click.echo("No matching entries found")
        return
    names = _account_names(db)
    click.echo(f"\nFound {len(entries)} matching entr{'y' if len(entries) == 1 else 'ies'}:")
    for entry in entries:
        click.echo(f"  txn {entry.transaction_id:<6} {format_entry(entry, names)}")


@balance_group.command("merge")
@click.argument("source_id", type=int)
@click.argument("target_id", type=int)
@click.pass_context
def merge_transactions(ctx, source_id: int, target_id: int):
    """Move every entry of TARGET_ID into SOURCE_ID and delete TARGET_ID."""
    db = ctx.obj["db"]
    service = TransactionRestructureService(db)
    try:
        merged = service.merge(source_id, target_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Merged transaction {target_id} into {source_id}")
    echo_transaction(merged, _account_names(db))


@balance_group.command("move-entry")
@click.argument("entry_id", type=int)
@click.argument("destination_id", type=int)
@click.pass_context
def move_entry(ctx, entry_id: int, destination_id: int):
    """Move one entry into another transaction."""
    service = TransactionRestructureService(ctx.obj["db"])
    try:
        result = service.move_entry(entry_id, destination_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Moved entry {entry_id} to transaction {destination_id}")
    if result.source_deleted:
        click.echo(f"Transaction {result.source_transaction_id} had no entries left and was deleted")
    click.echo(f"Balanced: {'yes' if result.transaction.is_balanced else 'no'}")


@balance_group.command("split")
@click.argument("transaction_id", type=int)
@click.argument("entry_ids", nargs=-1, required=True, type=int)
@click.pass_context
def split_transaction(ctx, transaction_id: int, entry_ids: tuple[int, ...]):
    """Move the given entries into a new transaction."""
    service = TransactionRestructureService(ctx.obj["db"])
    try:
        result = service.split_transaction(transaction_id, entry_ids)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created transaction {result.created.id} '{result.created.description}'")


def register_commands(cli):
    """Register balancing commands with main CLI."""
    cli.add_command(balance_group, name="balance")
