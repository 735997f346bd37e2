"""Plain-text rendering of transactions and entries."""

from decimal import Decimal
from typing import Mapping

import click

from balancekit.domain.balance import evaluate
from balancekit.domain.entities import Entry, Transaction


def format_amount(amount: Decimal, unit: str = "USD") -> str:
    return f"{amount:,.2f} {unit}"


def format_entry(entry: Entry, account_names: Mapping[int, str]) -> str:
    account_name = account_names.get(entry.account_id, f"#{entry.account_id}")
    marker = f" [{entry.generated.kind}]" if entry.generated else ""
    return (
        f"{entry.id:<6} {entry.type:<7} {format_amount(entry.amount, entry.unit):>16}  "
        f"{account_name}{marker}"
    )


def echo_transaction_row(txn: Transaction) -> None:
    status = "balanced" if txn.is_balanced else "UNBALANCED"
    description = (txn.description or "")[:40]
    click.echo(f"{txn.id:<6} {str(txn.date):<12} {len(txn.entries):>3}  {status:<11} {description}")


def echo_transaction_table(transactions: list[Transaction]) -> None:
    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 80)
    click.echo(f"{'ID':<6} {'Date':<12} {'#':>3}  {'Status':<11} Description")
    click.echo("-" * 80)
    for txn in transactions:
        echo_transaction_row(txn)


def echo_transaction(txn: Transaction, account_names: Mapping[int, str]) -> None:
    """Print a transaction with its entries and balance totals."""
    click.echo(f"\nTransaction ID: {txn.id}")
    click.echo(f"  Date: {txn.date}")
    if txn.description:
        click.echo(f"  Description: {txn.description}")
    if txn.reference:
        click.echo(f"  Reference: {txn.reference}")
    if txn.notes:
        click.echo(f"  Notes: {txn.notes}")

    click.echo("  Entries:")
    for entry in txn.entries:
        click.echo(f"    {format_entry(entry, account_names)}")

    summary = evaluate(txn.entries)
    click.echo(
        f"  Debits: {summary.total_debits:,.2f}  Credits: {summary.total_credits:,.2f}  "
        f"Net: {summary.net_balance:,.2f}"
    )
    click.echo(f"  Balanced: {'yes' if summary.is_balanced else 'no'}")
