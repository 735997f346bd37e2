"""Mass edit commands."""

import click
from balancekit.cli.account_resolution import (
    resolve_accounts_or_exit,
    resolve_destinations_or_exit,
)
from balancekit.cli.date_filters import resolve_cli_date_range
from balancekit.cli.error_handling import handle_domain_error
from balancekit.domain.account import AccountService
from balancekit.domain.entities import (
    ComplementaryAdd,
    EditFields,
    MassQuery,
    MergeInto,
)
from balancekit.domain.errors import DomainError
from balancekit.domain.mass_edit import EDITABLE_FIELDS, MassEditService
from balancekit.domain.rule import MAX_MERGE_DAYS


def mass_options(func):
    """Query and action options shared by preview and apply."""
    options = [
        click.option("--start-date", help="Start date (YYYY-MM-DD)"),
        click.option("--end-date", help="End date (YYYY-MM-DD)"),
        click.option("--period", help="Named period (this-month, last-month, this-year, ...)"),
        click.option("--pattern", help="Regular expression matched against descriptions"),
        click.option(
            "--source-account",
            "source_accounts",
            multiple=True,
            help="Only transactions with an entry on this account (repeatable)",
        ),
        click.option(
            "--complementary",
            "destinations",
            multiple=True,
            help="Add complementary entries: ACCOUNT:RATIO or ACCOUNT=AMOUNT (repeatable)",
        ),
        click.option(
            "--set",
            "field_values",
            multiple=True,
            help=f"Set a field: FIELD=VALUE with FIELD in {', '.join(EDITABLE_FIELDS)} (repeatable)",
        ),
        click.option("--merge-into", is_flag=True, help="Replace generated entries by merging counterparts"),
        click.option(
            "--max-days",
            type=click.IntRange(1, MAX_MERGE_DAYS),
            default=15,
            show_default=True,
            help="Counterpart date window for --merge-into",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_query_and_action(ctx, options: dict):
    db = ctx.obj["db"]
    account_service = AccountService(db)

    chosen = sum(
        [bool(options["destinations"]), bool(options["field_values"]), options["merge_into"]]
    )
    if chosen != 1:
        click.echo("Error: Choose exactly one of --complementary, --set or --merge-into.", err=True)
        ctx.exit(1)

    start, end = resolve_cli_date_range(
        ctx,
        start_date=options["start_date"],
        end_date=options["end_date"],
        period=options["period"],
    )
    query = MassQuery(
        start_date=start,
        end_date=end,
        pattern=options["pattern"],
        source_accounts=resolve_accounts_or_exit(ctx, account_service, options["source_accounts"]),
    )

    if options["destinations"]:
        specs = resolve_destinations_or_exit(ctx, account_service, options["destinations"])
        action = ComplementaryAdd(destination=tuple(specs))
    elif options["field_values"]:
        fields = {}
        for item in options["field_values"]:
            name, sep, value = item.partition("=")
            if not sep:
                click.echo(f"Error: Invalid --set '{item}'. Expected FIELD=VALUE", err=True)
                ctx.exit(1)
            fields[name.strip()] = value
        action = EditFields(fields=fields)
    else:
        action = MergeInto(max_date_difference=options["max_days"])

    return query, action


@click.group()
def mass_group():
    """Run one action over many transactions."""
    pass


@mass_group.command("preview")
@mass_options
@click.pass_context
def preview(ctx, **options):
    """Count the transactions an action would modify, without changing anything.

    Examples:
        balancekit mass preview --period last-month --pattern GROCER --complementary "Groceries:1"
        balancekit mass preview --start-date 2024-01-01 --end-date 2024-03-31 --set notes=checked
    """
    query, action = _build_query_and_action(ctx, options)
    service = MassEditService(ctx.obj["db"])
    try:
        result = service.preview_eligible(query, action)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Candidates: {result.total_candidates}")
    click.echo(f"Eligible:   {result.eligible_count}")


@mass_group.command("apply")
@mass_options
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def apply(ctx, yes: bool, **options):
    """Run an action on every eligible transaction.

    Examples:
        balancekit mass apply --period this-year --pattern "RENT" --complementary "Rent:1" --yes
        balancekit mass apply --period last-month --merge-into --max-days 5
    """
    query, action = _build_query_and_action(ctx, options)
    service = MassEditService(ctx.obj["db"])

    try:
        preview_result = service.preview_eligible(query, action)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if preview_result.eligible_count == 0:
        click.echo("No eligible transactions.")
        return
    if not yes and not click.confirm(
        f"Apply {action.type} to {preview_result.eligible_count} transaction(s)?"
    ):
        click.echo("Cancelled.")
        return

    result = service.apply(query, action)
    click.echo(
        f"Processed: {result.processed}, eligible: {result.eligible}, "
        f"modified: {result.modified}, failed: {result.failed}"
    )
    if result.errors:
        for error in result.errors:
            click.echo(f"  Transaction {error.transaction_id}: {error.message}", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register mass edit commands with main CLI."""
    cli.add_command(mass_group, name="mass")
