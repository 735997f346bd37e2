"""Rule management commands."""

import click
from balancekit.cli.account_resolution import (
    resolve_accounts_or_exit,
    resolve_destinations_or_exit,
)
from balancekit.cli.display import echo_transaction_table
from balancekit.cli.error_handling import handle_domain_error
from balancekit.domain.account import AccountService
from balancekit.domain.entities import (
    BOTH,
    ENTRY_FILTERS,
    RULE_COMPLEMENTARY,
    RULE_EDIT,
    RULE_MERGE,
    ComplementaryPayload,
    EditPayload,
    MergePayload,
    Rule,
)
from balancekit.domain.errors import DomainError
from balancekit.domain.rule import MAX_MERGE_DAYS, RuleService
from balancekit.utils.amount_parser import parse_amount


def common_rule_options(func):
    """Options shared by every rule type."""
    options = [
        click.option(
            "--source-account",
            "source_accounts",
            multiple=True,
            help="Only match entries on this account name or ID (repeatable)",
        ),
        click.option(
            "--entry-type",
            type=click.Choice(ENTRY_FILTERS),
            default=BOTH,
            show_default=True,
            help="Only match entries of this type",
        ),
        click.option("--priority", type=int, default=0, show_default=True, help="Higher runs first"),
        click.option("--auto-apply", is_flag=True, help="Apply when transactions are created"),
        click.option("--disabled", is_flag=True, help="Create the rule disabled"),
        click.option("--description", "rule_description", help="Free-text note about the rule"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _create_rule(ctx, rule_type: str, name: str, pattern: str, options: dict, **payload) -> None:
    db = ctx.obj["db"]
    service = RuleService(db)
    account_service = AccountService(db)

    source_accounts = resolve_accounts_or_exit(ctx, account_service, options["source_accounts"])
    try:
        rule_id = service.create_rule(
            name=name,
            rule_type=rule_type,
            pattern=pattern,
            source_accounts=source_accounts,
            entry_type=options["entry_type"],
            auto_apply=options["auto_apply"],
            priority=options["priority"],
            is_enabled=not options["disabled"],
            description=options["rule_description"],
            **payload,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created {rule_type} rule '{name}' (ID: {rule_id})")


@click.group()
def rule_group():
    """Manage balancing and categorization rules."""
    pass


@rule_group.command("add-edit")
@click.argument("name")
@click.argument("pattern")
@click.argument("new_description")
@common_rule_options
@click.pass_context
def add_edit_rule(ctx, name: str, pattern: str, new_description: str, **options):
    """Create a rule that replaces matching descriptions.

    Examples:
        balancekit rule add-edit "Amazon" "AMZN|Amazon" "Amazon purchase"
    """
    _create_rule(ctx, RULE_EDIT, name, pattern, options, new_description=new_description)


@rule_group.command("add-merge")
@click.argument("name")
@click.argument("pattern")
@click.option(
    "--max-days",
    type=click.IntRange(1, MAX_MERGE_DAYS),
    default=3,
    show_default=True,
    help="Days two transactions may be apart",
)
@common_rule_options
@click.pass_context
def add_merge_rule(ctx, name: str, pattern: str, max_days: int, **options):
    """Create a rule that merges a transaction with its counterpart.

    Examples:
        balancekit rule add-merge "Card transfer" "TRANSFER" --max-days 5
    """
    _create_rule(ctx, RULE_MERGE, name, pattern, options, max_date_difference=max_days)


@rule_group.command("add-complementary")
@click.argument("name")
@click.argument("pattern")
@click.option(
    "--destination",
    "destinations",
    multiple=True,
    required=True,
    help="ACCOUNT:RATIO or ACCOUNT=AMOUNT (repeatable)",
)
@common_rule_options
@click.pass_context
def add_complementary_rule(ctx, name: str, pattern: str, destinations: tuple[str, ...], **options):
    """Create a rule that adds offsetting entries.

    Examples:
        balancekit rule add-complementary "Groceries" "GROCER" --destination "Groceries:1"
        balancekit rule add-complementary "Shared rent" "RENT" \\
            --destination "Rent:0.6" --destination "Receivables:0.4"
    """
    account_service = AccountService(ctx.obj["db"])
    specs = resolve_destinations_or_exit(ctx, account_service, destinations)
    _create_rule(ctx, RULE_COMPLEMENTARY, name, pattern, options, destinations=specs)


def _describe_payload(rule: Rule, names: dict[int, str]) -> str:
    payload = rule.payload
    if isinstance(payload, EditPayload):
        return f"-> '{payload.new_description}'"
    if isinstance(payload, MergePayload):
        return f"within {payload.max_date_difference} day(s)"
    if isinstance(payload, ComplementaryPayload):
        parts = []
        for d in payload.destination_accounts:
            name = names.get(d.account_id, f"#{d.account_id}")
            if d.absolute_amount:
                parts.append(f"{name}={d.absolute_amount:.2f}")
            else:
                parts.append(f"{name}:{d.ratio.normalize()}")
        return ", ".join(parts)
    return ""


@rule_group.command("list")
@click.option("--type", "rule_type", type=click.Choice([RULE_EDIT, RULE_MERGE, RULE_COMPLEMENTARY]))
@click.option("--enabled-only", is_flag=True, help="Hide disabled rules")
@click.pass_context
def list_rules(ctx, rule_type: str | None, enabled_only: bool):
    """List rules in the order they are tried."""
    db = ctx.obj["db"]
    service = RuleService(db)
    names = {acc.id: acc.name for acc in AccountService(db).list_accounts()}

    rules = service.list_rules(enabled_only=enabled_only, rule_type=rule_type)
    if not rules:
        click.echo("No rules found.")
        return

    click.echo("\nRules:")
    click.echo("-" * 100)
    for rule in rules:
        flags = []
        if not rule.is_enabled:
            flags.append("disabled")
        if rule.auto_apply:
            flags.append("auto")
        if rule.is_invalid:
            flags.append(f"INVALID: {rule.invalid_reason}")
        flag_str = f" [{', '.join(flags)}]" if flags else ""
        click.echo(
            f"ID: {rule.id:3d} | P{rule.priority:<3d} | {rule.rule_type:13s} | {rule.name:20s} | "
            f"/{rule.pattern}/ {_describe_payload(rule, names)}{flag_str}"
        )


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.pass_context
def delete_rule(ctx, rule_id: int):
    """Delete a rule."""
    service = RuleService(ctx.obj["db"])
    try:
        service.delete_rule(rule_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted rule {rule_id}")


@rule_group.command("enable")
@click.argument("rule_id", type=int)
@click.pass_context
def enable_rule(ctx, rule_id: int):
    """Enable a rule."""
    service = RuleService(ctx.obj["db"])
    try:
        service.set_enabled(rule_id, True)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Enabled rule {rule_id}")


@rule_group.command("disable")
@click.argument("rule_id", type=int)
@click.pass_context
def disable_rule(ctx, rule_id: int):
    """Disable a rule."""
    service = RuleService(ctx.obj["db"])
    try:
        service.set_enabled(rule_id, False)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Disabled rule {rule_id}")


@rule_group.command("test")
@click.argument("rule_id", type=int)
@click.argument("description")
@click.argument("amount")
@click.pass_context
def test_rule(ctx, rule_id: int, description: str, amount: str):
    """Check a sample description against a rule's pattern.

    For complementary rules the entries the rule would generate for
    AMOUNT are shown.

    Examples:
        balancekit rule test 3 "GROCER OUTLET #12" 84.20
    """
    db = ctx.obj["db"]
    service = RuleService(db)
    names = {acc.id: acc.name for acc in AccountService(db).list_accounts()}

    try:
        result = service.test_rule(rule_id, description, parse_amount(amount))
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not result.is_match:
        click.echo("No match")
        return

    click.echo("Match")
    for split in result.destination_entries:
        click.echo(f"  {names.get(split.account_id, split.account_id)}: {split.amount:,.2f}")


@rule_group.command("preview")
@click.argument("pattern")
@click.option("--source-account", "source_accounts", multiple=True, help="Account name or ID (repeatable)")
@click.option("--entry-type", type=click.Choice(ENTRY_FILTERS), default=BOTH, show_default=True)
@click.pass_context
def preview_rule(ctx, pattern: str, source_accounts: tuple[str, ...], entry_type: str):
    """Show which stored transactions a rule with PATTERN would match."""
    db = ctx.obj["db"]
    service = RuleService(db)
    account_ids = resolve_accounts_or_exit(ctx, AccountService(db), source_accounts)

    try:
        preview = service.preview_matching(pattern, account_ids, entry_type)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(
        f"{preview.total_matching} matching transaction(s); "
        f"{preview.total_unbalanced} unbalanced transaction(s) in total"
    )
    if preview.matching_transactions:
        echo_transaction_table(list(preview.matching_transactions))


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
