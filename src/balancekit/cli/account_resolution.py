"""CLI helpers for account and destination resolution."""

from __future__ import annotations

from typing import Iterable

import click
from balancekit.cli.error_handling import handle_domain_error
from balancekit.domain.account import AccountService
from balancekit.domain.entities import DestinationSpec
from balancekit.domain.errors import DomainError
from balancekit.utils.account_resolver import resolve_account
from balancekit.utils.entry_parser import parse_destination


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int
) -> int:
    """Resolve account name or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_account(account_service, account)
    except DomainError as exc:
        handle_domain_error(ctx, exc)


def resolve_accounts_or_exit(
    ctx: click.Context, account_service: AccountService, accounts: Iterable[str]
) -> tuple[int, ...]:
    """Resolve several account names or IDs, keeping their order."""
    return tuple(resolve_account_or_exit(ctx, account_service, a) for a in accounts)


def resolve_destinations_or_exit(
    ctx: click.Context, account_service: AccountService, destinations: Iterable[str]
) -> list[DestinationSpec]:
    """Parse ``ACCOUNT:RATIO`` / ``ACCOUNT=AMOUNT`` arguments into destination specs."""
    specs = []
    for text in destinations:
        try:
            parsed = parse_destination(text)
        except DomainError as exc:
            handle_domain_error(ctx, exc)
        specs.append(
            DestinationSpec(
                account_id=resolve_account_or_exit(ctx, account_service, parsed.account),
                ratio=parsed.ratio,
                absolute_amount=parsed.absolute_amount,
            )
        )
    return specs
