"""CLI error handling helpers."""

import logging

import click

from balancekit.domain.errors import DomainError, InternalError

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_STORAGE_FAILURE = 2


def handle_domain_error(ctx: click.Context, error: DomainError) -> None:
    """Print the error to stderr and exit.

    Storage failures exit with status 2 and are logged with their cause;
    validation and lookup errors exit with status 1.
    """
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, InternalError):
        logger.error("Storage failure", exc_info=error)
        ctx.exit(EXIT_STORAGE_FAILURE)
    ctx.exit(EXIT_FAILURE)
