"""Main CLI entry point."""

import logging

import click
from balancekit.database.factories import create_sqlite_database

# Import and register all commands at module level
from balancekit.cli.commands import (
    account,
    transaction,
    rule,
    balance,
    mass,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BALANCEKIT_DB_PATH environment variable)",
    envvar="BALANCEKIT_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity (overrides BALANCEKIT_LOG_LEVEL environment variable)",
    envvar="BALANCEKIT_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """Balancekit - double-entry bookkeeping with balancing rules.

    Record transactions as debit and credit entries, then let rules and
    match suggestions balance the ones that were imported one-sided.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Only open the database when a command actually runs
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
transaction.register_commands(cli)
rule.register_commands(cli)
balance.register_commands(cli)
mass.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
