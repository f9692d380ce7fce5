"""Main CLI entry point."""

import click
from cardrecon.database.factories import create_sqlite_database
from cardrecon.logger import configure_logging

# Import and register all commands at module level
from cardrecon.cli.commands import (
    account,
    category,
    bill,
    card,
    reconcile,
    view,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides CARDRECON_DB_PATH environment variable)",
    envvar="CARDRECON_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Log level for stderr output (overrides CARDRECON_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """Cardrecon - Credit card statement reconciliation.

    Import card statements, match each billing cycle against the lump-sum
    bill payment that paid it, and replace the payment with the itemized
    purchases.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        configure_logging(level=log_level)
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
bill.register_commands(cli)
card.register_commands(cli)
reconcile.register_commands(cli)
view.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
