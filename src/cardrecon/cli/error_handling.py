"""CLI error handling helpers."""

import click

from cardrecon.domain.errors import DomainError, ToleranceExceededError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, ToleranceExceededError):
        click.echo("Re-run with --force to link despite the difference.", err=True)
    ctx.exit(1)
