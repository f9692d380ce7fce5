"""CLI helpers for account resolution."""

from __future__ import annotations

import click
from cardrecon.cli.error_handling import handle_domain_error
from cardrecon.domain.account import AccountService
from cardrecon.utils.account_resolver import resolve_account


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int
) -> int:
    """Resolve account name or ID, or exit with a CLI error."""
    try:
        return resolve_account(account_service, account)
    except ValueError as exc:
        handle_domain_error(ctx, exc)


def resolve_optional_account(
    ctx: click.Context, account_service: AccountService, account: str | None
) -> int | None:
    """Resolve an optional --account option."""
    if account is None:
        return None
    return resolve_account_or_exit(ctx, account_service, account)
