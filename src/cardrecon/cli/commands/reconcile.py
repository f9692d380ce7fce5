"""Reconciliation commands."""

import click
from cardrecon.cli.account_resolution import resolve_account_or_exit, resolve_optional_account
from cardrecon.cli.commands.card import format_candidate
from cardrecon.cli.error_handling import handle_domain_error
from cardrecon.domain.account import AccountService
from cardrecon.domain.entities import ReconciliationSummary
from cardrecon.domain.reconciliation import ReconciliationService


def print_summary(summary: ReconciliationSummary) -> None:
    click.echo(
        f"\nPending: {summary.total_pending} | Linked: {summary.total_linked} | "
        f"Months covered: {summary.months_covered}"
    )


@click.group()
def reconcile_group():
    """Match billing cycles with bill payments."""
    pass


@reconcile_group.command("run")
@click.option("--account", help="Restrict to one card account (name or ID)")
@click.pass_context
def run_reconciliation(ctx, account: str | None):
    """Examine pending billing cycles and link the unambiguous ones."""
    db = ctx.obj["db"]
    account_id = resolve_optional_account(ctx, AccountService(db), account)

    try:
        result = ReconciliationService(db).trigger_reconciliation(account_id=account_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if result.is_empty:
        click.echo("No pending billing cycles.")
        return

    for linked in result.auto_linked:
        mismatch = " (amount mismatch)" if linked.has_mismatch else ""
        click.echo(
            f"Linked {linked.billing_cycle} to bill {linked.bill_id}: "
            f"{linked.transaction_count} transaction(s), {linked.confidence.value}{mismatch}"
        )
    for pending in result.requires_selection:
        click.echo(f"{pending.billing_cycle} needs a choice between:")
        for candidate in pending.potential_bills:
            click.echo(f"  {format_candidate(candidate)}")
    for unmatched in result.no_match:
        click.echo(
            f"{unmatched.billing_cycle}: no bill payment for "
            f"${unmatched.total_amount:,.2f} ({unmatched.transaction_count} transaction(s))"
        )

    counts = result.summary
    click.echo(
        f"\nAuto-linked: {counts['auto_linked']} | "
        f"Requires selection: {counts['requires_selection']} | No match: {counts['no_match']}"
    )


@reconcile_group.command("pending")
@click.option("--account", help="Card account name or ID")
@click.option("--limit", type=int, default=10, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@click.pass_context
def list_pending(ctx, account: str | None, limit: int, offset: int):
    """List billing cycles without a bill payment."""
    db = ctx.obj["db"]
    account_id = resolve_optional_account(ctx, AccountService(db), account)

    try:
        listing = ReconciliationService(db).list_pending_cycles(
            account_id=account_id, limit=limit, offset=offset
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not listing.cycles:
        click.echo("No pending billing cycles.")
    for pending in listing.cycles:
        cycle = pending.cycle
        click.echo(
            f"\n{cycle.display_name} ({cycle.key}) | ${cycle.total_amount:,.2f} | "
            f"{cycle.transaction_count} transaction(s) | {cycle.status.value}"
        )
        if not pending.potential_bills:
            click.echo("  No candidate bill payments")
        for candidate in pending.potential_bills:
            click.echo(f"  {format_candidate(candidate)}")
    print_summary(listing.summary)


@reconcile_group.command("linked")
@click.option("--account", help="Card account name or ID")
@click.option("--limit", type=int, default=10, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@click.pass_context
def list_linked(ctx, account: str | None, limit: int, offset: int):
    """List billing cycles linked to a bill payment."""
    db = ctx.obj["db"]
    account_id = resolve_optional_account(ctx, AccountService(db), account)

    try:
        listing = ReconciliationService(db).list_linked_cycles(
            account_id=account_id, limit=limit, offset=offset
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not listing.cycles:
        click.echo("No linked billing cycles.")
    for linked in listing.cycles:
        cycle, bill, link = linked.cycle, linked.bill, linked.link
        mismatch = f" | diff ${link.amount_difference:,.2f}" if link.has_mismatch else ""
        click.echo(
            f"{cycle.display_name} ({cycle.key}) | ${cycle.total_amount:,.2f} | "
            f"bill {bill.id} on {bill.date} (${bill.original_amount or bill.amount:,.2f}) | "
            f"{link.linked_transaction_count} transaction(s){mismatch}"
        )
    print_summary(listing.summary)


@reconcile_group.command("summary")
@click.option("--account", help="Card account name or ID")
@click.pass_context
def show_summary(ctx, account: str | None):
    """Show pending and linked cycle counts."""
    db = ctx.obj["db"]
    account_id = resolve_optional_account(ctx, AccountService(db), account)
    print_summary(ReconciliationService(db).get_summary(account_id))


@reconcile_group.command("link")
@click.argument("account", metavar="ACCOUNT")
@click.argument("billing_cycle", metavar="YYYY-MM")
@click.argument("bill_id", type=int)
@click.option("--force", is_flag=True, help="Link even when the amounts differ beyond tolerance")
@click.pass_context
def link_cycle(ctx, account: str, billing_cycle: str, bill_id: int, force: bool):
    """Link a billing cycle to a bill payment and expand it.

    Examples:
        cardrecon reconcile link "Nubank Card" 2024-11 12
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        result = ReconciliationService(db).link(account_id, billing_cycle, bill_id, force=force)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Linked {result.billing_cycle} to bill {result.bill_id}: "
        f"{result.transactions_linked} transaction(s)"
    )
    if result.has_mismatch:
        click.echo(f"Warning: amounts differ by ${result.amount_difference:,.2f}")


@reconcile_group.command("select")
@click.argument("account", metavar="ACCOUNT")
@click.argument("billing_cycle", metavar="YYYY-MM")
@click.argument("bill_id", type=int, required=False)
@click.option("--force", is_flag=True, help="Link even when the amounts differ beyond tolerance")
@click.pass_context
def select_candidate(ctx, account: str, billing_cycle: str, bill_id: int | None, force: bool):
    """Choose one of a billing cycle's candidates.

    Omit BILL_ID to keep the cycle pending.
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        result = ReconciliationService(db).select(account_id, billing_cycle, bill_id, force=force)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if result is None:
        click.echo(f"Billing cycle {billing_cycle} kept pending.")
        return
    click.echo(
        f"Linked {result.billing_cycle} to bill {result.bill_id}: "
        f"{result.transactions_linked} transaction(s)"
    )


@reconcile_group.command("unlink")
@click.argument("account", metavar="ACCOUNT")
@click.argument("billing_cycle", metavar="YYYY-MM")
@click.pass_context
def unlink_cycle(ctx, account: str, billing_cycle: str):
    """Unlink a billing cycle and restore its bill payment."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        result = ReconciliationService(db).unlink(account_id, billing_cycle)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Unlinked {billing_cycle}: restored bill payment {result.transaction_id} to "
        f"${result.restored_amount:,.2f}, deleted {result.deleted_transaction_count} "
        "itemized transaction(s)"
    )


def register_commands(cli):
    """Register reconcile commands with main CLI."""
    cli.add_command(reconcile_group, name="reconcile")
