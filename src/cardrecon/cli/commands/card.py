"""Credit card statement commands."""

import click
from cardrecon.cli.account_resolution import resolve_account_or_exit, resolve_optional_account
from cardrecon.cli.error_handling import handle_domain_error
from cardrecon.domain.account import AccountService
from cardrecon.domain.credit_card import CreditCardService
from cardrecon.domain.entities import ConfirmedMatch, PotentialMatch
from cardrecon.domain.statement import load_statement


def format_candidate(candidate: PotentialMatch) -> str:
    """One-line rendering of a bill candidate."""
    description = candidate.bill_description or ""
    category = f" [{candidate.category_name}]" if candidate.category_name else ""
    return (
        f"Bill {candidate.bill_id}: {candidate.bill_date} ${candidate.bill_amount:,.2f} "
        f"{description}{category} | diff ${candidate.amount_difference:,.2f} "
        f"({candidate.difference_percent}%) | {candidate.confidence.value} | "
        f"score {candidate.score:.2f}"
    )


def _load_lines(ctx: click.Context, file_path: str):
    try:
        return load_statement(file_path)
    except (FileNotFoundError, ValueError) as e:
        handle_domain_error(ctx, e)


@click.group()
def card_group():
    """Import card statements and manage expanded bill payments."""
    pass


@card_group.command("preview")
@click.argument("account", metavar="ACCOUNT")
@click.argument("file_path", type=click.Path(dir_okay=False))
@click.pass_context
def preview_statement(ctx, account: str, file_path: str):
    """Show how a statement would be imported, without changing anything.

    Examples:
        cardrecon card preview "Nubank Card" statement.csv
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    lines = _load_lines(ctx, file_path)

    try:
        preview = CreditCardService(db).preview_import(account_id, lines)
    except ValueError as e:
        handle_domain_error(ctx, e)

    summary = preview.statement_summary
    click.echo(f"\nBilling cycle: {preview.billing_cycle}")
    click.echo(f"Total spending: ${preview.total_amount:,.2f}")
    click.echo(
        f"Lines: {summary['transaction_count']} "
        f"(payments received: {summary['payment_received_count']}, "
        f"installments: {summary['installment_count']})"
    )
    for warning in preview.warnings:
        click.echo(f"Warning: {warning}")

    if not preview.matches:
        click.echo(f"\nNo matching bill payment. {preview.unmatched_count} line(s) unmatched.")
        return

    click.echo("\nCandidate bill payments:")
    for candidate in preview.matches:
        click.echo(f"  {format_candidate(candidate)}")


@card_group.command("import")
@click.argument("account", metavar="ACCOUNT")
@click.argument("file_path", type=click.Path(dir_okay=False))
@click.option("--bill", "bill_id", type=int, help="Bill payment ID to expand into this statement")
@click.option("--force", is_flag=True, help="Link even when the amounts differ beyond tolerance")
@click.option(
    "--skip-unmatched",
    is_flag=True,
    help="Don't store the statement when no bill payment is given",
)
@click.pass_context
def import_statement(
    ctx, account: str, file_path: str, bill_id: int | None, force: bool, skip_unmatched: bool
):
    """Import a card statement, optionally expanding a bill payment.

    Without --bill the billing cycle is stored as pending for
    'reconcile run'.

    Examples:
        cardrecon card import "Nubank Card" statement.csv
        cardrecon card import "Nubank Card" statement.csv --bill 12
        cardrecon card import "Nubank Card" statement.csv --bill 12 --force
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    lines = _load_lines(ctx, file_path)

    confirmed = [ConfirmedMatch(bill_id=bill_id)] if bill_id is not None else []
    try:
        result = CreditCardService(db).import_and_link(
            account_id,
            lines,
            confirmed,
            skip_unmatched=skip_unmatched,
            force=force,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}")

    if result.imported_count == 0:
        click.echo(f"Skipped billing cycle {result.billing_cycle}: no bill payment given.")
        return

    click.echo(f"Imported {result.imported_count} line(s) for billing cycle {result.billing_cycle}")
    for zeroed in result.zeroed_bills:
        click.echo(
            f"Expanded bill payment {zeroed.transaction_id} "
            f"(${zeroed.original_amount:,.2f}) into {zeroed.linked_transactions} transaction(s)"
        )
    if result.unmatched_count:
        click.echo(f"{result.unmatched_count} line(s) pending reconciliation.")


@card_group.command("collapse")
@click.argument("bill_id", type=int)
@click.pass_context
def collapse_bill(ctx, bill_id: int):
    """Restore an expanded bill payment and delete its itemized transactions."""
    db = ctx.obj["db"]

    try:
        result = CreditCardService(db).collapse(bill_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Restored bill payment {result.transaction_id} to ${result.restored_amount:,.2f}; "
        f"deleted {result.deleted_transaction_count} itemized transaction(s)"
    )


@card_group.command("status")
@click.option("--account", help="Card account name or ID")
@click.option("--month", help="Billing cycle month (YYYY-MM)")
@click.pass_context
def card_status(ctx, account: str | None, month: str | None):
    """Show card spending and how much of it is backed by bill payments."""
    db = ctx.obj["db"]
    account_id = resolve_optional_account(ctx, AccountService(db), account)

    try:
        status = CreditCardService(db).get_status(account_id=account_id, month=month)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nTotal spending:   ${status.total_spending:,.2f}")
    click.echo(f"Matched:          ${status.matched_amount:,.2f}")
    click.echo(f"Unmatched:        ${status.unmatched_amount:,.2f}")
    click.echo(f"Expanded bills:   {status.expanded_bills}")
    click.echo(f"Open bills:       {status.pending_bills}")
    if status.has_mismatches:
        click.echo("Warning: some linked cycles differ from their bill payment")


def register_commands(cli):
    """Register card commands with main CLI."""
    cli.add_command(card_group, name="card")
