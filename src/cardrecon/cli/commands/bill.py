"""Bill payment commands."""

import click
from cardrecon.cli.account_resolution import resolve_account_or_exit
from cardrecon.cli.error_handling import handle_domain_error
from cardrecon.domain.account import AccountService
from cardrecon.domain.category import CategoryService
from cardrecon.domain.transaction import TransactionService
from cardrecon.utils.amount_parser import parse_amount
from cardrecon.utils.date_parser import parse_date


@click.group()
def bill_group():
    """Record and list aggregate credit card bill payments."""
    pass


@bill_group.command("add")
@click.argument("account", metavar="ACCOUNT")
@click.argument("amount")
@click.option("--date", "date_str", default="today", show_default=True, help="Payment date")
@click.option("--description", help="Payment description")
@click.option("--category", help="Category path (e.g., 'Housing > Credit Card')")
@click.pass_context
def add_bill(
    ctx, account: str, amount: str, date_str: str, description: str | None, category: str | None
):
    """Record a bill payment made from ACCOUNT.

    ACCOUNT can be an account name or ID.

    Examples:
        cardrecon bill add Checking 1000.00 --date 2024-11-10
        cardrecon bill add 1 "R$1,234.56" --description "Card bill"
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        payment_date = parse_date(date_str)
        payment_amount = parse_amount(amount)
    except ValueError as e:
        handle_domain_error(ctx, e)

    category_id = None
    if category is not None:
        cat = CategoryService(db).get_category_by_path(category)
        if cat is None:
            click.echo(f"Error: Category '{category}' not found", err=True)
            ctx.exit(1)
        category_id = cat.id

    try:
        bill_id = TransactionService(db).record_bill_payment(
            account_id=account_id,
            date=payment_date,
            amount=payment_amount,
            description=description,
            category_id=category_id,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Recorded bill payment of ${payment_amount:,.2f} on {payment_date} (ID: {bill_id})")


@bill_group.command("list")
@click.option("--all", "include_expanded", is_flag=True, help="Include expanded bill payments")
@click.pass_context
def list_bills(ctx, include_expanded: bool):
    """List bill payments, newest first."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    bills = service.list_bill_payments(include_expanded=include_expanded)
    if not bills:
        click.echo("No bill payments found.")
        return

    click.echo(f"\nFound {len(bills)} bill payment(s):")
    click.echo("-" * 90)
    click.echo(f"{'ID':<6} {'Date':<12} {'Amount':<14} {'Status':<12} {'Description':<40}")
    click.echo("-" * 90)
    for bill in bills:
        if bill.is_expanded:
            status = "expanded"
            amount = bill.original_amount
        else:
            status = "open"
            amount = bill.amount
        amount_str = f"${amount:,.2f}"
        description = (bill.description or "")[:40]
        click.echo(
            f"{bill.id:<6} {str(bill.date):<12} {amount_str:<14} {status:<12} {description:<40}"
        )


def register_commands(cli):
    """Register bill commands with main CLI."""
    cli.add_command(bill_group, name="bill")
