"""Transaction viewing commands."""

import click
from cardrecon.cli.account_resolution import resolve_optional_account
from cardrecon.cli.error_handling import handle_domain_error
from cardrecon.domain.account import AccountService
from cardrecon.domain.category import CategoryService
from cardrecon.domain.transaction import TransactionService
from cardrecon.utils.date_parser import parse_date


@click.command("view")
@click.option("--start-date", help="Start date (YYYY-MM-DD)")
@click.option("--end-date", help="End date (YYYY-MM-DD)")
@click.option("--category", help="Category path (e.g., 'Housing > Credit Card')")
@click.option("--account", help="Account name or ID")
@click.option("--cycle", "billing_cycle", help="Only itemized transactions of this billing cycle")
@click.option("--bill", "bill_id", type=int, help="Only itemized transactions of this bill payment")
@click.option("--all", "include_hidden", is_flag=True, help="Include hidden transactions")
@click.option("--verbose", "-v", is_flag=True, help="Show all columns")
@click.pass_context
def view_transactions(
    ctx,
    start_date: str,
    end_date: str,
    category: str,
    account: str,
    billing_cycle: str,
    bill_id: int,
    include_hidden: bool,
    verbose: bool,
):
    """View transactions with optional filters.

    Expanded bill payments are hidden; their itemized transactions are shown
    instead. Use --all to see hidden rows as well.
    """
    db = ctx.obj["db"]
    service = TransactionService(db)
    category_service = CategoryService(db)
    account_service = AccountService(db)
    account_id = resolve_optional_account(ctx, account_service, account)

    try:
        start = parse_date(start_date) if start_date else None
        end = parse_date(end_date) if end_date else None
    except ValueError as e:
        handle_domain_error(ctx, e)

    transactions = service.list_transactions(
        start_date=start,
        end_date=end,
        category_path=category,
        account_id=account_id,
        billing_cycle=billing_cycle,
        credit_card_payment_id=bill_id,
        include_hidden=include_hidden,
    )

    if not transactions:
        click.echo("No transactions found.")
        return

    accounts = {acc.id: acc.name for acc in account_service.list_accounts()}

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    if verbose:
        click.echo("=" * 100)
        for txn in transactions:
            category_name = "Uncategorized"
            if txn.category_id:
                category_name = category_service.format_category_path(txn.category_id)

            click.echo(f"\nTransaction ID: {txn.id}")
            click.echo(f"  Date: {txn.date}")
            click.echo(f"  Amount: ${txn.amount:,.2f} ({txn.transaction_type.value})")
            click.echo(f"  Account: {accounts.get(txn.account_id, 'Unknown')} (ID: {txn.account_id})")
            click.echo(f"  Category: {category_name}")
            if txn.description:
                click.echo(f"  Description: {txn.description}")
            if txn.is_credit_card_payment:
                state = "expanded" if txn.is_expanded else "open"
                click.echo(f"  Bill payment: {state}")
                if txn.original_amount is not None:
                    click.echo(f"  Original amount: ${txn.original_amount:,.2f}")
            if txn.billing_cycle:
                click.echo(f"  Billing cycle: {txn.billing_cycle} (bill {txn.credit_card_payment_id})")
            if txn.installment_current is not None:
                click.echo(f"  Installment: {txn.installment_current}/{txn.installment_total}")
            if txn.is_hidden:
                click.echo("  Hidden: yes")
            click.echo(f"  Unique ID: {txn.unique_id}")
            click.echo("-" * 100)
        return

    click.echo("-" * 100)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Amount':<14} {'Account':<20} {'Cycle':<8} {'Description':<36}"
    )
    click.echo("-" * 100)
    for txn in transactions:
        sign = "-" if txn.transaction_type.value == "income" else ""
        amount_str = f"{sign}${txn.amount:,.2f}"
        account_name = accounts.get(txn.account_id, "Unknown")[:20]
        description = (txn.description or "")[:36]
        click.echo(
            f"{txn.id:<6} {str(txn.date):<12} {amount_str:<14} {account_name:<20} "
            f"{txn.billing_cycle or '':<8} {description:<36}"
        )


def register_commands(cli):
    """Register view command with main CLI."""
    cli.add_command(view_transactions)
