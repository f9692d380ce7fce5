"""Category management commands."""

import click
from cardrecon.cli.error_handling import handle_domain_error
from cardrecon.domain.category import CategoryService


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List all categories by full path."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    paths = service.list_category_paths()
    if not paths:
        click.echo("No categories found.")
        return

    click.echo("\nCategories:")
    for path in paths:
        click.echo(f"  {path}")


@category_group.command("create")
@click.argument("name")
@click.option("--parent", help="Parent category path (e.g., 'Housing')")
@click.pass_context
def create_category(ctx, name: str, parent: str | None):
    """Create a new category."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    try:
        category_id = service.create_category(name=name, parent_path=parent)
        parent_str = f" under '{parent}'" if parent else ""
        click.echo(f"Created category '{name}'{parent_str} (ID: {category_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
