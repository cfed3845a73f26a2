"""Product category commands."""

import click
from budgetkit.cli.commands.product import resolve_category_id
from budgetkit.cli.error_handling import emit, handle_domain_error
from budgetkit.domain.category import ProductCategoryService


@click.group()
def category_group():
    """Manage product categories."""
    pass


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List all product categories."""
    service = ProductCategoryService(ctx.obj["db"])

    categories = service.list_categories()
    if not categories:
        emit(ctx, [], "No product categories found.")
        return

    lines = ["-" * 60]
    for cat in categories:
        description = f" - {cat.description}" if cat.description else ""
        lines.append(f"ID: {cat.id:3d} | {cat.name}{description}")
    emit(ctx, categories, "\nProduct categories:", lines)


@category_group.command("create")
@click.argument("name")
@click.option("--description", help="Category description")
@click.pass_context
def create_category(ctx, name: str, description: str | None):
    """Create a new product category.

    Examples:
        budgetkit category create "Furniture"
        budgetkit category create "Decor" --description "Lamps, rugs and frames"
    """
    service = ProductCategoryService(ctx.obj["db"])

    try:
        category_id = service.create_category(name=name, description=description)
        emit(ctx, service.get_category(category_id), f"Created product category '{name}' (ID: {category_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@category_group.command("update")
@click.argument("category")
@click.option("--name", help="New name")
@click.option("--description", help="New description")
@click.pass_context
def update_category(ctx, category: str, name: str | None, description: str | None):
    """Rename a product category or change its description."""
    service = ProductCategoryService(ctx.obj["db"])
    try:
        category_id = resolve_category_id(service, category)
        updated = service.update_category(category_id, name=name, description=description)
        emit(ctx, updated, f"Updated product category '{updated.name}' (ID: {updated.id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@category_group.command("delete")
@click.argument("category")
@click.pass_context
def delete_category(ctx, category: str):
    """Delete a product category.

    Refused while products, analytics or rules use it.
    """
    service = ProductCategoryService(ctx.obj["db"])
    try:
        category_id = resolve_category_id(service, category)
        service.delete_category(category_id)
        emit(ctx, {"id": category_id}, f"Deleted product category {category_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register product category commands with main CLI."""
    cli.add_command(category_group, name="category")
