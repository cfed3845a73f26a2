"""Product commands."""

import click
from budgetkit.cli.error_handling import emit, handle_domain_error
from budgetkit.domain.category import ProductCategoryService
from budgetkit.domain.entities import RecordStatus
from budgetkit.domain.errors import NotFoundError
from budgetkit.domain.product import ProductService
from budgetkit.utils.amount_parser import parse_amount


def resolve_category_id(service: ProductCategoryService, value: str) -> int:
    """Resolve product category name or ID to an ID."""
    category = service.get_category(int(value)) if value.isdigit() else service.get_category_by_name(value)
    if category is None:
        raise NotFoundError(f"Product category '{value}' not found")
    return category.id


@click.group()
def product_group():
    """Manage products."""
    pass


@product_group.command("create")
@click.argument("name")
@click.option("--category", required=True, help="Product category name or ID")
@click.option("--sales-price", default="0", help="Sales price (default: 0)")
@click.option("--purchase-price", default="0", help="Purchase price (default: 0)")
@click.pass_context
def create_product(ctx, name: str, category: str, sales_price: str, purchase_price: str):
    """Create a new product.

    Examples:
        budgetkit product create "Chair" --category Furniture --purchase-price 1500 --sales-price 2200
    """
    db = ctx.obj["db"]
    service = ProductService(db)

    try:
        product_id = service.create_product(
            name=name,
            category_id=resolve_category_id(ProductCategoryService(db), category),
            sales_price=parse_amount(sales_price),
            purchase_price=parse_amount(purchase_price),
        )
        emit(ctx, service.get_product(product_id), f"Created product '{name}' (ID: {product_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@product_group.command("list")
@click.option("--category", help="Filter by product category name or ID")
@click.option("--status", type=click.Choice([s.value for s in RecordStatus]), help="Filter by status")
@click.option("--search", help="Name contains (case-insensitive)")
@click.pass_context
def list_products(ctx, category: str | None, status: str | None, search: str | None):
    """List products."""
    db = ctx.obj["db"]
    service = ProductService(db)
    category_service = ProductCategoryService(db)

    try:
        category_id = resolve_category_id(category_service, category) if category else None
    except ValueError as e:
        handle_domain_error(ctx, e)

    products = service.list_products(category_id=category_id, status=status, search=search)
    if not products:
        emit(ctx, [], "No products found.")
        return

    names = {c.id: c.name for c in category_service.list_categories()}
    lines = ["-" * 90]
    for p in products:
        lines.append(
            f"ID: {p.id:3d} | {p.name:25s} | {names.get(p.category_id, '-'):15s} | "
            f"Buy: {p.purchase_price:>10} | Sell: {p.sales_price:>10} | {p.status.value}"
        )
    emit(ctx, products, "\nProducts:", lines)


@product_group.command("update")
@click.argument("product_id", type=int)
@click.option("--name", help="New name")
@click.option("--category", help="New product category name or ID")
@click.option("--sales-price", help="New sales price")
@click.option("--purchase-price", help="New purchase price")
@click.pass_context
def update_product(ctx, product_id: int, name, category, sales_price, purchase_price):
    """Update a product. Only given options change."""
    db = ctx.obj["db"]
    service = ProductService(db)

    try:
        service.update_product(
            product_id,
            name=name,
            category_id=resolve_category_id(ProductCategoryService(db), category) if category else None,
            sales_price=parse_amount(sales_price) if sales_price is not None else None,
            purchase_price=parse_amount(purchase_price) if purchase_price is not None else None,
        )
        emit(ctx, service.get_product(product_id), f"Updated product {product_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def _status_command(name: str, status: RecordStatus, help_text: str, done: str):
    @product_group.command(name, help=help_text)
    @click.argument("product_id", type=int)
    @click.pass_context
    def command(ctx, product_id: int):
        service = ProductService(ctx.obj["db"])
        try:
            service.set_status(product_id, status)
            emit(ctx, service.get_product(product_id), f"Product {product_id} {done}")
        except ValueError as e:
            handle_domain_error(ctx, e)

    return command


_status_command("confirm", RecordStatus.CONFIRMED, "Confirm a product.", "confirmed")
_status_command("archive", RecordStatus.ARCHIVED, "Archive a product.", "archived")
_status_command("restore", RecordStatus.NEW, "Restore an archived product.", "restored")


@product_group.command("delete")
@click.argument("product_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_product(ctx, product_id: int, yes: bool):
    """Permanently delete a product.

    Refused while document lines or rules refer to it; archive it instead.
    """
    service = ProductService(ctx.obj["db"])
    if not yes and not click.confirm(f"Permanently delete product {product_id}?"):
        click.echo("Deletion cancelled.")
        return
    try:
        service.delete_product_permanently(product_id)
        emit(ctx, {"id": product_id}, f"Deleted product {product_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register product commands with main CLI."""
    cli.add_command(product_group, name="product")
