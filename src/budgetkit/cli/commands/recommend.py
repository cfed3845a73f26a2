"""Analytic recommendation command."""

import click
from budgetkit.cli.commands.rule import resolve_product_id
from budgetkit.cli.contact_resolution import resolve_contact_or_exit
from budgetkit.cli.error_handling import handle_domain_error, wants_json
from budgetkit.cli.services import build_blender
from budgetkit.domain.contact import ContactService
from budgetkit.domain.entities import DocumentKind
from budgetkit.domain.product import ProductService
from budgetkit.responses import dumps, recommendation_payload, success

KIND_CHOICES = {
    "po": DocumentKind.PURCHASE_ORDER,
    "bill": DocumentKind.VENDOR_BILL,
    "so": DocumentKind.SALES_ORDER,
    "invoice": DocumentKind.CUSTOMER_INVOICE,
}


@click.command("recommend")
@click.option("--partner", required=True, help="Contact name or ID")
@click.option("--product", help="Product name or ID (unknown names are matched against history by name)")
@click.option("--kind", type=click.Choice(list(KIND_CHOICES)), help="Restrict history to this document side")
@click.pass_context
def recommend(ctx, partner: str, product, kind):
    """Recommend an analytic for a partner and product.

    Examples:
        budgetkit recommend --partner "Azure Interior" --product Chair --kind bill
    """
    db = ctx.obj["db"]
    partner_id = resolve_contact_or_exit(ctx, ContactService(db), partner)
    product_id = None
    product_name = None
    if product:
        if product.isdigit():
            try:
                product_id = resolve_product_id(ProductService(db), product)
            except ValueError as e:
                handle_domain_error(ctx, e)
        else:
            product_name = product
            for candidate in ProductService(db).list_products(search=product):
                if candidate.name.lower() == product.lower():
                    product_id = candidate.id
                    break

    try:
        result = build_blender(ctx).get_recommendation(
            partner_id,
            product_id=product_id,
            product_name=product_name,
            kind=KIND_CHOICES[kind] if kind else None,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    if wants_json(ctx):
        click.echo(dumps(success(recommendation_payload(result), result.reason)))
        return
    if result.assigned:
        click.echo(f"Analytic: {result.analytic_name} (ID: {result.analytic_id})")
    else:
        click.echo("Analytic: none")
    click.echo(f"Source:     {result.source.value}")
    click.echo(f"Confidence: {result.confidence}")
    click.echo(f"Reason:     {result.reason}")


def register_commands(cli):
    """Register recommend command with main CLI."""
    cli.add_command(recommend)
