"""Auto-assignment rule commands."""

import click
from budgetkit.cli.commands.analytic import resolve_analytic_id
from budgetkit.cli.commands.contact import resolve_tag_ids
from budgetkit.cli.commands.product import resolve_category_id
from budgetkit.cli.contact_resolution import resolve_contact_or_exit
from budgetkit.cli.error_handling import emit, handle_domain_error
from budgetkit.domain.analytic import AnalyticService
from budgetkit.domain.category import PartnerTagService, ProductCategoryService
from budgetkit.domain.contact import ContactService
from budgetkit.domain.entities import AutoAssignRule, RuleStatus
from budgetkit.domain.errors import NotFoundError
from budgetkit.domain.product import ProductService
from budgetkit.domain.rules import AutoAssignRuleService, RuleMatcher

CONDITION_NAMES = ["partner", "partner_tag", "product", "product_category"]


def resolve_product_id(service: ProductService, value: str) -> int:
    """Resolve product name or ID to an ID."""
    if value.isdigit():
        return service.require_product(int(value)).id
    for product in service.list_products(search=value):
        if product.name.lower() == value.lower():
            return product.id
    raise NotFoundError(f"Product '{value}' not found")


def format_rule(rule: AutoAssignRule) -> str:
    conditions = []
    for label, value in (
        ("partner", rule.partner_id),
        ("tag", rule.partner_tag_id),
        ("product", rule.product_id),
        ("category", rule.product_category_id),
    ):
        if value is not None:
            conditions.append(f"{label}={value}")
    return (
        f"ID: {rule.id:3d} | {rule.name:25s} | {rule.status.value:9s} | "
        f"analytic={rule.analytic_id} | {' '.join(conditions)}"
    )


def _resolve_conditions(ctx, partner, tag, product, category) -> dict:
    db = ctx.obj["db"]
    conditions = {}
    if partner:
        conditions["partner_id"] = resolve_contact_or_exit(ctx, ContactService(db), partner)
    if tag:
        conditions["partner_tag_id"] = resolve_tag_ids(PartnerTagService(db), (tag,))[0]
    if product:
        conditions["product_id"] = resolve_product_id(ProductService(db), product)
    if category:
        conditions["product_category_id"] = resolve_category_id(ProductCategoryService(db), category)
    return conditions


@click.group()
def rule_group():
    """Manage auto-assignment rules."""
    pass


@rule_group.command("create")
@click.argument("name")
@click.option("--analytic", required=True, help="Analytic name or ID to assign")
@click.option("--partner", help="Match this contact (name or ID)")
@click.option("--tag", help="Match contacts with this partner tag")
@click.option("--product", help="Match this product (name or ID)")
@click.option("--category", help="Match products of this category")
@click.option("--description", help="Description")
@click.pass_context
def create_rule(ctx, name: str, analytic: str, partner, tag, product, category, description):
    """Create a draft rule. Confirm it to take part in matching.

    Examples:
        budgetkit rule create "VIP furniture" --analytic "Marriage Session 2026" --tag vip --category Furniture
    """
    db = ctx.obj["db"]
    service = AutoAssignRuleService(db)
    try:
        analytic_id = resolve_analytic_id(AnalyticService(db), analytic)
        conditions = _resolve_conditions(ctx, partner, tag, product, category)
        rule_id = service.create_rule(name=name, analytic_id=analytic_id, description=description, **conditions)
        emit(ctx, service.get_rule(rule_id), f"Created rule '{name}' (ID: {rule_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@rule_group.command("list")
@click.option("--status", type=click.Choice([s.value for s in RuleStatus]), help="Filter by status")
@click.option("--analytic", help="Filter by target analytic name or ID")
@click.pass_context
def list_rules(ctx, status, analytic):
    """List rules, newest first."""
    db = ctx.obj["db"]
    service = AutoAssignRuleService(db)
    try:
        analytic_id = resolve_analytic_id(AnalyticService(db), analytic) if analytic else None
        rules = service.list_rules(status=status, analytic_id=analytic_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not rules:
        emit(ctx, [], "No rules found.")
        return
    emit(ctx, rules, "\nRules:", ["-" * 90] + [format_rule(r) for r in rules])


@rule_group.command("show")
@click.argument("rule_id", type=int)
@click.pass_context
def show_rule(ctx, rule_id: int):
    """Show a rule."""
    service = AutoAssignRuleService(ctx.obj["db"])
    try:
        rule = service.require_rule(rule_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    lines = [
        f"Status:      {rule.status.value}",
        f"Analytic:    {rule.analytic_id}",
        f"Conditions:  {', '.join(rule.conditions)}",
        f"Specificity: {rule.specificity}",
        f"Description: {rule.description or '-'}",
    ]
    emit(ctx, rule, f"Rule {rule.id}: {rule.name}", lines)


@rule_group.command("update")
@click.argument("rule_id", type=int)
@click.option("--name", help="New name")
@click.option("--analytic", help="New analytic name or ID")
@click.option("--partner", help="Match this contact")
@click.option("--tag", help="Match this partner tag")
@click.option("--product", help="Match this product")
@click.option("--category", help="Match this product category")
@click.option("--description", help="New description")
@click.option("--clear", "clear", multiple=True, type=click.Choice(CONDITION_NAMES), help="Remove a condition (repeatable)")
@click.pass_context
def update_rule(ctx, rule_id: int, name, analytic, partner, tag, product, category, description, clear):
    """Update a draft rule."""
    db = ctx.obj["db"]
    service = AutoAssignRuleService(db)
    try:
        analytic_id = resolve_analytic_id(AnalyticService(db), analytic) if analytic else None
        conditions = _resolve_conditions(ctx, partner, tag, product, category)
        service.update_rule(
            rule_id, name=name, analytic_id=analytic_id, description=description, clear=clear, **conditions
        )
        emit(ctx, service.get_rule(rule_id), f"Updated rule {rule_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def _rule_action(name: str, help_text: str, action: str, done: str):
    @rule_group.command(name, help=help_text)
    @click.argument("rule_id", type=int)
    @click.pass_context
    def command(ctx, rule_id: int):
        service = AutoAssignRuleService(ctx.obj["db"])
        try:
            getattr(service, action)(rule_id)
            emit(ctx, {"id": rule_id}, f"Rule {rule_id} {done}")
        except ValueError as e:
            handle_domain_error(ctx, e)

    return command


_rule_action("confirm", "Confirm a draft rule so it takes part in matching.", "confirm_rule", "confirmed")
_rule_action("archive", "Archive a rule.", "archive_rule", "archived")
_rule_action("delete", "Delete a rule.", "delete_rule", "deleted")


@rule_group.command("test")
@click.option("--partner", required=True, help="Contact name or ID")
@click.option("--product", help="Product name or ID")
@click.pass_context
def test_rules(ctx, partner: str, product):
    """Show which confirmed rules match a partner and product, best first."""
    db = ctx.obj["db"]
    partner_id = resolve_contact_or_exit(ctx, ContactService(db), partner)
    try:
        product_id = resolve_product_id(ProductService(db), product) if product else None
    except ValueError as e:
        handle_domain_error(ctx, e)

    matches = RuleMatcher(db).test_match(partner_id, product_id)
    data = [
        {
            "rule_id": m.rule.id,
            "rule_name": m.rule.name,
            "analytic_id": m.rule.analytic_id,
            "matched_fields": list(m.matched_fields),
            "score": m.score,
        }
        for m in matches
    ]
    if not matches:
        emit(ctx, data, "No rule matches.")
        return
    lines = [f"{i}. {m.explanation} -> analytic {m.rule.analytic_id}" for i, m in enumerate(matches, 1)]
    emit(ctx, data, f"{len(matches)} matching rule(s):", lines)


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
