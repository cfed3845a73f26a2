"""Analytic catalog commands."""

import click
from budgetkit.cli.date_filters import PERIOD_CHOICES, resolve_cli_date_range
from budgetkit.cli.error_handling import emit, handle_domain_error
from budgetkit.domain.analytic import AnalyticService
from budgetkit.domain.entities import Analytic
from budgetkit.domain.errors import NotFoundError
from budgetkit.utils.date_parser import parse_date


def resolve_analytic_id(service: AnalyticService, value: str) -> int:
    """Resolve analytic name or ID to an ID."""
    if value.isdigit():
        return service.require_analytic(int(value)).id
    analytic = service.get_analytic_by_name(value)
    if analytic is None:
        raise NotFoundError(f"Analytic '{value}' not found")
    return analytic.id


def format_analytic(a: Analytic) -> str:
    dates = ""
    if a.start_date or a.end_date:
        dates = f" | {a.start_date or '...'} to {a.end_date or '...'}"
    return f"ID: {a.id:3d} | {a.name:30s} | {a.analytic_type.value:7s} | {a.status.value:9s}{dates}"


@click.group()
def analytic_group():
    """Manage budget analytics."""
    pass


@analytic_group.command("create")
@click.argument("name")
@click.option("--type", "analytic_type", type=click.Choice(["income", "expense"], case_sensitive=False), default="expense", help="Analytic type (default: expense)")
@click.option("--description", help="Description")
@click.option("--start", "start_date", help="Start date")
@click.option("--end", "end_date", help="End date")
@click.option("--category", "category_id", type=int, help="Product category ID")
@click.pass_context
def create_analytic(ctx, name: str, analytic_type: str, description, start_date, end_date, category_id):
    """Create a new analytic.

    Examples:
        budgetkit analytic create "Deepawali" --type income --start 2026-10-01 --end 2026-11-15
        budgetkit analytic create "Marriage Session 2026" --category 1
    """
    service = AnalyticService(ctx.obj["db"])
    try:
        start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=None)
        analytic_id = service.create_analytic(
            name=name,
            analytic_type=analytic_type.lower(),
            description=description,
            start_date=start,
            end_date=end,
            product_category_id=category_id,
        )
        emit(ctx, service.get_analytic(analytic_id), f"Created analytic '{name}' (ID: {analytic_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@analytic_group.command("list")
@click.option("--status", type=click.Choice(["new", "confirmed", "archived"]), help="Filter by status")
@click.option("--search", help="Name contains (case-insensitive)")
@click.option("--start", "start_date", help="Only analytics overlapping from this date")
@click.option("--end", "end_date", help="Only analytics overlapping up to this date")
@click.option("--period", type=click.Choice(PERIOD_CHOICES), help="Only analytics overlapping a named period")
@click.pass_context
def list_analytics(ctx, status, search, start_date, end_date, period):
    """List analytics."""
    service = AnalyticService(ctx.obj["db"])
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    try:
        analytics = service.list_analytics(status=status, search=search, start_date=start, end_date=end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not analytics:
        emit(ctx, [], "No analytics found.")
        return
    emit(ctx, analytics, "\nAnalytics:", ["-" * 80] + [format_analytic(a) for a in analytics])


@analytic_group.command("show")
@click.argument("analytic")
@click.pass_context
def show_analytic(ctx, analytic: str):
    """Show an analytic. ANALYTIC can be a name or ID."""
    service = AnalyticService(ctx.obj["db"])
    try:
        a = service.require_analytic(resolve_analytic_id(service, analytic))
    except ValueError as e:
        handle_domain_error(ctx, e)
    lines = [
        f"Type:        {a.analytic_type.value}",
        f"Status:      {a.status.value}",
        f"Dates:       {a.start_date or '-'} to {a.end_date or '-'}",
        f"Category:    {a.product_category_id or '-'}",
        f"Description: {a.description or '-'}",
    ]
    emit(ctx, a, f"Analytic {a.id}: {a.name}", lines)


@analytic_group.command("update")
@click.argument("analytic")
@click.option("--name", help="New name")
@click.option("--type", "analytic_type", type=click.Choice(["income", "expense"], case_sensitive=False), help="New type")
@click.option("--description", help="New description")
@click.option("--start", "start_date", help="New start date")
@click.option("--end", "end_date", help="New end date")
@click.option("--category", "category_id", type=int, help="New product category ID")
@click.pass_context
def update_analytic(ctx, analytic: str, name, analytic_type, description, start_date, end_date, category_id):
    """Update an analytic. Only given options change."""
    service = AnalyticService(ctx.obj["db"])
    changes = {}
    try:
        if start_date is not None:
            changes["start_date"] = parse_date(start_date)
        if end_date is not None:
            changes["end_date"] = parse_date(end_date)
        if category_id is not None:
            changes["product_category_id"] = category_id
        analytic_id = resolve_analytic_id(service, analytic)
        service.update_analytic(
            analytic_id,
            name=name,
            analytic_type=analytic_type.lower() if analytic_type else None,
            description=description,
            **changes,
        )
        emit(ctx, service.get_analytic(analytic_id), f"Updated analytic {analytic_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def _status_command(name: str, help_text: str, action: str, done: str):
    @analytic_group.command(name, help=help_text)
    @click.argument("analytic")
    @click.pass_context
    def command(ctx, analytic: str):
        service = AnalyticService(ctx.obj["db"])
        try:
            analytic_id = resolve_analytic_id(service, analytic)
            getattr(service, action)(analytic_id)
            emit(ctx, service.get_analytic(analytic_id), f"Analytic {analytic_id} {done}")
        except ValueError as e:
            handle_domain_error(ctx, e)

    return command


_status_command("confirm", "Confirm an analytic.", "confirm_analytic", "confirmed")
_status_command("archive", "Archive an analytic; it can no longer be assigned to new lines.", "archive_analytic", "archived")
_status_command("unarchive", "Restore an archived analytic (status becomes new).", "unarchive_analytic", "restored")


@analytic_group.command("delete")
@click.argument("analytic")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_analytic(ctx, analytic: str, yes: bool):
    """Permanently delete an analytic.

    Refused while document or budget lines reference it; archive it instead.
    """
    service = AnalyticService(ctx.obj["db"])
    try:
        analytic_id = resolve_analytic_id(service, analytic)
        target = service.require_analytic(analytic_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(f"Permanently delete analytic '{target.name}' (ID: {analytic_id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_analytic_permanently(analytic_id)
        emit(ctx, {"id": analytic_id}, f"Deleted analytic '{target.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register analytic commands with main CLI."""
    cli.add_command(analytic_group, name="analytic")
