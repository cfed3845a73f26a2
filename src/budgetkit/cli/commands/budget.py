"""Budget period commands."""

import click
from budgetkit.cli.commands.analytic import resolve_analytic_id
from budgetkit.cli.date_filters import PERIOD_CHOICES, resolve_cli_date_range
from budgetkit.cli.error_handling import emit, handle_domain_error
from budgetkit.cli.services import build_budget_service
from budgetkit.domain.analytic import AnalyticService
from budgetkit.domain.entities import BudgetLine, BudgetPeriod, BudgetStatus
from budgetkit.domain.errors import ValidationError
from budgetkit.utils.amount_parser import parse_amount
from budgetkit.utils.date_parser import parse_date


def parse_budget_lines(service: AnalyticService, values: tuple[str, ...]) -> list[tuple[int, object]]:
    """Parse repeated ANALYTIC:AMOUNT options."""
    lines = []
    for value in values:
        analytic, sep, amount = value.rpartition(":")
        if not sep or not analytic:
            raise ValidationError(f"Invalid budget line '{value}', expected ANALYTIC:AMOUNT")
        lines.append((resolve_analytic_id(service, analytic.strip()), parse_amount(amount)))
    return lines


def format_budget_line(line: BudgetLine, names: dict[int, str]) -> str:
    percent = f"{line.achieved_percent}%" if line.achieved_percent is not None else "-"
    kind = line.type.value if line.type is not None else "-"
    return (
        f"{names.get(line.analytic_id, str(line.analytic_id)):30s} | {kind:7s} | "
        f"Budgeted: {line.budgeted_amount:>12} | Achieved: {line.achieved_amount:>12} | "
        f"{percent:>8s} | To achieve: {line.amount_to_achieve:>12}"
    )


def format_budget(budget: BudgetPeriod) -> str:
    return (
        f"ID: {budget.id:3d} | {budget.name:35s} | {budget.start_date} to {budget.end_date} | "
        f"{budget.status.value:9s} | {len(budget.lines)} line(s)"
    )


@click.group()
def budget_group():
    """Manage budget periods."""
    pass


@budget_group.command("create")
@click.argument("name")
@click.option("--start", "start_date", help="Start date")
@click.option("--end", "end_date", help="End date")
@click.option("--period", type=click.Choice(PERIOD_CHOICES), help="Named period instead of --start/--end")
@click.option("--line", "lines", multiple=True, help="ANALYTIC:AMOUNT (repeatable)")
@click.pass_context
def create_budget(ctx, name: str, start_date, end_date, period, lines):
    """Create a draft budget.

    Examples:
        budgetkit budget create "Festive 2026" --start 2026-10-01 --end 2026-12-31 --line Deepawali:280000
    """
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period, required=True)
    service = build_budget_service(ctx)
    try:
        parsed = parse_budget_lines(AnalyticService(ctx.obj["db"]), lines)
        budget_id = service.create_budget(name=name, start_date=start, end_date=end, lines=parsed)
        emit(ctx, service.get_budget(budget_id), f"Created budget '{name}' (ID: {budget_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@budget_group.command("list")
@click.option("--status", type=click.Choice([s.value for s in BudgetStatus]), help="Filter by status")
@click.option("--search", help="Name contains (case-insensitive)")
@click.pass_context
def list_budgets(ctx, status, search):
    """List budgets, newest first."""
    budgets = build_budget_service(ctx).list_budgets(status=status, search=search)
    if not budgets:
        emit(ctx, [], "No budgets found.")
        return
    emit(ctx, budgets, "\nBudgets:", ["-" * 100] + [format_budget(b) for b in budgets])


@budget_group.command("show")
@click.argument("budget_id", type=int)
@click.pass_context
def show_budget(ctx, budget_id: int):
    """Show a budget with budgeted, achieved and remaining amounts per analytic."""
    service = build_budget_service(ctx)
    try:
        budget = service.require_budget(budget_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    names = {a.id: a.name for a in AnalyticService(ctx.obj["db"]).list_analytics()}
    lines = [
        f"Period: {budget.start_date} to {budget.end_date}",
        f"Status: {budget.status.value}",
    ]
    if budget.original_budget_id is not None:
        lines.append(f"Revision of budget {budget.original_budget_id}")
    if budget.revised_budget_id is not None:
        lines.append(f"Revised by budget {budget.revised_budget_id}")
    lines.append("-" * 110)
    lines.extend(format_budget_line(line, names) for line in budget.lines)
    emit(ctx, budget, f"Budget {budget.id}: {budget.name}", lines)


@budget_group.command("update")
@click.argument("budget_id", type=int)
@click.option("--name", help="New name")
@click.option("--start", "start_date", help="New start date")
@click.option("--end", "end_date", help="New end date")
@click.option("--line", "lines", multiple=True, help="Replace all lines with ANALYTIC:AMOUNT (repeatable)")
@click.pass_context
def update_budget(ctx, budget_id: int, name, start_date, end_date, lines):
    """Edit a draft budget."""
    service = build_budget_service(ctx)
    try:
        service.update_budget(
            budget_id,
            name=name,
            start_date=parse_date(start_date) if start_date else None,
            end_date=parse_date(end_date) if end_date else None,
            lines=parse_budget_lines(AnalyticService(ctx.obj["db"]), lines) if lines else None,
        )
        emit(ctx, service.get_budget(budget_id), f"Updated budget {budget_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@budget_group.command("confirm")
@click.argument("budget_id", type=int)
@click.pass_context
def confirm_budget(ctx, budget_id: int):
    """Confirm a draft budget and compute achieved amounts."""
    service = build_budget_service(ctx)
    try:
        service.confirm_budget(budget_id)
        emit(ctx, service.get_budget(budget_id), f"Budget {budget_id} confirmed")
    except ValueError as e:
        handle_domain_error(ctx, e)


@budget_group.command("status")
@click.argument("budget_id", type=int)
@click.argument("status", type=click.Choice(["confirmed", "cancelled", "archived"]))
@click.pass_context
def set_budget_status(ctx, budget_id: int, status: str):
    """Move a budget to another status."""
    service = build_budget_service(ctx)
    try:
        service.set_status(budget_id, status)
        emit(ctx, service.get_budget(budget_id), f"Budget {budget_id} is now {status}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@budget_group.command("delete")
@click.argument("budget_id", type=int)
@click.pass_context
def delete_budget(ctx, budget_id: int):
    """Delete a draft budget; a draft revision is discarded and its original restored."""
    service = build_budget_service(ctx)
    try:
        service.delete_budget(budget_id)
        emit(ctx, {"id": budget_id}, f"Deleted budget {budget_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@budget_group.command("revise")
@click.argument("budget_id", type=int)
@click.option("--date", "revision_date", help="Revision date used in the new name (default: today)")
@click.pass_context
def revise_budget(ctx, budget_id: int, revision_date):
    """Create a draft revision of a confirmed budget."""
    service = build_budget_service(ctx)
    try:
        on = parse_date(revision_date) if revision_date else None
        revision_id = service.revise_budget(budget_id, on=on)
        revision = service.get_budget(revision_id)
        emit(ctx, revision, f"Created revision '{revision.name}' (ID: {revision_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@budget_group.command("check")
@click.argument("budget_id", type=int)
@click.option("--analytic", required=True, help="Analytic name or ID")
@click.option("--amount", required=True, help="Proposed amount")
@click.pass_context
def check_budget(ctx, budget_id: int, analytic: str, amount: str):
    """Check whether a proposed amount fits the remaining budget."""
    service = build_budget_service(ctx)
    try:
        analytic_id = resolve_analytic_id(AnalyticService(ctx.obj["db"]), analytic)
        result = service.check_budget(analytic_id, budget_id, parse_amount(amount))
    except ValueError as e:
        handle_domain_error(ctx, e)

    verdict = "exceeds" if result.exceeds else "fits within"
    emit(ctx, result, f"Amount {verdict} the remaining budget of {result.remaining}")


@budget_group.command("details")
@click.argument("budget_id", type=int)
@click.option("--analytic", required=True, help="Analytic name or ID")
@click.pass_context
def analytic_details(ctx, budget_id: int, analytic: str):
    """Show one analytic's budget line and the confirmed document lines behind it."""
    service = build_budget_service(ctx)
    try:
        analytic_id = resolve_analytic_id(AnalyticService(ctx.obj["db"]), analytic)
        details = service.analytic_details(budget_id, analytic_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    lines = [format_budget_line(details.line, {details.analytic.id: details.analytic.name}), "-" * 110]
    for c in details.contributing_lines:
        lines.append(
            f"{c.document_date} | {c.document_no:16s} | {c.kind.label:16s} | {c.product_name:25s} | {c.line_total:>12}"
        )
    if not details.contributing_lines:
        lines.append("No confirmed documents in this period.")
    emit(ctx, details, f"{details.analytic.name} in {details.budget.name}", lines)


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
