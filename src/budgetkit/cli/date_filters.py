"""CLI helpers for date range resolution."""

from datetime import date

import click

from budgetkit.cli.error_handling import handle_domain_error
from budgetkit.utils.date_parser import get_date_range, parse_date

PERIOD_CHOICES = ["this-month", "next-month", "this-quarter", "next-quarter", "this-year", "next-year"]


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    required: bool = False,
) -> tuple[date | None, date | None]:
    """Resolve a CLI date range from --period or explicit --start/--end dates."""
    if period is not None and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --start or --end.", err=True)
        ctx.exit(1)

    if period is not None:
        try:
            return get_date_range(period)
        except ValueError as e:
            handle_domain_error(ctx, e)

    start = None
    end = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    if end_date:
        try:
            end = parse_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    if required and (start is None or end is None):
        click.echo("Error: Provide --period or both --start and --end.", err=True)
        ctx.exit(1)

    return start, end
