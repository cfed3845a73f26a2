"""Date parsing utilities."""

import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from budgetkit.domain.errors import ValidationError

_IN_DAYS = re.compile(r"^(?:in\s+)?\+?(\d+)\s*(?:d|day|days)$")


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2026-01-15", "15/01/2026" (day first), "January 15, 2026"
    - Relative dates: "today", "yesterday", "tomorrow"
    - Offsets from today: "in 30 days", "+30d", "30 days"

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValidationError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    offset = _IN_DAYS.match(date_str)
    if offset:
        return today + timedelta(days=int(offset.group(1)))

    try:
        dt = date_parser.parse(date_str, dayfirst=not re.match(r"^\d{4}-", date_str))
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValidationError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str, today: date | None = None) -> tuple[date, date]:
    """Get start and end dates for a named budget period.

    Args:
        period: One of this-month, next-month, this-quarter, next-quarter, this-year, next-year
        today: Reference date (defaults to today)

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Raises:
        ValidationError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()

    if period in ("this-month", "next-month"):
        start_date = today.replace(day=1)
        if period == "next-month":
            start_date += relativedelta(months=1)
        return (start_date, start_date + relativedelta(months=1) - timedelta(days=1))

    elif period in ("this-quarter", "next-quarter"):
        first_month = 3 * ((today.month - 1) // 3) + 1
        start_date = today.replace(month=first_month, day=1)
        if period == "next-quarter":
            start_date += relativedelta(months=3)
        return (start_date, start_date + relativedelta(months=3) - timedelta(days=1))

    elif period in ("this-year", "next-year"):
        start_date = today.replace(month=1, day=1)
        if period == "next-year":
            start_date += relativedelta(years=1)
        return (start_date, start_date.replace(month=12, day=31))

    raise ValidationError(
        f"Unknown period: '{period}'. Supported periods: this-month, next-month, "
        "this-quarter, next-quarter, this-year, next-year"
    )
