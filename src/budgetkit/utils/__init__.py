"""Utility functions for budgetkit."""

from budgetkit.utils.date_parser import parse_date
from budgetkit.utils.amount_parser import parse_amount
from budgetkit.utils.contact_resolver import resolve_contact

__all__ = ["parse_date", "parse_amount", "resolve_contact"]
