"""CLI helpers for contact resolution."""

from __future__ import annotations

import click
from budgetkit.cli.error_handling import handle_domain_error
from budgetkit.domain.contact import ContactService
from budgetkit.utils.contact_resolver import resolve_contact


def resolve_contact_or_exit(
    ctx: click.Context, contact_service: ContactService, contact: str | int
) -> int:
    """Resolve contact name or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_contact(contact_service, contact)
    except ValueError as exc:
        handle_domain_error(ctx, exc)
