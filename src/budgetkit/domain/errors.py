"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or a lost update race."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


def not_found(entity: str, entity_id: int) -> str:
    """Return message for a missing entity, e.g. "Analytic 3 not found"."""
    return f"{entity} {entity_id} not found"


def duplicate_name(entity: str, name: str) -> str:
    """Return message for a uniqueness violation on a name."""
    return f"{entity} with name '{name}' already exists"


def invalid_date_range() -> str:
    """Return message when an end date precedes the start date."""
    return "End date must be greater than or equal to start date"


def invalid_transition(entity: str, entity_id: int, current: str, action: str) -> str:
    """Return message when a status transition is not allowed."""
    return f"Cannot {action} {entity} {entity_id}: status is '{current}'"


def payment_exceeds_due(amount: Decimal, amount_due: Decimal) -> str:
    """Return message when a payment is larger than the outstanding balance."""
    return f"Payment amount {amount} exceeds amount due {amount_due}"


def analytic_archived(analytic_id: int) -> str:
    """Return message when an archived analytic is assigned to a new line."""
    return f"Analytic {analytic_id} is archived and cannot be assigned"


def analytic_delete_blocked(analytic_id: int, document_line_count: int, budget_line_count: int) -> str:
    """Return message when an analytic is still referenced."""
    parts = []
    if document_line_count > 0:
        parts.append(f"{document_line_count} document line{'s' if document_line_count != 1 else ''}")
    if budget_line_count > 0:
        parts.append(f"{budget_line_count} budget line{'s' if budget_line_count != 1 else ''}")
    return (
        f"Cannot permanently delete analytic {analytic_id}: it is referenced by {', '.join(parts)}. "
        "Archive it instead."
    )


def delete_blocked(entity: str, entity_id: int, references: dict[str, int]) -> str:
    """Return message when a record is still referenced, e.g. "3 products, 1 rule"."""
    parts = []
    for name, count in references.items():
        if count > 0:
            parts.append(f"{count} {name if count != 1 else name.rstrip('s')}")
    return f"Cannot delete {entity} {entity_id}: it is referenced by {', '.join(parts)}"
