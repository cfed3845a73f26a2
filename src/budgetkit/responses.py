"""Response envelopes in the {success, data, message} shape.

Domain entities are converted to JSON-safe structures: Decimal becomes a
string, dates become ISO strings and enums become their values.
"""

import dataclasses
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from budgetkit.domain.entities import BudgetLine, FinancialDocument, Recommendation
from budgetkit.domain.errors import (
    ConflictError,
    DependencyError,
    DomainError,
    NotFoundError,
    ValidationError,
)

# Derived properties included when serializing these entities
_DERIVED = {
    BudgetLine: ("remaining", "amount_to_achieve", "achieved_percent"),
    FinancialDocument: ("paid_amount",),
}


def to_jsonable(value: Any) -> Any:
    """Convert domain values into JSON-serializable structures."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data = {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
        for name in _DERIVED.get(type(value), ()):
            data[name] = to_jsonable(getattr(value, name))
        return data
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def success(data: Any = None, message: str = "") -> dict[str, Any]:
    """Build a success envelope."""
    return {"success": True, "data": to_jsonable(data), "message": message}


def failure(error: Exception) -> dict[str, Any]:
    """Build a failure envelope from an exception, tagging domain error kinds."""
    data: Optional[dict[str, str]] = None
    if isinstance(error, DomainError):
        data = {"error": error_kind(error)}
    return {"success": False, "data": data, "message": str(error)}


def error_kind(error: DomainError) -> str:
    """Short category name for a domain error."""
    for cls, kind in (
        (ValidationError, "validation"),
        (NotFoundError, "not_found"),
        (ConflictError, "conflict"),
        (DependencyError, "dependency"),
    ):
        if isinstance(error, cls):
            return kind
    return "domain"


def recommendation_payload(recommendation: Recommendation) -> dict[str, Any]:
    """Recommendation in the shape {analyticsId, analyticsName, confidence, reason, source}."""
    return {
        "analyticsId": recommendation.analytic_id,
        "analyticsName": recommendation.analytic_name,
        "confidence": float(recommendation.confidence),
        "reason": recommendation.reason,
        "source": recommendation.source.value,
    }


def dumps(envelope: dict[str, Any]) -> str:
    """Serialize an envelope as indented JSON."""
    return json.dumps(envelope, indent=2, ensure_ascii=False)
