"""Runtime configuration resolved from environment variables."""

import os
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Optional

from budgetkit.domain.entities import HistoryMatchStrategy
from budgetkit.domain.errors import ValidationError


DEFAULT_CONFIDENCE_THRESHOLD = Decimal("0.7")
DEFAULT_HISTORY_MATCH = HistoryMatchStrategy.ID_THEN_NAME
DEFAULT_RETRY_ATTEMPTS = 3


@dataclass(frozen=True)
class Settings:
    """Engine settings.

    Attributes:
        database_path: SQLite database file path
        confidence_threshold: Pattern recommendations win only above this value
        history_match: Strategy used by the historical pattern recommender
        retry_attempts: Attempts for optimistic-lock retries on the ledger
        log_level: Logging level name
        log_format: "console" or "json"
    """

    database_path: Optional[str] = None
    confidence_threshold: Decimal = DEFAULT_CONFIDENCE_THRESHOLD
    history_match: HistoryMatchStrategy = DEFAULT_HISTORY_MATCH
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    log_level: str = "WARNING"
    log_format: str = "console"

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def parse_confidence_threshold(value: str | Decimal | float) -> Decimal:
    """Parse a confidence threshold in [0, 1]."""
    try:
        threshold = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid confidence threshold '{value}'")
    if threshold < 0 or threshold > 1:
        raise ValidationError(f"Confidence threshold must be between 0 and 1, got {value}")
    return threshold


def parse_history_match(value: str) -> HistoryMatchStrategy:
    """Parse a history match strategy name."""
    try:
        return HistoryMatchStrategy(value.strip().lower())
    except ValueError:
        choices = ", ".join(s.value for s in HistoryMatchStrategy)
        raise ValidationError(f"Unknown history match strategy '{value}' (expected one of: {choices})")


def load_settings(environ: Optional[dict[str, str]] = None) -> Settings:
    """Build settings from BUDGETKIT_* environment variables.

    Args:
        environ: Mapping to read instead of os.environ (used by tests)

    Returns:
        Settings instance

    Raises:
        ValidationError: If a variable holds an invalid value
    """
    env = os.environ if environ is None else environ

    threshold = DEFAULT_CONFIDENCE_THRESHOLD
    if env.get("BUDGETKIT_CONFIDENCE_THRESHOLD"):
        threshold = parse_confidence_threshold(env["BUDGETKIT_CONFIDENCE_THRESHOLD"])

    history_match = DEFAULT_HISTORY_MATCH
    if env.get("BUDGETKIT_HISTORY_MATCH"):
        history_match = parse_history_match(env["BUDGETKIT_HISTORY_MATCH"])

    retry_attempts = DEFAULT_RETRY_ATTEMPTS
    if env.get("BUDGETKIT_LEDGER_RETRY_ATTEMPTS"):
        try:
            retry_attempts = int(env["BUDGETKIT_LEDGER_RETRY_ATTEMPTS"])
        except ValueError:
            raise ValidationError("BUDGETKIT_LEDGER_RETRY_ATTEMPTS must be an integer")
        if retry_attempts < 1:
            raise ValidationError("BUDGETKIT_LEDGER_RETRY_ATTEMPTS must be at least 1")

    log_format = env.get("BUDGETKIT_LOG_FORMAT", "console").lower()
    if log_format not in ("console", "json"):
        raise ValidationError(f"Unknown log format '{log_format}'")

    return Settings(
        database_path=env.get("BUDGETKIT_DB_PATH") or None,
        confidence_threshold=threshold,
        history_match=history_match,
        retry_attempts=retry_attempts,
        log_level=env.get("BUDGETKIT_LOG_LEVEL", "WARNING").upper(),
        log_format=log_format,
    )
