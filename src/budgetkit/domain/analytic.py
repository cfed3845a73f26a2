"""Analytic catalog domain service."""

from datetime import date
from typing import Any, Optional
from budgetkit.database.base import Database
from budgetkit.domain.entities import Analytic, AnalyticType, RecordStatus
from budgetkit.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    analytic_archived,
    analytic_delete_blocked,
    duplicate_name,
    invalid_date_range,
    not_found,
)
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)

_UNSET = object()


class AnalyticService:
    """Service for managing budget analytics."""

    def __init__(self, db: Database):
        """Initialize analytic service.

        Args:
            db: Database instance
        """
        self.db = db

    def _check_category(self, product_category_id: Optional[int]) -> None:
        if product_category_id is not None and self.db.get_product_category(product_category_id) is None:
            raise NotFoundError(not_found("Product category", product_category_id))

    def create_analytic(
        self,
        name: str,
        analytic_type: AnalyticType | str = AnalyticType.EXPENSE,
        description: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        product_category_id: Optional[int] = None,
    ) -> int:
        """Create an analytic.

        Args:
            name: Unique analytic name (e.g., "Deepawali")
            analytic_type: income or expense
            description: Optional description
            start_date: Optional start of the analytic's validity
            end_date: Optional end; must not precede start_date
            product_category_id: Optional product category reference

        Returns:
            Analytic ID

        Raises:
            ValidationError: If name is empty, type unknown or dates inverted
            ConflictError: If the name is already used
            NotFoundError: If the product category does not exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Analytic name is required")
        try:
            analytic_type = AnalyticType(analytic_type)
        except ValueError:
            raise ValidationError(f"Unknown analytic type '{analytic_type}' (expected income or expense)")
        if start_date is not None and end_date is not None and end_date < start_date:
            raise ValidationError(invalid_date_range())
        if self.db.get_analytic_by_name(name) is not None:
            raise ConflictError(duplicate_name("Analytic", name))
        self._check_category(product_category_id)

        analytic_id = self.db.create_analytic(
            name=name,
            analytic_type=analytic_type.value,
            description=description,
            start_date=start_date,
            end_date=end_date,
            product_category_id=product_category_id,
        )
        logger.info("analytic_created", analytic_id=analytic_id, name=name)
        return analytic_id

    def get_analytic(self, analytic_id: int) -> Optional[Analytic]:
        """Get analytic by ID.

        Args:
            analytic_id: Analytic ID

        Returns:
            Analytic entity or None if not found
        """
        return self.db.get_analytic(analytic_id)

    def get_analytic_by_name(self, name: str) -> Optional[Analytic]:
        return self.db.get_analytic_by_name(name)

    def require_analytic(self, analytic_id: int) -> Analytic:
        """Get analytic by ID, raising NotFoundError when missing."""
        analytic = self.db.get_analytic(analytic_id)
        if analytic is None:
            raise NotFoundError(not_found("Analytic", analytic_id))
        return analytic

    def require_assignable(self, analytic_id: int) -> Analytic:
        """Get an analytic that may be assigned to a new line.

        Raises:
            NotFoundError: If the analytic does not exist
            ValidationError: If the analytic is archived
        """
        analytic = self.require_analytic(analytic_id)
        if analytic.is_archived:
            raise ValidationError(analytic_archived(analytic_id))
        return analytic

    def list_analytics(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Analytic]:
        """List analytics.

        Args:
            status: Optional status filter (new, confirmed, archived)
            search: Optional case-insensitive name substring
            start_date: With end_date, only analytics overlapping this range
            end_date: See start_date

        Returns:
            List of analytics sorted by name
        """
        if status is not None:
            status = RecordStatus(status).value
        overlapping = None
        if start_date is not None or end_date is not None:
            start = start_date or date.min
            end = end_date or date.max
            if end < start:
                raise ValidationError(invalid_date_range())
            overlapping = (start, end)
        return self.db.list_analytics(status=status, search=search, overlapping=overlapping)

    def update_analytic(
        self,
        analytic_id: int,
        name: Optional[str] = None,
        analytic_type: Optional[AnalyticType | str] = None,
        description: Optional[str] = None,
        start_date: Any = _UNSET,
        end_date: Any = _UNSET,
        product_category_id: Any = _UNSET,
    ) -> None:
        """Update an analytic.

        Name, type and description change when not None. Dates and category
        change when passed at all, so None clears them.

        Raises:
            NotFoundError: If the analytic or category does not exist
            ValidationError: If a value is invalid
            ConflictError: If the new name is taken
        """
        analytic = self.require_analytic(analytic_id)
        changes: dict = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Analytic name is required")
            other = self.db.get_analytic_by_name(name)
            if other is not None and other.id != analytic_id:
                raise ConflictError(duplicate_name("Analytic", name))
            changes["name"] = name
        if analytic_type is not None:
            try:
                changes["analytic_type"] = AnalyticType(analytic_type).value
            except ValueError:
                raise ValidationError(f"Unknown analytic type '{analytic_type}' (expected income or expense)")
        if description is not None:
            changes["description"] = description
        if start_date is not _UNSET:
            changes["start_date"] = start_date
        if end_date is not _UNSET:
            changes["end_date"] = end_date
        if product_category_id is not _UNSET:
            self._check_category(product_category_id)
            changes["product_category_id"] = product_category_id

        new_start = changes.get("start_date", analytic.start_date)
        new_end = changes.get("end_date", analytic.end_date)
        if new_start is not None and new_end is not None and new_end < new_start:
            raise ValidationError(invalid_date_range())

        if changes:
            self.db.update_analytic(analytic_id, changes)

    def confirm_analytic(self, analytic_id: int) -> None:
        """Mark an analytic as confirmed."""
        analytic = self.require_analytic(analytic_id)
        if analytic.is_archived:
            raise ValidationError(analytic_archived(analytic_id))
        self.db.update_analytic(analytic_id, {"status": RecordStatus.CONFIRMED.value})

    def archive_analytic(self, analytic_id: int) -> None:
        """Archive an analytic.

        Existing document and budget lines keep their reference; the analytic
        can no longer be assigned to new lines.
        """
        self.require_analytic(analytic_id)
        self.db.update_analytic(analytic_id, {"status": RecordStatus.ARCHIVED.value})
        logger.info("analytic_archived", analytic_id=analytic_id)

    def unarchive_analytic(self, analytic_id: int) -> None:
        """Restore an archived analytic to status new.

        Raises:
            NotFoundError: If the analytic does not exist
            ValidationError: If it is not archived
        """
        analytic = self.require_analytic(analytic_id)
        if not analytic.is_archived:
            raise ValidationError(f"Analytic {analytic_id} is not archived")
        self.db.update_analytic(analytic_id, {"status": RecordStatus.NEW.value})
        logger.info("analytic_unarchived", analytic_id=analytic_id)

    def delete_analytic_permanently(self, analytic_id: int) -> None:
        """Irrecoverably delete an analytic.

        Rules targeting the analytic are deleted with it.

        Raises:
            NotFoundError: If the analytic does not exist
            DependencyError: If document lines or budget lines reference it
        """
        self.require_analytic(analytic_id)
        document_lines, budget_lines = self.db.count_analytic_references(analytic_id)
        if document_lines or budget_lines:
            raise DependencyError(analytic_delete_blocked(analytic_id, document_lines, budget_lines))
        self.db.delete_analytic(analytic_id)
        logger.info("analytic_deleted", analytic_id=analytic_id)
