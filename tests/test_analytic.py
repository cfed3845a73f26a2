"""Tests for the analytic catalog."""

import pytest
from datetime import date
from decimal import Decimal

from budgetkit.domain.entities import AnalyticType, RecordStatus
from budgetkit.domain.errors import ConflictError, DependencyError, NotFoundError, ValidationError


class TestAnalyticService:
    """Tests for AnalyticService."""

    def test_create_analytic(self, analytic_service):
        """Test creating an analytic with defaults."""
        analytic_id = analytic_service.create_analytic(name="Deepawali")

        analytic = analytic_service.get_analytic(analytic_id)
        assert analytic is not None
        assert analytic.name == "Deepawali"
        assert analytic.analytic_type == AnalyticType.EXPENSE
        assert analytic.status == RecordStatus.NEW
        assert analytic.start_date is None

    def test_create_analytic_with_dates(self, analytic_service):
        """Test creating an analytic with a date range and income type."""
        analytic_id = analytic_service.create_analytic(
            name="Festive Sales",
            analytic_type="income",
            start_date=date(2026, 10, 1),
            end_date=date(2026, 11, 15),
        )
        analytic = analytic_service.get_analytic(analytic_id)
        assert analytic.analytic_type == AnalyticType.INCOME
        assert analytic.start_date == date(2026, 10, 1)
        assert analytic.end_date == date(2026, 11, 15)

    def test_create_duplicate_name(self, analytic_service):
        """Test that analytic names are unique."""
        analytic_service.create_analytic(name="Deepawali")
        with pytest.raises(ConflictError, match="already exists"):
            analytic_service.create_analytic(name="Deepawali")

    def test_create_empty_name(self, analytic_service):
        """Test that an empty name is rejected."""
        with pytest.raises(ValidationError):
            analytic_service.create_analytic(name="   ")

    def test_create_inverted_dates(self, analytic_service):
        """Test that end before start is rejected."""
        with pytest.raises(ValidationError, match="End date"):
            analytic_service.create_analytic(
                name="Backwards", start_date=date(2026, 5, 1), end_date=date(2026, 4, 1)
            )

    def test_create_unknown_type(self, analytic_service):
        """Test that unknown analytic types are rejected."""
        with pytest.raises(ValidationError, match="income or expense"):
            analytic_service.create_analytic(name="Odd", analytic_type="asset")

    def test_create_unknown_category(self, analytic_service):
        """Test that a missing product category is reported."""
        with pytest.raises(NotFoundError):
            analytic_service.create_analytic(name="Odd", product_category_id=999)

    def test_list_analytics_sorted_and_filtered(self, analytic_service):
        """Test listing with search and status filters."""
        analytic_service.create_analytic(name="Office Setup")
        deepawali = analytic_service.create_analytic(name="Deepawali")
        analytic_service.confirm_analytic(deepawali)

        names = [a.name for a in analytic_service.list_analytics()]
        assert names == ["Deepawali", "Office Setup"]

        confirmed = analytic_service.list_analytics(status="confirmed")
        assert [a.id for a in confirmed] == [deepawali]

        assert [a.name for a in analytic_service.list_analytics(search="office")] == ["Office Setup"]

    def test_list_analytics_date_range_overlap(self, analytic_service):
        """Test that date-range listing returns overlapping and open-ended analytics."""
        analytic_service.create_analytic(name="Open Ended")
        analytic_service.create_analytic(
            name="Deepawali", start_date=date(2026, 10, 1), end_date=date(2026, 11, 15)
        )
        analytic_service.create_analytic(
            name="Summer", start_date=date(2026, 4, 1), end_date=date(2026, 6, 30)
        )
        archived = analytic_service.create_analytic(name="Old")
        analytic_service.archive_analytic(archived)

        result = analytic_service.list_analytics(
            status="new", start_date=date(2026, 11, 1), end_date=date(2026, 11, 30)
        )
        assert sorted(a.name for a in result) == ["Deepawali", "Open Ended"]

    def test_list_analytics_date_range_inverted(self, analytic_service):
        """Test that an inverted range is rejected."""
        with pytest.raises(ValidationError):
            analytic_service.list_analytics(start_date=date(2026, 12, 1), end_date=date(2026, 1, 1))

    def test_update_analytic(self, analytic_service):
        """Test updating name and clearing dates."""
        analytic_id = analytic_service.create_analytic(
            name="Deepawali", start_date=date(2026, 10, 1), end_date=date(2026, 11, 15)
        )
        analytic_service.update_analytic(analytic_id, name="Diwali", start_date=None, end_date=None)

        analytic = analytic_service.get_analytic(analytic_id)
        assert analytic.name == "Diwali"
        assert analytic.start_date is None
        assert analytic.end_date is None

    def test_update_to_taken_name(self, analytic_service):
        """Test that renaming to an existing name fails."""
        analytic_service.create_analytic(name="Deepawali")
        other = analytic_service.create_analytic(name="Office Setup")
        with pytest.raises(ConflictError):
            analytic_service.update_analytic(other, name="Deepawali")

    def test_update_inverted_dates(self, analytic_service):
        """Test that an update producing an inverted range fails."""
        analytic_id = analytic_service.create_analytic(name="Deepawali", start_date=date(2026, 10, 1))
        with pytest.raises(ValidationError):
            analytic_service.update_analytic(analytic_id, end_date=date(2026, 9, 1))

    def test_archive_and_unarchive(self, analytic_service):
        """Test the archive round trip; unarchive restores status new."""
        analytic_id = analytic_service.create_analytic(name="Deepawali")
        analytic_service.confirm_analytic(analytic_id)
        analytic_service.archive_analytic(analytic_id)
        assert analytic_service.get_analytic(analytic_id).is_archived

        analytic_service.unarchive_analytic(analytic_id)
        assert analytic_service.get_analytic(analytic_id).status == RecordStatus.NEW

    def test_unarchive_active_analytic(self, analytic_service):
        """Test that unarchiving an active analytic fails."""
        analytic_id = analytic_service.create_analytic(name="Deepawali")
        with pytest.raises(ValidationError, match="not archived"):
            analytic_service.unarchive_analytic(analytic_id)

    def test_confirm_archived_analytic(self, analytic_service):
        """Test that an archived analytic cannot be confirmed."""
        analytic_id = analytic_service.create_analytic(name="Deepawali")
        analytic_service.archive_analytic(analytic_id)
        with pytest.raises(ValidationError, match="archived"):
            analytic_service.confirm_analytic(analytic_id)

    def test_require_assignable(self, analytic_service):
        """Test that archived analytics are not assignable."""
        analytic_id = analytic_service.create_analytic(name="Deepawali")
        assert analytic_service.require_assignable(analytic_id).id == analytic_id
        analytic_service.archive_analytic(analytic_id)
        with pytest.raises(ValidationError):
            analytic_service.require_assignable(analytic_id)

    def test_delete_unreferenced_analytic(self, analytic_service, rule_service, master_data):
        """Test permanent deletion removes rules targeting the analytic."""
        analytic_id = analytic_service.create_analytic(name="Temporary")
        rule_id = rule_service.create_rule(
            name="Temp rule", analytic_id=analytic_id, partner_id=master_data["azure"], product_id=master_data["chair"]
        )

        analytic_service.delete_analytic_permanently(analytic_id)

        assert analytic_service.get_analytic(analytic_id) is None
        assert rule_service.get_rule(rule_id) is None

    def test_delete_blocked_by_budget_line(self, analytic_service, budget_service, master_data):
        """Test that budget line references block permanent deletion."""
        budget_service.create_budget(
            name="FY", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31),
            lines=[(master_data["office"], Decimal("1000"))],
        )
        with pytest.raises(DependencyError, match="1 budget line"):
            analytic_service.delete_analytic_permanently(master_data["office"])

    def test_delete_blocked_by_document_line(self, analytic_service, make_document, master_data):
        """Test that document line references block permanent deletion."""
        make_document(master_data["azure"], 500, analytic_id=master_data["office"], confirm=False)
        with pytest.raises(DependencyError, match="document line"):
            analytic_service.delete_analytic_permanently(master_data["office"])
        assert analytic_service.get_analytic(master_data["office"]) is not None

    def test_delete_missing_analytic(self, analytic_service):
        """Test deleting a missing analytic."""
        with pytest.raises(NotFoundError):
            analytic_service.delete_analytic_permanently(42)
