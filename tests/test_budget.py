"""Tests for budget periods and the budget ledger."""

import pytest
from datetime import date
from decimal import Decimal

from budgetkit.domain.entities import AnalyticType, BudgetStatus, DocumentKind
from budgetkit.domain.errors import NotFoundError, ValidationError


def budget_line(budget, analytic_id):
    line = budget.line_for(analytic_id)
    assert line is not None
    return line


class TestBudgetService:
    """Tests for BudgetService lifecycle."""

    def test_create_budget(self, budget_service, master_data):
        budget_id = budget_service.create_budget(
            name="Festive 2026",
            start_date=date(2026, 10, 1),
            end_date=date(2026, 12, 31),
            lines=[(master_data["deepawali"], Decimal("280000"))],
        )
        budget = budget_service.get_budget(budget_id)
        assert budget.status == BudgetStatus.DRAFT
        assert len(budget.lines) == 1
        assert budget.lines[0].budgeted_amount == Decimal("280000.00")
        assert budget.lines[0].achieved_amount == Decimal("0.00")

    def test_create_budget_inverted_dates(self, budget_service):
        with pytest.raises(ValidationError):
            budget_service.create_budget(name="Bad", start_date=date(2026, 12, 1), end_date=date(2026, 1, 1))

    def test_create_budget_duplicate_analytic(self, budget_service, master_data):
        with pytest.raises(ValidationError, match="more than once"):
            budget_service.create_budget(
                name="Dup",
                start_date=date(2026, 1, 1),
                end_date=date(2026, 12, 31),
                lines=[(master_data["office"], Decimal("10")), (master_data["office"], Decimal("20"))],
            )

    def test_create_budget_negative_amount(self, budget_service, master_data):
        with pytest.raises(ValidationError):
            budget_service.create_budget(
                name="Neg",
                start_date=date(2026, 1, 1),
                end_date=date(2026, 12, 31),
                lines=[(master_data["office"], Decimal("-10"))],
            )

    def test_create_budget_archived_analytic(self, budget_service, analytic_service, master_data):
        analytic_service.archive_analytic(master_data["office"])
        with pytest.raises(ValidationError, match="archived"):
            budget_service.create_budget(
                name="Old",
                start_date=date(2026, 1, 1),
                end_date=date(2026, 12, 31),
                lines=[(master_data["office"], Decimal("10"))],
            )

    def test_confirm_requires_lines(self, budget_service):
        budget_id = budget_service.create_budget(name="Empty", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31))
        with pytest.raises(ValidationError, match="without lines"):
            budget_service.confirm_budget(budget_id)
        assert budget_service.get_budget(budget_id).status == BudgetStatus.DRAFT

    def test_update_draft_replaces_lines(self, budget_service, master_data):
        budget_id = budget_service.create_budget(
            name="FY",
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 31),
            lines=[(master_data["office"], Decimal("1000"))],
        )
        budget_service.update_budget(
            budget_id,
            name="FY 2026",
            lines=[(master_data["office"], Decimal("1500")), (master_data["deepawali"], Decimal("200"))],
        )
        budget = budget_service.get_budget(budget_id)
        assert budget.name == "FY 2026"
        assert [(line.analytic_id, line.budgeted_amount) for line in budget.lines] == [
            (master_data["office"], Decimal("1500.00")),
            (master_data["deepawali"], Decimal("200.00")),
        ]

    def test_confirmed_budget_is_read_only(self, budget_service, confirmed_budget):
        with pytest.raises(ValidationError, match="edit"):
            budget_service.update_budget(confirmed_budget.id, name="Changed")

    def test_status_transitions(self, budget_service, confirmed_budget):
        budget_service.set_status(confirmed_budget.id, BudgetStatus.CANCELLED)
        assert budget_service.get_budget(confirmed_budget.id).status == BudgetStatus.CANCELLED

        with pytest.raises(ValidationError):
            budget_service.set_status(confirmed_budget.id, "archived")

    def test_set_status_confirmed_on_draft_confirms(self, budget_service, master_data):
        budget_id = budget_service.create_budget(
            name="FY",
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 31),
            lines=[(master_data["office"], Decimal("1000"))],
        )
        budget_service.set_status(budget_id, "confirmed")
        assert budget_service.get_budget(budget_id).status == BudgetStatus.CONFIRMED

    def test_missing_budget(self, budget_service):
        with pytest.raises(NotFoundError):
            budget_service.confirm_budget(404)

    def test_revise_budget(self, budget_service, confirmed_budget, make_document, master_data):
        make_document(master_data["azure"], 16350, master_data["deepawali"])

        revision_id = budget_service.revise_budget(confirmed_budget.id, on=date(2026, 10, 16))

        original = budget_service.get_budget(confirmed_budget.id)
        revision = budget_service.get_budget(revision_id)
        assert original.status == BudgetStatus.REVISED
        assert original.revised_budget_id == revision_id
        assert revision.name == "Festive 2026 (Rev 16 10 2026)"
        assert revision.status == BudgetStatus.DRAFT
        assert revision.is_revised
        assert revision.original_budget_id == confirmed_budget.id
        deepawali = budget_line(revision, master_data["deepawali"])
        assert deepawali.budgeted_amount == Decimal("280000.00")
        assert deepawali.achieved_amount == Decimal("16350.00")

    def test_revise_only_once(self, budget_service, confirmed_budget):
        budget_service.revise_budget(confirmed_budget.id, on=date(2026, 10, 16))
        with pytest.raises(ValidationError, match="revise"):
            budget_service.revise_budget(confirmed_budget.id)

    def test_revise_draft_fails(self, budget_service, master_data):
        budget_id = budget_service.create_budget(name="FY", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31))
        with pytest.raises(ValidationError):
            budget_service.revise_budget(budget_id)

    def test_revised_budget_can_only_be_archived(self, budget_service, confirmed_budget):
        budget_service.revise_budget(confirmed_budget.id, on=date(2026, 10, 16))
        with pytest.raises(ValidationError):
            budget_service.set_status(confirmed_budget.id, "cancelled")
        budget_service.set_status(confirmed_budget.id, "archived")
        assert budget_service.get_budget(confirmed_budget.id).status == BudgetStatus.ARCHIVED

    def test_delete_draft_budget(self, budget_service, master_data):
        budget_id = budget_service.create_budget(name="FY", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31))
        budget_service.delete_budget(budget_id)
        assert budget_service.get_budget(budget_id) is None

    def test_delete_confirmed_budget_fails(self, budget_service, confirmed_budget):
        with pytest.raises(ValidationError, match="delete"):
            budget_service.delete_budget(confirmed_budget.id)
        assert budget_service.get_budget(confirmed_budget.id).status == BudgetStatus.CONFIRMED

    def test_delete_revision_restores_original(self, budget_service, confirmed_budget, make_document, master_data):
        revision_id = budget_service.revise_budget(confirmed_budget.id, on=date(2026, 10, 16))
        # Confirmed while the original is revised, so no budget counts it yet
        make_document(master_data["azure"], 1000, master_data["deepawali"])

        budget_service.delete_budget(revision_id)

        original = budget_service.get_budget(confirmed_budget.id)
        assert budget_service.get_budget(revision_id) is None
        assert original.status == BudgetStatus.CONFIRMED
        assert original.revised_budget_id is None
        assert budget_line(original, master_data["deepawali"]).achieved_amount == Decimal("1000.00")

    def test_lines_carry_analytic_type(self, budget_service, master_data):
        budget_id = budget_service.create_budget(
            name="FY",
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 31),
            lines=[(master_data["office"], Decimal("10")), (master_data["sales"], Decimal("20"))],
        )
        budget = budget_service.get_budget(budget_id)
        assert budget_line(budget, master_data["office"]).type == AnalyticType.EXPENSE
        assert budget_line(budget, master_data["sales"]).type == AnalyticType.INCOME


class TestBudgetLedger:
    """Tests for achieved amounts and budget checks."""

    def test_deepawali_metrics(self, budget_service, confirmed_budget, make_document, master_data):
        """280000 budgeted, 16350 achieved: 5.84% achieved, 263650 to achieve."""
        make_document(master_data["azure"], 16350, master_data["deepawali"])

        line = budget_line(budget_service.get_budget(confirmed_budget.id), master_data["deepawali"])
        assert line.achieved_amount == Decimal("16350.00")
        assert line.achieved_percent == Decimal("5.84")
        assert line.amount_to_achieve == Decimal("263650.00")
        assert line.remaining == Decimal("263650.00")

    def test_zero_budget_has_no_percent(self, budget_service, master_data):
        budget_id = budget_service.create_budget(
            name="Zero", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31),
            lines=[(master_data["office"], Decimal("0"))],
        )
        line = budget_line(budget_service.get_budget(budget_id), master_data["office"])
        assert line.achieved_percent is None

    def test_draft_documents_do_not_count(self, budget_service, confirmed_budget, make_document, master_data):
        make_document(master_data["azure"], 16350, master_data["deepawali"], confirm=False)
        line = budget_line(budget_service.get_budget(confirmed_budget.id), master_data["deepawali"])
        assert line.achieved_amount == Decimal("0.00")

    def test_documents_outside_period_do_not_count(self, budget_service, confirmed_budget, make_document, master_data):
        make_document(master_data["azure"], 500, master_data["deepawali"], document_date=date(2027, 1, 5))
        line = budget_line(budget_service.get_budget(confirmed_budget.id), master_data["deepawali"])
        assert line.achieved_amount == Decimal("0.00")

    def test_cancel_reverses_achievement(
        self, budget_service, document_service, confirmed_budget, make_document, master_data
    ):
        bill = make_document(master_data["azure"], 16350, master_data["deepawali"])
        document_service.cancel(bill.id)

        line = budget_line(budget_service.get_budget(confirmed_budget.id), master_data["deepawali"])
        assert line.achieved_amount == Decimal("0.00")

    def test_confirm_budget_recomputes_from_confirmed_documents(self, budget_service, make_document, master_data):
        make_document(master_data["azure"], 1000, master_data["office"])
        make_document(master_data["azure"], 250, master_data["office"])
        make_document(master_data["azure"], 999, master_data["office"], confirm=False)

        budget_id = budget_service.create_budget(
            name="Q4", start_date=date(2026, 10, 1), end_date=date(2026, 12, 31),
            lines=[(master_data["office"], Decimal("5000"))],
        )
        budget_service.confirm_budget(budget_id)

        line = budget_line(budget_service.get_budget(budget_id), master_data["office"])
        assert line.achieved_amount == Decimal("1250.00")

    def test_every_covering_budget_is_updated(self, budget_service, confirmed_budget, make_document, master_data):
        yearly = budget_service.create_budget(
            name="FY 2026", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31),
            lines=[(master_data["deepawali"], Decimal("500000"))],
        )
        budget_service.confirm_budget(yearly)

        make_document(master_data["azure"], 1000, master_data["deepawali"])

        for budget_id in (confirmed_budget.id, yearly):
            line = budget_line(budget_service.get_budget(budget_id), master_data["deepawali"])
            assert line.achieved_amount == Decimal("1000.00")

    def test_bill_from_order_is_not_counted_twice(
        self, budget_service, document_service, confirmed_budget, make_document, master_data
    ):
        order = make_document(master_data["azure"], 4000, master_data["marriage"], kind=DocumentKind.PURCHASE_ORDER)
        bill_id = document_service.create_bill_from_purchase_order(order.id, bill_date=date(2026, 10, 20))
        document_service.confirm(bill_id)

        line = budget_line(budget_service.get_budget(confirmed_budget.id), master_data["marriage"])
        assert line.achieved_amount == Decimal("4000.00")

    def test_check_budget(self, ledger, confirmed_budget, make_document, master_data):
        make_document(master_data["azure"], 45000, master_data["marriage"])

        fits = ledger.check_budget(master_data["marriage"], confirmed_budget.id, Decimal("5000"))
        assert fits.remaining == Decimal("5000.00")
        assert fits.exceeds is False

        over = ledger.check_budget(master_data["marriage"], confirmed_budget.id, Decimal("5000.01"))
        assert over.exceeds is True

    def test_check_budget_is_idempotent(self, ledger, budget_service, confirmed_budget, master_data):
        first = ledger.check_budget(master_data["deepawali"], confirmed_budget.id, Decimal("1000"))
        second = ledger.check_budget(master_data["deepawali"], confirmed_budget.id, Decimal("1000"))

        assert first == second
        line = budget_line(budget_service.get_budget(confirmed_budget.id), master_data["deepawali"])
        assert line.achieved_amount == Decimal("0.00")

    def test_check_budget_unknown_line_never_raises(self, ledger, confirmed_budget, master_data):
        result = ledger.check_budget(master_data["office"], confirmed_budget.id, Decimal("1"))
        assert result.remaining == Decimal("0.00")
        assert result.exceeds is True

        missing = ledger.check_budget(master_data["office"], 999, Decimal("0"))
        assert missing.exceeds is False

    def test_check_line_uses_covering_budget(self, ledger, confirmed_budget, master_data):
        assert ledger.check_line(master_data["deepawali"], date(2026, 11, 1), Decimal("1")).budget_id == confirmed_budget.id
        assert ledger.check_line(master_data["deepawali"], date(2027, 1, 1), Decimal("1")) is None
        assert ledger.check_line(master_data["office"], date(2026, 11, 1), Decimal("1")) is None

    def test_record_achievement(self, ledger, budget_service, confirmed_budget, master_data):
        assert ledger.record_achievement(master_data["marriage"], confirmed_budget.id, Decimal("100")) == Decimal("100.00")
        assert ledger.record_achievement(master_data["marriage"], confirmed_budget.id, Decimal("50.5")) == Decimal("150.50")

        line = budget_line(budget_service.get_budget(confirmed_budget.id), master_data["marriage"])
        assert line.achieved_amount == Decimal("150.50")

    def test_record_achievement_missing_line(self, ledger, confirmed_budget, master_data):
        with pytest.raises(NotFoundError):
            ledger.record_achievement(master_data["office"], confirmed_budget.id, Decimal("1"))

    def test_analytic_details(self, budget_service, confirmed_budget, make_document, master_data):
        bill = make_document(master_data["azure"], 16350, master_data["deepawali"])
        make_document(master_data["gemini"], 700, master_data["marriage"])

        details = budget_service.analytic_details(confirmed_budget.id, master_data["deepawali"])

        assert details.analytic.name == "Deepawali"
        assert details.line.achieved_amount == Decimal("16350.00")
        assert [c.document_no for c in details.contributing_lines] == [bill.document_no]
        assert details.contributing_lines[0].line_total == Decimal("16350.00")

    def test_analytic_details_missing_line(self, budget_service, confirmed_budget, master_data):
        with pytest.raises(NotFoundError):
            budget_service.analytic_details(confirmed_budget.id, master_data["office"])
