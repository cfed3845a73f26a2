"""Budget periods and the budget ledger."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence
from budgetkit.database.base import Database
from budgetkit.database.concurrency import run_with_retry
from budgetkit.domain.analytic import AnalyticService
from budgetkit.domain.entities import (
    AnalyticDetails,
    BudgetCheck,
    BudgetLine,
    BudgetPeriod,
    BudgetStatus,
    FinancialDocument,
    money,
)
from budgetkit.domain.errors import (
    NotFoundError,
    ValidationError,
    invalid_date_range,
    invalid_transition,
    not_found,
)
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)

# Allowed manual status changes; revise has its own operation
BUDGET_TRANSITIONS: dict[BudgetStatus, set[BudgetStatus]] = {
    BudgetStatus.DRAFT: {BudgetStatus.CONFIRMED, BudgetStatus.CANCELLED, BudgetStatus.ARCHIVED},
    BudgetStatus.CONFIRMED: {BudgetStatus.CANCELLED, BudgetStatus.ARCHIVED},
    BudgetStatus.REVISED: {BudgetStatus.ARCHIVED},
    BudgetStatus.ARCHIVED: set(),
    BudgetStatus.CANCELLED: set(),
}


class BudgetLedger:
    """Budgeted vs. achieved amounts per analytic and budget period.

    Achieved amounts change only when documents are confirmed or cancelled,
    never on draft save. Writes lock the budget line and rely on its version
    column, so concurrent confirmations cannot lose an update.
    """

    def __init__(self, db: Database, retry_attempts: int = 3):
        """Initialize ledger.

        Args:
            db: Database instance
            retry_attempts: Attempts for concurrent update retries
        """
        self.db = db
        self.retry_attempts = retry_attempts

    def check_budget(self, analytic_id: int, budget_id: int, proposed_amount: Decimal) -> BudgetCheck:
        """Compare a proposed amount with the remaining budget.

        Never raises for unknown budgets or lines: remaining is then zero and
        any positive amount exceeds it.

        Args:
            analytic_id: Analytic of the line
            budget_id: Budget period
            proposed_amount: Amount the line would add

        Returns:
            BudgetCheck with remaining amount and exceeds flag
        """
        proposed = money(proposed_amount)
        budget = self.db.get_budget(budget_id)
        line = budget.line_for(analytic_id) if budget is not None else None
        remaining = line.remaining if line is not None else money(0)
        return BudgetCheck(
            budget_id=budget_id,
            analytic_id=analytic_id,
            remaining=remaining,
            exceeds=proposed > remaining,
        )

    def budget_for_date(self, on: date) -> Optional[BudgetPeriod]:
        """Most recent confirmed budget whose range contains a date."""
        budgets = self.db.find_budgets_covering(on, BudgetStatus.CONFIRMED.value)
        if not budgets:
            return None
        return max(budgets, key=lambda b: b.id)

    def check_line(self, analytic_id: int, on: date, proposed_amount: Decimal) -> Optional[BudgetCheck]:
        """Check a line against the confirmed budget covering its document date.

        Returns:
            BudgetCheck, or None when no confirmed budget covers the date or
            the budget has no line for the analytic
        """
        budget = self.budget_for_date(on)
        if budget is None or budget.line_for(analytic_id) is None:
            return None
        return self.check_budget(analytic_id, budget.id, proposed_amount)

    def _add_achievement(self, budget_id: int, analytic_id: int, amount: Decimal) -> Decimal:
        line = self.db.get_budget_line(budget_id, analytic_id, for_update=True)
        if line is None:
            raise NotFoundError(f"Budget {budget_id} has no line for analytic {analytic_id}")
        achieved = money(line.achieved_amount + amount)
        self.db.set_budget_line_achieved(line.id, achieved)
        return achieved

    def record_achievement(self, analytic_id: int, budget_id: int, amount: Decimal) -> Decimal:
        """Add an amount to a budget line's achieved total.

        Runs in its own transaction with retries; do not call it from inside
        another transaction.

        Returns:
            New achieved amount

        Raises:
            NotFoundError: If the budget has no line for the analytic
            ConflictError: If concurrent updates keep winning the race
        """
        amount = money(amount)

        def attempt() -> Decimal:
            with self.db.transaction():
                return self._add_achievement(budget_id, analytic_id, amount)

        achieved = run_with_retry(
            self.db, attempt, attempts=self.retry_attempts, operation="record_achievement"
        )
        logger.info(
            "achievement_recorded",
            budget_id=budget_id,
            analytic_id=analytic_id,
            amount=str(amount),
            achieved=str(achieved),
        )
        return achieved

    def apply_document(self, document: FinancialDocument, sign: int = 1) -> dict[int, bool]:
        """Add (sign=1) or remove (sign=-1) a document's line totals.

        Joins the caller's transaction. Every affected budget line is locked
        before anything is written, and on confirmation the exceeds-budget
        flags are judged against those locked lines, so the check and the
        write see the same remaining amount. Bills and invoices generated from
        an order are skipped since the order already counted.

        Returns:
            Exceeds-budget flag per document line ID, judged against the most
            recent confirmed budget covering the document date. Empty for
            reversals and skipped documents.
        """
        if document.source_document_id is not None:
            return {}

        totals: dict[int, Decimal] = defaultdict(Decimal)
        for line in document.lines:
            if line.analytic_id is not None:
                totals[line.analytic_id] += line.line_total
        if not totals:
            return {}

        budgets = self.db.find_budgets_covering(document.document_date, BudgetStatus.CONFIRMED.value)
        locked: dict[tuple[int, int], BudgetLine] = {}
        for budget in budgets:
            for analytic_id in totals:
                if budget.line_for(analytic_id) is None:
                    continue
                line = self.db.get_budget_line(budget.id, analytic_id, for_update=True)
                if line is not None:
                    locked[(budget.id, analytic_id)] = line

        flags: dict[int, bool] = {}
        if sign > 0 and budgets:
            newest = max(budgets, key=lambda b: b.id)
            running: dict[int, Decimal] = defaultdict(Decimal)
            for line in document.lines:
                budget_line = locked.get((newest.id, line.analytic_id)) if line.analytic_id is not None else None
                if budget_line is None:
                    flags[line.id] = False
                    continue
                running[line.analytic_id] += line.line_total
                flags[line.id] = running[line.analytic_id] > budget_line.remaining

        for (budget_id, analytic_id), line in locked.items():
            achieved = money(line.achieved_amount + totals[analytic_id] * sign)
            self.db.set_budget_line_achieved(line.id, achieved)
            logger.info(
                "achievement_recorded" if sign > 0 else "achievement_reversed",
                budget_id=budget_id,
                analytic_id=analytic_id,
                document_id=document.id,
                amount=str(totals[analytic_id]),
                achieved=str(achieved),
            )
        return flags

    def recompute(self, budget_id: int) -> None:
        """Rebuild achieved amounts from confirmed documents in the budget range.

        Joins the caller's transaction.
        """
        budget = self.db.get_budget(budget_id)
        if budget is None:
            raise NotFoundError(not_found("Budget", budget_id))
        for line in budget.lines:
            achieved = self.db.sum_confirmed_line_totals(line.analytic_id, budget.start_date, budget.end_date)
            locked = self.db.get_budget_line(budget_id, line.analytic_id, for_update=True)
            if locked is not None and locked.achieved_amount != achieved:
                self.db.set_budget_line_achieved(locked.id, achieved)


class BudgetService:
    """Service for managing budget periods."""

    def __init__(self, db: Database, ledger: Optional[BudgetLedger] = None):
        """Initialize budget service.

        Args:
            db: Database instance
            ledger: Budget ledger (built from db if omitted)
        """
        self.db = db
        self.ledger = ledger or BudgetLedger(db)
        self.analytics = AnalyticService(db)

    def _validate_lines(self, lines: Sequence[tuple[int, Decimal]]) -> list[tuple[int, Decimal]]:
        seen = set()
        result = []
        for analytic_id, amount in lines:
            self.analytics.require_assignable(analytic_id)
            if analytic_id in seen:
                raise ValidationError(f"Analytic {analytic_id} appears more than once in the budget")
            seen.add(analytic_id)
            budgeted = money(amount)
            if budgeted < 0:
                raise ValidationError("Budgeted amount must be zero or positive")
            result.append((analytic_id, budgeted))
        return result

    def require_budget(self, budget_id: int) -> BudgetPeriod:
        budget = self.db.get_budget(budget_id)
        if budget is None:
            raise NotFoundError(not_found("Budget", budget_id))
        return budget

    def create_budget(
        self,
        name: str,
        start_date: date,
        end_date: date,
        lines: Sequence[tuple[int, Decimal]] = (),
    ) -> int:
        """Create a draft budget period.

        Args:
            name: Budget name (e.g., "FY 2026")
            start_date: First day covered
            end_date: Last day covered
            lines: (analytic_id, budgeted_amount) pairs in display order

        Returns:
            Budget ID

        Raises:
            ValidationError: If the name is empty, dates are inverted, an
                analytic is archived or repeated, or an amount is negative
            NotFoundError: If an analytic does not exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Budget name is required")
        if end_date < start_date:
            raise ValidationError(invalid_date_range())
        checked = self._validate_lines(lines)

        budget_id = self.db.create_budget(
            name=name,
            start_date=start_date,
            end_date=end_date,
            lines=[(analytic_id, amount, money(0)) for analytic_id, amount in checked],
        )
        logger.info("budget_created", budget_id=budget_id, lines=len(checked))
        return budget_id

    def get_budget(self, budget_id: int) -> Optional[BudgetPeriod]:
        """Get budget by ID.

        Args:
            budget_id: Budget ID

        Returns:
            BudgetPeriod with lines, or None if not found
        """
        return self.db.get_budget(budget_id)

    def list_budgets(self, status: Optional[str] = None, search: Optional[str] = None) -> list[BudgetPeriod]:
        """List budgets, newest first, optionally filtered by status and name."""
        if status is not None:
            status = BudgetStatus(status).value
        return self.db.list_budgets(status=status, search=search)

    def update_budget(
        self,
        budget_id: int,
        name: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        lines: Optional[Sequence[tuple[int, Decimal]]] = None,
    ) -> None:
        """Edit a draft budget. `lines` replaces all lines when given.

        Raises:
            NotFoundError: If the budget or an analytic does not exist
            ValidationError: If the budget is not a draft or a value is invalid
        """
        budget = self.require_budget(budget_id)
        if budget.status != BudgetStatus.DRAFT:
            raise ValidationError(invalid_transition("budget", budget_id, budget.status.value, "edit"))

        changes: dict = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Budget name is required")
            changes["name"] = name
        if start_date is not None:
            changes["start_date"] = start_date
        if end_date is not None:
            changes["end_date"] = end_date
        if changes.get("end_date", budget.end_date) < changes.get("start_date", budget.start_date):
            raise ValidationError(invalid_date_range())
        checked = self._validate_lines(lines) if lines is not None else None

        with self.db.transaction():
            if changes:
                self.db.update_budget(budget_id, changes)
            if checked is not None:
                self.db.replace_budget_lines(budget_id, checked)

    def confirm_budget(self, budget_id: int) -> None:
        """Confirm a draft budget and compute achieved amounts from confirmed documents.

        Raises:
            NotFoundError: If the budget does not exist
            ValidationError: If it is not a draft or has no lines
        """
        budget = self.require_budget(budget_id)
        if budget.status != BudgetStatus.DRAFT:
            raise ValidationError(invalid_transition("budget", budget_id, budget.status.value, "confirm"))
        if not budget.lines:
            raise ValidationError("Cannot confirm a budget without lines")

        def attempt() -> None:
            with self.db.transaction():
                self.db.update_budget(budget_id, {"status": BudgetStatus.CONFIRMED.value})
                self.ledger.recompute(budget_id)

        run_with_retry(self.db, attempt, attempts=self.ledger.retry_attempts, operation="confirm_budget")
        logger.info("budget_confirmed", budget_id=budget_id)

    def set_status(self, budget_id: int, status: BudgetStatus | str) -> None:
        """Move a budget to another status.

        Raises:
            NotFoundError: If the budget does not exist
            ValidationError: If the transition is not allowed
        """
        target = BudgetStatus(status)
        if target == BudgetStatus.CONFIRMED:
            self.confirm_budget(budget_id)
            return
        budget = self.require_budget(budget_id)
        if target not in BUDGET_TRANSITIONS[budget.status]:
            raise ValidationError(
                invalid_transition("budget", budget_id, budget.status.value, f"set status '{target.value}' on")
            )
        self.db.update_budget(budget_id, {"status": target.value})
        logger.info("budget_status_changed", budget_id=budget_id, status=target.value)

    def revise_budget(self, budget_id: int, on: Optional[date] = None) -> int:
        """Create a draft revision of a confirmed budget.

        The original becomes read-only with status revised; the revision keeps
        the same lines and achieved amounts, and both link to each other.

        Args:
            budget_id: Confirmed budget to revise
            on: Revision date used in the new name (defaults to today)

        Returns:
            ID of the new draft budget

        Raises:
            NotFoundError: If the budget does not exist
            ValidationError: If the budget is not confirmed or was already revised
        """
        budget = self.require_budget(budget_id)
        if budget.status != BudgetStatus.CONFIRMED or budget.revised_budget_id is not None:
            raise ValidationError(invalid_transition("budget", budget_id, budget.status.value, "revise"))

        on = on or date.today()
        name = f"{budget.name} (Rev {on:%d %m %Y})"
        with self.db.transaction():
            revision_id = self.db.create_budget(
                name=name,
                start_date=budget.start_date,
                end_date=budget.end_date,
                lines=[(line.analytic_id, line.budgeted_amount, line.achieved_amount) for line in budget.lines],
                is_revised=True,
                original_budget_id=budget_id,
            )
            self.db.update_budget(
                budget_id,
                {"status": BudgetStatus.REVISED.value, "revised_budget_id": revision_id},
            )
        logger.info("budget_revised", budget_id=budget_id, revision_id=revision_id)
        return revision_id

    def delete_budget(self, budget_id: int) -> None:
        """Delete a draft budget.

        Deleting a draft revision discards it: an original still in status
        revised is confirmed again and its achieved amounts are rebuilt.

        Raises:
            NotFoundError: If the budget does not exist
            ValidationError: If the budget is not a draft
        """
        budget = self.require_budget(budget_id)
        if budget.status != BudgetStatus.DRAFT:
            raise ValidationError(invalid_transition("budget", budget_id, budget.status.value, "delete"))
        original = self.db.get_budget(budget.original_budget_id) if budget.original_budget_id else None
        restore = original is not None and original.status == BudgetStatus.REVISED

        def attempt() -> None:
            with self.db.transaction():
                if original is not None:
                    changes: dict = {"revised_budget_id": None}
                    if restore:
                        changes["status"] = BudgetStatus.CONFIRMED.value
                    self.db.update_budget(original.id, changes)
                self.db.delete_budget(budget_id)
                if restore:
                    self.ledger.recompute(original.id)

        run_with_retry(self.db, attempt, attempts=self.ledger.retry_attempts, operation="delete_budget")
        logger.info("budget_deleted", budget_id=budget_id, restored=restore)

    def check_budget(self, analytic_id: int, budget_id: int, proposed_amount: Decimal) -> BudgetCheck:
        """See BudgetLedger.check_budget."""
        return self.ledger.check_budget(analytic_id, budget_id, proposed_amount)

    def analytic_details(self, budget_id: int, analytic_id: int) -> AnalyticDetails:
        """Line metrics for one analytic of a budget plus the document lines behind them.

        Raises:
            NotFoundError: If the budget, analytic or budget line does not exist
        """
        budget = self.require_budget(budget_id)
        analytic = self.analytics.require_analytic(analytic_id)
        line = budget.line_for(analytic_id)
        if line is None:
            raise NotFoundError(f"Budget {budget_id} has no line for analytic {analytic_id}")
        contributing = self.db.list_contributing_lines(analytic_id, budget.start_date, budget.end_date)
        return AnalyticDetails(
            budget=budget,
            analytic=analytic,
            line=line,
            contributing_lines=tuple(contributing),
        )
