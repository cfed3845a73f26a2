"""Financial document lifecycle: purchase and sales orders, vendor bills and customer invoices.

All four kinds share one state machine. Status moves draft -> confirmed ->
cancelled; once confirmed, payments move the payment status from not_paid
through partial to paid while amount_due tracks the unpaid balance.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, UTC
from decimal import Decimal
from typing import Any, Optional, Sequence
from budgetkit.database.base import Database
from budgetkit.database.concurrency import run_with_retry
from budgetkit.domain.analytic import AnalyticService
from budgetkit.domain.budget import BudgetLedger
from budgetkit.domain.entities import (
    DocumentKind,
    DocumentStatus,
    FinancialDocument,
    LineDraft,
    Payment,
    PaymentMethod,
    PaymentStatus,
    money,
)
from budgetkit.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    invalid_transition,
    not_found,
    payment_exceeds_due,
)
from budgetkit.domain.recommendation import RecommendationBlender
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PAYMENT_TERM_DAYS = 30

_UNSET = object()


def derive_payment_status(grand_total: Decimal, amount_due: Decimal) -> PaymentStatus:
    """Payment status implied by the outstanding balance."""
    if amount_due <= 0:
        return PaymentStatus.PAID
    if amount_due >= grand_total:
        return PaymentStatus.NOT_PAID
    return PaymentStatus.PARTIAL


def number_prefix(kind: DocumentKind, on: date) -> str:
    """Document number prefix: PO, SO, BILL/<year>/ or INV/<year>/."""
    if kind == DocumentKind.PURCHASE_ORDER:
        return "PO"
    if kind == DocumentKind.SALES_ORDER:
        return "SO"
    if kind == DocumentKind.VENDOR_BILL:
        return f"BILL/{on.year}/"
    return f"INV/{on.year}/"


def format_document_number(kind: DocumentKind, on: date, sequence: int) -> str:
    """Format a document number, e.g. PO00001, SO00001, BILL/2026/0001, INV/2026/0001."""
    prefix = number_prefix(kind, on)
    width = 5 if kind.invoiced_as is not None else 4
    return f"{prefix}{sequence:0{width}d}"


class DocumentService:
    """Service for the shared financial document state machine."""

    def __init__(
        self,
        db: Database,
        blender: Optional[RecommendationBlender] = None,
        ledger: Optional[BudgetLedger] = None,
        retry_attempts: int = 3,
    ):
        """Initialize document service.

        Args:
            db: Database instance
            blender: Recommendation blender for auto-assigning analytics
                (built from db if omitted)
            ledger: Budget ledger (built from db if omitted)
            retry_attempts: Attempts for concurrent update retries
        """
        self.db = db
        self.blender = blender or RecommendationBlender(db)
        self.ledger = ledger or BudgetLedger(db, retry_attempts=retry_attempts)
        self.analytics = AnalyticService(db)
        self.retry_attempts = retry_attempts

    # Lookup
    def get_document(self, document_id: int) -> Optional[FinancialDocument]:
        """Get document by ID.

        Args:
            document_id: Document ID

        Returns:
            FinancialDocument with lines, or None if not found
        """
        return self.db.get_document(document_id)

    def require_document(self, document_id: int, kind: Optional[DocumentKind] = None) -> FinancialDocument:
        """Get a document, optionally of a given kind.

        Raises:
            NotFoundError: If it does not exist or is of another kind
        """
        document = self.db.get_document(document_id)
        if document is None or (kind is not None and document.kind != kind):
            label = kind.label if kind is not None else "Document"
            raise NotFoundError(not_found(label, document_id))
        return document

    def list_documents(
        self,
        kind: Optional[DocumentKind] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        partner_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> list[FinancialDocument]:
        """List documents, newest first.

        Args:
            kind: Optional document kind
            status: Optional status (draft, confirmed, cancelled)
            payment_status: Optional payment status (not_paid, partial, paid)
            partner_id: Optional vendor/customer
            search: Optional substring of document number or reference

        Returns:
            List of documents
        """
        if status is not None:
            status = DocumentStatus(status).value
        if payment_status is not None:
            payment_status = PaymentStatus(payment_status).value
        return self.db.list_documents(
            kind=kind,
            status=status,
            payment_status=payment_status,
            partner_id=partner_id,
            search=search,
        )

    def list_payments(self, document_id: int) -> list[Payment]:
        """Payments recorded against a document, oldest first."""
        self.require_document(document_id)
        return self.db.list_payments(document_id)

    def next_document_number(self, kind: DocumentKind, on: date) -> str:
        """Next free document number for a kind."""
        prefix = number_prefix(kind, on)
        last = self.db.last_document_number(prefix)
        sequence = 1
        if last is not None:
            suffix = last[len(prefix):]
            if suffix.isdigit():
                sequence = int(suffix) + 1
        return format_document_number(kind, on, sequence)

    # Draft editing
    def _check_partner(self, partner_id: Optional[int]) -> None:
        if partner_id is not None and self.db.get_contact(partner_id) is None:
            raise NotFoundError(not_found("Contact", partner_id))

    def _validate_line(self, draft: LineDraft, position: int) -> LineDraft:
        if draft.product_id is not None:
            product = self.db.get_product(draft.product_id)
            if product is None:
                raise NotFoundError(not_found("Product", draft.product_id))
            product_name = (draft.product_name or "").strip() or product.name
        else:
            product_name = (draft.product_name or "").strip()
        if not product_name:
            raise ValidationError(f"Line {position + 1}: product is required")

        quantity = Decimal(str(draft.quantity))
        if quantity <= 0:
            raise ValidationError(f"Line {position + 1}: quantity must be greater than zero")
        unit_price = money(draft.unit_price)
        if unit_price < 0:
            raise ValidationError(f"Line {position + 1}: unit price must be zero or positive")

        return LineDraft(
            product_name=product_name,
            quantity=quantity,
            unit_price=unit_price,
            product_id=draft.product_id,
            analytic_id=draft.analytic_id,
            auto_assigned=draft.auto_assigned if draft.analytic_id is not None else False,
        )

    def _flag_exceeding(self, lines: Sequence[LineDraft], on: date) -> None:
        """Set exceeds_budget on lines that would overrun the covering budget."""
        running: dict[int, Decimal] = defaultdict(Decimal)
        for line in lines:
            line.exceeds_budget = False
            if line.analytic_id is None:
                continue
            running[line.analytic_id] += line.line_total
            check = self.ledger.check_line(line.analytic_id, on, running[line.analytic_id])
            line.exceeds_budget = check is not None and check.exceeds

    def _prepare_lines(
        self,
        kind: DocumentKind,
        partner_id: Optional[int],
        document_date: date,
        drafts: Sequence[LineDraft],
        auto_assign: bool,
        known_analytics: Optional[set[int]] = None,
        flag_budget: bool = True,
    ) -> list[LineDraft]:
        lines = [self._validate_line(draft, position) for position, draft in enumerate(drafts)]
        for line in lines:
            if line.analytic_id is not None:
                # Lines saved earlier keep an analytic archived since then
                if line.analytic_id in (known_analytics or set()):
                    self.analytics.require_analytic(line.analytic_id)
                else:
                    self.analytics.require_assignable(line.analytic_id)
            elif auto_assign and partner_id is not None:
                recommendation = self.blender.get_recommendation(
                    partner_id, product_id=line.product_id, product_name=line.product_name, kind=kind
                )
                if recommendation.assigned:
                    line.analytic_id = recommendation.analytic_id
                    line.auto_assigned = True
                    logger.debug(
                        "line_auto_assigned",
                        product=line.product_name,
                        analytic_id=recommendation.analytic_id,
                        source=recommendation.source.value,
                    )
        if flag_budget:
            self._flag_exceeding(lines, document_date)
        return lines

    def create_draft(
        self,
        kind: DocumentKind,
        partner_id: Optional[int],
        lines: Sequence[LineDraft],
        document_date: Optional[date] = None,
        due_date: Optional[date] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        auto_assign: bool = True,
    ) -> int:
        """Create a draft document.

        The document number is assigned here and never changes. Unassigned
        lines get an analytic from the recommendation blender when auto_assign
        is set; manual choices are kept. Lines that would overrun the covering
        confirmed budget are flagged, not rejected.

        Args:
            kind: Document kind
            partner_id: Vendor or customer (required later, at confirm)
            lines: Line inputs
            document_date: Defaults to today
            due_date: Defaults to document date + 30 days
            reference: Optional external reference
            notes: Optional notes
            auto_assign: Fill unassigned analytics from recommendations

        Returns:
            Document ID

        Raises:
            ValidationError: If a line or date is invalid
            NotFoundError: If a referenced record does not exist
        """
        kind = DocumentKind(kind)
        document_date = document_date or date.today()
        due_date = due_date or document_date + timedelta(days=DEFAULT_PAYMENT_TERM_DAYS)
        if due_date < document_date:
            raise ValidationError("Due date must not be before the document date")
        self._check_partner(partner_id)

        prepared = self._prepare_lines(kind, partner_id, document_date, lines, auto_assign)
        grand_total = money(sum((line.line_total for line in prepared), Decimal("0")))

        document_id = self.db.create_document(
            kind=kind,
            document_no=self.next_document_number(kind, document_date),
            document_date=document_date,
            due_date=due_date,
            partner_id=partner_id,
            lines=prepared,
            grand_total=grand_total,
            reference=reference,
            notes=notes,
        )
        logger.info("document_created", document_id=document_id, kind=kind.value, total=str(grand_total))
        return document_id

    def update_draft(
        self,
        document_id: int,
        partner_id: Any = _UNSET,
        lines: Optional[Sequence[LineDraft]] = None,
        document_date: Optional[date] = None,
        due_date: Optional[date] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        auto_assign: bool = True,
    ) -> FinancialDocument:
        """Save changes to a draft document.

        `lines` replaces all lines when given; otherwise the current lines are
        re-checked against the (possibly new) partner and date. The document
        row is locked while the draft is rewritten, so a save racing a
        confirmation either lands first or fails. Does not touch the budget
        ledger.

        Returns:
            Updated document

        Raises:
            NotFoundError: If the document or a reference does not exist
            ValidationError: If the document is not a draft or input is invalid
            ConflictError: If concurrent updates keep conflicting
        """
        if partner_id is not _UNSET:
            self._check_partner(partner_id)

        def attempt() -> FinancialDocument:
            with self.db.transaction():
                document = self.db.get_document(document_id, for_update=True)
                if document is None:
                    raise NotFoundError(not_found("Document", document_id))
                if not document.is_editable:
                    raise ValidationError(
                        invalid_transition(document.kind.label.lower(), document_id, document.status.value, "edit")
                    )

                changes: dict = {}
                new_partner = document.partner_id
                if partner_id is not _UNSET:
                    new_partner = partner_id
                    changes["partner_id"] = partner_id
                new_date = document_date or document.document_date
                new_due = due_date or document.due_date
                if document_date is not None:
                    changes["document_date"] = document_date
                if due_date is not None:
                    changes["due_date"] = due_date
                if new_due is not None and new_due < new_date:
                    raise ValidationError("Due date must not be before the document date")
                if reference is not None:
                    changes["reference"] = reference
                if notes is not None:
                    changes["notes"] = notes

                known = {line.analytic_id for line in document.lines if line.analytic_id is not None}
                drafts = lines
                if drafts is None:
                    drafts = [
                        LineDraft(
                            product_name=line.product_name,
                            quantity=line.quantity,
                            unit_price=line.unit_price,
                            product_id=line.product_id,
                            analytic_id=line.analytic_id,
                            auto_assigned=line.auto_assigned,
                        )
                        for line in document.lines
                    ]
                prepared = self._prepare_lines(
                    document.kind,
                    new_partner,
                    new_date,
                    drafts,
                    auto_assign,
                    known_analytics=known,
                    flag_budget=document.source_document_id is None,
                )
                grand_total = money(sum((line.line_total for line in prepared), Decimal("0")))
                changes["grand_total"] = grand_total
                changes["amount_due"] = grand_total

                self.db.update_document(document_id, changes)
                self.db.replace_document_lines(document_id, prepared)
            return self.require_document(document_id)

        updated = run_with_retry(self.db, attempt, attempts=self.retry_attempts, operation="update_draft")
        logger.info("document_updated", document_id=document_id, total=str(updated.grand_total))
        return updated

    # State transitions
    def confirm(self, document_id: int) -> FinancialDocument:
        """Confirm a draft document.

        Requires at least one line, a partner and a due date. Lines become
        immutable and each analytic-tagged line total is added to the ledger
        of every confirmed budget covering the document date, all in one
        transaction. Exceeds-budget flags are re-judged against the locked
        budget lines.

        Returns:
            Confirmed document

        Raises:
            NotFoundError: If the document does not exist
            ValidationError: If it is not a draft or is incomplete
            ConflictError: If concurrent ledger updates keep conflicting
        """

        def attempt() -> FinancialDocument:
            with self.db.transaction():
                document = self.db.get_document(document_id, for_update=True)
                if document is None:
                    raise NotFoundError(not_found("Document", document_id))
                if document.status != DocumentStatus.DRAFT:
                    raise ValidationError(
                        invalid_transition(
                            document.kind.label.lower(), document_id, document.status.value, "confirm"
                        )
                    )
                if not document.lines:
                    raise ValidationError("Cannot confirm a document without lines")
                if document.partner_id is None:
                    raise ValidationError(f"Cannot confirm without a {document.kind.partner_role}")
                if document.due_date is None:
                    raise ValidationError("Cannot confirm without a due date")

                # Ledger first: every budget line is locked before any write
                flags = self.ledger.apply_document(document, sign=1)
                for line in document.lines:
                    exceeds = flags.get(line.id, False)
                    if line.exceeds_budget != exceeds:
                        self.db.set_line_exceeds_budget(line.id, exceeds)

                self.db.update_document(
                    document_id,
                    {
                        "status": DocumentStatus.CONFIRMED.value,
                        "amount_due": document.grand_total,
                        "payment_status": derive_payment_status(
                            document.grand_total, document.grand_total
                        ).value,
                    },
                )
            return self.require_document(document_id)

        confirmed = run_with_retry(self.db, attempt, attempts=self.retry_attempts, operation="confirm")
        logger.info(
            "document_confirmed",
            document_id=document_id,
            document_no=confirmed.document_no,
            total=str(confirmed.grand_total),
        )
        return confirmed

    def cancel(self, document_id: int) -> FinancialDocument:
        """Cancel a draft or confirmed document.

        A confirmed document's ledger achievement is reversed. Documents with
        any recorded payment cannot be cancelled, nor can an order that already
        has an active bill or invoice.

        Returns:
            Cancelled document

        Raises:
            NotFoundError: If the document does not exist
            ValidationError: If it is already cancelled
            ConflictError: If payments have been recorded
            DependencyError: If a bill or invoice was created from this order
        """

        def attempt() -> FinancialDocument:
            with self.db.transaction():
                document = self.db.get_document(document_id, for_update=True)
                if document is None:
                    raise NotFoundError(not_found("Document", document_id))
                if document.status == DocumentStatus.CANCELLED:
                    raise ValidationError(
                        invalid_transition(
                            document.kind.label.lower(), document_id, document.status.value, "cancel"
                        )
                    )
                if document.paid_amount > 0:
                    raise ConflictError(
                        f"Cannot cancel {document.document_no}: payments of {document.paid_amount} are recorded"
                    )
                followups = [
                    d
                    for d in self.db.find_documents_by_source(document_id)
                    if d.status != DocumentStatus.CANCELLED
                ]
                if followups:
                    raise DependencyError(
                        f"Cannot cancel {document.document_no}: "
                        f"{followups[0].kind.label.lower()} {followups[0].document_no} was created from it"
                    )

                if document.status == DocumentStatus.CONFIRMED:
                    self.ledger.apply_document(document, sign=-1)
                self.db.update_document(document_id, {"status": DocumentStatus.CANCELLED.value})
            return self.require_document(document_id)

        cancelled = run_with_retry(self.db, attempt, attempts=self.retry_attempts, operation="cancel")
        logger.info("document_cancelled", document_id=document_id, document_no=cancelled.document_no)
        return cancelled

    def record_payment(
        self,
        document_id: int,
        amount: Decimal | int | str,
        method: PaymentMethod | str = PaymentMethod.BANK,
        paid_on: Optional[date] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> FinancialDocument:
        """Record a payment against a confirmed document.

        The document row is locked while amount_due, the cash/bank split and
        the payment status are recomputed.

        Args:
            document_id: Document ID
            amount: Payment amount, > 0 and <= amount due
            method: cash or bank
            paid_on: Payment date (defaults to today)
            reference: Optional payment reference
            notes: Optional notes

        Returns:
            Updated document

        Raises:
            ValidationError: If the amount is not positive, the method is
                unknown or the document is not confirmed
            ConflictError: If the amount exceeds the amount due
            NotFoundError: If the document does not exist
        """
        amount = money(amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero")
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unknown payment method '{method}' (expected cash or bank)")
        paid_on = paid_on or date.today()

        def attempt() -> FinancialDocument:
            with self.db.transaction():
                document = self.db.get_document(document_id, for_update=True)
                if document is None:
                    raise NotFoundError(not_found("Document", document_id))
                if document.status != DocumentStatus.CONFIRMED:
                    raise ValidationError(
                        invalid_transition(
                            document.kind.label.lower(), document_id, document.status.value, "record payment on"
                        )
                    )
                if amount > document.amount_due:
                    raise ConflictError(payment_exceeds_due(amount, document.amount_due))

                self.db.create_payment(
                    document_id=document_id,
                    amount=amount,
                    method=method.value,
                    paid_on=paid_on,
                    reference=reference,
                    notes=notes,
                )
                paid_via_cash = document.paid_via_cash + (amount if method == PaymentMethod.CASH else 0)
                paid_via_bank = document.paid_via_bank + (amount if method == PaymentMethod.BANK else 0)
                amount_due = money(document.grand_total - paid_via_cash - paid_via_bank)
                self.db.update_document(
                    document_id,
                    {
                        "paid_via_cash": money(paid_via_cash),
                        "paid_via_bank": money(paid_via_bank),
                        "amount_due": amount_due,
                        "payment_status": derive_payment_status(document.grand_total, amount_due).value,
                    },
                )
            return self.require_document(document_id)

        updated = run_with_retry(self.db, attempt, attempts=self.retry_attempts, operation="record_payment")
        logger.info(
            "payment_recorded",
            document_id=document_id,
            amount=str(amount),
            method=method.value,
            amount_due=str(updated.amount_due),
            payment_status=updated.payment_status.value,
        )
        return updated

    def _create_from_order(self, order_id: int, order_kind: DocumentKind, on: Optional[date]) -> int:
        target = order_kind.invoiced_as
        order = self.require_document(order_id, order_kind)
        if order.status != DocumentStatus.CONFIRMED:
            raise ValidationError(
                invalid_transition(order_kind.label.lower(), order_id, order.status.value, "invoice")
            )
        existing = [d for d in self.db.find_documents_by_source(order_id) if d.status != DocumentStatus.CANCELLED]
        if existing:
            raise ConflictError(f"{order_kind.label} {order.document_no} already invoiced as {existing[0].document_no}")

        on = on or date.today()
        lines = [
            LineDraft(
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                product_id=line.product_id,
                analytic_id=line.analytic_id,
                auto_assigned=line.auto_assigned,
            )
            for line in order.lines
        ]
        document_id = self.db.create_document(
            kind=target,
            document_no=self.next_document_number(target, on),
            document_date=on,
            due_date=on + timedelta(days=DEFAULT_PAYMENT_TERM_DAYS),
            partner_id=order.partner_id,
            lines=lines,
            grand_total=order.grand_total,
            reference=order.document_no,
            source_document_id=order_id,
        )
        logger.info("document_created_from_order", document_id=document_id, kind=target.value, order_id=order_id)
        return document_id

    def create_bill_from_purchase_order(self, purchase_order_id: int, bill_date: Optional[date] = None) -> int:
        """Create a draft vendor bill from a confirmed purchase order.

        Lines and their analytics are copied and the bill links back to the
        order. The bill is not counted in the budget ledger again.

        Returns:
            Vendor bill ID

        Raises:
            NotFoundError: If the purchase order does not exist
            ValidationError: If it is not confirmed
            ConflictError: If an active bill already exists for it
        """
        return self._create_from_order(purchase_order_id, DocumentKind.PURCHASE_ORDER, bill_date)

    def create_invoice_from_sales_order(self, sales_order_id: int, invoice_date: Optional[date] = None) -> int:
        """Create a draft customer invoice from a confirmed sales order.

        Same rules as create_bill_from_purchase_order.
        """
        return self._create_from_order(sales_order_id, DocumentKind.SALES_ORDER, invoice_date)

    def delete_draft(self, document_id: int) -> None:
        """Permanently delete a draft document.

        Raises:
            NotFoundError: If the document does not exist
            ValidationError: If it is not a draft
        """

        def attempt() -> None:
            with self.db.transaction():
                document = self.db.get_document(document_id, for_update=True)
                if document is None:
                    raise NotFoundError(not_found("Document", document_id))
                if document.status != DocumentStatus.DRAFT:
                    raise ValidationError(
                        invalid_transition(document.kind.label.lower(), document_id, document.status.value, "delete")
                    )
                self.db.delete_document(document_id)

        run_with_retry(self.db, attempt, attempts=self.retry_attempts, operation="delete_draft")
        logger.info("document_deleted", document_id=document_id)

    def mark_sent(self, document_id: int) -> FinancialDocument:
        """Record that a confirmed document was sent to its partner.

        Raises:
            NotFoundError: If the document does not exist
            ValidationError: If it is not confirmed
        """
        document = self.require_document(document_id)
        if document.status != DocumentStatus.CONFIRMED:
            raise ValidationError(
                invalid_transition(document.kind.label.lower(), document_id, document.status.value, "send")
            )
        self.db.update_document(document_id, {"sent_at": datetime.now(UTC)})
        logger.info("document_sent", document_id=document_id)
        return self.require_document(document_id)
