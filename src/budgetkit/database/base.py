"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Any, Sequence
from datetime import date
from decimal import Decimal

# Import entities directly; services import this module
from budgetkit.domain.entities import (
    Analytic,
    AutoAssignRule,
    BudgetLine,
    BudgetPeriod,
    Contact,
    ContributingLine,
    DocumentKind,
    FinancialDocument,
    HistoricalLine,
    LineDraft,
    PartnerTag,
    Payment,
    Product,
    ProductCategory,
)


class Database(ABC):
    """Abstract database interface for budgetkit.

    Write operations commit immediately unless they run inside
    `transaction()`, in which case the outermost block commits or rolls back.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Group writes into one all-or-nothing unit."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Discard pending changes and cached state."""
        pass

    # Product category operations
    @abstractmethod
    def create_product_category(self, name: str, description: Optional[str] = None) -> int:
        """Create a product category. Returns category ID."""
        pass

    @abstractmethod
    def get_product_category(self, category_id: int) -> Optional[ProductCategory]:
        """Get product category by ID."""
        pass

    @abstractmethod
    def get_product_category_by_name(self, name: str) -> Optional[ProductCategory]:
        """Get product category by exact name."""
        pass

    @abstractmethod
    def list_product_categories(self) -> list[ProductCategory]:
        """List all product categories."""
        pass

    @abstractmethod
    def update_product_category(self, category_id: int, changes: dict[str, Any]) -> None:
        """Update product category fields."""
        pass

    @abstractmethod
    def delete_product_category(self, category_id: int) -> None:
        """Delete a product category."""
        pass

    @abstractmethod
    def count_category_references(self, category_id: int) -> dict[str, int]:
        """Count products, analytics and rules referencing a category."""
        pass

    # Partner tag operations
    @abstractmethod
    def create_partner_tag(self, name: str, display_name: str) -> int:
        """Create a partner tag. Returns tag ID."""
        pass

    @abstractmethod
    def get_partner_tag(self, tag_id: int) -> Optional[PartnerTag]:
        """Get partner tag by ID."""
        pass

    @abstractmethod
    def get_partner_tag_by_name(self, name: str) -> Optional[PartnerTag]:
        """Get partner tag by (lower-case) name."""
        pass

    @abstractmethod
    def list_partner_tags(self) -> list[PartnerTag]:
        """List all partner tags."""
        pass

    @abstractmethod
    def update_partner_tag(self, tag_id: int, changes: dict[str, Any]) -> None:
        """Update partner tag fields."""
        pass

    @abstractmethod
    def delete_partner_tag(self, tag_id: int) -> None:
        """Delete a partner tag."""
        pass

    @abstractmethod
    def count_tag_references(self, tag_id: int) -> dict[str, int]:
        """Count contacts and rules referencing a partner tag."""
        pass

    # Contact operations
    @abstractmethod
    def create_contact(
        self, name: str, email: str, phone: Optional[str] = None, tag_ids: Sequence[int] = ()
    ) -> int:
        """Create a contact. Returns contact ID."""
        pass

    @abstractmethod
    def get_contact(self, contact_id: int) -> Optional[Contact]:
        """Get contact by ID."""
        pass

    @abstractmethod
    def get_contact_by_email(self, email: str) -> Optional[Contact]:
        """Get contact by (lower-case) email."""
        pass

    @abstractmethod
    def list_contacts(self, status: Optional[str] = None, search: Optional[str] = None) -> list[Contact]:
        """List contacts, optionally filtered by status and name substring."""
        pass

    @abstractmethod
    def update_contact(self, contact_id: int, changes: dict[str, Any]) -> None:
        """Update contact fields. `tag_ids` replaces the tag set."""
        pass

    @abstractmethod
    def delete_contact(self, contact_id: int) -> None:
        """Permanently delete a contact."""
        pass

    @abstractmethod
    def count_contact_references(self, contact_id: int) -> dict[str, int]:
        """Count documents and rules referencing a contact."""
        pass

    # Product operations
    @abstractmethod
    def create_product(
        self, name: str, category_id: int, sales_price: Decimal, purchase_price: Decimal
    ) -> int:
        """Create a product. Returns product ID."""
        pass

    @abstractmethod
    def get_product(self, product_id: int) -> Optional[Product]:
        """Get product by ID."""
        pass

    @abstractmethod
    def list_products(
        self,
        category_id: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Product]:
        """List products with optional filters."""
        pass

    @abstractmethod
    def update_product(self, product_id: int, changes: dict[str, Any]) -> None:
        """Update product fields."""
        pass

    @abstractmethod
    def delete_product(self, product_id: int) -> None:
        """Permanently delete a product."""
        pass

    @abstractmethod
    def count_product_references(self, product_id: int) -> dict[str, int]:
        """Count document lines and rules referencing a product."""
        pass

    # Analytic operations
    @abstractmethod
    def create_analytic(
        self,
        name: str,
        analytic_type: str,
        description: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        product_category_id: Optional[int] = None,
    ) -> int:
        """Create an analytic. Returns analytic ID."""
        pass

    @abstractmethod
    def get_analytic(self, analytic_id: int) -> Optional[Analytic]:
        """Get analytic by ID."""
        pass

    @abstractmethod
    def get_analytic_by_name(self, name: str) -> Optional[Analytic]:
        """Get analytic by exact name."""
        pass

    @abstractmethod
    def list_analytics(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        overlapping: Optional[tuple[date, date]] = None,
    ) -> list[Analytic]:
        """List analytics.

        Args:
            status: Only analytics with this status
            search: Case-insensitive name substring
            overlapping: Only analytics whose date range overlaps (start, end);
                analytics without dates always overlap
        """
        pass

    @abstractmethod
    def update_analytic(self, analytic_id: int, changes: dict[str, Any]) -> None:
        """Update analytic fields."""
        pass

    @abstractmethod
    def delete_analytic(self, analytic_id: int) -> None:
        """Permanently delete an analytic."""
        pass

    @abstractmethod
    def count_analytic_references(self, analytic_id: int) -> tuple[int, int]:
        """Return (document line count, budget line count) referencing an analytic."""
        pass

    # Auto-assignment rule operations
    @abstractmethod
    def create_rule(
        self,
        name: str,
        analytic_id: int,
        description: Optional[str] = None,
        partner_tag_id: Optional[int] = None,
        partner_id: Optional[int] = None,
        product_category_id: Optional[int] = None,
        product_id: Optional[int] = None,
    ) -> int:
        """Create an auto-assignment rule in draft status. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[AutoAssignRule]:
        """Get rule by ID."""
        pass

    @abstractmethod
    def list_rules(self, status: Optional[str] = None, analytic_id: Optional[int] = None) -> list[AutoAssignRule]:
        """List rules, newest first."""
        pass

    @abstractmethod
    def update_rule(self, rule_id: int, changes: dict[str, Any]) -> None:
        """Update rule fields."""
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule."""
        pass

    # Budget operations
    @abstractmethod
    def create_budget(
        self,
        name: str,
        start_date: date,
        end_date: date,
        lines: Sequence[tuple[int, Decimal, Decimal]] = (),
        is_revised: bool = False,
        original_budget_id: Optional[int] = None,
    ) -> int:
        """Create a draft budget.

        Args:
            lines: (analytic_id, budgeted_amount, achieved_amount) tuples in display order
        """
        pass

    @abstractmethod
    def get_budget(self, budget_id: int) -> Optional[BudgetPeriod]:
        """Get budget with its lines."""
        pass

    @abstractmethod
    def list_budgets(self, status: Optional[str] = None, search: Optional[str] = None) -> list[BudgetPeriod]:
        """List budgets, newest first."""
        pass

    @abstractmethod
    def update_budget(self, budget_id: int, changes: dict[str, Any]) -> None:
        """Update budget header fields (name, dates, status, revision links)."""
        pass

    @abstractmethod
    def replace_budget_lines(self, budget_id: int, lines: Sequence[tuple[int, Decimal]]) -> None:
        """Replace budget lines with (analytic_id, budgeted_amount) pairs, keeping achieved amounts."""
        pass

    @abstractmethod
    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget and its lines."""
        pass

    @abstractmethod
    def find_budgets_covering(self, on: date, status: str) -> list[BudgetPeriod]:
        """Budgets with the given status whose date range contains `on`."""
        pass

    @abstractmethod
    def get_budget_line(self, budget_id: int, analytic_id: int, for_update: bool = False) -> Optional[BudgetLine]:
        """Get one budget line, optionally locking it for the current transaction."""
        pass

    @abstractmethod
    def set_budget_line_achieved(self, line_id: int, achieved_amount: Decimal) -> None:
        """Write a new achieved amount (version-checked)."""
        pass

    @abstractmethod
    def sum_confirmed_line_totals(self, analytic_id: int, start_date: date, end_date: date) -> Decimal:
        """Sum of confirmed, ledger-counted document line totals for an analytic in a date range."""
        pass

    @abstractmethod
    def list_contributing_lines(self, analytic_id: int, start_date: date, end_date: date) -> list[ContributingLine]:
        """Confirmed, ledger-counted document lines for an analytic in a date range."""
        pass

    # Financial document operations
    @abstractmethod
    def last_document_number(self, prefix: str) -> Optional[str]:
        """Highest document number starting with `prefix`, or None."""
        pass

    @abstractmethod
    def create_document(
        self,
        kind: DocumentKind,
        document_no: str,
        document_date: date,
        due_date: Optional[date],
        partner_id: Optional[int],
        lines: Sequence[LineDraft],
        grand_total: Decimal,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        source_document_id: Optional[int] = None,
    ) -> int:
        """Create a draft document with its lines. Returns document ID."""
        pass

    @abstractmethod
    def get_document(self, document_id: int, for_update: bool = False) -> Optional[FinancialDocument]:
        """Get document with lines, optionally locking it for the current transaction."""
        pass

    @abstractmethod
    def list_documents(
        self,
        kind: Optional[DocumentKind] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        partner_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> list[FinancialDocument]:
        """List documents, newest first."""
        pass

    @abstractmethod
    def update_document(self, document_id: int, changes: dict[str, Any]) -> None:
        """Update document header fields (version-checked)."""
        pass

    @abstractmethod
    def replace_document_lines(self, document_id: int, lines: Sequence[LineDraft]) -> None:
        """Replace all lines of a document."""
        pass

    @abstractmethod
    def delete_document(self, document_id: int) -> None:
        """Delete a document with its lines and payments."""
        pass

    @abstractmethod
    def set_line_exceeds_budget(self, line_id: int, exceeds_budget: bool) -> None:
        """Update the exceeds-budget flag of a line."""
        pass

    @abstractmethod
    def find_documents_by_source(self, source_document_id: int) -> list[FinancialDocument]:
        """Documents generated from the given source document."""
        pass

    @abstractmethod
    def create_payment(
        self,
        document_id: int,
        amount: Decimal,
        method: str,
        paid_on: date,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Insert a payment row. Returns payment ID."""
        pass

    @abstractmethod
    def list_payments(self, document_id: int) -> list[Payment]:
        """Payments recorded against a document, oldest first."""
        pass

    @abstractmethod
    def list_historical_lines(self, partner_id: int) -> list[HistoricalLine]:
        """Analytic-tagged lines of the partner's confirmed, ledger-counted documents, newest first."""
        pass
