"""Domain model entities for budgetkit.

These are pure data classes representing business concepts, independent of
database schema. Derived amounts (remaining budget, achieved percent, amount
due) are computed here so every layer agrees on the same arithmetic.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

CENT = Decimal("0.01")


def money(value: Decimal | int | str) -> Decimal:
    """Quantize a value to currency precision (2 places, half-up)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class RecordStatus(str, Enum):
    """Lifecycle of master records (analytics, contacts, products)."""

    NEW = "new"
    CONFIRMED = "confirmed"
    ARCHIVED = "archived"


class AnalyticType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class RuleStatus(str, Enum):
    """Only confirmed rules take part in matching."""

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    ARCHIVED = "archived"


class BudgetStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    REVISED = "revised"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class DocumentKind(str, Enum):
    """Kind tag for the shared financial document state machine."""

    PURCHASE_ORDER = "purchase_order"
    VENDOR_BILL = "vendor_bill"
    SALES_ORDER = "sales_order"
    CUSTOMER_INVOICE = "customer_invoice"

    @property
    def partner_role(self) -> str:
        """Role of the partner on this kind of document."""
        return "vendor" if self.is_purchase else "customer"

    @property
    def label(self) -> str:
        return {
            DocumentKind.PURCHASE_ORDER: "Purchase Order",
            DocumentKind.VENDOR_BILL: "Vendor Bill",
            DocumentKind.SALES_ORDER: "Sales Order",
            DocumentKind.CUSTOMER_INVOICE: "Customer Invoice",
        }[self]

    @property
    def is_purchase(self) -> bool:
        return self in (DocumentKind.PURCHASE_ORDER, DocumentKind.VENDOR_BILL)

    @property
    def invoiced_as(self) -> Optional["DocumentKind"]:
        """Kind of document created from a confirmed order of this kind."""
        return {
            DocumentKind.PURCHASE_ORDER: DocumentKind.VENDOR_BILL,
            DocumentKind.SALES_ORDER: DocumentKind.CUSTOMER_INVOICE,
        }.get(self)


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    NOT_PAID = "not_paid"
    PARTIAL = "partial"
    PAID = "paid"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK = "bank"


class RecommendationSource(str, Enum):
    PATTERN = "Pattern"
    RULE = "Rule"
    NONE = "None"


class HistoryMatchStrategy(str, Enum):
    """How historical lines are matched to the product being recommended."""

    EXACT_ID = "exact_id"
    FUZZY_NAME = "fuzzy_name"
    ID_THEN_NAME = "id_then_name"


@dataclass(frozen=True)
class ProductCategory:
    """Product category domain entity."""

    id: int
    name: str
    description: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class PartnerTag:
    """Partner tag domain entity. Names are stored lower-case."""

    id: int
    name: str
    display_name: str
    created_at: datetime


@dataclass(frozen=True)
class Contact:
    """Contact (vendor or customer) domain entity."""

    id: int
    name: str
    email: str
    phone: Optional[str]
    status: RecordStatus
    created_at: datetime
    tag_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class Product:
    """Product domain entity."""

    id: int
    name: str
    category_id: int
    sales_price: Decimal
    purchase_price: Decimal
    status: RecordStatus
    created_at: datetime


@dataclass(frozen=True)
class Analytic:
    """Budget analytic (cost or revenue bucket) domain entity."""

    id: int
    name: str
    description: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    product_category_id: Optional[int]
    analytic_type: AnalyticType
    status: RecordStatus
    created_at: datetime

    @property
    def is_archived(self) -> bool:
        return self.status == RecordStatus.ARCHIVED


@dataclass(frozen=True)
class AutoAssignRule:
    """Auto-assignment rule mapping partner/product context to an analytic."""

    id: int
    name: str
    description: Optional[str]
    partner_tag_id: Optional[int]
    partner_id: Optional[int]
    product_category_id: Optional[int]
    product_id: Optional[int]
    analytic_id: int
    status: RuleStatus
    created_at: datetime

    @property
    def conditions(self) -> tuple[str, ...]:
        """Names of the conditions this rule sets."""
        names = []
        if self.partner_id is not None:
            names.append("partner")
        if self.partner_tag_id is not None:
            names.append("partner_tag")
        if self.product_id is not None:
            names.append("product")
        if self.product_category_id is not None:
            names.append("product_category")
        return tuple(names)

    @property
    def has_partner_clause(self) -> bool:
        return self.partner_id is not None or self.partner_tag_id is not None

    @property
    def has_product_clause(self) -> bool:
        return self.product_id is not None or self.product_category_id is not None

    @property
    def specificity(self) -> int:
        """Ranking weight: exact partner/product count 2, tag/category count 1."""
        weights = {"partner": 2, "product": 2, "partner_tag": 1, "product_category": 1}
        return sum(weights[name] for name in self.conditions)


@dataclass(frozen=True)
class BudgetLine:
    """Budgeted vs. achieved amounts for one analytic in a budget period."""

    id: int
    budget_id: int
    analytic_id: int
    budgeted_amount: Decimal
    achieved_amount: Decimal
    # Income or expense, from the line's analytic
    type: Optional[AnalyticType] = None

    @property
    def remaining(self) -> Decimal:
        """Budgeted minus achieved. Negative once the budget is overrun."""
        return money(self.budgeted_amount - self.achieved_amount)

    @property
    def amount_to_achieve(self) -> Decimal:
        return max(self.remaining, money(0))

    @property
    def achieved_percent(self) -> Optional[Decimal]:
        """Achieved share of the budget in percent, or None when budgeted is zero."""
        if self.budgeted_amount == 0:
            return None
        return money(self.achieved_amount / self.budgeted_amount * 100)


@dataclass(frozen=True)
class BudgetPeriod:
    """Budget period domain entity."""

    id: int
    name: str
    start_date: date
    end_date: date
    status: BudgetStatus
    is_revised: bool
    original_budget_id: Optional[int]
    revised_budget_id: Optional[int]
    created_at: datetime
    lines: tuple[BudgetLine, ...] = ()

    def line_for(self, analytic_id: int) -> Optional[BudgetLine]:
        for line in self.lines:
            if line.analytic_id == analytic_id:
                return line
        return None


@dataclass(frozen=True)
class DocumentLine:
    """Line of a purchase order, vendor bill or customer invoice."""

    id: int
    document_id: int
    position: int
    product_id: Optional[int]
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal
    analytic_id: Optional[int]
    exceeds_budget: bool
    auto_assigned: bool


@dataclass(frozen=True)
class Payment:
    """Payment recorded against a financial document."""

    id: int
    document_id: int
    amount: Decimal
    method: PaymentMethod
    paid_on: date
    reference: Optional[str]
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class FinancialDocument:
    """Purchase order, vendor bill or customer invoice."""

    id: int
    kind: DocumentKind
    document_no: str
    document_date: date
    due_date: Optional[date]
    partner_id: Optional[int]
    status: DocumentStatus
    payment_status: PaymentStatus
    grand_total: Decimal
    paid_via_cash: Decimal
    paid_via_bank: Decimal
    amount_due: Decimal
    reference: Optional[str]
    notes: Optional[str]
    source_document_id: Optional[int]
    sent_at: Optional[datetime]
    created_at: datetime
    lines: tuple[DocumentLine, ...] = ()

    @property
    def paid_amount(self) -> Decimal:
        return money(self.paid_via_cash + self.paid_via_bank)

    @property
    def is_editable(self) -> bool:
        return self.status == DocumentStatus.DRAFT


@dataclass
class LineDraft:
    """Line input submitted by an editing collaborator."""

    product_name: str
    quantity: Decimal
    unit_price: Decimal
    product_id: Optional[int] = None
    analytic_id: Optional[int] = None
    auto_assigned: bool = False
    exceeds_budget: bool = False

    @property
    def line_total(self) -> Decimal:
        return money(Decimal(self.quantity) * Decimal(self.unit_price))


@dataclass(frozen=True)
class HistoricalLine:
    """Confirmed document line used for pattern mining."""

    document_id: int
    document_date: date
    kind: DocumentKind
    product_id: Optional[int]
    product_name: str
    analytic_id: int
    line_total: Decimal


@dataclass(frozen=True)
class RuleMatch:
    """A rule that matched a line context, with its ranking data."""

    rule: AutoAssignRule
    matched_fields: tuple[str, ...]
    score: int

    @property
    def explanation(self) -> str:
        fields = ", ".join(self.matched_fields)
        return f"Rule '{self.rule.name}' matched on {fields} (score {self.score})"


@dataclass(frozen=True)
class PatternRecommendation:
    """Analytic suggested by historical usage."""

    analytic_id: int
    analytic_name: str
    confidence: Decimal
    reason: str
    historical_record_count: int


@dataclass(frozen=True)
class Recommendation:
    """Blended analytic recommendation for one document line."""

    analytic_id: Optional[int]
    analytic_name: Optional[str]
    confidence: Decimal
    source: RecommendationSource
    reason: str

    @property
    def assigned(self) -> bool:
        return self.analytic_id is not None


@dataclass(frozen=True)
class BudgetCheck:
    """Outcome of checking a proposed amount against remaining budget."""

    budget_id: int
    analytic_id: int
    remaining: Decimal
    exceeds: bool


@dataclass(frozen=True)
class ContributingLine:
    """Confirmed document line counted in a budget line's achieved amount."""

    document_id: int
    document_no: str
    kind: DocumentKind
    document_date: date
    partner_id: Optional[int]
    product_name: str
    line_total: Decimal


@dataclass(frozen=True)
class AnalyticDetails:
    """Budget line metrics for one analytic plus the lines behind them."""

    budget: BudgetPeriod
    analytic: Analytic
    line: BudgetLine
    contributing_lines: tuple[ContributingLine, ...] = field(default_factory=tuple)
