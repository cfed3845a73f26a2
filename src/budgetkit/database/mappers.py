"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so status strings and money
columns are turned into enums and quantized Decimals in one place.
"""

from budgetkit.domain import entities as domain
from budgetkit.domain.entities import money
from budgetkit.database.models import (
    Analytic as ORMAnalytic,
    AutoAssignRule as ORMAutoAssignRule,
    Budget as ORMBudget,
    BudgetLine as ORMBudgetLine,
    Contact as ORMContact,
    Document as ORMDocument,
    DocumentLine as ORMDocumentLine,
    PartnerTag as ORMPartnerTag,
    Payment as ORMPayment,
    Product as ORMProduct,
    ProductCategory as ORMProductCategory,
)


def product_category_to_domain(orm_category: ORMProductCategory) -> domain.ProductCategory:
    """Convert SQLAlchemy ProductCategory model to domain entity."""
    return domain.ProductCategory(
        id=orm_category.id,
        name=orm_category.name,
        description=orm_category.description,
        created_at=orm_category.created_at,
    )


def partner_tag_to_domain(orm_tag: ORMPartnerTag) -> domain.PartnerTag:
    """Convert SQLAlchemy PartnerTag model to domain entity."""
    return domain.PartnerTag(
        id=orm_tag.id,
        name=orm_tag.name,
        display_name=orm_tag.display_name,
        created_at=orm_tag.created_at,
    )


def contact_to_domain(orm_contact: ORMContact) -> domain.Contact:
    """Convert SQLAlchemy Contact model to domain entity."""
    return domain.Contact(
        id=orm_contact.id,
        name=orm_contact.name,
        email=orm_contact.email,
        phone=orm_contact.phone,
        status=domain.RecordStatus(orm_contact.status),
        created_at=orm_contact.created_at,
        tag_ids=tuple(tag.id for tag in orm_contact.tags),
    )


def product_to_domain(orm_product: ORMProduct) -> domain.Product:
    """Convert SQLAlchemy Product model to domain entity."""
    return domain.Product(
        id=orm_product.id,
        name=orm_product.name,
        category_id=orm_product.category_id,
        sales_price=money(orm_product.sales_price),
        purchase_price=money(orm_product.purchase_price),
        status=domain.RecordStatus(orm_product.status),
        created_at=orm_product.created_at,
    )


def analytic_to_domain(orm_analytic: ORMAnalytic) -> domain.Analytic:
    """Convert SQLAlchemy Analytic model to domain entity."""
    return domain.Analytic(
        id=orm_analytic.id,
        name=orm_analytic.name,
        description=orm_analytic.description,
        start_date=orm_analytic.start_date,
        end_date=orm_analytic.end_date,
        product_category_id=orm_analytic.product_category_id,
        analytic_type=domain.AnalyticType(orm_analytic.analytic_type),
        status=domain.RecordStatus(orm_analytic.status),
        created_at=orm_analytic.created_at,
    )


def rule_to_domain(orm_rule: ORMAutoAssignRule) -> domain.AutoAssignRule:
    """Convert SQLAlchemy AutoAssignRule model to domain entity."""
    return domain.AutoAssignRule(
        id=orm_rule.id,
        name=orm_rule.name,
        description=orm_rule.description,
        partner_tag_id=orm_rule.partner_tag_id,
        partner_id=orm_rule.partner_id,
        product_category_id=orm_rule.product_category_id,
        product_id=orm_rule.product_id,
        analytic_id=orm_rule.analytic_id,
        status=domain.RuleStatus(orm_rule.status),
        created_at=orm_rule.created_at,
    )


def budget_line_to_domain(orm_line: ORMBudgetLine) -> domain.BudgetLine:
    """Convert SQLAlchemy BudgetLine model to domain entity."""
    return domain.BudgetLine(
        id=orm_line.id,
        budget_id=orm_line.budget_id,
        analytic_id=orm_line.analytic_id,
        budgeted_amount=money(orm_line.budgeted_amount),
        achieved_amount=money(orm_line.achieved_amount),
        type=(
            domain.AnalyticType(orm_line.analytic.analytic_type) if orm_line.analytic is not None else None
        ),
    )


def budget_to_domain(orm_budget: ORMBudget) -> domain.BudgetPeriod:
    """Convert SQLAlchemy Budget model (with lines) to domain BudgetPeriod."""
    return domain.BudgetPeriod(
        id=orm_budget.id,
        name=orm_budget.name,
        start_date=orm_budget.start_date,
        end_date=orm_budget.end_date,
        status=domain.BudgetStatus(orm_budget.status),
        is_revised=orm_budget.is_revised,
        original_budget_id=orm_budget.original_budget_id,
        revised_budget_id=orm_budget.revised_budget_id,
        created_at=orm_budget.created_at,
        lines=tuple(budget_line_to_domain(line) for line in orm_budget.lines),
    )


def document_line_to_domain(orm_line: ORMDocumentLine) -> domain.DocumentLine:
    """Convert SQLAlchemy DocumentLine model to domain entity."""
    return domain.DocumentLine(
        id=orm_line.id,
        document_id=orm_line.document_id,
        position=orm_line.position,
        product_id=orm_line.product_id,
        product_name=orm_line.product_name,
        quantity=orm_line.quantity,
        unit_price=money(orm_line.unit_price),
        line_total=money(orm_line.line_total),
        analytic_id=orm_line.analytic_id,
        exceeds_budget=orm_line.exceeds_budget,
        auto_assigned=orm_line.auto_assigned,
    )


def document_to_domain(orm_document: ORMDocument) -> domain.FinancialDocument:
    """Convert SQLAlchemy Document model (with lines) to domain FinancialDocument."""
    return domain.FinancialDocument(
        id=orm_document.id,
        kind=domain.DocumentKind(orm_document.kind),
        document_no=orm_document.document_no,
        document_date=orm_document.document_date,
        due_date=orm_document.due_date,
        partner_id=orm_document.partner_id,
        status=domain.DocumentStatus(orm_document.status),
        payment_status=domain.PaymentStatus(orm_document.payment_status),
        grand_total=money(orm_document.grand_total),
        paid_via_cash=money(orm_document.paid_via_cash),
        paid_via_bank=money(orm_document.paid_via_bank),
        amount_due=money(orm_document.amount_due),
        reference=orm_document.reference,
        notes=orm_document.notes,
        source_document_id=orm_document.source_document_id,
        sent_at=orm_document.sent_at,
        created_at=orm_document.created_at,
        lines=tuple(document_line_to_domain(line) for line in orm_document.lines),
    )


def payment_to_domain(orm_payment: ORMPayment) -> domain.Payment:
    """Convert SQLAlchemy Payment model to domain entity."""
    return domain.Payment(
        id=orm_payment.id,
        document_id=orm_payment.document_id,
        amount=money(orm_payment.amount),
        method=domain.PaymentMethod(orm_payment.method),
        paid_on=orm_payment.paid_on,
        reference=orm_payment.reference,
        notes=orm_payment.notes,
        created_at=orm_payment.created_at,
    )
