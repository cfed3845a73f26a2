"""Shared pytest fixtures for budgetkit tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
import pytest

from budgetkit.database.factories import create_sqlite_database
from budgetkit.domain.analytic import AnalyticService
from budgetkit.domain.budget import BudgetLedger, BudgetService
from budgetkit.domain.category import PartnerTagService, ProductCategoryService
from budgetkit.domain.contact import ContactService
from budgetkit.domain.document import DocumentService
from budgetkit.domain.entities import DocumentKind, LineDraft
from budgetkit.domain.product import ProductService
from budgetkit.domain.recommendation import RecommendationBlender
from budgetkit.domain.rules import AutoAssignRuleService, RuleMatcher

FESTIVE_START = date(2026, 10, 1)
FESTIVE_END = date(2026, 12, 31)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def category_service(temp_db):
    """Create a ProductCategoryService with a temporary database."""
    return ProductCategoryService(temp_db)


@pytest.fixture
def tag_service(temp_db):
    """Create a PartnerTagService with a temporary database."""
    return PartnerTagService(temp_db)


@pytest.fixture
def contact_service(temp_db):
    """Create a ContactService with a temporary database."""
    return ContactService(temp_db)


@pytest.fixture
def product_service(temp_db):
    """Create a ProductService with a temporary database."""
    return ProductService(temp_db)


@pytest.fixture
def analytic_service(temp_db):
    """Create an AnalyticService with a temporary database."""
    return AnalyticService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create an AutoAssignRuleService with a temporary database."""
    return AutoAssignRuleService(temp_db)


@pytest.fixture
def rule_matcher(temp_db):
    """Create a RuleMatcher with a temporary database."""
    return RuleMatcher(temp_db)


@pytest.fixture
def ledger(temp_db):
    """Create a BudgetLedger with a temporary database."""
    return BudgetLedger(temp_db, retry_attempts=3)


@pytest.fixture
def budget_service(temp_db, ledger):
    """Create a BudgetService sharing the ledger fixture."""
    return BudgetService(temp_db, ledger=ledger)


@pytest.fixture
def blender(temp_db):
    """Create a RecommendationBlender with the default threshold."""
    return RecommendationBlender(temp_db)


@pytest.fixture
def document_service(temp_db, blender, ledger):
    """Create a DocumentService sharing the blender and ledger fixtures."""
    return DocumentService(temp_db, blender=blender, ledger=ledger)


@pytest.fixture
def master_data(category_service, tag_service, contact_service, product_service, analytic_service):
    """Create categories, tags, contacts, products and analytics.

    Returns a dict of IDs keyed by short names.
    """
    ids = {}
    ids["furniture"] = category_service.create_category("Furniture")
    ids["decor"] = category_service.create_category("Decor")
    ids["vip"] = tag_service.create_tag("VIP")

    ids["azure"] = contact_service.create_contact(
        name="Azure Interior", email="azure@example.com", tag_ids=[ids["vip"]]
    )
    ids["gemini"] = contact_service.create_contact(name="Gemini Furniture", email="gemini@example.com")
    ids["deco_addict"] = contact_service.create_contact(name="Deco Addict", email="deco@example.com")

    ids["chair"] = product_service.create_product(
        name="Chair", category_id=ids["furniture"], sales_price=Decimal("2200"), purchase_price=Decimal("1500")
    )
    ids["table"] = product_service.create_product(
        name="Dining Table", category_id=ids["furniture"], purchase_price=Decimal("9000")
    )
    ids["lamp"] = product_service.create_product(name="Lamp", category_id=ids["decor"], purchase_price=Decimal("800"))

    ids["marriage"] = analytic_service.create_analytic(
        name="Marriage Session 2026", analytic_type="expense", product_category_id=ids["furniture"]
    )
    ids["deepawali"] = analytic_service.create_analytic(
        name="Deepawali", analytic_type="expense", start_date=FESTIVE_START, end_date=date(2026, 11, 15)
    )
    ids["office"] = analytic_service.create_analytic(name="Office Setup", analytic_type="expense")
    ids["sales"] = analytic_service.create_analytic(name="Festive Sales", analytic_type="income")
    return ids


@pytest.fixture
def confirmed_budget(budget_service, master_data):
    """A confirmed Oct-Dec 2026 budget with Deepawali and Marriage Session lines."""
    budget_id = budget_service.create_budget(
        name="Festive 2026",
        start_date=FESTIVE_START,
        end_date=FESTIVE_END,
        lines=[
            (master_data["deepawali"], Decimal("280000")),
            (master_data["marriage"], Decimal("50000")),
        ],
    )
    budget_service.confirm_budget(budget_id)
    return budget_service.get_budget(budget_id)


@pytest.fixture
def make_document(document_service):
    """Factory creating (and optionally confirming) a single-line document."""

    def _make(
        partner_id,
        amount,
        analytic_id=None,
        kind=DocumentKind.VENDOR_BILL,
        product_id=None,
        product_name="Chair",
        document_date=date(2026, 10, 15),
        confirm=True,
        auto_assign=False,
    ):
        document_id = document_service.create_draft(
            kind,
            partner_id=partner_id,
            lines=[
                LineDraft(
                    product_name=product_name,
                    quantity=Decimal("1"),
                    unit_price=Decimal(str(amount)),
                    product_id=product_id,
                    analytic_id=analytic_id,
                )
            ],
            document_date=document_date,
            auto_assign=auto_assign,
        )
        if confirm:
            document_service.confirm(document_id)
        return document_service.get_document(document_id)

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
