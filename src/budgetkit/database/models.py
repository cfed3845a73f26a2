"""SQLAlchemy models for budgetkit database."""

from datetime import datetime, UTC
from decimal import Decimal
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Table,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(14, 2)


def _now() -> datetime:
    return datetime.now(UTC)


contact_tags = Table(
    "contact_tags",
    Base.metadata,
    Column("contact_id", Integer, ForeignKey("contacts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("partner_tags.id", ondelete="CASCADE"), primary_key=True),
)


class ProductCategory(Base):
    """Product category model."""

    __tablename__ = "product_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    products = relationship("Product", back_populates="category")


class PartnerTag(Base):
    """Partner tag model."""

    __tablename__ = "partner_tags"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    display_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class Contact(Base):
    """Contact (vendor/customer) model."""

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False)
    phone = Column(String, nullable=True)
    status = Column(String, default="new", nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    tags = relationship("PartnerTag", secondary=contact_tags, order_by="PartnerTag.id")


class Product(Base):
    """Product model."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("product_categories.id"), nullable=False)
    sales_price = Column(MONEY, nullable=False, default=Decimal("0"))
    purchase_price = Column(MONEY, nullable=False, default=Decimal("0"))
    status = Column(String, default="new", nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    category = relationship("ProductCategory", back_populates="products")


class Analytic(Base):
    """Budget analytic model."""

    __tablename__ = "analytics"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    product_category_id = Column(Integer, ForeignKey("product_categories.id"), nullable=True)
    analytic_type = Column(String, default="expense", nullable=False)
    status = Column(String, default="new", nullable=False, index=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class AutoAssignRule(Base):
    """Auto-assignment rule model."""

    __tablename__ = "auto_assign_rules"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    partner_tag_id = Column(Integer, ForeignKey("partner_tags.id"), nullable=True)
    partner_id = Column(Integer, ForeignKey("contacts.id"), nullable=True)
    product_category_id = Column(Integer, ForeignKey("product_categories.id"), nullable=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    analytic_id = Column(Integer, ForeignKey("analytics.id"), nullable=False)
    status = Column(String, default="draft", nullable=False, index=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class Budget(Base):
    """Budget period model."""

    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String, default="draft", nullable=False, index=True)
    is_revised = Column(Boolean, default=False, nullable=False)
    original_budget_id = Column(Integer, ForeignKey("budgets.id"), nullable=True)
    revised_budget_id = Column(Integer, ForeignKey("budgets.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    lines = relationship(
        "BudgetLine",
        back_populates="budget",
        cascade="all, delete-orphan",
        order_by="BudgetLine.position",
    )


class BudgetLine(Base):
    """Budget line model. `version` guards achieved_amount against lost updates."""

    __tablename__ = "budget_lines"

    id = Column(Integer, primary_key=True)
    budget_id = Column(Integer, ForeignKey("budgets.id"), nullable=False)
    analytic_id = Column(Integer, ForeignKey("analytics.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    budgeted_amount = Column(MONEY, nullable=False, default=Decimal("0"))
    achieved_amount = Column(MONEY, nullable=False, default=Decimal("0"))
    version = Column(Integer, nullable=False)

    __table_args__ = (UniqueConstraint("budget_id", "analytic_id", name="uq_budget_analytic"),)
    __mapper_args__ = {"version_id_col": version}

    budget = relationship("Budget", back_populates="lines")
    analytic = relationship("Analytic")


class Document(Base):
    """Financial document model (purchase or sales order, vendor bill, customer invoice)."""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True)
    kind = Column(String, nullable=False, index=True)
    document_no = Column(String, unique=True, nullable=False)
    document_date = Column(Date, nullable=False, index=True)
    due_date = Column(Date, nullable=True)
    partner_id = Column(Integer, ForeignKey("contacts.id"), nullable=True, index=True)
    status = Column(String, default="draft", nullable=False, index=True)
    payment_status = Column(String, default="not_paid", nullable=False)
    grand_total = Column(MONEY, nullable=False, default=Decimal("0"))
    paid_via_cash = Column(MONEY, nullable=False, default=Decimal("0"))
    paid_via_bank = Column(MONEY, nullable=False, default=Decimal("0"))
    amount_due = Column(MONEY, nullable=False, default=Decimal("0"))
    reference = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    source_document_id = Column(Integer, ForeignKey("documents.id"), nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    lines = relationship(
        "DocumentLine",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentLine.position",
    )
    payments = relationship(
        "Payment",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )


class DocumentLine(Base):
    """Financial document line model."""

    __tablename__ = "document_lines"

    id = Column(Integer, primary_key=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    product_name = Column(String, nullable=False)
    quantity = Column(Numeric(14, 3), nullable=False)
    unit_price = Column(MONEY, nullable=False)
    line_total = Column(MONEY, nullable=False)
    analytic_id = Column(Integer, ForeignKey("analytics.id"), nullable=True, index=True)
    exceeds_budget = Column(Boolean, default=False, nullable=False)
    auto_assigned = Column(Boolean, default=False, nullable=False)

    document = relationship("Document", back_populates="lines")


class Payment(Base):
    """Payment model."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False)
    amount = Column(MONEY, nullable=False)
    method = Column(String, nullable=False)
    paid_on = Column(Date, nullable=False)
    reference = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    document = relationship("Document", back_populates="payments")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
