"""Product domain service."""

from decimal import Decimal
from typing import Optional
from budgetkit.database.base import Database
from budgetkit.domain.entities import Product, RecordStatus, money
from budgetkit.domain.errors import DependencyError, NotFoundError, ValidationError, delete_blocked, not_found
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)


class ProductService:
    """Service for managing products."""

    def __init__(self, db: Database):
        """Initialize product service.

        Args:
            db: Database instance
        """
        self.db = db

    @staticmethod
    def _price(value: Decimal | int | str, label: str) -> Decimal:
        price = money(value)
        if price < 0:
            raise ValidationError(f"{label} must be zero or positive")
        return price

    def create_product(
        self,
        name: str,
        category_id: int,
        sales_price: Decimal | int | str = 0,
        purchase_price: Decimal | int | str = 0,
    ) -> int:
        """Create a new product.

        Args:
            name: Product name (e.g., "Chair")
            category_id: Product category ID (required)
            sales_price: Sales price, >= 0
            purchase_price: Purchase price, >= 0

        Returns:
            Product ID

        Raises:
            ValidationError: If name is empty or a price is negative
            NotFoundError: If category does not exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Product name is required")
        if self.db.get_product_category(category_id) is None:
            raise NotFoundError(not_found("Product category", category_id))

        return self.db.create_product(
            name=name,
            category_id=category_id,
            sales_price=self._price(sales_price, "Sales price"),
            purchase_price=self._price(purchase_price, "Purchase price"),
        )

    def get_product(self, product_id: int) -> Optional[Product]:
        """Get product by ID.

        Args:
            product_id: Product ID

        Returns:
            Product entity or None if not found
        """
        return self.db.get_product(product_id)

    def require_product(self, product_id: int) -> Product:
        product = self.db.get_product(product_id)
        if product is None:
            raise NotFoundError(not_found("Product", product_id))
        return product

    def list_products(
        self,
        category_id: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Product]:
        """List products with optional category, status and name filters."""
        if status is not None:
            status = RecordStatus(status).value
        return self.db.list_products(category_id=category_id, status=status, search=search)

    def update_product(
        self,
        product_id: int,
        name: Optional[str] = None,
        category_id: Optional[int] = None,
        sales_price: Optional[Decimal] = None,
        purchase_price: Optional[Decimal] = None,
    ) -> None:
        """Update a product. Only given fields change.

        Raises:
            NotFoundError: If the product or category does not exist
            ValidationError: If a value is invalid
        """
        self.require_product(product_id)
        changes: dict = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Product name is required")
            changes["name"] = name
        if category_id is not None:
            if self.db.get_product_category(category_id) is None:
                raise NotFoundError(not_found("Product category", category_id))
            changes["category_id"] = category_id
        if sales_price is not None:
            changes["sales_price"] = self._price(sales_price, "Sales price")
        if purchase_price is not None:
            changes["purchase_price"] = self._price(purchase_price, "Purchase price")
        if changes:
            self.db.update_product(product_id, changes)

    def set_status(self, product_id: int, status: RecordStatus) -> None:
        """Set product status (confirm, archive, restore)."""
        self.require_product(product_id)
        self.db.update_product(product_id, {"status": RecordStatus(status).value})

    def delete_product_permanently(self, product_id: int) -> None:
        """Irrecoverably delete a product.

        Raises:
            NotFoundError: If the product does not exist
            DependencyError: If document lines or rules refer to it
        """
        self.require_product(product_id)
        references = self.db.count_product_references(product_id)
        if any(references.values()):
            raise DependencyError(delete_blocked("product", product_id, references))
        self.db.delete_product(product_id)
        logger.info("product_deleted", product_id=product_id)
