"""Product category and partner tag domain services."""

from typing import Optional
from budgetkit.database.base import Database
from budgetkit.domain.entities import PartnerTag, ProductCategory
from budgetkit.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    delete_blocked,
    duplicate_name,
    not_found,
)
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)


class ProductCategoryService:
    """Service for managing product categories."""

    def __init__(self, db: Database):
        """Initialize product category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, name: str, description: Optional[str] = None) -> int:
        """Create a product category.

        Args:
            name: Category name (e.g., "Furniture")
            description: Optional description

        Returns:
            Category ID

        Raises:
            ValidationError: If name is empty
            ConflictError: If a category with the same name exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        if self.db.get_product_category_by_name(name) is not None:
            raise ConflictError(duplicate_name("Product category", name))

        return self.db.create_product_category(name=name, description=description)

    def get_category(self, category_id: int) -> Optional[ProductCategory]:
        """Get category by ID.

        Args:
            category_id: Category ID

        Returns:
            ProductCategory or None if not found
        """
        return self.db.get_product_category(category_id)

    def require_category(self, category_id: int) -> ProductCategory:
        category = self.db.get_product_category(category_id)
        if category is None:
            raise NotFoundError(not_found("Product category", category_id))
        return category

    def get_category_by_name(self, name: str) -> Optional[ProductCategory]:
        """Get category by name."""
        return self.db.get_product_category_by_name(name)

    def list_categories(self) -> list[ProductCategory]:
        """List categories, sorted by name."""
        return self.db.list_product_categories()

    def update_category(
        self, category_id: int, name: Optional[str] = None, description: Optional[str] = None
    ) -> ProductCategory:
        """Rename a category or change its description.

        Raises:
            NotFoundError: If the category does not exist
            ValidationError: If the new name is empty
            ConflictError: If another category already uses the name
        """
        category = self.require_category(category_id)
        changes: dict = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Category name is required")
            if name != category.name:
                existing = self.db.get_product_category_by_name(name)
                if existing is not None and existing.id != category_id:
                    raise ConflictError(duplicate_name("Product category", name))
                changes["name"] = name
        if description is not None:
            changes["description"] = description
        if changes:
            self.db.update_product_category(category_id, changes)
        return self.require_category(category_id)

    def delete_category(self, category_id: int) -> None:
        """Delete a category nothing refers to.

        Raises:
            NotFoundError: If the category does not exist
            DependencyError: If products, analytics or rules use it
        """
        self.require_category(category_id)
        references = self.db.count_category_references(category_id)
        if any(references.values()):
            raise DependencyError(delete_blocked("product category", category_id, references))
        self.db.delete_product_category(category_id)
        logger.info("category_deleted", category_id=category_id)


class PartnerTagService:
    """Service for managing partner tags (e.g. "vip", "wholesale")."""

    def __init__(self, db: Database):
        self.db = db

    def create_tag(self, name: str, display_name: Optional[str] = None) -> int:
        """Create a partner tag.

        Tag names are stored lower-case; the display name keeps the casing
        given by the user.

        Raises:
            ValidationError: If name is empty
            ConflictError: If the tag already exists
        """
        display = (display_name or name or "").strip()
        name = (name or "").strip().lower()
        if not name:
            raise ValidationError("Tag name is required")
        if self.db.get_partner_tag_by_name(name) is not None:
            raise ConflictError(duplicate_name("Partner tag", name))

        return self.db.create_partner_tag(name=name, display_name=display)

    def get_tag(self, tag_id: int) -> Optional[PartnerTag]:
        return self.db.get_partner_tag(tag_id)

    def require_tag(self, tag_id: int) -> PartnerTag:
        tag = self.db.get_partner_tag(tag_id)
        if tag is None:
            raise NotFoundError(not_found("Partner tag", tag_id))
        return tag

    def get_tag_by_name(self, name: str) -> Optional[PartnerTag]:
        return self.db.get_partner_tag_by_name(name.strip().lower())

    def list_tags(self) -> list[PartnerTag]:
        return self.db.list_partner_tags()

    def update_tag(
        self, tag_id: int, name: Optional[str] = None, display_name: Optional[str] = None
    ) -> PartnerTag:
        """Rename a tag or change its display name.

        A new name without a display name also resets the display name to
        the name as typed.

        Raises:
            NotFoundError: If the tag does not exist
            ValidationError: If the new name is empty
            ConflictError: If another tag already uses the name
        """
        tag = self.require_tag(tag_id)
        changes: dict = {}
        if name is not None:
            typed = name.strip()
            name = typed.lower()
            if not name:
                raise ValidationError("Tag name is required")
            if name != tag.name:
                if self.db.get_partner_tag_by_name(name) is not None:
                    raise ConflictError(duplicate_name("Partner tag", name))
                changes["name"] = name
            changes["display_name"] = typed
        if display_name is not None and display_name.strip():
            changes["display_name"] = display_name.strip()
        if changes:
            self.db.update_partner_tag(tag_id, changes)
        return self.require_tag(tag_id)

    def delete_tag(self, tag_id: int) -> None:
        """Delete a tag no contact or rule uses.

        Raises:
            NotFoundError: If the tag does not exist
            DependencyError: If contacts or rules carry it
        """
        self.require_tag(tag_id)
        references = self.db.count_tag_references(tag_id)
        if any(references.values()):
            raise DependencyError(delete_blocked("partner tag", tag_id, references))
        self.db.delete_partner_tag(tag_id)
        logger.info("tag_deleted", tag_id=tag_id)
