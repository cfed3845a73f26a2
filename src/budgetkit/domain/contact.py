"""Contact (vendor/customer) domain service."""

import re
from typing import Optional, Sequence
from budgetkit.database.base import Database
from budgetkit.domain.entities import Contact, RecordStatus
from budgetkit.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    delete_blocked,
    not_found,
)
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ContactService:
    """Service for managing contacts."""

    def __init__(self, db: Database):
        """Initialize contact service.

        Args:
            db: Database instance
        """
        self.db = db

    def _normalize_email(self, email: str) -> str:
        email = (email or "").strip().lower()
        if not email:
            raise ValidationError("Contact email is required")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError(f"Invalid email address '{email}'")
        return email

    def _check_tags(self, tag_ids: Sequence[int]) -> list[int]:
        for tag_id in tag_ids:
            if self.db.get_partner_tag(tag_id) is None:
                raise NotFoundError(not_found("Partner tag", tag_id))
        return list(dict.fromkeys(tag_ids))

    def create_contact(
        self,
        name: str,
        email: str,
        phone: Optional[str] = None,
        tag_ids: Sequence[int] = (),
    ) -> int:
        """Create a new contact.

        Args:
            name: Contact name (e.g., "Azure Interior")
            email: Email address, stored lower-case and unique
            phone: Optional phone number
            tag_ids: Partner tag IDs to attach

        Returns:
            Contact ID

        Raises:
            ValidationError: If name or email is missing or malformed
            ConflictError: If the email is already used
            NotFoundError: If a tag does not exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Contact name is required")
        email = self._normalize_email(email)
        if self.db.get_contact_by_email(email) is not None:
            raise ConflictError(f"Contact with email '{email}' already exists")
        tags = self._check_tags(tag_ids)

        contact_id = self.db.create_contact(name=name, email=email, phone=phone, tag_ids=tags)
        logger.info("contact_created", contact_id=contact_id, tags=len(tags))
        return contact_id

    def get_contact(self, contact_id: int) -> Optional[Contact]:
        """Get contact by ID.

        Args:
            contact_id: Contact ID

        Returns:
            Contact entity or None if not found
        """
        return self.db.get_contact(contact_id)

    def require_contact(self, contact_id: int) -> Contact:
        """Get contact by ID, raising NotFoundError when missing."""
        contact = self.db.get_contact(contact_id)
        if contact is None:
            raise NotFoundError(not_found("Contact", contact_id))
        return contact

    def list_contacts(self, status: Optional[str] = None, search: Optional[str] = None) -> list[Contact]:
        """List contacts.

        Args:
            status: Optional status filter (new, confirmed, archived)
            search: Optional case-insensitive name substring

        Returns:
            List of contact entities
        """
        if status is not None:
            status = RecordStatus(status).value
        return self.db.list_contacts(status=status, search=search)

    def update_contact(
        self,
        contact_id: int,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        tag_ids: Optional[Sequence[int]] = None,
    ) -> None:
        """Update a contact. Only given fields change; `tag_ids` replaces all tags.

        Raises:
            NotFoundError: If the contact or a tag does not exist
            ValidationError: If a value is invalid
            ConflictError: If the new email belongs to another contact
        """
        contact = self.require_contact(contact_id)
        changes: dict = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Contact name is required")
            changes["name"] = name
        if email is not None:
            email = self._normalize_email(email)
            other = self.db.get_contact_by_email(email)
            if other is not None and other.id != contact.id:
                raise ConflictError(f"Contact with email '{email}' already exists")
            changes["email"] = email
        if phone is not None:
            changes["phone"] = phone
        if tag_ids is not None:
            changes["tag_ids"] = self._check_tags(tag_ids)
        if changes:
            self.db.update_contact(contact_id, changes)

    def set_status(self, contact_id: int, status: RecordStatus) -> None:
        """Set contact status (confirm, archive, restore)."""
        self.require_contact(contact_id)
        self.db.update_contact(contact_id, {"status": RecordStatus(status).value})
        logger.info("contact_status_changed", contact_id=contact_id, status=RecordStatus(status).value)

    def delete_contact_permanently(self, contact_id: int) -> None:
        """Irrecoverably delete a contact.

        Raises:
            NotFoundError: If the contact does not exist
            DependencyError: If documents or rules refer to it
        """
        self.require_contact(contact_id)
        references = self.db.count_contact_references(contact_id)
        if any(references.values()):
            raise DependencyError(delete_blocked("contact", contact_id, references))
        self.db.delete_contact(contact_id)
        logger.info("contact_deleted", contact_id=contact_id)
