"""Utility for resolving contact names to IDs."""

from budgetkit.domain.contact import ContactService
from budgetkit.domain.errors import NotFoundError


def resolve_contact(contact_service: ContactService, contact: str | int) -> int:
    """Resolve contact name or ID to contact ID.

    Args:
        contact_service: ContactService instance
        contact: Contact name (str) or ID (int or string representation of int)

    Returns:
        Contact ID

    Raises:
        NotFoundError: If contact is not found
    """
    if isinstance(contact, int):
        if contact_service.get_contact(contact) is None:
            raise NotFoundError(f"Contact ID {contact} not found")
        return contact

    try:
        contact_id = int(contact)
    except (ValueError, TypeError):
        contact_id = None

    if contact_id is not None:
        if contact_service.get_contact(contact_id) is None:
            raise NotFoundError(f"Contact ID {contact_id} not found")
        return contact_id

    # Names are not unique; an exact match wins over a case-insensitive one
    matches = contact_service.list_contacts(search=contact)
    for candidate in matches:
        if candidate.name == contact:
            return candidate.id
    for candidate in matches:
        if candidate.name.lower() == contact.lower():
            return candidate.id

    raise NotFoundError(f"Contact '{contact}' not found")
