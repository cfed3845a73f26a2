"""Contact (vendor/customer) commands."""

import click
from budgetkit.cli.contact_resolution import resolve_contact_or_exit
from budgetkit.cli.error_handling import emit, handle_domain_error
from budgetkit.domain.category import PartnerTagService
from budgetkit.domain.contact import ContactService
from budgetkit.domain.entities import Contact, RecordStatus
from budgetkit.domain.errors import NotFoundError


def resolve_tag_ids(tag_service: PartnerTagService, tags: tuple[str, ...]) -> list[int]:
    """Resolve tag names or IDs to tag IDs."""
    tag_ids = []
    for value in tags:
        if value.isdigit():
            tag = tag_service.get_tag(int(value))
        else:
            tag = tag_service.get_tag_by_name(value)
        if tag is None:
            raise NotFoundError(f"Partner tag '{value}' not found")
        tag_ids.append(tag.id)
    return tag_ids


def format_contact(contact: Contact, tag_names: dict[int, str]) -> str:
    tags = ", ".join(tag_names.get(t, str(t)) for t in contact.tag_ids) or "-"
    return f"ID: {contact.id:3d} | {contact.name:25s} | {contact.email:30s} | {contact.status.value:9s} | Tags: {tags}"


@click.group()
def contact_group():
    """Manage contacts (vendors and customers)."""
    pass


@contact_group.command("create")
@click.argument("name")
@click.option("--email", required=True, help="Email address (unique)")
@click.option("--phone", help="Phone number")
@click.option("--tag", "tags", multiple=True, help="Partner tag name or ID (repeatable)")
@click.pass_context
def create_contact(ctx, name: str, email: str, phone: str | None, tags: tuple[str, ...]):
    """Create a new contact.

    Examples:
        budgetkit contact create "Azure Interior" --email azure@example.com --tag vip
    """
    db = ctx.obj["db"]
    service = ContactService(db)

    try:
        tag_ids = resolve_tag_ids(PartnerTagService(db), tags)
        contact_id = service.create_contact(name=name, email=email, phone=phone, tag_ids=tag_ids)
        emit(ctx, service.get_contact(contact_id), f"Created contact '{name}' (ID: {contact_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@contact_group.command("list")
@click.option("--status", type=click.Choice([s.value for s in RecordStatus]), help="Filter by status")
@click.option("--search", help="Name contains (case-insensitive)")
@click.pass_context
def list_contacts(ctx, status: str | None, search: str | None):
    """List contacts."""
    db = ctx.obj["db"]
    service = ContactService(db)

    contacts = service.list_contacts(status=status, search=search)
    if not contacts:
        emit(ctx, [], "No contacts found.")
        return

    tag_names = {t.id: t.display_name for t in PartnerTagService(db).list_tags()}
    emit(ctx, contacts, "\nContacts:", ["-" * 100] + [format_contact(c, tag_names) for c in contacts])


@contact_group.command("update")
@click.argument("contact")
@click.option("--name", help="New name")
@click.option("--email", help="New email")
@click.option("--phone", help="New phone")
@click.option("--tag", "tags", multiple=True, help="Replace tags (repeatable)")
@click.option("--clear-tags", is_flag=True, help="Remove all tags")
@click.pass_context
def update_contact(ctx, contact: str, name, email, phone, tags, clear_tags: bool):
    """Update a contact. CONTACT can be a name or ID."""
    db = ctx.obj["db"]
    service = ContactService(db)
    contact_id = resolve_contact_or_exit(ctx, service, contact)

    try:
        tag_ids = None
        if clear_tags:
            tag_ids = []
        elif tags:
            tag_ids = resolve_tag_ids(PartnerTagService(db), tags)
        service.update_contact(contact_id, name=name, email=email, phone=phone, tag_ids=tag_ids)
        emit(ctx, service.get_contact(contact_id), f"Updated contact {contact_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def _status_command(name: str, status: RecordStatus, help_text: str):
    @contact_group.command(name, help=help_text)
    @click.argument("contact")
    @click.pass_context
    def command(ctx, contact: str):
        service = ContactService(ctx.obj["db"])
        contact_id = resolve_contact_or_exit(ctx, service, contact)
        try:
            service.set_status(contact_id, status)
            emit(ctx, service.get_contact(contact_id), f"Contact {contact_id} is now {status.value}")
        except ValueError as e:
            handle_domain_error(ctx, e)

    return command


_status_command("confirm", RecordStatus.CONFIRMED, "Confirm a contact.")
_status_command("archive", RecordStatus.ARCHIVED, "Archive a contact.")
_status_command("restore", RecordStatus.NEW, "Restore an archived contact.")


@contact_group.command("delete")
@click.argument("contact")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_contact(ctx, contact: str, yes: bool):
    """Permanently delete a contact.

    Refused while documents or rules refer to it; archive it instead.
    """
    service = ContactService(ctx.obj["db"])
    contact_id = resolve_contact_or_exit(ctx, service, contact)
    target = service.get_contact(contact_id)
    if not yes and not click.confirm(f"Permanently delete contact '{target.name}' (ID: {contact_id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_contact_permanently(contact_id)
        emit(ctx, {"id": contact_id}, f"Deleted contact '{target.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register contact commands with main CLI."""
    cli.add_command(contact_group, name="contact")
