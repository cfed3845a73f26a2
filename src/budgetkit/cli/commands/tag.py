"""Partner tag commands."""

import click
from budgetkit.cli.commands.contact import resolve_tag_ids
from budgetkit.cli.error_handling import emit, handle_domain_error
from budgetkit.domain.category import PartnerTagService


@click.group()
def tag_group():
    """Manage partner tags."""
    pass


@tag_group.command("list")
@click.pass_context
def list_tags(ctx):
    """List all partner tags."""
    service = PartnerTagService(ctx.obj["db"])

    tags = service.list_tags()
    if not tags:
        emit(ctx, [], "No partner tags found.")
        return
    emit(ctx, tags, "\nPartner tags:", [f"ID: {t.id:3d} | {t.name:20s} | {t.display_name}" for t in tags])


@tag_group.command("create")
@click.argument("name")
@click.option("--display-name", help="Label shown to users (defaults to NAME as typed)")
@click.pass_context
def create_tag(ctx, name: str, display_name: str | None):
    """Create a partner tag. Names are stored lower-case.

    Examples:
        budgetkit tag create VIP
    """
    service = PartnerTagService(ctx.obj["db"])

    try:
        tag_id = service.create_tag(name=name, display_name=display_name)
        tag = service.get_tag(tag_id)
        emit(ctx, tag, f"Created partner tag '{tag.name}' (ID: {tag_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@tag_group.command("update")
@click.argument("tag")
@click.option("--name", help="New name (stored lower-case)")
@click.option("--display-name", help="New label shown to users")
@click.pass_context
def update_tag(ctx, tag: str, name: str | None, display_name: str | None):
    """Rename a partner tag or change its display name."""
    service = PartnerTagService(ctx.obj["db"])
    try:
        tag_id = resolve_tag_ids(service, (tag,))[0]
        updated = service.update_tag(tag_id, name=name, display_name=display_name)
        emit(ctx, updated, f"Updated partner tag '{updated.name}' (ID: {tag_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@tag_group.command("delete")
@click.argument("tag")
@click.pass_context
def delete_tag(ctx, tag: str):
    """Delete a partner tag no contact or rule uses."""
    service = PartnerTagService(ctx.obj["db"])
    try:
        tag_id = resolve_tag_ids(service, (tag,))[0]
        service.delete_tag(tag_id)
        emit(ctx, {"id": tag_id}, f"Deleted partner tag {tag_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register partner tag commands with main CLI."""
    cli.add_command(tag_group, name="tag")
