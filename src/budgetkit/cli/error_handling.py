"""CLI error handling and output helpers."""

from typing import Any, Iterable

import click

from budgetkit.responses import dumps, failure, success


def wants_json(ctx: click.Context) -> bool:
    """True when the root command was invoked with --json."""
    root = ctx.find_root()
    return bool(root.obj and root.obj.get("json"))


def handle_domain_error(ctx: click.Context, error: ValueError) -> None:
    """Render a domain error and exit with failure."""
    if wants_json(ctx):
        click.echo(dumps(failure(error)))
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def emit(ctx: click.Context, data: Any, message: str, lines: Iterable[str] = ()) -> None:
    """Print a result as text lines, or as a success envelope with --json."""
    if wants_json(ctx):
        click.echo(dumps(success(data, message)))
        return
    if message:
        click.echo(message)
    for line in lines:
        click.echo(line)
