"""Main CLI entry point."""

import click
from budgetkit.config import load_settings
from budgetkit.database.factories import create_sqlite_database
from budgetkit.logging_config import configure_logging
from budgetkit.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from budgetkit.cli.commands import (
    analytic,
    rule,
    budget,
    document,
    contact,
    product,
    category,
    tag,
    recommend,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BUDGETKIT_DB_PATH environment variable)",
    envvar="BUDGETKIT_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (overrides BUDGETKIT_LOG_LEVEL)",
)
@click.option("--json", "as_json", is_flag=True, help="Print results as {success, data, message} JSON")
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None, as_json: bool):
    """Budgetkit - Budget-controlled purchasing and sales.

    Tag purchase and sales orders, vendor bills and customer invoices with budget
    analytics, track achieved amounts against budgets, and record payments.
    """
    ctx.ensure_object(dict)
    ctx.obj["json"] = as_json

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings().with_overrides(
                database_path=db_path,
                log_level=log_level.upper() if log_level else None,
            )
        except ValueError as e:
            handle_domain_error(ctx, e)
        configure_logging(settings.log_level, settings.log_format)

        db = create_sqlite_database(database_path=settings.database_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.call_on_close(db.disconnect)


# Register all commands
analytic.register_commands(cli)
rule.register_commands(cli)
budget.register_commands(cli)
document.register_commands(cli)
contact.register_commands(cli)
product.register_commands(cli)
category.register_commands(cli)
tag.register_commands(cli)
recommend.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
