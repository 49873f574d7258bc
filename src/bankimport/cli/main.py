"""Main CLI entry point."""

import click
from bankimport.database.factories import DB_PATH_ENVVAR, create_sqlite_database
from bankimport.utils.logging_config import setup_logging

# Import and register all commands at module level
from bankimport.cli.commands import (
    business,
    add,
    detect,
    import_cmd,
    history,
    reconcile,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {DB_PATH_ENVVAR} environment variable)",
    envvar=DB_PATH_ENVVAR,
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity (logs go to stderr)",
)
@click.option("--log-file", type=click.Path(), help="Also write logs to this file")
@click.option("--echo-sql", is_flag=True, help="Log every SQL statement the ledger runs")
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str, log_file: str | None, echo_sql: bool):
    """Bankimport - bank statement import for UK self-employed bookkeeping.

    Import CSV statements from UK banks into a business ledger, review
    duplicates and categories, undo recent imports and check the ledger
    for gaps and duplicates.
    """
    ctx.ensure_object(dict)
    setup_logging(level=log_level, log_file=log_file)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path, echo=echo_sql)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
business.register_commands(cli)
add.register_commands(cli)
detect.register_commands(cli)
import_cmd.register_commands(cli)
history.register_commands(cli)
reconcile.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
