"""Import history, undo and lock commands."""

from datetime import datetime, time, UTC

import click
from bankimport.cli.business_resolution import resolve_business_or_exit
from bankimport.cli.error_handling import handle_domain_error
from bankimport.domain.audit import ImportAuditService
from bankimport.domain.business import BusinessService
from bankimport.domain.errors import DomainError
from bankimport.utils.date_parser import PERIODS, get_date_range, parse_date


@click.command("history")
@click.option("--business", required=True, help="Business name or ID")
@click.option("--period", type=click.Choice(PERIODS + ["tax-year"]), help="Only imports made in this period")
@click.option("--undoable", is_flag=True, help="Only imports that can still be undone")
@click.pass_context
def history(ctx, business: str, period: str | None, undoable: bool):
    """List committed imports, newest first.

    Examples:
        bankimport history --business "Acme"
        bankimport history --business 1 --period this-month --undoable
    """
    db = ctx.obj["db"]
    business_id = resolve_business_or_exit(ctx, BusinessService(db), business)
    service = ImportAuditService(db)

    since = None
    if period:
        start, _ = get_date_range(period)
        since = datetime.combine(start, time.min, tzinfo=UTC)

    items = service.list_history(business_id, since=since, undoable_only=undoable)
    if not items:
        click.echo("No imports found.")
        return

    click.echo("\nImports:")
    click.echo("-" * 100)
    for item in items:
        reason = service.undo_disabled_reason(item)
        undo_text = "undoable" if reason is None else reason
        click.echo(
            f"ID: {item.id:3d} | {item.imported_at:%Y-%m-%d %H:%M} | {item.source_filename:24s} | "
            f"{item.bank_format:10s} | {item.status.value:6s} | "
            f"in {item.income_count} £{item.income_total:,.2f} / "
            f"out {item.expense_count} £{item.expense_total:,.2f} | {undo_text}"
        )


@click.command("undo")
@click.argument("batch_id", type=int)
@click.pass_context
def undo_import(ctx, batch_id: int):
    """Undo a recent import, removing its records from the ledger."""
    service = ImportAuditService(ctx.obj["db"])
    try:
        result = service.undo(batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Undid import {result.batch_id}: removed {result.records_removed} records")


@click.command("lock")
@click.argument("batch_id", type=int)
@click.option("--date", "used_on", help="Tax submission date (defaults to now)")
@click.pass_context
def lock_import(ctx, batch_id: int, used_on: str | None):
    """Record a tax submission against an import, locking it permanently."""
    service = ImportAuditService(ctx.obj["db"])

    used_at = None
    if used_on:
        try:
            used_at = datetime.combine(parse_date(used_on), time.min, tzinfo=UTC)
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    try:
        item = service.mark_tax_submission_used(batch_id, used_at)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Import {item.id} is locked by tax submission")


def register_commands(cli):
    """Register history commands with main CLI."""
    cli.add_command(history)
    cli.add_command(undo_import)
    cli.add_command(lock_import)
