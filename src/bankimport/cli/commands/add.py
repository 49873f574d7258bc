"""Add ledger record command."""

import click
from bankimport.cli.business_resolution import resolve_business_or_exit
from bankimport.cli.error_handling import handle_domain_error
from bankimport.domain.business import BusinessService
from bankimport.domain.entities import category_from_value
from bankimport.domain.errors import DomainError
from bankimport.domain.ledger import LedgerService
from bankimport.utils.date_parser import parse_date
from bankimport.utils.amount_parser import parse_amount


@click.command("add")
@click.option("--business", required=True, help="Business name or ID")
@click.option(
    "--date",
    required=True,
    help="Record date (15/01/2024, 2024-01-15 or relative like 'today', 'yesterday')",
)
@click.option(
    "--amount", required=True, help="Signed amount, negative for expenses (e.g., 1200.00 or -45.50)"
)
@click.option("--description", help="Record description")
@click.option("--reference", help="Reference")
@click.option("--category", help="Category, e.g. OFFICE_COSTS or SALES")
@click.pass_context
def add_record(
    ctx,
    business: str,
    date: str,
    amount: str,
    description: str | None,
    reference: str | None,
    category: str | None,
):
    """Add a ledger record manually.

    Examples:
        bankimport add --business 1 --date 2024-01-15 --amount -45.50 --description "Ryman" --category OFFICE_COSTS
        bankimport add --business "Acme" --date today --amount 1500 --description "Invoice 42"
    """
    db = ctx.obj["db"]
    business_id = resolve_business_or_exit(ctx, BusinessService(db), business)

    try:
        record_date = parse_date(date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    try:
        record_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        record_category = category_from_value(category.strip().upper()) if category else None
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        record_id = LedgerService(db).add_record(
            business_id=business_id,
            date=record_date,
            amount=record_amount,
            description=description,
            category=record_category,
            reference=reference,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    kind = "income" if record_amount > 0 else "expense"
    click.echo(f"Created {kind} record {record_id}")
    click.echo(f"  Date: {record_date}")
    click.echo(f"  Amount: £{abs(record_amount):,.2f}")
    if description:
        click.echo(f"  Description: {description}")
    if record_category:
        click.echo(f"  Category: {record_category.value}")


def register_commands(cli):
    """Register add command with main CLI."""
    cli.add_command(add_record)
