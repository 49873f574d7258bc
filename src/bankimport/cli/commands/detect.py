"""Bank format detection command."""

import click
from bankimport.cli.error_handling import handle_domain_error
from bankimport.domain.errors import DomainError
from bankimport.domain.import_service import BankImportService


@click.command("detect")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def detect_csv(ctx, csv_file: str):
    """Detect which bank produced a CSV statement.

    Examples:
        bankimport detect statement.csv
    """
    service = BankImportService(ctx.obj["db"])
    try:
        statement, profile = service.detect(csv_file)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"File: {statement.filename} ({len(statement.rows)} rows)")
    click.echo(f"Headers: {', '.join(statement.headers)}")
    if not profile.is_known:
        click.echo("Format: unknown, map the columns manually when importing")
        return

    mapping = profile.create_mapping()
    click.echo(f"Format: {profile.display_name} ({profile.bank.value})")
    click.echo(f"  Date column: {mapping.date_column} ({mapping.date_format})")
    click.echo(f"  Description column: {mapping.description_column}")
    if mapping.has_separate_amount_columns():
        click.echo(f"  Money in column: {mapping.income_column}")
        click.echo(f"  Money out column: {mapping.expense_column}")
    else:
        click.echo(f"  Amount column: {mapping.amount_column}")


def register_commands(cli):
    """Register detect command with main CLI."""
    cli.add_command(detect_csv)
