"""Bank statement import command."""

import click
from bankimport.cli.business_resolution import resolve_business_or_exit
from bankimport.cli.error_handling import handle_domain_error
from bankimport.domain.business import BusinessService
from bankimport.domain.column_mapping import AVAILABLE_DATE_FORMATS, AmountInterpretation
from bankimport.domain.entities import ImportAction, MatchType
from bankimport.domain.errors import DomainError, MappingIncompleteError
from bankimport.domain.import_service import BankImportService
from bankimport.domain.review import ReviewSession
from bankimport.domain.wizard import ImportWizard


def _apply_mapping_options(wizard: ImportWizard, options: dict) -> None:
    mapping = wizard.mapping
    if options["date_column"]:
        mapping.date_column = options["date_column"]
    if options["description_column"]:
        mapping.description_column = options["description_column"]
    if options["date_format"]:
        mapping.date_format = options["date_format"]
    if options["income_column"] or options["expense_column"]:
        mapping.use_separate_columns(
            options["income_column"] or mapping.income_column,
            options["expense_column"] or mapping.expense_column,
        )
    elif options["amount_column"]:
        mapping.use_amount_column(options["amount_column"])
    if options["inverted"]:
        mapping.amount_interpretation = AmountInterpretation.INVERTED


def _echo_preview(review: ReviewSession) -> None:
    click.echo("\nPreview:")
    click.echo(f"  New: {review.new_count}")
    click.echo(f"  Possible duplicates: {review.likely_count}")
    click.echo(f"  Exact duplicates: {review.exact_count}")
    click.echo(f"  Uncategorized: {review.uncategorized_count}")

    errors = review.get_parse_errors()
    if errors:
        click.echo(f"  Parse errors: {len(errors)}")
        for row in errors:
            click.echo(f"    Row {row.row_number}: {row.error}", err=True)

    duplicates = [c for c in review.candidates if c.match_type != MatchType.NEW and c.row.is_parsed]
    for candidate in duplicates:
        row = candidate.row
        action = "skip" if candidate.action == ImportAction.SKIP else "import"
        click.echo(
            f"    Row {row.row_number}: {row.date} £{row.amount:,.2f} {row.description} "
            f"[{candidate.match_type.value}, record {candidate.matched_record_id}, {action}]"
        )


def _echo_confirm(review: ReviewSession) -> None:
    click.echo("\nTo import:")
    click.echo(f"  Income: {review.income_count} (£{review.income_total:,.2f})")
    click.echo(f"  Expenses: {review.expense_count} (£{review.expense_total:,.2f})")
    click.echo(f"  Skipped: {review.skipped_count}")

    breakdown = review.get_category_breakdown()
    if breakdown:
        click.echo("  By category:")
        for category, item in sorted(
            breakdown.items(), key=lambda kv: kv[0].value if kv[0] is not None else ""
        ):
            name = category.value if category is not None else "UNCATEGORIZED"
            click.echo(f"    {name:22s} {item.count:4d}  £{item.total:,.2f}")


@click.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--business", required=True, help="Business name or ID")
@click.option("--date-column", help="Date column (required for unknown formats)")
@click.option("--description-column", help="Description column")
@click.option("--amount-column", help="Signed amount column (negative = expense)")
@click.option("--income-column", help="Money in column (with --expense-column)")
@click.option("--expense-column", help="Money out column (with --income-column)")
@click.option(
    "--date-format",
    help=f"Date format, one of: {', '.join(AVAILABLE_DATE_FORMATS)} (or any strptime pattern)",
)
@click.option("--inverted", is_flag=True, help="Positive amounts are expenses")
@click.option("--skip-likely", is_flag=True, help="Also skip possible duplicates")
@click.option("--dry-run", is_flag=True, help="Show what would be imported without writing")
@click.option("--workers", type=click.IntRange(min=1), default=1, show_default=True,
              help="Worker threads for parsing and matching")
@click.pass_context
def import_csv(ctx, csv_file: str, business: str, skip_likely: bool, dry_run: bool,
               workers: int, **mapping_options):
    """Import a bank statement CSV into a business ledger.

    Known bank formats are detected from the header row. For other files,
    map the columns with the column options.

    Examples:
        bankimport import barclays.csv --business "Acme"
        bankimport import export.csv --business 1 --date-column "Posted" \\
            --description-column "Details" --amount-column "Value" --date-format "%Y-%m-%d"
    """
    db = ctx.obj["db"]
    business_id = resolve_business_or_exit(ctx, BusinessService(db), business)
    service = BankImportService(db)

    try:
        wizard = service.start_wizard(business_id, workers=workers)
        statement = service.read_statement(csv_file)
        profile = wizard.select_file(statement.filename, statement.headers, statement.rows)
        if profile.is_known:
            click.echo(f"Detected format: {profile.display_name}")
        else:
            click.echo("Unknown format: using the column options")
        wizard.go_next()

        _apply_mapping_options(wizard, mapping_options)
        if not wizard.can_go_next():
            raise MappingIncompleteError(wizard.mapping.missing_fields())
        wizard.go_next()

        review = wizard.review
        if skip_likely:
            for candidate in review.candidates:
                if candidate.match_type == MatchType.LIKELY:
                    review.select(candidate.row.id)
            review.set_action_for_selected(ImportAction.SKIP)
            review.clear_selection()
        _echo_preview(review)

        wizard.go_next()
        _echo_confirm(review)

        if not review.get_transactions_to_import():
            click.echo("\nNothing to import.")
            return
        if dry_run:
            click.echo("\nDry run: nothing was imported.")
            return

        item = service.commit_wizard(wizard, business_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nImport {item.id} complete: {item.total_records} records imported")


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_csv)
