"""Ledger reconciliation command."""

import click
from bankimport.cli.business_resolution import resolve_business_or_exit
from bankimport.cli.error_handling import handle_domain_error
from bankimport.domain.business import BusinessService
from bankimport.domain.errors import DomainError
from bankimport.domain.reconciliation import ReconciliationService
from bankimport.domain.settings import ReconciliationPolicy


@click.command("reconcile")
@click.option("--business", required=True, help="Business name or ID")
@click.option(
    "--gap-days",
    type=click.IntRange(min=1),
    default=ReconciliationPolicy().date_gap_warning_days,
    show_default=True,
    help="Report date gaps longer than this many days",
)
@click.option(
    "--ignore-trailing-gap",
    is_flag=True,
    help="Do not report the span from the last record to today",
)
@click.pass_context
def reconcile(ctx, business: str, gap_days: int, ignore_trailing_gap: bool):
    """Check a business ledger for duplicates, missing categories and date gaps.

    Examples:
        bankimport reconcile --business "Acme"
        bankimport reconcile --business 1 --gap-days 30
        bankimport reconcile --business "Acme" --ignore-trailing-gap
    """
    db = ctx.obj["db"]
    business_id = resolve_business_or_exit(ctx, BusinessService(db), business)
    policy = ReconciliationPolicy(
        date_gap_warning_days=gap_days,
        date_gap_alert_days=max(gap_days, ReconciliationPolicy().date_gap_alert_days),
        include_trailing_gap=not ignore_trailing_gap,
    )

    try:
        summary = ReconciliationService(db, policy).summarize(business_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Income: {summary.income_count} records, £{summary.income_total:,.2f}")
    click.echo(f"Expenses: {summary.expense_count} records, £{summary.expense_total:,.2f}")
    click.echo(f"Net: £{summary.net_total:,.2f}")

    if summary.all_clear:
        click.echo("\nNo issues found.")
        return

    click.echo(f"\nIssues ({len(summary.issues)}):")
    for issue in summary.issues:
        click.echo(f"  [{issue.severity.value}] {issue.title}")
        click.echo(f"      {issue.action}")
        for sample in issue.samples:
            click.echo(f"      - {sample}")


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile)
