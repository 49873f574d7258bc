"""CLI error handling helpers."""

import click

from bankimport.domain.errors import CommitFailure, DomainError, UndoDeniedError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, CommitFailure):
        click.echo("The ledger is unchanged. Fix the problem and run the import again.", err=True)
    elif isinstance(error, UndoDeniedError):
        click.echo(f"Reason: {error.reason}", err=True)
    ctx.exit(1)
