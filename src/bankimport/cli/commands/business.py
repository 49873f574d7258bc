"""Business management commands."""

import click
from bankimport.cli.error_handling import handle_domain_error
from bankimport.domain.business import BusinessService
from bankimport.domain.errors import DomainError


@click.group("business")
def business_group():
    """Manage businesses."""
    pass


@business_group.command("create")
@click.argument("name", metavar="BUSINESS_NAME")
@click.pass_context
def create_business(ctx, name: str):
    """Create a new business.

    Examples:
        bankimport business create "Acme Plumbing"
    """
    service = BusinessService(ctx.obj["db"])
    try:
        business_id = service.create_business(name)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created business '{name.strip()}' (ID: {business_id})")


@business_group.command("list")
@click.pass_context
def list_businesses(ctx):
    """List all businesses."""
    service = BusinessService(ctx.obj["db"])

    businesses = service.list_businesses()
    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\nBusinesses:")
    click.echo("-" * 60)
    for b in businesses:
        click.echo(f"ID: {b.id:3d} | {b.name}")


def register_commands(cli):
    """Register business commands with main CLI."""
    cli.add_command(business_group)
