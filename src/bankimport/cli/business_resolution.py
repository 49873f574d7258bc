"""CLI helpers for business resolution."""

from __future__ import annotations

import click
from bankimport.domain.business import BusinessService
from bankimport.domain.errors import NotFoundError, business_not_found


def resolve_business(business_service: BusinessService, business: str | int) -> int:
    """Resolve business name or ID to business ID.

    Args:
        business_service: BusinessService instance
        business: Business name, or ID (int or string representation of int)

    Returns:
        Business ID

    Raises:
        NotFoundError: If business is not found
    """
    try:
        business_id = int(business)
    except (ValueError, TypeError):
        # Not a number, treat as name
        found = business_service.get_business_by_name(str(business))
        if found is None:
            raise NotFoundError(f"Business '{business}' not found")
        return found.id

    if business_service.get_business(business_id) is None:
        raise NotFoundError(business_not_found(business_id))
    return business_id


def resolve_business_or_exit(
    ctx: click.Context, business_service: BusinessService, business: str | int
) -> int:
    """Resolve business name or ID, or exit with a CLI error."""
    try:
        return resolve_business(business_service, business)
    except NotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
