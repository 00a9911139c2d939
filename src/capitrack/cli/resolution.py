"""CLI helpers for resolving investments and parsing option values."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import click

from capitrack.domain.entities import Investment
from capitrack.domain.investment import InvestmentService
from capitrack.utils.amount_parser import parse_amount
from capitrack.utils.date_parser import parse_date


def resolve_investment_or_exit(
    ctx: click.Context, service: InvestmentService, investment: str
) -> Investment:
    """Resolve an investment ID, slug or name, or exit with a CLI error."""
    try:
        return service.resolve_investment(investment)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def parse_date_or_exit(ctx: click.Context, value: str, label: str) -> date:
    """Parse a date option, or exit with a CLI error."""
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def parse_amount_or_exit(ctx: click.Context, value: str, label: str) -> Decimal:
    """Parse an amount option, or exit with a CLI error."""
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)
