"""CLI error handling helpers."""

import logging

import click

from capitrack.domain.errors import DomainError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Print ``Error: <message>`` to stderr and exit with status 1."""
    logger.debug("%s failed: %r", ctx.info_name, error)
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
