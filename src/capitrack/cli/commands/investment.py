"""Investment management commands."""

import click
from capitrack.cli.error_handling import handle_domain_error
from capitrack.cli.resolution import resolve_investment_or_exit
from capitrack.domain.entities import InvestmentStatus
from capitrack.domain.errors import DomainError
from capitrack.domain.investment import InvestmentService
from capitrack.domain.spreadsheet_import import SpreadsheetImportService

STATUS_CHOICES = [s.value for s in InvestmentStatus]


@click.group()
def investment_group():
    """Manage investments."""
    pass


@investment_group.command("create")
@click.argument("name", metavar="INVESTMENT_NAME")
@click.option("--group", "investment_group", help="Investment group, e.g. the managing body")
@click.option("--type", "investment_type", help="Investment type")
@click.option("--product-type", help="Product type")
@click.pass_context
def create_investment(ctx, name: str, investment_group: str | None, investment_type: str | None, product_type: str | None):
    """Create a new investment.

    Examples:
        capitrack investment create "Faro-Point FRG-X"
        capitrack investment create "Migdal Real Estate" --group "Migdal" --type fund
    """
    db = ctx.obj["db"]
    service = InvestmentService(db)

    try:
        investment_id = service.create_investment(
            name=name,
            investment_group=investment_group,
            investment_type=investment_type,
            product_type=product_type,
        )
        investment = service.get_investment(investment_id)
        click.echo(f"Created investment '{investment.name}' (ID: {investment_id}, slug: {investment.slug})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@investment_group.command("list")
@click.option("--status", type=click.Choice(STATUS_CHOICES), help="Only show investments with this status")
@click.pass_context
def list_investments(ctx, status: str | None):
    """List investments."""
    db = ctx.obj["db"]
    service = InvestmentService(db)

    investments = service.list_investments(status)
    if not investments:
        click.echo("No investments found.")
        return

    click.echo("\nInvestments:")
    click.echo("-" * 80)
    for inv in investments:
        group = inv.investment_group or "-"
        click.echo(f"ID: {inv.id:3d} | {inv.name:30s} | {inv.status.value:12s} | Group: {group}")


@investment_group.command("status")
@click.argument("investment", metavar="INVESTMENT")
@click.argument("status", type=click.Choice(STATUS_CHOICES))
@click.pass_context
def update_status(ctx, investment: str, status: str):
    """Change an investment's status.

    INVESTMENT can be an investment ID, slug or name.

    Examples:
        capitrack investment status faro-point-frg-x fully_called
    """
    db = ctx.obj["db"]
    service = InvestmentService(db)
    inv = resolve_investment_or_exit(ctx, service, investment)

    try:
        updated = service.update_status(inv.id, status)
        click.echo(f"Investment '{updated.name}' is now {updated.status.value}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@investment_group.command("discover")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--create", is_flag=True, help="Create the new investments that were found")
@click.pass_context
def discover_investments(ctx, file: str, create: bool):
    """List the investments named in an exported file.

    Examples:
        capitrack investment discover movements.csv
        capitrack investment discover movements.csv --create
    """
    db = ctx.obj["db"]
    service = InvestmentService(db)

    try:
        sheet = SpreadsheetImportService(db).read_rows(file)
        discovery = service.discover_investments(row.mapped for row in sheet.rows)
    except (ValueError, FileNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    click.echo(f"\nExisting investments: {len(discovery.existing)}")
    for inv in discovery.existing:
        click.echo(f"  {inv.name} (ID: {inv.id})")
    click.echo(f"New investments: {len(discovery.new)}")
    for candidate in discovery.new:
        click.echo(f"  {candidate.name} | {candidate.counterparty or '-'} | {candidate.product_type or '-'}")

    if create and discovery.new:
        try:
            created = service.create_investments(discovery.new)
            click.echo(f"\nCreated {len(created)} investment(s)")
        except DomainError as e:
            handle_domain_error(ctx, e)


@investment_group.command("link")
@click.pass_context
def link_transactions(ctx):
    """Link unlinked transactions to investments by description."""
    db = ctx.obj["db"]
    service = InvestmentService(db)

    linked = service.backfill_transaction_links()
    click.echo(f"Linked {linked} transaction(s)")


def register_commands(cli):
    """Register investment commands with main CLI."""
    cli.add_command(investment_group, name="investment")
