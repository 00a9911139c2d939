"""Performance report command."""

import click
from capitrack.cli.error_handling import handle_domain_error
from capitrack.cli.resolution import parse_date_or_exit, resolve_investment_or_exit
from capitrack.domain.errors import DomainError
from capitrack.domain.investment import InvestmentService
from capitrack.domain.metrics import MetricsService


def format_multiple(value: float | None) -> str:
    return f"{value:.2f}x" if value is not None else "N/A"


def format_rate(value: float | None) -> str:
    return f"{value * 100:.2f}%" if value is not None else "N/A"


def format_metrics_row(metrics) -> str:
    """Format one report line."""
    name = metrics.investment_name or "Portfolio"
    return (
        f"{name:<30} {metrics.total_called:>15,.2f} {metrics.total_distributed:>15,.2f} "
        f"{format_multiple(metrics.moic):>7} {format_multiple(metrics.dpi):>7} "
        f"{format_multiple(metrics.rvpi):>7} {format_rate(metrics.xirr):>9}"
    )


def echo_metrics(metrics) -> None:
    """Print the detailed performance of one investment."""
    click.echo(f"\n{metrics.investment_name} as of {metrics.as_of}")
    click.echo("-" * 60)
    click.echo(f"Total called:      {metrics.total_called:,.2f}")
    click.echo(f"Total distributed: {metrics.total_distributed:,.2f}")
    click.echo(f"Net position:      {metrics.net_position:,.2f}")
    click.echo(f"MOIC:              {format_multiple(metrics.moic)}")
    click.echo(f"DPI:               {format_multiple(metrics.dpi)}")
    click.echo(f"RVPI:              {format_multiple(metrics.rvpi)}")
    click.echo(f"TVPI:              {format_multiple(metrics.tvpi)}")
    click.echo(f"XIRR:              {format_rate(metrics.xirr)}")
    if metrics.is_fully_realized:
        click.echo("Fully realized")


@click.command("report")
@click.argument("investment", metavar="[INVESTMENT]", required=False)
@click.option("--as-of", help="Ignore later transactions and value open positions on this date (default: today)")
@click.pass_context
def report(ctx, investment: str | None, as_of: str | None):
    """Show return multiples and XIRR.

    Without INVESTMENT, every investment with capital activity is listed
    with a portfolio total. Open positions are valued at their unreturned
    called capital.

    Examples:
        capitrack report
        capitrack report faro-point-frg-x --as-of 2024-12-31
    """
    db = ctx.obj["db"]
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date") if as_of else None
    service = MetricsService(db)

    if investment is not None:
        inv = resolve_investment_or_exit(ctx, InvestmentService(db), investment)
        try:
            metrics = service.investment_metrics(inv.id, as_of_date)
        except DomainError as e:
            handle_domain_error(ctx, e)
        echo_metrics(metrics)
        return

    result = service.portfolio_report(as_of_date)
    if not result.investments and not result.portfolio.transaction_count:
        click.echo("No capital calls or distributions found.")
        return

    click.echo(f"\nPerformance as of {result.portfolio.as_of}:")
    click.echo(
        f"{'Investment':<30} {'Called':>15} {'Distributed':>15} {'MOIC':>7} {'DPI':>7} {'RVPI':>7} {'XIRR':>9}"
    )
    click.echo("-" * 96)
    for metrics in result.investments:
        click.echo(format_metrics_row(metrics))
    click.echo("-" * 96)
    click.echo(format_metrics_row(result.portfolio))


def register_commands(cli):
    """Register report command with main CLI."""
    cli.add_command(report)
