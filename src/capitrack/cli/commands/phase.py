"""Phase detection commands."""

import click
from capitrack.cli.error_handling import handle_domain_error
from capitrack.cli.resolution import parse_date_or_exit, resolve_investment_or_exit
from capitrack.domain.errors import DomainError
from capitrack.domain.investment import InvestmentService
from capitrack.domain.phase import DEFAULT_PHASE_THRESHOLD, PHASE_WINDOW_MONTHS, PhaseDetector


@click.group()
def phase_group():
    """Detect investment lifecycle phases."""
    pass


@phase_group.command("detect")
@click.argument("investment", metavar="INVESTMENT")
@click.option("--as-of", help="End of the analysis window (default: today)")
@click.option(
    "--threshold",
    type=float,
    default=DEFAULT_PHASE_THRESHOLD,
    show_default=True,
    help="Calls/distributions ratio above which the investment is building up",
)
@click.option(
    "--months",
    type=int,
    default=PHASE_WINDOW_MONTHS,
    show_default=True,
    help="Length of the analysis window in months",
)
@click.option("--apply", is_flag=True, help="Store the detected phase on commitments that are not pinned")
@click.pass_context
def detect_phase(ctx, investment: str, as_of: str | None, threshold: float, months: int, apply: bool):
    """Detect the phase of an investment from recent capital activity.

    Examples:
        capitrack phase detect faro-point-frg-x
        capitrack phase detect 3 --as-of 2024-12-31 --apply
    """
    db = ctx.obj["db"]
    inv = resolve_investment_or_exit(ctx, InvestmentService(db), investment)
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date") if as_of else None

    try:
        detector = PhaseDetector(db, threshold=threshold, window_months=months)
        if apply:
            detection = detector.update_phases(inv.id, as_of_date)
        else:
            detection = detector.detect(inv.id, as_of_date)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\n{inv.name}: {detection.analysis_start_date} to {detection.analysis_end_date}")
    click.echo("-" * 60)
    click.echo(f"Capital calls:  {detection.capital_calls_total:,.2f} ({detection.capital_calls_count})")
    click.echo(f"Distributions:  {detection.distributions_total:,.2f} ({detection.distributions_count})")
    if not detection.has_signal:
        click.echo("Phase:          no signal (no capital calls or distributions in window)")
        return
    click.echo(f"Ratio:          {detection.ratio:.2f} (threshold {detection.threshold})")
    click.echo(f"Phase:          {detection.phase.value} ({detection.confidence.value} confidence)")
    if apply:
        click.echo("Phase stored on commitments that are not pinned")


def register_commands(cli):
    """Register phase commands with main CLI."""
    cli.add_command(phase_group, name="phase")
