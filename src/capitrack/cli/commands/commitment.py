"""Capital commitment commands."""

import click
from capitrack.cli.error_handling import handle_domain_error
from capitrack.cli.resolution import (
    parse_amount_or_exit,
    parse_date_or_exit,
    resolve_investment_or_exit,
)
from capitrack.domain.alerts import ALERT_WARNING_THRESHOLD_PCT, AlertEvaluator
from capitrack.domain.commitment import CommitmentService
from capitrack.domain.entities import AllocationPolicy, CommitmentPhase
from capitrack.domain.errors import DomainError
from capitrack.domain.investment import InvestmentService

PHASE_CHOICES = [p.value for p in CommitmentPhase]


def format_commitment(c) -> str:
    phase = c.phase.value if c.phase else "-"
    if c.manual_phase:
        phase += " (pinned)"
    return (
        f"ID: {c.id:3d} | {c.commitment_date} | {c.commitment_amount:>14,.2f} {c.currency} | "
        f"Called: {c.called_to_date:>14,.2f} | Remaining: {c.remaining:>14,.2f} | Phase: {phase}"
    )


@click.group()
def commitment_group():
    """Manage capital commitments."""
    pass


@commitment_group.command("add")
@click.argument("investment", metavar="INVESTMENT")
@click.argument("amount")
@click.option("--currency", required=True, help="Currency code, e.g. USD")
@click.option("--date", "commitment_date", required=True, help="Commitment date (e.g. 2023-01-15)")
@click.option("--notes", help="Optional notes")
@click.pass_context
def add_commitment(ctx, investment: str, amount: str, currency: str, commitment_date: str, notes: str | None):
    """Add a commitment to an investment.

    INVESTMENT can be an investment ID, slug or name.

    Examples:
        capitrack commitment add faro-point-frg-x 500000 --currency USD --date 2023-01-15
    """
    db = ctx.obj["db"]
    inv = resolve_investment_or_exit(ctx, InvestmentService(db), investment)
    parsed_amount = parse_amount_or_exit(ctx, amount, "amount")
    parsed_date = parse_date_or_exit(ctx, commitment_date, "date")
    service = CommitmentService(db)

    try:
        commitment_id = service.create_commitment(
            investment_id=inv.id,
            commitment_amount=parsed_amount,
            currency=currency,
            commitment_date=parsed_date,
            notes=notes,
        )
        click.echo(f"Created commitment {commitment_id} for '{inv.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@commitment_group.command("list")
@click.option("--investment", help="Only show commitments of this investment")
@click.pass_context
def list_commitments(ctx, investment: str | None):
    """List commitments."""
    db = ctx.obj["db"]
    investment_id = None
    if investment is not None:
        investment_id = resolve_investment_or_exit(ctx, InvestmentService(db), investment).id

    commitments = CommitmentService(db).list_commitments(investment_id)
    if not commitments:
        click.echo("No commitments found.")
        return

    click.echo("\nCommitments:")
    click.echo("-" * 120)
    for c in commitments:
        click.echo(format_commitment(c))


@commitment_group.command("update")
@click.argument("commitment_id", type=int)
@click.option("--amount", help="New commitment amount")
@click.option("--currency", help="New currency code")
@click.option("--date", "commitment_date", help="New commitment date")
@click.option("--notes", help="New notes")
@click.pass_context
def update_commitment(
    ctx, commitment_id: int, amount: str | None, currency: str | None, commitment_date: str | None, notes: str | None
):
    """Update a commitment.

    Examples:
        capitrack commitment update 1 --amount 750000
    """
    db = ctx.obj["db"]
    service = CommitmentService(db)
    parsed_amount = parse_amount_or_exit(ctx, amount, "amount") if amount is not None else None
    parsed_date = parse_date_or_exit(ctx, commitment_date, "date") if commitment_date is not None else None

    try:
        service.update_commitment(
            commitment_id,
            commitment_amount=parsed_amount,
            currency=currency,
            commitment_date=parsed_date,
            notes=notes,
        )
        click.echo(f"Updated commitment {commitment_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@commitment_group.command("delete")
@click.argument("commitment_id", type=int)
@click.pass_context
def delete_commitment(ctx, commitment_id: int):
    """Delete a commitment."""
    db = ctx.obj["db"]
    service = CommitmentService(db)

    try:
        service.delete_commitment(commitment_id)
        click.echo(f"Deleted commitment {commitment_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@commitment_group.command("summary")
@click.argument("investment", metavar="INVESTMENT")
@click.pass_context
def commitment_summary(ctx, investment: str):
    """Show the commitment roll-up of an investment."""
    db = ctx.obj["db"]
    inv = resolve_investment_or_exit(ctx, InvestmentService(db), investment)

    try:
        summary = CommitmentService(db).get_summary(inv.id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    currency = summary.currency or "(mixed currencies)"
    pct = f"{summary.percentage_called:.2f}%" if summary.percentage_called is not None else "n/a"
    click.echo(f"\n{inv.name}")
    click.echo("-" * 60)
    click.echo(f"Commitments:     {summary.commitment_count}")
    click.echo(f"Total committed: {summary.total_committed:,.2f} {currency}")
    click.echo(f"Total called:    {summary.total_called:,.2f}")
    click.echo(f"Remaining:       {summary.total_remaining:,.2f}")
    click.echo(f"Called:          {pct}")


@commitment_group.command("update-progress")
@click.argument("investment", metavar="INVESTMENT")
@click.option("--sequential", is_flag=True, help="Fill each commitment before moving to the next")
@click.pass_context
def update_progress(ctx, investment: str, sequential: bool):
    """Recompute called and remaining amounts from imported capital calls."""
    db = ctx.obj["db"]
    inv = resolve_investment_or_exit(ctx, InvestmentService(db), investment)
    policy = AllocationPolicy.SEQUENTIAL if sequential else AllocationPolicy.FRONT_LOAD

    try:
        commitments = CommitmentService(db, policy=policy).update_progress(inv.id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not commitments:
        click.echo(f"No commitments found for '{inv.name}'.")
        return
    click.echo(f"Updated {len(commitments)} commitment(s) for '{inv.name}':")
    for c in commitments:
        click.echo(format_commitment(c))


@commitment_group.command("set-phase")
@click.argument("commitment_id", type=int)
@click.argument("phase", type=click.Choice(PHASE_CHOICES))
@click.pass_context
def set_phase(ctx, commitment_id: int, phase: str):
    """Pin a commitment's phase; phase detection will leave it alone."""
    db = ctx.obj["db"]

    try:
        CommitmentService(db).set_phase(commitment_id, phase)
        click.echo(f"Commitment {commitment_id} pinned to {phase}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@commitment_group.command("clear-phase")
@click.argument("commitment_id", type=int)
@click.pass_context
def clear_phase(ctx, commitment_id: int):
    """Let phase detection manage a commitment's phase again."""
    db = ctx.obj["db"]

    try:
        CommitmentService(db).clear_manual_phase(commitment_id)
        click.echo(f"Commitment {commitment_id} phase is no longer pinned")
    except DomainError as e:
        handle_domain_error(ctx, e)


@commitment_group.command("alerts")
@click.option("--investment", help="Only check commitments of this investment")
@click.option(
    "--threshold",
    type=float,
    default=ALERT_WARNING_THRESHOLD_PCT,
    show_default=True,
    help="Warn when less than this percentage remains",
)
@click.pass_context
def show_alerts(ctx, investment: str | None, threshold: float):
    """Show overdrawn and nearly exhausted commitments."""
    db = ctx.obj["db"]
    investment_id = None
    if investment is not None:
        investment_id = resolve_investment_or_exit(ctx, InvestmentService(db), investment).id

    alerts = AlertEvaluator(db, warning_threshold_pct=threshold).evaluate(investment_id)
    if not alerts:
        click.echo("No alerts.")
        return

    for alert in alerts:
        name = alert.investment_name or f"Investment {alert.investment_id}"
        click.echo(
            f"[{alert.severity.value.upper()}] {name} / commitment {alert.commitment_id}: {alert.message}"
        )


def register_commands(cli):
    """Register commitment commands with main CLI."""
    cli.add_command(commitment_group, name="commitment")
