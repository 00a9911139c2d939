"""Transaction type mapping commands."""

import click
from capitrack.cli.error_handling import handle_domain_error
from capitrack.domain.entities import DirectionalityRule, TransactionCategory
from capitrack.domain.errors import DomainError
from capitrack.domain.type_mapping import TypeMappingService

CATEGORY_CHOICES = [c.value for c in TransactionCategory]
RULE_CHOICES = [r.value for r in DirectionalityRule]


@click.group()
def mapping_group():
    """Manage transaction type mappings."""
    pass


@mapping_group.command("add")
@click.argument("raw_value", metavar="LABEL")
@click.argument("category", type=click.Choice(CATEGORY_CHOICES))
@click.option(
    "--rule",
    type=click.Choice(RULE_CHOICES),
    default=DirectionalityRule.AS_IS.value,
    show_default=True,
    help="How the exported amount is signed",
)
@click.option(
    "--impact",
    type=click.Choice(["1", "-1"]),
    help="Forced sign for the variable rule: 1 inflow, -1 outflow",
)
@click.option("--replace", is_flag=True, help="Overwrite an existing mapping for the label")
@click.pass_context
def add_mapping(ctx, raw_value: str, category: str, rule: str, impact: str | None, replace: bool):
    """Map a raw transaction type label to a category.

    Examples:
        capitrack mapping add "Capital Call" capital_call --rule variable --impact -1
        capitrack mapping add "משיכה" distribution
    """
    db = ctx.obj["db"]
    service = TypeMappingService(db)

    try:
        mapping = service.add_mapping(
            raw_value,
            category,
            rule,
            cash_flow_impact=int(impact) if impact is not None else None,
            replace=replace,
        )
        click.echo(f"Mapped '{mapping.raw_value}' to {mapping.category.value} ({mapping.directionality_rule.value})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@mapping_group.command("list")
@click.pass_context
def list_mappings(ctx):
    """List transaction type mappings."""
    db = ctx.obj["db"]
    mappings = TypeMappingService(db).list_mappings()
    if not mappings:
        click.echo("No mappings found. Run 'capitrack mapping init' to add the defaults.")
        return

    click.echo("\nTransaction type mappings:")
    click.echo("-" * 70)
    for m in mappings:
        impact = "-" if m.cash_flow_impact is None else f"{m.cash_flow_impact:+d}"
        click.echo(f"{m.raw_value:25s} | {m.category.value:13s} | {m.directionality_rule.value:8s} | {impact}")


@mapping_group.command("delete")
@click.argument("raw_value", metavar="LABEL")
@click.pass_context
def delete_mapping(ctx, raw_value: str):
    """Delete a transaction type mapping."""
    db = ctx.obj["db"]

    try:
        TypeMappingService(db).delete_mapping(raw_value)
        click.echo(f"Deleted mapping '{raw_value}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@mapping_group.command("init")
@click.pass_context
def init_mappings(ctx):
    """Add the default mappings for the custodian export labels."""
    db = ctx.obj["db"]
    added = TypeMappingService(db).seed_defaults()
    if added == 0:
        click.echo("Default mappings already present.")
    else:
        click.echo(f"Added {added} default mapping(s)")


def register_commands(cli):
    """Register mapping commands with main CLI."""
    cli.add_command(mapping_group, name="mapping")
