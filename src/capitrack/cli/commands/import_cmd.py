"""Transaction import command."""

import click

from capitrack.cli.error_handling import handle_domain_error
from capitrack.domain.errors import DomainError
from capitrack.domain.fingerprint import Fingerprinter, parse_fingerprint_fields
from capitrack.domain.spreadsheet_import import SpreadsheetImportService
from capitrack.domain.transaction_import import ImportOptions


def echo_summary(summary, dry_run: bool) -> None:
    """Print an import summary."""
    click.echo(f"\n{'Dry run' if dry_run else 'Import'} complete:")
    click.echo(f"  Total: {summary.total} rows")
    click.echo(f"  {'Would import' if dry_run else 'Imported'}: {summary.imported} transactions")
    click.echo(
        f"  Skipped: {summary.skipped} "
        f"({summary.skipped_duplicates} duplicates, {summary.skipped_invalid} incomplete)"
    )
    click.echo(f"  Failed: {summary.failed}")
    if summary.errors:
        for error in summary.errors:
            click.echo(f"    Row {error['row']}: {error['error']}", err=True)
    if summary.unmapped_types:
        click.echo("\nUnmapped transaction types (add them with 'capitrack mapping add'):")
        for label in summary.unmapped_types:
            click.echo(f"  {label}")


@click.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Show what would be imported without writing anything")
@click.option("--force", is_flag=True, help="Import rows that are missing a date or amount")
@click.option(
    "--no-skip-duplicates",
    is_flag=True,
    help="Report already-imported rows as failures instead of skipping them",
)
@click.option(
    "--no-create-investments",
    is_flag=True,
    help="Do not create investments named in the file that don't exist yet",
)
@click.option(
    "--fingerprint-fields",
    help="Comma-separated fields that identify a transaction "
    "(default: date,amount_original,counterparty,investment)",
)
@click.pass_context
def import_file(
    ctx,
    file: str,
    dry_run: bool,
    force: bool,
    no_skip_duplicates: bool,
    no_create_investments: bool,
    fingerprint_fields: str | None,
):
    """Import transactions from an exported CSV file.

    The column layout (Hebrew custodian export or English headers) is
    detected from the header row.

    Examples:
        capitrack import movements.csv --dry-run
        capitrack import movements.csv
        capitrack import movements.csv --fingerprint-fields date,amount_original,investment
    """
    db = ctx.obj["db"]

    try:
        fingerprinter = None
        if fingerprint_fields:
            fingerprinter = Fingerprinter(parse_fingerprint_fields(fingerprint_fields))
        service = SpreadsheetImportService(db, fingerprinter=fingerprinter)
        options = ImportOptions(skip_duplicates=not no_skip_duplicates, force_import=force)
        summary = service.import_file(
            file,
            options=options,
            dry_run=dry_run,
            create_investments=not no_create_investments,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"Error: Could not read {file}: {e}", err=True)
        ctx.exit(1)

    echo_summary(summary, dry_run)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_file)
