"""Main CLI entry point."""

import logging

import click
from capitrack.database.factories import create_sqlite_database

# Import and register all commands at module level
from capitrack.cli.commands import (
    import_cmd,
    investment,
    commitment,
    phase,
    mapping,
    report,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbosity: int) -> None:
    """Route domain logging to stderr: warnings by default, -v info, -vv debug."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("capitrack").setLevel(level)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides CAPITRACK_DB_PATH environment variable)",
    envvar="CAPITRACK_DB_PATH",
)
@click.option("-v", "--verbose", count=True, help="Increase log output (-v info, -vv debug)")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: int):
    """Capitrack - Private investment ledger.

    Import custodian transaction exports, track capital commitments and
    watch each investment's lifecycle phase.
    """
    ctx.ensure_object(dict)
    configure_logging(verbose)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
import_cmd.register_commands(cli)
investment.register_commands(cli)
commitment.register_commands(cli)
phase.register_commands(cli)
mapping.register_commands(cli)
report.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
