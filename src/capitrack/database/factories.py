"""Database factory functions."""

import os
from pathlib import Path
from typing import Optional

from capitrack.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "CAPITRACK_DB_PATH"
DEFAULT_DB_DIR = Path.home() / ".capitrack"
DEFAULT_DB_NAME = "capitrack.db"


def resolve_database_path(database_path: Optional[str] = None) -> Path:
    """Pick the SQLite file to use.

    The explicit path wins, then the CAPITRACK_DB_PATH environment variable,
    then ~/.capitrack/capitrack.db. The parent directory is created if needed.
    """
    chosen = database_path or os.environ.get(DB_PATH_ENV)
    path = Path(chosen).expanduser() if chosen else DEFAULT_DB_DIR / DEFAULT_DB_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to the SQLite file; see resolve_database_path

    Returns:
        SQLAlchemyDatabase with its schema created
    """
    return SQLAlchemyDatabase(f"sqlite:///{resolve_database_path(database_path)}")
