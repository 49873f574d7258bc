"""Factories for the ledger database."""

import os
from pathlib import Path
from typing import Optional

from bankimport.database.sqlalchemy_db import SQLAlchemyDatabase
from bankimport.utils.logging_config import get_logger

logger = get_logger(__name__)

DB_PATH_ENVVAR = "BANKIMPORT_DB_PATH"
IN_MEMORY = ":memory:"


def default_database_path() -> Path:
    return Path.home() / ".bankimport" / "bankimport.db"


def resolve_database_path(database_path: Optional[str] = None) -> str:
    """Pick the SQLite file to open.

    An explicit path wins, then the BANKIMPORT_DB_PATH environment variable,
    then ~/.bankimport/bankimport.db. Missing parent directories are created.
    """
    path = database_path or os.environ.get(DB_PATH_ENVVAR) or str(default_database_path())
    if path == IN_MEMORY:
        return path

    resolved = Path(path).expanduser()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def create_database(database_url: str, echo: bool = False) -> SQLAlchemyDatabase:
    """Create a database for any SQLAlchemy URL."""
    return SQLAlchemyDatabase(database_url, echo=echo)


def create_sqlite_database(database_path: Optional[str] = None, echo: bool = False) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: SQLite file, or ":memory:"; see resolve_database_path
        echo: Log every SQL statement

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    path = resolve_database_path(database_path)
    logger.debug(f"Opening SQLite database at {path}")
    return create_database(f"sqlite:///{path}", echo=echo)
