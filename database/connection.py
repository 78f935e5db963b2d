"""
Database connection management for SQLite.
Provides connection handling, schema initialization, and context managers.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import structlog

from config.settings import settings
from exceptions import TransportError

logger = structlog.get_logger()

# Path to schema file
SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Seconds a connection waits on a locked database before raising
BUSY_TIMEOUT_SECONDS = 30.0


def get_connection(
    db_path: Optional[Path] = None,
    isolation_level: Optional[str] = "",
    timeout: float = BUSY_TIMEOUT_SECONDS,
) -> sqlite3.Connection:
    """
    Create a new database connection.

    Args:
        db_path: Optional path to database file. Uses settings default if not provided.
        isolation_level: sqlite3 isolation level. None gives autocommit mode,
            which callers use to issue their own BEGIN IMMEDIATE.
        timeout: Seconds to wait on a locked database before raising.

    Returns:
        SQLite connection with row factory enabled.
    """
    path = Path(db_path or settings.database_path)

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path), timeout=timeout, isolation_level=isolation_level)
    conn.row_factory = sqlite3.Row  # Enable dict-like access to rows

    # Enable foreign keys
    conn.execute("PRAGMA foreign_keys = ON")

    # Enable WAL mode for better concurrent access
    conn.execute("PRAGMA journal_mode = WAL")

    return conn


@contextmanager
def get_db_connection(
    db_path: Optional[Path] = None,
    timeout: float = BUSY_TIMEOUT_SECONDS,
) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    Automatically commits on success, rolls back on error.

    Usage:
        with get_db_connection() as conn:
            conn.execute("INSERT INTO ...")
    """
    conn = get_connection(db_path, timeout=timeout)
    try:
        yield conn
        conn.commit()
    except Exception as e:
        conn.rollback()
        logger.error("Database error, rolling back", error=str(e))
        raise
    finally:
        conn.close()


@contextmanager
def immediate_transaction(
    db_path: Optional[Path] = None,
    timeout: float = BUSY_TIMEOUT_SECONDS,
) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager holding the database write lock for its whole body.

    Used where a read decides a write (claiming queue messages), so two
    connections can never act on the same read.
    """
    conn = get_connection(db_path, isolation_level=None, timeout=timeout)
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.execute("COMMIT")
    except Exception as e:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        logger.error("Database error, rolling back", error=str(e))
        raise
    finally:
        conn.close()


@contextmanager
def record_store_errors(action: str) -> Generator[None, None, None]:
    """
    Re-raise sqlite3 errors from the record store as TransportError.

    Usage:
        with record_store_errors("create application"):
            create_application(...)
    """
    try:
        yield
    except sqlite3.Error as e:
        raise TransportError(f"Record store failed to {action}: {e}") from e


def init_database(db_path: Optional[Path] = None) -> None:
    """
    Initialize the database with the schema.
    Safe to call multiple times (uses IF NOT EXISTS).

    Args:
        db_path: Optional path to database file.
    """
    path = db_path or settings.database_path
    logger.info("Initializing database", path=str(path))

    # Read schema file
    if not SCHEMA_PATH.exists():
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")

    schema_sql = SCHEMA_PATH.read_text()

    with get_db_connection(path) as conn:
        conn.executescript(schema_sql)

    logger.info("Database initialized successfully", path=str(path))


def check_database_health(db_path: Optional[Path] = None) -> dict:
    """
    Check database health and return statistics.

    Returns:
        Dictionary with table counts and database info.
    """
    path = Path(db_path or settings.database_path)

    if not path.exists():
        return {"exists": False, "error": "Database file does not exist"}

    stats = {"exists": True, "path": str(path), "tables": {}}

    try:
        with get_db_connection(path) as conn:
            cursor = conn.cursor()

            cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'")
            tables = [row[0] for row in cursor.fetchall()]

            for table in tables:
                cursor.execute(f"SELECT COUNT(*) FROM {table}")
                count = cursor.fetchone()[0]
                stats["tables"][table] = count

            cursor.execute("PRAGMA page_count")
            page_count = cursor.fetchone()[0]
            cursor.execute("PRAGMA page_size")
            page_size = cursor.fetchone()[0]
            stats["size_bytes"] = page_count * page_size
            stats["size_mb"] = round(stats["size_bytes"] / (1024 * 1024), 2)

    except Exception as e:
        stats["error"] = str(e)

    return stats


def row_to_dict(row: sqlite3.Row) -> dict:
    """Convert a sqlite3.Row to a dictionary."""
    return dict(zip(row.keys(), row))


def rows_to_dicts(rows: list[sqlite3.Row]) -> list[dict]:
    """Convert a list of sqlite3.Row to list of dictionaries."""
    return [row_to_dict(row) for row in rows]
