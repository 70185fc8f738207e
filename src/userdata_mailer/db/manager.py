"""Record store for userdata-mailer.

Provides connection management, schema initialization, and the query that
feeds the report.  Module-level functions take a connection object as their
first parameter and do not manage global state; :class:`SqliteRecordStore`
wraps them behind the :class:`RecordStore` interface used by the
orchestrator, opening one connection per call.
"""

from __future__ import annotations

import datetime
import logging
import pathlib
import sqlite3
from contextlib import closing
from typing import Protocol

from userdata_mailer.errors import StorageQueryFailed, StorageUnavailable
from userdata_mailer.models import TIMESTAMP_FORMAT, Record

logger = logging.getLogger(__name__)

_URL_PREFIXES = ("sqlite:///", "sqlite://")

SELECT_ALL_RECORDS = (
    "SELECT Id, Name, Age, CreatedAt FROM UserData "
    "ORDER BY datetime(CreatedAt) DESC, Id"
)


class RecordStore(Protocol):
    """Anything that can produce the ordered report rows."""

    def fetch_all_records(self) -> list[Record]:
        ...


def resolve_database_path(connection_string: str) -> str:
    """Turn a ``sqlite:///`` URL or plain path into a path sqlite3 accepts."""
    value = connection_string.strip()
    for prefix in _URL_PREFIXES:
        if value.startswith(prefix):
            value = value[len(prefix):]
            break
    return value or ":memory:"


def get_connection(connection_string: str, create: bool = True) -> sqlite3.Connection:
    """Open a SQLite connection with Row factory enabled.

    Args:
        connection_string: Filesystem path, ``sqlite:///path`` URL, or
            ``":memory:"``.
        create: When ``False`` the database file must already exist;
            a missing file is reported as unavailable instead of being
            silently created empty.

    Raises:
        StorageUnavailable: If the database cannot be opened.
    """
    path = resolve_database_path(connection_string)
    try:
        if create or path == ":memory:":
            conn = sqlite3.connect(path)
        else:
            uri = pathlib.Path(path).resolve().as_uri() + "?mode=rw"
            conn = sqlite3.connect(uri, uri=True)
    except sqlite3.Error as exc:
        logger.error("Database connection failed for %s: %s", path, exc)
        raise StorageUnavailable(f"Failed to connect to database: {exc}") from exc

    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Create the ``UserData`` table by executing ``schema.sql``.

    The SQL file is located relative to this module using ``__file__``
    so it works regardless of the current working directory.
    """
    schema_path = pathlib.Path(__file__).with_name("schema.sql")
    schema_sql = schema_path.read_text(encoding="utf-8")
    conn.executescript(schema_sql)
    logger.info("Database schema initialized from %s", schema_path)


def insert_record(
    conn: sqlite3.Connection,
    name: str,
    age: int,
    created_at: datetime.datetime | None = None,
) -> int:
    """Insert one ``UserData`` row and return its ``Id``.

    A ``None`` *created_at* stores NULL, which the report shows as ``N/A``.
    """
    stamp = created_at.strftime(TIMESTAMP_FORMAT) if created_at is not None else None
    cursor = conn.execute(
        "INSERT INTO UserData (Name, Age, CreatedAt) VALUES (?, ?, ?)",
        (name, age, stamp),
    )
    conn.commit()
    return cursor.lastrowid


def _parse_timestamp(value) -> datetime.datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value.strip())
    raise TypeError(f"unsupported CreatedAt value {value!r}")


def _row_to_record(row: sqlite3.Row) -> Record:
    """Map one result row, raising on any value that does not fit."""
    if row["Name"] is None:
        raise ValueError("Name is NULL")
    return Record(
        id=int(row["Id"]),
        name=str(row["Name"]),
        age=int(row["Age"]),
        created_at=_parse_timestamp(row["CreatedAt"]),
    )


def fetch_all_records(conn: sqlite3.Connection) -> list[Record]:
    """Return every ``UserData`` row, most recent ``CreatedAt`` first.

    Rows without a timestamp come last, ordered by ``Id``.  A single row
    that fails to map fails the whole call; no partial list is returned.

    Raises:
        StorageQueryFailed: On query errors or unmappable rows.
    """
    try:
        rows = conn.execute(SELECT_ALL_RECORDS).fetchall()
    except sqlite3.Error as exc:
        logger.error("Database error: %s", exc)
        raise StorageQueryFailed(f"Failed to retrieve user data from database: {exc}") from exc

    records = []
    for row in rows:
        try:
            records.append(_row_to_record(row))
        except (TypeError, ValueError) as exc:
            logger.error("Could not map UserData row %r: %s", tuple(row), exc)
            raise StorageQueryFailed(
                f"Failed to read user data row {row['Id']!r}: {exc}"
            ) from exc

    logger.info("Successfully retrieved %d records from database", len(records))
    return records


def check_connection(connection_string: str) -> bool:
    """Return ``True`` if the store can be opened and queried."""
    try:
        with closing(get_connection(connection_string, create=False)) as conn:
            conn.execute("SELECT 1").fetchone()
    except (StorageUnavailable, sqlite3.Error) as exc:
        logger.warning("Database connection test failed: %s", exc)
        return False
    return True


class SqliteRecordStore:
    """Production :class:`RecordStore` backed by a SQLite database."""

    def __init__(self, connection_string: str) -> None:
        self.connection_string = connection_string

    def fetch_all_records(self) -> list[Record]:
        with closing(get_connection(self.connection_string, create=False)) as conn:
            return fetch_all_records(conn)
