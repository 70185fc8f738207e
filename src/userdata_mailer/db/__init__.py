"""Database sub-package for userdata-mailer.

Exports the record store and its helpers so that other modules can import
them directly from ``userdata_mailer.db``:

    from userdata_mailer.db import SqliteRecordStore, get_connection, init_db
"""

from userdata_mailer.db.manager import (
    RecordStore,
    SqliteRecordStore,
    check_connection,
    fetch_all_records,
    get_connection,
    init_db,
    insert_record,
)

__all__ = [
    "RecordStore",
    "SqliteRecordStore",
    "check_connection",
    "fetch_all_records",
    "get_connection",
    "init_db",
    "insert_record",
]
