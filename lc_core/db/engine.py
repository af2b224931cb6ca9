from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine

from lc_core.errors import StorageError

log = logging.getLogger(__name__)

# Concurrent imports into one project wait this long for the writer lock.
DEFAULT_BUSY_TIMEOUT_MS = 5000


def create_sqlite_engine(
    db_path: Path, *, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS
) -> Engine:
    """Open the catalog file of an existing project directory.

    The database file itself is created on first use, but its directory must
    already exist so a mistyped project path does not produce an empty catalog.
    """

    db_path = Path(db_path).expanduser().resolve()
    if not db_path.parent.is_dir():
        raise StorageError(f"Project directory does not exist: {db_path.parent}")

    engine = create_engine(f"sqlite+pysqlite:///{db_path.as_posix()}", future=True)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)};")
        cursor.close()

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    log.debug("Opened catalog %s", db_path)
    return engine
