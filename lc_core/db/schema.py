from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy.engine import Engine

from lc_core.db.engine import create_sqlite_engine
from lc_core.db.migrations import migrate_to_latest


def initialize_database(db_path: Path) -> Engine:
    """Open a project catalog and bring its schema up to date."""

    engine = create_sqlite_engine(db_path)
    try:
        migrate_to_latest(engine)
    except Exception:
        engine.dispose()
        raise
    return engine


@contextmanager
def catalog_engine(db_path: Path) -> Iterator[Engine]:
    """Yield a migrated engine for one unit of work and release its pool afterwards."""

    engine = initialize_database(db_path)
    try:
        yield engine
    finally:
        engine.dispose()
