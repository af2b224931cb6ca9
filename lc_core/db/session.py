from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlmodel import Session

from lc_core.db.schema import catalog_engine


@contextmanager
def session_for_db(db_path: Path) -> Iterator[Session]:
    """Yield a SQLModel session for the read-side models of a project catalog.

    Objects stay usable after commit so callers can build results from them
    once the session has closed.
    """

    with catalog_engine(db_path) as engine, Session(engine, expire_on_commit=False) as session:
        yield session
