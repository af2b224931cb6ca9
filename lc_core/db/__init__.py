"""Database helpers for per-project SQLite catalogs."""

from lc_core.db.migrations import migrate_to_latest
from lc_core.db.schema import initialize_database
from lc_core.db.session import session_for_db

__all__ = ["initialize_database", "migrate_to_latest", "session_for_db"]
