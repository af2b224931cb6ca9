from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from lc_core.constants import CURRENT_SCHEMA_VERSION
from lc_core.errors import StorageError

log = logging.getLogger(__name__)

Migration = Callable[[Connection], None]


def _table_exists(connection: Connection, table_name: str) -> bool:
    row = connection.execute(
        text(
            "SELECT 1 FROM sqlite_master "
            "WHERE type='table' AND name=:table_name LIMIT 1"
        ),
        {"table_name": table_name},
    ).first()
    return row is not None


def get_schema_version(connection: Connection) -> int:
    if not _table_exists(connection, "schema_meta"):
        return 0

    value = connection.execute(
        text("SELECT value FROM schema_meta WHERE key='schema_version' LIMIT 1")
    ).scalar_one_or_none()

    if value is None:
        return 0

    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _set_schema_version(connection: Connection, version: int) -> None:
    connection.execute(
        text(
            "INSERT INTO schema_meta(key, value) VALUES('schema_version', :version) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value"
        ),
        {"version": str(version)},
    )


def _migration_v1(connection: Connection) -> None:
    statements = (
        """
        CREATE TABLE IF NOT EXISTS schema_meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            slug TEXT NOT NULL UNIQUE,
            source_locale TEXT NOT NULL,
            quality_mode TEXT NOT NULL DEFAULT 'off',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS project_locales (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            locale_code TEXT NOT NULL,
            position INTEGER NOT NULL,
            created_at TEXT NOT NULL,
            FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_project_locales_project_locale
        ON project_locales(project_id, locale_code)
        """,
        """
        CREATE TABLE IF NOT EXISTS entries (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            key TEXT NOT NULL,
            source_locale TEXT NOT NULL,
            source_text TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_entries_project_key
        ON entries(project_id, key)
        """,
        """
        CREATE TABLE IF NOT EXISTS translations (
            id TEXT PRIMARY KEY,
            entry_id TEXT NOT NULL,
            project_id TEXT NOT NULL,
            locale TEXT NOT NULL,
            text TEXT,
            status TEXT NOT NULL DEFAULT 'pending',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(entry_id) REFERENCES entries(id) ON DELETE CASCADE,
            FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_translations_entry_locale
        ON translations(entry_id, locale)
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_translations_project_locale_status
        ON translations(project_id, locale, status)
        """,
        """
        CREATE TABLE IF NOT EXISTS pages (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            route TEXT NOT NULL,
            title TEXT,
            description TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_pages_project_route
        ON pages(project_id, route)
        """,
        """
        CREATE TABLE IF NOT EXISTS modules (
            id TEXT PRIMARY KEY,
            page_id TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(page_id) REFERENCES pages(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_modules_page_name
        ON modules(page_id, name)
        """,
        """
        CREATE TABLE IF NOT EXISTS entry_placements (
            id TEXT PRIMARY KEY,
            entry_id TEXT NOT NULL,
            page_id TEXT NOT NULL,
            module_id TEXT NOT NULL,
            created_at TEXT NOT NULL,
            FOREIGN KEY(entry_id) REFERENCES entries(id) ON DELETE CASCADE,
            FOREIGN KEY(page_id) REFERENCES pages(id) ON DELETE CASCADE,
            FOREIGN KEY(module_id) REFERENCES modules(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_entry_placements_triple
        ON entry_placements(entry_id, page_id, module_id)
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_entry_placements_module
        ON entry_placements(page_id, module_id)
        """,
        """
        CREATE TABLE IF NOT EXISTS template_meta (
            project_id TEXT PRIMARY KEY,
            shape TEXT NOT NULL,
            template_paths_json TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS package_uploads (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            locale TEXT NOT NULL,
            shape TEXT NOT NULL,
            operator TEXT,
            summary_added INTEGER NOT NULL DEFAULT 0,
            summary_updated INTEGER NOT NULL DEFAULT 0,
            summary_missing INTEGER NOT NULL DEFAULT 0,
            summary_ignored INTEGER NOT NULL DEFAULT 0,
            summary_marked_needs_update INTEGER NOT NULL DEFAULT 0,
            summary_skipped_empty INTEGER NOT NULL DEFAULT 0,
            details_json TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL,
            FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_package_uploads_project_created_at
        ON package_uploads(project_id, created_at)
        """,
    )

    for statement in statements:
        connection.exec_driver_sql(statement)


MIGRATIONS: dict[int, Migration] = {
    1: _migration_v1,
}


def migrate_to_latest(engine: Engine) -> int:
    current_version = 0

    with engine.begin() as connection:
        current_version = get_schema_version(connection)
        if current_version > CURRENT_SCHEMA_VERSION:
            raise StorageError(
                f"Database schema version {current_version} is newer than supported "
                f"version {CURRENT_SCHEMA_VERSION}."
            )

        for target_version in sorted(MIGRATIONS):
            if target_version <= current_version:
                continue
            MIGRATIONS[target_version](connection)
            _set_schema_version(connection, target_version)
            log.info("Applied schema migration %s to %s", target_version, engine.url.database)
            current_version = target_version

    return current_version
