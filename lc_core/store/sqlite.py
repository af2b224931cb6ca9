from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar
from uuid import uuid4

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, IntegrityError

from lc_core.constants import PLACEMENT_BATCH_SIZE, STATUS_APPROVED, STATUS_PENDING
from lc_core.db.schema import catalog_engine
from lc_core.errors import StorageError
from lc_core.store.ports import (
    EntryRecord,
    ExportRow,
    ModuleRecord,
    PackageUploadRow,
    PageRecord,
    ProjectRecord,
    TemplateRecord,
    TranslationRecord,
)

log = logging.getLogger(__name__)

_T = TypeVar("_T")


def _utc_now_iso() -> str:
    return (
        datetime.now(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def _chunks(items: Sequence[_T], size: int = PLACEMENT_BATCH_SIZE) -> Iterator[Sequence[_T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _parse_template_paths(raw_value: object) -> list[tuple[str, ...]]:
    if not isinstance(raw_value, str) or not raw_value.strip():
        return []

    try:
        parsed = json.loads(raw_value)
    except (TypeError, ValueError):
        return []

    if not isinstance(parsed, list):
        return []

    paths: list[tuple[str, ...]] = []
    for item in parsed:
        if isinstance(item, list) and item and all(isinstance(part, str) for part in item):
            paths.append(tuple(item))
    return paths


class SqliteCatalogTransaction:
    """``CatalogTransaction`` over one SQLAlchemy connection."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    # Projects

    def get_project(self, project_id: str) -> ProjectRecord | None:
        row = self.connection.execute(
            text(
                """
                SELECT id, slug, name, source_locale, quality_mode
                FROM projects
                WHERE id = :project_id
                LIMIT 1
                """
            ),
            {"project_id": project_id},
        ).mappings().first()
        if row is None:
            return None

        locales = self.connection.execute(
            text(
                """
                SELECT locale_code
                FROM project_locales
                WHERE project_id = :project_id
                ORDER BY position, locale_code
                """
            ),
            {"project_id": project_id},
        ).scalars().all()

        return ProjectRecord(
            id=str(row["id"]),
            slug=str(row["slug"]),
            name=str(row["name"]),
            source_locale=str(row["source_locale"]),
            quality_mode=str(row["quality_mode"]),
            locales=tuple(str(locale) for locale in locales),
        )

    # Entries

    def load_entries(self, project_id: str) -> dict[str, EntryRecord]:
        rows = self.connection.execute(
            text(
                """
                SELECT id, key, source_text
                FROM entries
                WHERE project_id = :project_id
                ORDER BY key
                """
            ),
            {"project_id": project_id},
        ).all()
        return {
            str(row[1]): EntryRecord(id=str(row[0]), key=str(row[1]), source_text=str(row[2]))
            for row in rows
        }

    def get_entry(self, project_id: str, entry_id: str) -> EntryRecord | None:
        row = self.connection.execute(
            text(
                """
                SELECT id, key, source_text
                FROM entries
                WHERE id = :entry_id AND project_id = :project_id
                LIMIT 1
                """
            ),
            {"entry_id": entry_id, "project_id": project_id},
        ).first()
        if row is None:
            return None
        return EntryRecord(id=str(row[0]), key=str(row[1]), source_text=str(row[2]))

    def insert_entries(
        self, project_id: str, source_locale: str, items: Sequence[tuple[str, str]]
    ) -> dict[str, str]:
        if not items:
            return {}

        now = _utc_now_iso()
        ids_by_key: dict[str, str] = {}
        rows: list[dict[str, object]] = []
        for key, source_text in items:
            entry_id = str(uuid4())
            ids_by_key[key] = entry_id
            rows.append(
                {
                    "id": entry_id,
                    "project_id": project_id,
                    "key": key,
                    "source_locale": source_locale,
                    "source_text": source_text,
                    "created_at": now,
                    "updated_at": now,
                }
            )

        self.connection.execute(
            text(
                """
                INSERT INTO entries(
                    id, project_id, key, source_locale, source_text, created_at, updated_at
                ) VALUES (
                    :id, :project_id, :key, :source_locale, :source_text, :created_at, :updated_at
                )
                """
            ),
            rows,
        )
        return ids_by_key

    def update_source_texts(self, updates: Sequence[tuple[str, str]]) -> None:
        if not updates:
            return

        now = _utc_now_iso()
        self.connection.execute(
            text(
                """
                UPDATE entries
                SET source_text = :source_text, updated_at = :updated_at
                WHERE id = :id
                """
            ),
            [
                {"id": entry_id, "source_text": source_text, "updated_at": now}
                for entry_id, source_text in updates
            ],
        )

    # Translations

    def load_translations(
        self, project_id: str, entry_ids: Sequence[str], locales: Sequence[str]
    ) -> list[TranslationRecord]:
        if not entry_ids or not locales:
            return []

        statement = text(
            """
            SELECT id, entry_id, locale, text, status
            FROM translations
            WHERE project_id = :project_id
              AND locale IN :locales
              AND entry_id IN :entry_ids
            """
        ).bindparams(
            bindparam("locales", expanding=True),
            bindparam("entry_ids", expanding=True),
        )

        records: list[TranslationRecord] = []
        for chunk in _chunks(list(entry_ids)):
            rows = self.connection.execute(
                statement,
                {"project_id": project_id, "locales": list(locales), "entry_ids": list(chunk)},
            ).all()
            records.extend(
                TranslationRecord(
                    id=str(row[0]),
                    entry_id=str(row[1]),
                    locale=str(row[2]),
                    text=row[3],
                    status=str(row[4]),
                )
                for row in rows
            )
        return records

    def insert_pending_translations(
        self, project_id: str, entry_ids: Sequence[str], locales: Sequence[str]
    ) -> None:
        if not entry_ids or not locales:
            return

        now = _utc_now_iso()
        rows = [
            {
                "id": str(uuid4()),
                "entry_id": entry_id,
                "project_id": project_id,
                "locale": locale,
                "status": STATUS_PENDING,
                "created_at": now,
                "updated_at": now,
            }
            for entry_id in entry_ids
            for locale in locales
        ]
        self.connection.execute(
            text(
                """
                INSERT INTO translations(
                    id, entry_id, project_id, locale, text, status, created_at, updated_at
                ) VALUES (
                    :id, :entry_id, :project_id, :locale, NULL, :status, :created_at, :updated_at
                )
                """
            ),
            rows,
        )

    def mark_status(self, translation_ids: Sequence[str], status: str) -> None:
        if not translation_ids:
            return

        now = _utc_now_iso()
        statement = text(
            """
            UPDATE translations
            SET status = :status, updated_at = :updated_at
            WHERE id IN :ids
            """
        ).bindparams(bindparam("ids", expanding=True))
        for chunk in _chunks(list(translation_ids)):
            self.connection.execute(
                statement, {"status": status, "updated_at": now, "ids": list(chunk)}
            )

    def write_translation_texts(
        self,
        project_id: str,
        locale: str,
        items: Sequence[tuple[str, str | None]],
        status: str,
    ) -> None:
        if not items:
            return

        now = _utc_now_iso()
        self.connection.execute(
            text(
                """
                INSERT INTO translations(
                    id, entry_id, project_id, locale, text, status, created_at, updated_at
                ) VALUES (
                    :id, :entry_id, :project_id, :locale, :text, :status, :created_at, :updated_at
                )
                ON CONFLICT(entry_id, locale) DO UPDATE SET
                    text = excluded.text,
                    status = excluded.status,
                    updated_at = excluded.updated_at
                """
            ),
            [
                {
                    "id": str(uuid4()),
                    "entry_id": entry_id,
                    "project_id": project_id,
                    "locale": locale,
                    "text": value,
                    "status": status,
                    "created_at": now,
                    "updated_at": now,
                }
                for entry_id, value in items
            ],
        )

    def count_blocking_translations(self, project_id: str, locale: str) -> int:
        value = self.connection.execute(
            text(
                """
                SELECT COUNT(*)
                FROM translations
                WHERE project_id = :project_id
                  AND locale = :locale
                  AND (status <> :approved OR text IS NULL OR TRIM(text) = '')
                """
            ),
            {"project_id": project_id, "locale": locale, "approved": STATUS_APPROVED},
        ).scalar_one()
        return int(value or 0)

    def list_export_rows(self, project_id: str, locale: str) -> list[ExportRow]:
        rows = self.connection.execute(
            text(
                """
                SELECT e.key, e.source_text, t.text
                FROM entries AS e
                LEFT JOIN translations AS t
                    ON t.entry_id = e.id
                   AND t.locale = :locale
                WHERE e.project_id = :project_id
                ORDER BY e.key
                """
            ),
            {"project_id": project_id, "locale": locale},
        ).all()
        return [ExportRow(key=str(row[0]), source_text=str(row[1]), text=row[2]) for row in rows]

    # Template metadata

    def get_template(self, project_id: str) -> TemplateRecord | None:
        row = self.connection.execute(
            text(
                """
                SELECT shape, template_paths_json
                FROM template_meta
                WHERE project_id = :project_id
                LIMIT 1
                """
            ),
            {"project_id": project_id},
        ).first()
        if row is None:
            return None
        return TemplateRecord(shape=str(row[0]), paths=_parse_template_paths(row[1]))

    def save_template(
        self, project_id: str, shape: str, paths: Sequence[tuple[str, ...]]
    ) -> None:
        now = _utc_now_iso()
        self.connection.execute(
            text(
                """
                INSERT INTO template_meta(
                    project_id, shape, template_paths_json, created_at, updated_at
                ) VALUES (
                    :project_id, :shape, :template_paths_json, :created_at, :updated_at
                )
                ON CONFLICT(project_id) DO UPDATE SET
                    template_paths_json = excluded.template_paths_json,
                    updated_at = excluded.updated_at
                """
            ),
            {
                "project_id": project_id,
                "shape": shape,
                "template_paths_json": json.dumps([list(path) for path in paths], ensure_ascii=False),
                "created_at": now,
                "updated_at": now,
            },
        )

    # Pages and modules

    def get_page(self, project_id: str, page_id: str) -> PageRecord | None:
        row = self.connection.execute(
            text(
                """
                SELECT id, project_id, route, title
                FROM pages
                WHERE id = :page_id AND project_id = :project_id
                LIMIT 1
                """
            ),
            {"page_id": page_id, "project_id": project_id},
        ).first()
        if row is None:
            return None
        return PageRecord(id=str(row[0]), project_id=str(row[1]), route=str(row[2]), title=row[3])

    def _find_page_by_route(self, project_id: str, route: str) -> PageRecord | None:
        row = self.connection.execute(
            text(
                """
                SELECT id, project_id, route, title
                FROM pages
                WHERE project_id = :project_id AND route = :route
                LIMIT 1
                """
            ),
            {"project_id": project_id, "route": route},
        ).first()
        if row is None:
            return None
        return PageRecord(id=str(row[0]), project_id=str(row[1]), route=str(row[2]), title=row[3])

    def create_or_get_page(
        self, project_id: str, route: str, title: str | None = None
    ) -> tuple[PageRecord, bool]:
        existing = self._find_page_by_route(project_id, route)
        if existing is not None:
            return existing, False

        now = _utc_now_iso()
        result = self.connection.execute(
            text(
                """
                INSERT INTO pages(id, project_id, route, title, description, created_at, updated_at)
                VALUES (:id, :project_id, :route, :title, NULL, :created_at, :updated_at)
                ON CONFLICT(project_id, route) DO NOTHING
                """
            ),
            {
                "id": str(uuid4()),
                "project_id": project_id,
                "route": route,
                "title": title,
                "created_at": now,
                "updated_at": now,
            },
        )
        page = self._find_page_by_route(project_id, route)
        if page is None:
            raise StorageError(f"Failed to persist page '{route}'")
        return page, result.rowcount == 1

    def get_module(self, page_id: str, module_id: str) -> ModuleRecord | None:
        row = self.connection.execute(
            text(
                """
                SELECT id, page_id, name
                FROM modules
                WHERE id = :module_id AND page_id = :page_id
                LIMIT 1
                """
            ),
            {"module_id": module_id, "page_id": page_id},
        ).first()
        if row is None:
            return None
        return ModuleRecord(id=str(row[0]), page_id=str(row[1]), name=str(row[2]))

    def find_module_by_name(self, page_id: str, name: str) -> ModuleRecord | None:
        row = self.connection.execute(
            text(
                """
                SELECT id, page_id, name
                FROM modules
                WHERE page_id = :page_id AND name = :name
                LIMIT 1
                """
            ),
            {"page_id": page_id, "name": name},
        ).first()
        if row is None:
            return None
        return ModuleRecord(id=str(row[0]), page_id=str(row[1]), name=str(row[2]))

    def create_or_get_module(self, page_id: str, name: str) -> tuple[ModuleRecord, bool]:
        existing = self.find_module_by_name(page_id, name)
        if existing is not None:
            return existing, False

        now = _utc_now_iso()
        result = self.connection.execute(
            text(
                """
                INSERT INTO modules(id, page_id, name, description, created_at, updated_at)
                VALUES (:id, :page_id, :name, NULL, :created_at, :updated_at)
                ON CONFLICT(page_id, name) DO NOTHING
                """
            ),
            {
                "id": str(uuid4()),
                "page_id": page_id,
                "name": name,
                "created_at": now,
                "updated_at": now,
            },
        )
        module = self.find_module_by_name(page_id, name)
        if module is None:
            raise StorageError(f"Failed to persist module '{name}'")
        return module, result.rowcount == 1

    # Placements

    def existing_placements(
        self, page_id: str, module_id: str, entry_ids: Sequence[str]
    ) -> set[str]:
        if not entry_ids:
            return set()

        statement = text(
            """
            SELECT entry_id
            FROM entry_placements
            WHERE page_id = :page_id
              AND module_id = :module_id
              AND entry_id IN :entry_ids
            """
        ).bindparams(bindparam("entry_ids", expanding=True))

        found: set[str] = set()
        for chunk in _chunks(list(entry_ids)):
            found.update(
                str(value)
                for value in self.connection.execute(
                    statement,
                    {"page_id": page_id, "module_id": module_id, "entry_ids": list(chunk)},
                ).scalars()
            )
        return found

    def insert_placements(self, page_id: str, module_id: str, entry_ids: Iterable[str]) -> int:
        ids = list(entry_ids)
        if not ids:
            return 0

        now = _utc_now_iso()
        result = self.connection.execute(
            text(
                """
                INSERT INTO entry_placements(id, entry_id, page_id, module_id, created_at)
                VALUES (:id, :entry_id, :page_id, :module_id, :created_at)
                ON CONFLICT(entry_id, page_id, module_id) DO NOTHING
                """
            ),
            [
                {
                    "id": str(uuid4()),
                    "entry_id": entry_id,
                    "page_id": page_id,
                    "module_id": module_id,
                    "created_at": now,
                }
                for entry_id in ids
            ],
        )
        # Rows skipped by the conflict clause are not counted.
        return max(result.rowcount, 0)

    def delete_placements(self, page_id: str, module_id: str, entry_ids: Sequence[str]) -> int:
        if not entry_ids:
            return 0

        statement = text(
            """
            DELETE FROM entry_placements
            WHERE page_id = :page_id
              AND module_id = :module_id
              AND entry_id IN :entry_ids
            """
        ).bindparams(bindparam("entry_ids", expanding=True))

        removed = 0
        for chunk in _chunks(list(entry_ids)):
            result = self.connection.execute(
                statement,
                {"page_id": page_id, "module_id": module_id, "entry_ids": list(chunk)},
            )
            removed += max(result.rowcount, 0)
        return removed

    # Audit

    def insert_package_upload(self, row: PackageUploadRow) -> str:
        upload_id = str(uuid4())
        self.connection.execute(
            text(
                """
                INSERT INTO package_uploads(
                    id, project_id, locale, shape, operator,
                    summary_added, summary_updated, summary_missing, summary_ignored,
                    summary_marked_needs_update, summary_skipped_empty,
                    details_json, created_at
                ) VALUES (
                    :id, :project_id, :locale, :shape, :operator,
                    :summary_added, :summary_updated, :summary_missing, :summary_ignored,
                    :summary_marked_needs_update, :summary_skipped_empty,
                    :details_json, :created_at
                )
                """
            ),
            {
                "id": upload_id,
                "project_id": row.project_id,
                "locale": row.locale,
                "shape": row.shape,
                "operator": row.operator,
                "summary_added": row.added,
                "summary_updated": row.updated,
                "summary_missing": row.missing,
                "summary_ignored": row.ignored,
                "summary_marked_needs_update": row.marked_needs_update,
                "summary_skipped_empty": row.skipped_empty,
                "details_json": row.details_json,
                "created_at": _utc_now_iso(),
            },
        )
        return upload_id


class SqliteCatalogStore:
    """``CatalogStore`` backed by a per-project SQLite file."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def begin(self) -> Iterator[SqliteCatalogTransaction]:
        """Yield a handle inside one transaction; commit on success, roll back on any error."""

        try:
            with catalog_engine(self.db_path) as engine, engine.begin() as connection:
                yield SqliteCatalogTransaction(connection)
        except IntegrityError as exc:
            log.warning("Constraint violation in %s: %s", self.db_path, exc.orig)
            raise StorageError(f"Storage constraint violated: {exc.orig}") from exc
        except DBAPIError as exc:
            raise StorageError(f"Storage error: {exc.orig}") from exc

    @contextmanager
    def read(self) -> Iterator[SqliteCatalogTransaction]:
        try:
            with catalog_engine(self.db_path) as engine, engine.connect() as connection:
                yield SqliteCatalogTransaction(connection)
        except DBAPIError as exc:
            raise StorageError(f"Storage error: {exc.orig}") from exc
