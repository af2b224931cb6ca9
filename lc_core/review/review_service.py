from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import text

from lc_core.constants import (
    MAX_ENTRY_KEY_LENGTH,
    MAX_ENTRY_TEXT_LENGTH,
    STATUS_APPROVED,
    STATUS_NEEDS_REVIEW,
    STATUS_NEEDS_UPDATE,
    STATUS_PENDING,
    STATUS_READY,
)
from lc_core.context.binder import bind_entries, resolve_bind_target
from lc_core.db.schema import initialize_database
from lc_core.errors import CatalogValidationError
from lc_core.packages.requests import BindSpec
from lc_core.store.ports import CatalogTransaction, EntryRecord, ProjectRecord
from lc_core.store.sqlite import SqliteCatalogStore

log = logging.getLogger(__name__)


@dataclass(slots=True)
class TranslationState:
    entry_id: str
    locale: str
    text: str | None
    status: str


@dataclass(slots=True)
class LocaleProgress:
    locale: str
    total: int
    translated: int
    approved: int
    needs_review: int
    needs_update: int

    @property
    def missing(self) -> int:
        return max(self.total - self.translated, 0)

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.translated * 100 / self.total)


def _require_project(tx: CatalogTransaction, project_id: str) -> ProjectRecord:
    project = tx.get_project(project_id)
    if project is None:
        raise CatalogValidationError(f"Project not found: {project_id}")
    return project


def _require_target_locale(project: ProjectRecord, locale: str) -> None:
    if locale == project.source_locale:
        raise CatalogValidationError(
            f"'{locale}' is the source locale; edit the entry source text instead."
        )
    if locale not in project.target_locales:
        raise CatalogValidationError(f"Locale '{locale}' is not configured for this project.")


def _require_entry(tx: CatalogTransaction, project_id: str, entry_id: str) -> EntryRecord:
    entry = tx.get_entry(project_id, entry_id)
    if entry is None:
        raise CatalogValidationError(f"Entry not found: {entry_id}")
    return entry


def _normalize_key(key: str) -> str:
    normalized = ".".join(segment.strip() for segment in (key or "").strip().split("."))
    if not normalized or any(not segment for segment in normalized.split(".")):
        raise CatalogValidationError(f"Invalid entry key: '{key}'")
    if len(normalized) > MAX_ENTRY_KEY_LENGTH:
        raise CatalogValidationError(
            f"Entry key is too long (max {MAX_ENTRY_KEY_LENGTH} characters)."
        )
    return normalized


def create_entry(
    *,
    db_path: Path,
    project_id: str,
    key: str,
    source_text: str,
    target_locale: str | None = None,
    target_text: str | None = None,
    page_id: str | None = None,
    module_id: str | None = None,
) -> EntryRecord:
    """Create one entry by hand.

    Every target locale gets a ``pending`` translation, except ``target_locale``
    when ``target_text`` is given: that one starts at ``needs_review``.
    """

    normalized_key = _normalize_key(key)
    if not (source_text or "").strip():
        raise CatalogValidationError("Source text must not be blank.")

    initial_text = (target_text or "").strip()
    for label, value in (("Source text", source_text.strip()), ("Target text", initial_text)):
        if len(value) > MAX_ENTRY_TEXT_LENGTH:
            raise CatalogValidationError(
                f"{label} is too long (max {MAX_ENTRY_TEXT_LENGTH} characters)."
            )

    spec = BindSpec.build(page_id=page_id, module_id=module_id) if page_id else None

    with SqliteCatalogStore(db_path).begin() as tx:
        project = _require_project(tx, project_id)
        if target_locale and initial_text:
            _require_target_locale(project, target_locale)

        existing = tx.load_entries(project_id)
        if normalized_key in existing:
            raise CatalogValidationError(f"Key already exists: {normalized_key}")

        ids_by_key = tx.insert_entries(
            project_id, project.source_locale, [(normalized_key, source_text)]
        )
        entry_id = ids_by_key[normalized_key]

        pending_locales = [
            locale
            for locale in project.target_locales
            if not (initial_text and locale == target_locale)
        ]
        tx.insert_pending_translations(project_id, [entry_id], pending_locales)
        if target_locale and initial_text:
            tx.write_translation_texts(
                project_id, target_locale, [(entry_id, initial_text)], STATUS_NEEDS_REVIEW
            )

        if spec is not None:
            target = resolve_bind_target(tx, project_id, spec)
            bind_entries(tx, target, [entry_id])

    log.info("Created entry %s in project %s", normalized_key, project_id)
    return EntryRecord(id=entry_id, key=normalized_key, source_text=source_text)


def save_translation(
    *,
    db_path: Path,
    project_id: str,
    entry_id: str,
    locale: str,
    text_value: str,
) -> TranslationState:
    """Store a human edit. Non-blank text becomes ``ready``; blank text resets to ``pending``."""

    has_text = bool((text_value or "").strip())
    status = STATUS_READY if has_text else STATUS_PENDING
    stored_text = text_value if has_text else None

    with SqliteCatalogStore(db_path).begin() as tx:
        project = _require_project(tx, project_id)
        _require_target_locale(project, locale)
        _require_entry(tx, project_id, entry_id)
        tx.write_translation_texts(project_id, locale, [(entry_id, stored_text)], status)

    return TranslationState(entry_id=entry_id, locale=locale, text=stored_text, status=status)


def approve_translation(
    *,
    db_path: Path,
    project_id: str,
    entry_id: str,
    locale: str,
) -> TranslationState:
    """Mark the current translation as approved; empty translations cannot be approved."""

    with SqliteCatalogStore(db_path).begin() as tx:
        project = _require_project(tx, project_id)
        _require_target_locale(project, locale)
        _require_entry(tx, project_id, entry_id)

        records = tx.load_translations(project_id, [entry_id], [locale])
        record = records[0] if records else None
        if record is None or not record.has_text:
            raise CatalogValidationError("Cannot approve an empty translation.")
        if record.status != STATUS_APPROVED:
            tx.mark_status([record.id], STATUS_APPROVED)

    log.info("Approved %s translation for entry %s", locale, entry_id)
    return TranslationState(
        entry_id=entry_id, locale=locale, text=record.text, status=STATUS_APPROVED
    )


def locale_progress(*, db_path: Path, project_id: str) -> list[LocaleProgress]:
    engine = initialize_database(Path(db_path))
    try:
        with engine.connect() as connection:
            total = connection.execute(
                text("SELECT COUNT(*) FROM entries WHERE project_id = :project_id"),
                {"project_id": project_id},
            ).scalar_one()

            locale_rows = connection.execute(
                text(
                    """
                    SELECT pl.locale_code
                    FROM project_locales AS pl
                    INNER JOIN projects AS p
                        ON p.id = pl.project_id
                    WHERE pl.project_id = :project_id
                      AND pl.locale_code <> p.source_locale
                    ORDER BY pl.position, pl.locale_code
                    """
                ),
                {"project_id": project_id},
            ).all()

            count_rows = connection.execute(
                text(
                    """
                    SELECT
                        locale,
                        SUM(CASE WHEN text IS NOT NULL AND TRIM(text) <> '' THEN 1 ELSE 0 END),
                        SUM(CASE WHEN status = :approved AND text IS NOT NULL AND TRIM(text) <> ''
                            THEN 1 ELSE 0 END),
                        SUM(CASE WHEN status = :needs_review THEN 1 ELSE 0 END),
                        SUM(CASE WHEN status = :needs_update THEN 1 ELSE 0 END)
                    FROM translations
                    WHERE project_id = :project_id
                    GROUP BY locale
                    """
                ),
                {
                    "project_id": project_id,
                    "approved": STATUS_APPROVED,
                    "needs_review": STATUS_NEEDS_REVIEW,
                    "needs_update": STATUS_NEEDS_UPDATE,
                },
            ).all()
    finally:
        engine.dispose()

    counts = {str(row[0]): row for row in count_rows}
    progress: list[LocaleProgress] = []
    for (locale,) in locale_rows:
        row = counts.get(str(locale))
        progress.append(
            LocaleProgress(
                locale=str(locale),
                total=int(total or 0),
                translated=int(row[1] or 0) if row else 0,
                approved=int(row[2] or 0) if row else 0,
                needs_review=int(row[3] or 0) if row else 0,
                needs_update=int(row[4] or 0) if row else 0,
            )
        )
    return progress
