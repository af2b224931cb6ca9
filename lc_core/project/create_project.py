from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.engine import Connection

from lc_core.constants import QUALITY_MODE_OFF, QUALITY_MODE_STRICT, STATUS_PENDING
from lc_core.db.migrations import get_schema_version
from lc_core.db.schema import initialize_database
from lc_core.project.config import ProjectConfig, read_config, write_config
from lc_core.project.paths import (
    ensure_project_layout,
    project_config_path,
    project_db_path,
    project_path_for_slug,
    project_readme_path,
    resolve_projects_root,
    slugify,
)

log = logging.getLogger(__name__)


@dataclass(slots=True)
class CreatedProject:
    name: str
    slug: str
    project_id: str
    root: Path
    project_path: Path
    db_path: Path
    config_path: Path


@dataclass(slots=True)
class ProjectInfo:
    name: str
    slug: str
    project_id: str
    source_locale: str
    target_locales: list[str]
    quality_mode: str
    schema_version: int
    project_path: Path

    @property
    def db_path(self) -> Path:
        return project_db_path(self.project_path)

    @property
    def locales(self) -> list[str]:
        return [self.source_locale, *self.target_locales]


def _utc_now_iso() -> str:
    return (
        datetime.now(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def _unique_ordered(values: list[str]) -> list[str]:
    seen: set[str] = set()
    output: list[str] = []
    for value in values:
        normalized = value.strip()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        output.append(normalized)
    return output


def _normalize_quality_mode(value: str) -> str:
    normalized = (value or QUALITY_MODE_OFF).strip().lower()
    if normalized not in {QUALITY_MODE_OFF, QUALITY_MODE_STRICT}:
        raise ValueError(f"Unsupported quality mode: {value}")
    return normalized


def _write_project_readme(project_path: Path) -> None:
    readme_path = project_readme_path(project_path)
    note = (
        "Language-pack catalog project.\n"
        "project.db holds entries, translations, page/module context and upload history.\n"
        "Exports are written to exports/.\n"
    )
    readme_path.write_text(note, encoding="utf-8")


def _insert_project_locale(
    connection: Connection,
    *,
    project_id: str,
    locale_code: str,
    position: int,
    created_at: str,
) -> None:
    connection.execute(
        text(
            """
            INSERT INTO project_locales(id, project_id, locale_code, position, created_at)
            VALUES (:id, :project_id, :locale_code, :position, :created_at)
            """
        ),
        {
            "id": str(uuid4()),
            "project_id": project_id,
            "locale_code": locale_code,
            "position": position,
            "created_at": created_at,
        },
    )


def create_project(
    name: str,
    *,
    slug: str | None = None,
    source_locale: str = "zh-CN",
    target_locales: list[str] | None = None,
    quality_mode: str = QUALITY_MODE_OFF,
    root: Path | None = None,
) -> CreatedProject:
    project_slug = slugify(slug if slug is not None else name)
    projects_root = resolve_projects_root(root)
    project_path = project_path_for_slug(project_slug, projects_root)

    if project_path.exists():
        raise FileExistsError(f"Project path already exists: {project_path}")

    normalized_source = source_locale.strip()
    if not normalized_source:
        raise ValueError("A source locale is required.")
    requested_targets = ["en-US"] if target_locales is None else list(target_locales)
    targets = [
        locale for locale in _unique_ordered(requested_targets) if locale != normalized_source
    ]
    normalized_quality_mode = _normalize_quality_mode(quality_mode)

    projects_root.mkdir(parents=True, exist_ok=True)
    project_path.mkdir(parents=False, exist_ok=False)
    ensure_project_layout(project_path)

    config = ProjectConfig(
        project_name=name,
        slug=project_slug,
        source_locale=normalized_source,
        target_locales=targets,
        quality_mode=normalized_quality_mode,
    )

    config_path = project_config_path(project_path)
    write_config(config_path, config)
    _write_project_readme(project_path)

    db_path = project_db_path(project_path)
    engine = initialize_database(db_path)

    now = _utc_now_iso()
    project_id = str(uuid4())

    try:
        with engine.begin() as connection:
            connection.execute(
                text(
                    """
                    INSERT INTO projects(
                        id, name, slug, source_locale, quality_mode, created_at, updated_at
                    ) VALUES (
                        :id, :name, :slug, :source_locale, :quality_mode, :created_at, :updated_at
                    )
                    """
                ),
                {
                    "id": project_id,
                    "name": name,
                    "slug": project_slug,
                    "source_locale": normalized_source,
                    "quality_mode": normalized_quality_mode,
                    "created_at": now,
                    "updated_at": now,
                },
            )

            for position, locale_code in enumerate([normalized_source, *targets]):
                _insert_project_locale(
                    connection,
                    project_id=project_id,
                    locale_code=locale_code,
                    position=position,
                    created_at=now,
                )
    finally:
        engine.dispose()

    log.info("Created project %s (%s) at %s", project_slug, project_id, project_path)

    return CreatedProject(
        name=name,
        slug=project_slug,
        project_id=project_id,
        root=projects_root,
        project_path=project_path,
        db_path=db_path,
        config_path=config_path,
    )


def load_project_info(slug: str, *, root: Path | None = None) -> ProjectInfo:
    project_slug = slugify(slug)
    projects_root = resolve_projects_root(root)
    project_path = project_path_for_slug(project_slug, projects_root)

    if not project_path.exists():
        raise FileNotFoundError(f"Project does not exist: {project_path}")

    config = read_config(project_config_path(project_path))
    db_path = project_db_path(project_path)
    engine = initialize_database(db_path)

    try:
        with engine.connect() as connection:
            schema_version = get_schema_version(connection)
            project_row = connection.execute(
                text(
                    """
                    SELECT id, name, slug, source_locale, quality_mode
                    FROM projects
                    WHERE slug = :slug
                    LIMIT 1
                    """
                ),
                {"slug": project_slug},
            ).mappings().first()

            if project_row is None:
                raise RuntimeError(
                    f"No project row found in DB for slug '{project_slug}' at {db_path}"
                )

            locale_rows = connection.execute(
                text(
                    """
                    SELECT locale_code
                    FROM project_locales
                    WHERE project_id = :project_id
                    ORDER BY position, locale_code
                    """
                ),
                {"project_id": project_row["id"]},
            ).all()
    finally:
        engine.dispose()

    source_locale = str(project_row["source_locale"])
    target_locales = [str(row[0]) for row in locale_rows if row[0] != source_locale]

    return ProjectInfo(
        name=project_row["name"] or config.project_name,
        slug=project_row["slug"] or config.slug,
        project_id=str(project_row["id"]),
        source_locale=source_locale,
        target_locales=target_locales,
        quality_mode=str(project_row["quality_mode"]),
        schema_version=schema_version,
        project_path=project_path,
    )


def _sync_config(project: ProjectInfo) -> None:
    config_path = project_config_path(project.project_path)
    config = read_config(config_path)
    updated = config.model_copy(
        update={
            "source_locale": project.source_locale,
            "target_locales": list(project.target_locales),
            "quality_mode": project.quality_mode,
        }
    )
    write_config(config_path, updated)


def set_quality_mode(slug: str, quality_mode: str, *, root: Path | None = None) -> ProjectInfo:
    normalized = _normalize_quality_mode(quality_mode)
    project = load_project_info(slug, root=root)

    engine = initialize_database(project.db_path)
    try:
        with engine.begin() as connection:
            connection.execute(
                text(
                    """
                    UPDATE projects
                    SET quality_mode = :quality_mode, updated_at = :updated_at
                    WHERE id = :project_id
                    """
                ),
                {
                    "quality_mode": normalized,
                    "updated_at": _utc_now_iso(),
                    "project_id": project.project_id,
                },
            )
    finally:
        engine.dispose()

    project.quality_mode = normalized
    _sync_config(project)
    return project


def add_target_locale(slug: str, locale: str, *, root: Path | None = None) -> ProjectInfo:
    """Register a new target locale and backfill pending translations for existing entries."""

    normalized = locale.strip()
    if not normalized:
        raise ValueError("Locale must not be blank.")

    project = load_project_info(slug, root=root)
    if normalized in project.locales:
        return project

    now = _utc_now_iso()
    engine = initialize_database(project.db_path)
    try:
        with engine.begin() as connection:
            _insert_project_locale(
                connection,
                project_id=project.project_id,
                locale_code=normalized,
                position=len(project.locales),
                created_at=now,
            )
            entry_ids = connection.execute(
                text("SELECT id FROM entries WHERE project_id = :project_id"),
                {"project_id": project.project_id},
            ).scalars().all()
            if entry_ids:
                connection.execute(
                    text(
                        """
                        INSERT INTO translations(
                            id, entry_id, project_id, locale, text, status, created_at, updated_at
                        ) VALUES (
                            :id, :entry_id, :project_id, :locale, NULL, :status, :created_at, :updated_at
                        )
                        ON CONFLICT(entry_id, locale) DO NOTHING
                        """
                    ),
                    [
                        {
                            "id": str(uuid4()),
                            "entry_id": str(entry_id),
                            "project_id": project.project_id,
                            "locale": normalized,
                            "status": STATUS_PENDING,
                            "created_at": now,
                            "updated_at": now,
                        }
                        for entry_id in entry_ids
                    ],
                )
    finally:
        engine.dispose()

    project.target_locales.append(normalized)
    _sync_config(project)
    log.info("Added target locale %s to project %s", normalized, project.slug)
    return project
