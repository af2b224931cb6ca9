"""Render the catalog back into language pack JSON."""

from __future__ import annotations

import io
import json
import logging
import zipfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from lc_core.constants import (
    JSON_CONTENT_TYPE,
    QUALITY_MODE_STRICT,
    SHAPE_FLAT,
    SHAPE_TREE,
    ZIP_CONTENT_TYPE,
)
from lc_core.errors import CatalogValidationError, QualityGateError
from lc_core.packages.requests import FillMode
from lc_core.store.ports import CatalogTransaction, ExportRow, ProjectRecord

log = logging.getLogger(__name__)

FILL_MODES: tuple[str, ...] = ("empty", "fallback", "filled")


@dataclass(slots=True, frozen=True)
class ExportedPack:
    file_name: str
    content: str
    locale: str
    key_count: int
    content_type: str = JSON_CONTENT_TYPE


@dataclass(slots=True, frozen=True)
class ExportedArchive:
    file_name: str
    content: bytes
    locales: tuple[str, ...]
    content_type: str = ZIP_CONTENT_TYPE


def pack_file_name(project_id: str, locale: str) -> str:
    return f"project-{project_id}.{locale}.json"


def archive_file_name(project_id: str) -> str:
    return f"project-{project_id}.langpacks.zip"


def build_locale_map(
    rows: Sequence[ExportRow],
    *,
    locale: str,
    source_locale: str,
    mode: FillMode,
) -> dict[str, str]:
    if mode not in FILL_MODES:
        raise CatalogValidationError(f"Unsupported export mode: {mode}")

    values: dict[str, str] = {}
    for row in rows:
        if locale == source_locale:
            values[row.key] = row.source_text
            continue

        if row.text is not None and row.text.strip():
            values[row.key] = row.text
        elif mode == "fallback":
            values[row.key] = row.source_text
        elif mode == "empty":
            values[row.key] = ""
    return values


def _set_path_value(target: dict[str, object], path: Sequence[str], value: str) -> None:
    cursor = target
    for segment in path[:-1]:
        child = cursor.get(segment)
        if not isinstance(child, dict):
            child = {}
            cursor[segment] = child
        cursor = child
    cursor[path[-1]] = value


def render_pack(
    values: Mapping[str, str],
    *,
    shape: str,
    template_paths: Sequence[tuple[str, ...]] = (),
    fill_template_gaps: bool = True,
) -> dict[str, object]:
    """Lay ``values`` out as a flat or nested JSON object.

    Tree output follows ``template_paths`` first; keys the template does not
    cover are appended by splitting on ``.``. Template paths without a value
    are written as ``""`` unless ``fill_template_gaps`` is false.
    """

    if shape != SHAPE_TREE:
        return {key: values[key] for key in sorted(values)}

    paths = list(template_paths) or [tuple(key.split(".")) for key in values]
    tree: dict[str, object] = {}
    covered: set[str] = set()

    for path in paths:
        if not path or not all(path):
            continue
        key = ".".join(path)
        if key in covered:
            continue
        covered.add(key)
        if key in values:
            _set_path_value(tree, path, values[key])
        elif fill_template_gaps:
            _set_path_value(tree, path, "")

    for key, value in values.items():
        if key in covered:
            continue
        _set_path_value(tree, key.split("."), value)

    return tree


def serialize_pack(document: Mapping[str, object]) -> str:
    return json.dumps(document, ensure_ascii=False, indent=2)


def _load_project(tx: CatalogTransaction, project_id: str) -> ProjectRecord:
    project = tx.get_project(project_id)
    if project is None:
        raise CatalogValidationError(f"Project not found: {project_id}")
    return project


def check_quality_gate(tx: CatalogTransaction, project: ProjectRecord, locale: str) -> None:
    if project.quality_mode != QUALITY_MODE_STRICT or locale == project.source_locale:
        return

    blocked = tx.count_blocking_translations(project.id, locale)
    if blocked > 0:
        raise QualityGateError(locale, blocked)


def _render_locale(
    tx: CatalogTransaction, project: ProjectRecord, locale: str, mode: FillMode
) -> ExportedPack:
    rows = tx.list_export_rows(project.id, locale)
    values = build_locale_map(
        rows, locale=locale, source_locale=project.source_locale, mode=mode
    )

    template = tx.get_template(project.id)
    shape = template.shape if template is not None else SHAPE_FLAT
    template_paths = template.paths if template is not None and shape == SHAPE_TREE else []

    document = render_pack(
        values,
        shape=shape,
        template_paths=template_paths,
        fill_template_gaps=mode != "filled",
    )
    return ExportedPack(
        file_name=pack_file_name(project.id, locale),
        content=serialize_pack(document),
        locale=locale,
        key_count=len(values),
    )


def export_language_pack(
    tx: CatalogTransaction,
    *,
    project_id: str,
    locale: str,
    mode: FillMode = "fallback",
) -> ExportedPack:
    project = _load_project(tx, project_id)
    if not project.has_locale(locale):
        raise CatalogValidationError(f"Locale '{locale}' is not configured for this project.")

    check_quality_gate(tx, project, locale)
    exported = _render_locale(tx, project, locale, mode)
    log.info("Exported %s keys for %s/%s (%s)", exported.key_count, project.slug, locale, mode)
    return exported


def export_all_archive(
    tx: CatalogTransaction,
    *,
    project_id: str,
    mode: FillMode = "fallback",
) -> ExportedArchive:
    """Zip one pack per project locale, source first.

    The quality gate is checked for every target locale before anything is
    rendered, so a blocked locale refuses the whole archive.
    """

    project = _load_project(tx, project_id)
    locales = [project.source_locale, *project.target_locales]

    for locale in project.target_locales:
        check_quality_gate(tx, project, locale)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for locale in locales:
            exported = _render_locale(tx, project, locale, mode)
            archive.writestr(exported.file_name, exported.content)

    log.info("Exported %s locales for %s as archive", len(locales), project.slug)
    return ExportedArchive(
        file_name=archive_file_name(project.id),
        content=buffer.getvalue(),
        locales=tuple(locales),
    )
