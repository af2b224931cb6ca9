"""Engine boundary.

Callers hand in validated requests, an explicit operator identity and a
permission decision, and always get a :class:`ServiceResult` back. Errors are
logged here and never propagate further.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from lc_core.audit.recorder import UploadDetails, UploadSummary, record_package_upload
from lc_core.context.binder import (
    BindSummary,
    bind_entries,
    effective_bind_mode,
    resolve_bind_target,
)
from lc_core.errors import CatalogError, CatalogValidationError, PermissionDeniedError
from lc_core.export import exporter
from lc_core.packages.parser import parse_language_pack
from lc_core.packages.requests import ExportRequest, FillMode, ImportRequest
from lc_core.reconcile.source import reconcile_source
from lc_core.reconcile.target import reconcile_target
from lc_core.settings import EngineSettings, load_settings
from lc_core.store.ports import CatalogStore

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceResult:
    ok: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    kind: str | None = None
    debug_id: str | None = None


def _resolve_settings(settings: EngineSettings | None) -> EngineSettings:
    if settings is not None:
        return settings
    try:
        return load_settings()
    except CatalogValidationError as exc:
        log.warning("Falling back to default engine settings: %s", exc)
        return EngineSettings.model_construct()


def _failure(
    exc: BaseException, *, operation: str, settings: EngineSettings | None
) -> ServiceResult:
    settings = _resolve_settings(settings)
    debug_id = uuid4().hex
    if isinstance(exc, CatalogError):
        kind = exc.kind
        message = str(exc)
        log.warning("%s failed (%s, debug_id=%s): %s", operation, kind, debug_id, message)
    else:
        kind = "internal"
        message = f"{operation.capitalize()} failed unexpectedly."
        log.exception("%s failed (debug_id=%s)", operation, debug_id)

    if not settings.is_production:
        message = f"{message} (debug_id: {debug_id})"
    return ServiceResult(ok=False, error=message, kind=kind, debug_id=debug_id)


def _coerce_import_request(request: ImportRequest | Mapping[str, Any]) -> ImportRequest:
    if isinstance(request, ImportRequest):
        return request
    return ImportRequest.build(**dict(request))


def _coerce_export_request(request: ExportRequest | Mapping[str, Any]) -> ExportRequest:
    if isinstance(request, ExportRequest):
        return request
    return ExportRequest.build(**dict(request))


def _run_import(
    store: CatalogStore,
    request: ImportRequest,
    *,
    operator: str | None,
    can_manage: bool,
) -> dict[str, Any]:
    if not can_manage:
        raise PermissionDeniedError("You are not allowed to import language packs.")

    with store.read() as tx:
        project = tx.get_project(request.project_id)
    if project is None:
        raise CatalogValidationError(f"Project not found: {request.project_id}")

    if request.locale == project.source_locale:
        kind = "source"
    elif request.locale in project.target_locales:
        kind = "target"
    else:
        raise CatalogValidationError(
            f"Locale '{request.locale}' is not configured for this project."
        )

    pack = parse_language_pack(request.raw_json)

    bind_summary: BindSummary | None = None
    with store.begin() as tx:
        bind_target = (
            resolve_bind_target(tx, project.id, request.bind)
            if request.wants_binding and request.bind is not None
            else None
        )

        if kind == "source":
            source_result = reconcile_source(
                tx,
                project_id=project.id,
                source_locale=project.source_locale,
                target_locales=project.target_locales,
                pack=pack,
            )
            summary = source_result.summary()
            audit_summary = UploadSummary(
                added=len(source_result.added_keys),
                updated=len(source_result.updated),
                missing=source_result.missing_count,
                marked_needs_update=len(source_result.marked_needs_update_keys),
            )
            details = UploadDetails(
                added_keys=source_result.added_keys,
                updated_keys=source_result.updated,
                marked_needs_update_keys=source_result.marked_needs_update_keys,
            )
            incoming_ids = source_result.incoming_entry_ids
            added_ids = source_result.added_entry_ids
        else:
            target_result = reconcile_target(
                tx, project_id=project.id, locale=request.locale, pack=pack
            )
            summary = target_result.summary()
            audit_summary = UploadSummary(
                updated=len(target_result.updated),
                missing=target_result.missing_count,
                ignored=len(target_result.ignored_keys),
                skipped_empty=len(target_result.skipped_empty_keys),
            )
            details = UploadDetails(
                updated_keys=target_result.updated,
                ignored_keys=target_result.ignored_keys,
                pending_review_keys=target_result.updated_keys,
                skipped_empty_keys=target_result.skipped_empty_keys,
            )
            incoming_ids = target_result.incoming_entry_ids
            added_ids = []

        if bind_target is not None and request.bind is not None:
            mode = effective_bind_mode(kind, request.bind.mode)
            entry_ids = added_ids if mode == "addedOnly" else incoming_ids
            bound_count = bind_entries(tx, bind_target, entry_ids)
            bind_summary = BindSummary(target=bind_target, mode=mode, bound_count=bound_count)
            details.bind = bind_summary

        upload_id = record_package_upload(
            tx,
            project_id=project.id,
            locale=request.locale,
            shape=pack.shape,
            operator=operator,
            key_count=len(pack.map),
            summary=audit_summary,
            details=details,
        )

    log.info(
        "Imported %s pack for %s/%s by %s: %s",
        kind,
        project.slug,
        request.locale,
        operator or "unknown",
        summary,
    )

    data: dict[str, Any] = {"kind": kind, "shape": pack.shape, "summary": summary}
    if bind_summary is not None:
        data["bind"] = bind_summary.to_dict()
    data["uploadId"] = upload_id
    return data


def import_language_pack(
    store: CatalogStore,
    request: ImportRequest | Mapping[str, Any],
    *,
    operator: str | None,
    can_manage: bool,
    settings: EngineSettings | None = None,
) -> ServiceResult:
    """Parse, reconcile, bind and audit one language pack in a single transaction."""

    try:
        validated = _coerce_import_request(request)
        data = _run_import(store, validated, operator=operator, can_manage=can_manage)
    except Exception as exc:  # noqa: BLE001
        return _failure(exc, operation="import", settings=settings)
    return ServiceResult(ok=True, data=data)


def export_language_pack(
    store: CatalogStore,
    request: ExportRequest | Mapping[str, Any],
    *,
    settings: EngineSettings | None = None,
) -> ServiceResult:
    try:
        validated = _coerce_export_request(request)
        with store.read() as tx:
            exported = exporter.export_language_pack(
                tx,
                project_id=validated.project_id,
                locale=validated.locale,
                mode=validated.mode,
            )
    except Exception as exc:  # noqa: BLE001
        return _failure(exc, operation="export", settings=settings)

    return ServiceResult(
        ok=True,
        data={
            "fileName": exported.file_name,
            "content": exported.content,
            "contentType": exported.content_type,
        },
    )


def export_all_language_packs(
    store: CatalogStore,
    project_id: str,
    mode: FillMode = "fallback",
    *,
    settings: EngineSettings | None = None,
) -> ServiceResult:
    try:
        if mode not in exporter.FILL_MODES:
            raise CatalogValidationError(f"Unsupported export mode: {mode}")
        with store.read() as tx:
            archive = exporter.export_all_archive(tx, project_id=project_id.strip(), mode=mode)
    except Exception as exc:  # noqa: BLE001
        return _failure(exc, operation="bulk export", settings=settings)

    return ServiceResult(
        ok=True,
        data={
            "fileName": archive.file_name,
            "content": archive.content,
            "contentType": archive.content_type,
            "locales": list(archive.locales),
        },
    )
