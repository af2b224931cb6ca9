"""Append-only audit trail of language pack imports."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy import literal_column
from sqlmodel import col, select

from lc_core.constants import DETAIL_LIST_LIMIT, UPLOAD_HISTORY_LIMIT
from lc_core.context.binder import BindSummary
from lc_core.db.models import PackageUpload
from lc_core.db.session import session_for_db
from lc_core.reconcile.source import KeyChange
from lc_core.store.ports import CatalogTransaction, PackageUploadRow

log = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadSummary:
    added: int = 0
    updated: int = 0
    missing: int = 0
    ignored: int = 0
    marked_needs_update: int = 0
    skipped_empty: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "added": self.added,
            "updated": self.updated,
            "missing": self.missing,
            "ignored": self.ignored,
            "markedNeedsUpdate": self.marked_needs_update,
            "skippedEmpty": self.skipped_empty,
        }


@dataclass(slots=True)
class UploadDetails:
    added_keys: list[str] = field(default_factory=list)
    updated_keys: list[KeyChange] = field(default_factory=list)
    ignored_keys: list[str] = field(default_factory=list)
    marked_needs_update_keys: list[str] = field(default_factory=list)
    pending_review_keys: list[str] = field(default_factory=list)
    skipped_empty_keys: list[str] = field(default_factory=list)
    bind: BindSummary | None = None

    def to_payload(self, limit: int = DETAIL_LIST_LIMIT) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "addedKeys": self.added_keys[:limit],
            "updatedKeys": [change.to_dict() for change in self.updated_keys[:limit]],
            "ignoredKeys": self.ignored_keys[:limit],
            "markedNeedsUpdateKeys": self.marked_needs_update_keys[:limit],
            "pendingReviewKeys": self.pending_review_keys[:limit],
            "skippedEmptyKeys": self.skipped_empty_keys[:limit],
        }
        if self.bind is not None:
            target = self.bind.target
            payload["bindMode"] = self.bind.mode
            payload["boundPageId"] = target.page_id
            payload["boundModuleId"] = target.visible_module_id
            payload["boundCount"] = self.bind.bound_count
            if target.created_page_route:
                payload["createdPageRoute"] = target.created_page_route
            if target.created_module_name:
                payload["createdModuleName"] = target.created_module_name
        return payload


@dataclass(slots=True)
class UploadHistoryItem:
    id: str
    locale: str
    shape: str
    operator: str | None
    created_at: str
    summary: UploadSummary


@dataclass(slots=True)
class UploadDetail:
    item: UploadHistoryItem
    details: dict[str, Any]


def record_package_upload(
    tx: CatalogTransaction,
    *,
    project_id: str,
    locale: str,
    shape: str,
    operator: str | None,
    key_count: int,
    summary: UploadSummary,
    details: UploadDetails,
) -> str | None:
    """Insert the audit row for one import; nothing is written for an empty pack."""

    if key_count <= 0:
        return None

    upload_id = tx.insert_package_upload(
        PackageUploadRow(
            project_id=project_id,
            locale=locale,
            shape=shape,
            operator=operator,
            added=summary.added,
            updated=summary.updated,
            missing=summary.missing,
            ignored=summary.ignored,
            marked_needs_update=summary.marked_needs_update,
            skipped_empty=summary.skipped_empty,
            details_json=json.dumps(details.to_payload(), ensure_ascii=False),
        )
    )
    log.debug("Recorded upload %s for %s/%s", upload_id, project_id, locale)
    return upload_id


def _to_history_item(row: PackageUpload) -> UploadHistoryItem:
    return UploadHistoryItem(
        id=row.id,
        locale=row.locale,
        shape=row.shape,
        operator=row.operator,
        created_at=row.created_at,
        summary=UploadSummary(
            added=row.summary_added,
            updated=row.summary_updated,
            missing=row.summary_missing,
            ignored=row.summary_ignored,
            marked_needs_update=row.summary_marked_needs_update,
            skipped_empty=row.summary_skipped_empty,
        ),
    )


def _parse_details(raw_value: object) -> dict[str, Any]:
    if not isinstance(raw_value, str) or not raw_value.strip():
        return {}

    try:
        parsed = json.loads(raw_value)
    except (TypeError, ValueError):
        log.warning("Ignoring unreadable upload details payload")
        return {}

    return parsed if isinstance(parsed, dict) else {}


def list_upload_history(
    db_path: Path, project_id: str, *, limit: int = UPLOAD_HISTORY_LIMIT
) -> list[UploadHistoryItem]:
    bounded = max(1, min(int(limit), UPLOAD_HISTORY_LIMIT))
    with session_for_db(db_path) as session:
        rows = session.exec(
            select(PackageUpload)
            .where(PackageUpload.project_id == project_id)
            .order_by(col(PackageUpload.created_at).desc(), literal_column("rowid").desc())
            .limit(bounded)
        ).all()
        return [_to_history_item(row) for row in rows]


def get_upload_detail(db_path: Path, project_id: str, upload_id: str) -> UploadDetail | None:
    with session_for_db(db_path) as session:
        row = session.exec(
            select(PackageUpload).where(
                PackageUpload.id == upload_id,
                PackageUpload.project_id == project_id,
            )
        ).first()
        if row is None:
            return None
        return UploadDetail(item=_to_history_item(row), details=_parse_details(row.details_json))
