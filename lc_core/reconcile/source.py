"""Source-locale reconciliation.

The incoming pack is authoritative for source text of the keys it contains.
Keys it does not contain are counted as missing and left alone.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from lc_core.constants import SHAPE_TREE, STATUS_NEEDS_UPDATE
from lc_core.packages.parser import ParsedPack
from lc_core.store.ports import CatalogTransaction

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class KeyChange:
    key: str
    before: str
    after: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "before": self.before, "after": self.after}


@dataclass(slots=True)
class SourceReconcileResult:
    added_keys: list[str] = field(default_factory=list)
    updated: list[KeyChange] = field(default_factory=list)
    missing_count: int = 0
    marked_needs_update_keys: list[str] = field(default_factory=list)
    matched_entry_ids: list[str] = field(default_factory=list)
    added_entry_ids: list[str] = field(default_factory=list)

    @property
    def updated_keys(self) -> list[str]:
        return [change.key for change in self.updated]

    @property
    def incoming_entry_ids(self) -> list[str]:
        return [*self.matched_entry_ids, *self.added_entry_ids]

    def summary(self) -> dict[str, int]:
        return {
            "added": len(self.added_keys),
            "updated": len(self.updated),
            "markedNeedsUpdate": len(self.marked_needs_update_keys),
        }


def merge_template_paths(
    existing: Sequence[tuple[str, ...]], incoming: Sequence[tuple[str, ...]]
) -> list[tuple[str, ...]]:
    """Union of ``existing`` and ``incoming`` keeping first-seen order.

    Paths are compared by their dotted key, so ``("a", "b")`` and ``("a.b",)``
    count as the same entry and only the first one is kept.
    """

    merged: list[tuple[str, ...]] = []
    seen: set[str] = set()
    for path in [*existing, *incoming]:
        key = ".".join(path)
        if key in seen:
            continue
        seen.add(key)
        merged.append(path)
    return merged


def _persist_template(tx: CatalogTransaction, project_id: str, pack: ParsedPack) -> None:
    template = tx.get_template(project_id)
    if template is None:
        paths = pack.paths if pack.shape == SHAPE_TREE else []
        tx.save_template(project_id, pack.shape, paths)
        return

    if template.shape != SHAPE_TREE or pack.shape != SHAPE_TREE:
        return

    merged = merge_template_paths(template.paths, pack.paths)
    if len(merged) != len(template.paths):
        tx.save_template(project_id, template.shape, merged)


def reconcile_source(
    tx: CatalogTransaction,
    *,
    project_id: str,
    source_locale: str,
    target_locales: Sequence[str],
    pack: ParsedPack,
) -> SourceReconcileResult:
    existing = tx.load_entries(project_id)
    result = SourceReconcileResult()

    added_items: list[tuple[str, str]] = []
    source_updates: list[tuple[str, str]] = []
    updated_key_by_entry: dict[str, str] = {}

    for key, value in pack.map.items():
        entry = existing.get(key)
        if entry is None:
            added_items.append((key, value))
            continue

        result.matched_entry_ids.append(entry.id)
        if entry.source_text != value:
            result.updated.append(KeyChange(key=key, before=entry.source_text, after=value))
            source_updates.append((entry.id, value))
            updated_key_by_entry[entry.id] = key

    result.missing_count = sum(1 for key in existing if key not in pack.map)

    tx.update_source_texts(source_updates)

    if updated_key_by_entry and target_locales:
        translations = tx.load_translations(
            project_id, list(updated_key_by_entry), list(target_locales)
        )
        stale = [
            record
            for record in translations
            if record.has_text and record.status != STATUS_NEEDS_UPDATE
        ]
        tx.mark_status([record.id for record in stale], STATUS_NEEDS_UPDATE)

        stale_entry_ids = {record.entry_id for record in stale}
        result.marked_needs_update_keys = [
            key for entry_id, key in updated_key_by_entry.items() if entry_id in stale_entry_ids
        ]

    if added_items:
        ids_by_key = tx.insert_entries(project_id, source_locale, added_items)
        result.added_keys = [key for key, _ in added_items]
        result.added_entry_ids = [ids_by_key[key] for key in result.added_keys]
        tx.insert_pending_translations(project_id, result.added_entry_ids, list(target_locales))

    if pack.map:
        _persist_template(tx, project_id, pack)

    log.debug(
        "Source reconcile for %s: %s (missing=%s)",
        project_id,
        result.summary(),
        result.missing_count,
    )
    return result
