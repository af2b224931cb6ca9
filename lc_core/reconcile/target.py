"""Target-locale reconciliation.

Only keys that already exist in the catalog are touched. Blank incoming values
never overwrite a stored translation, and every real change goes back to
review.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from lc_core.constants import STATUS_NEEDS_REVIEW
from lc_core.packages.parser import ParsedPack
from lc_core.reconcile.source import KeyChange
from lc_core.store.ports import CatalogTransaction

log = logging.getLogger(__name__)


@dataclass(slots=True)
class TargetReconcileResult:
    updated: list[KeyChange] = field(default_factory=list)
    ignored_keys: list[str] = field(default_factory=list)
    skipped_empty_keys: list[str] = field(default_factory=list)
    matched_entry_ids: list[str] = field(default_factory=list)
    missing_count: int = 0

    @property
    def updated_keys(self) -> list[str]:
        return [change.key for change in self.updated]

    @property
    def incoming_entry_ids(self) -> list[str]:
        return list(self.matched_entry_ids)

    def summary(self) -> dict[str, int]:
        return {
            "updated": len(self.updated),
            "ignored": len(self.ignored_keys),
            "skippedEmpty": len(self.skipped_empty_keys),
        }


def reconcile_target(
    tx: CatalogTransaction,
    *,
    project_id: str,
    locale: str,
    pack: ParsedPack,
) -> TargetReconcileResult:
    entries = tx.load_entries(project_id)
    result = TargetReconcileResult()
    result.missing_count = sum(1 for key in entries if key not in pack.map)

    matched = {key: entries[key] for key in pack.map if key in entries}
    current_text = {
        record.entry_id: record.text or ""
        for record in tx.load_translations(
            project_id, [entry.id for entry in matched.values()], [locale]
        )
    }

    writes: list[tuple[str, str]] = []
    for key, value in pack.map.items():
        entry = matched.get(key)
        if entry is None:
            result.ignored_keys.append(key)
            continue

        result.matched_entry_ids.append(entry.id)
        if not value.strip():
            result.skipped_empty_keys.append(key)
            continue

        before = current_text.get(entry.id, "")
        if value == before:
            continue

        result.updated.append(KeyChange(key=key, before=before, after=value))
        writes.append((entry.id, value))

    tx.write_translation_texts(project_id, locale, writes, STATUS_NEEDS_REVIEW)

    log.debug("Target reconcile for %s/%s: %s", project_id, locale, result.summary())
    return result
