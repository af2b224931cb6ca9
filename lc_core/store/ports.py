"""Storage contract consumed by the reconciliation, binding and export code.

Reconcilers never open connections themselves; they receive a
``CatalogTransaction`` handle that is scoped to one atomic unit of work.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass(slots=True, frozen=True)
class ProjectRecord:
    id: str
    slug: str
    name: str
    source_locale: str
    quality_mode: str
    locales: tuple[str, ...] = ()

    @property
    def target_locales(self) -> list[str]:
        return [locale for locale in self.locales if locale != self.source_locale]

    def has_locale(self, locale: str) -> bool:
        return locale == self.source_locale or locale in self.locales


@dataclass(slots=True, frozen=True)
class EntryRecord:
    id: str
    key: str
    source_text: str


@dataclass(slots=True, frozen=True)
class TranslationRecord:
    id: str
    entry_id: str
    locale: str
    text: str | None
    status: str

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


@dataclass(slots=True, frozen=True)
class ExportRow:
    key: str
    source_text: str
    text: str | None


@dataclass(slots=True, frozen=True)
class TemplateRecord:
    shape: str
    paths: list[tuple[str, ...]] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class PageRecord:
    id: str
    project_id: str
    route: str
    title: str | None


@dataclass(slots=True, frozen=True)
class ModuleRecord:
    id: str
    page_id: str
    name: str


@dataclass(slots=True, frozen=True)
class PackageUploadRow:
    project_id: str
    locale: str
    shape: str
    operator: str | None
    added: int
    updated: int
    missing: int
    ignored: int
    marked_needs_update: int
    skipped_empty: int
    details_json: str


@runtime_checkable
class CatalogTransaction(Protocol):
    """Entry, translation, context, template and audit operations inside one unit of work."""

    def get_project(self, project_id: str) -> ProjectRecord | None: ...

    def load_entries(self, project_id: str) -> dict[str, EntryRecord]: ...

    def get_entry(self, project_id: str, entry_id: str) -> EntryRecord | None: ...

    def insert_entries(
        self, project_id: str, source_locale: str, items: Sequence[tuple[str, str]]
    ) -> dict[str, str]: ...

    def update_source_texts(self, updates: Sequence[tuple[str, str]]) -> None: ...

    def load_translations(
        self, project_id: str, entry_ids: Sequence[str], locales: Sequence[str]
    ) -> list[TranslationRecord]: ...

    def insert_pending_translations(
        self, project_id: str, entry_ids: Sequence[str], locales: Sequence[str]
    ) -> None: ...

    def mark_status(self, translation_ids: Sequence[str], status: str) -> None: ...

    def write_translation_texts(
        self,
        project_id: str,
        locale: str,
        items: Sequence[tuple[str, str | None]],
        status: str,
    ) -> None: ...

    def count_blocking_translations(self, project_id: str, locale: str) -> int: ...

    def list_export_rows(self, project_id: str, locale: str) -> list[ExportRow]: ...

    def get_template(self, project_id: str) -> TemplateRecord | None: ...

    def save_template(
        self, project_id: str, shape: str, paths: Sequence[tuple[str, ...]]
    ) -> None: ...

    def get_page(self, project_id: str, page_id: str) -> PageRecord | None: ...

    def create_or_get_page(
        self, project_id: str, route: str, title: str | None = None
    ) -> tuple[PageRecord, bool]: ...

    def get_module(self, page_id: str, module_id: str) -> ModuleRecord | None: ...

    def find_module_by_name(self, page_id: str, name: str) -> ModuleRecord | None: ...

    def create_or_get_module(self, page_id: str, name: str) -> tuple[ModuleRecord, bool]: ...

    def existing_placements(
        self, page_id: str, module_id: str, entry_ids: Sequence[str]
    ) -> set[str]: ...

    def insert_placements(self, page_id: str, module_id: str, entry_ids: Iterable[str]) -> int: ...

    def delete_placements(self, page_id: str, module_id: str, entry_ids: Sequence[str]) -> int: ...

    def insert_package_upload(self, row: PackageUploadRow) -> str: ...


@runtime_checkable
class CatalogStore(Protocol):
    """Factory for transaction handles."""

    def begin(self) -> AbstractContextManager[CatalogTransaction]: ...

    def read(self) -> AbstractContextManager[CatalogTransaction]: ...
