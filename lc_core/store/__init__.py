"""Storage contract and SQLite-backed implementation."""

from lc_core.store.ports import (
    CatalogStore,
    CatalogTransaction,
    EntryRecord,
    ExportRow,
    ModuleRecord,
    PackageUploadRow,
    PageRecord,
    ProjectRecord,
    TemplateRecord,
    TranslationRecord,
)
from lc_core.store.sqlite import SqliteCatalogStore, SqliteCatalogTransaction

__all__ = [
    "CatalogStore",
    "CatalogTransaction",
    "EntryRecord",
    "ExportRow",
    "ModuleRecord",
    "PackageUploadRow",
    "PageRecord",
    "ProjectRecord",
    "SqliteCatalogStore",
    "SqliteCatalogTransaction",
    "TemplateRecord",
    "TranslationRecord",
]
