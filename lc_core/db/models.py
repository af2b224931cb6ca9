"""Read-side table models for context and upload history queries.

The schema itself is owned by ``lc_core.db.migrations``; these classes only
mirror the columns they read.
"""

from __future__ import annotations

from sqlalchemy import Index
from sqlmodel import Field, SQLModel


class Page(SQLModel, table=True):
    __tablename__ = "pages"
    __table_args__ = (Index("idx_pages_project_route", "project_id", "route", unique=True),)

    id: str = Field(primary_key=True)
    project_id: str
    route: str
    title: str | None = None
    description: str | None = None
    created_at: str
    updated_at: str


class Module(SQLModel, table=True):
    __tablename__ = "modules"
    __table_args__ = (Index("idx_modules_page_name", "page_id", "name", unique=True),)

    id: str = Field(primary_key=True)
    page_id: str
    name: str
    description: str | None = None
    created_at: str
    updated_at: str


class EntryPlacement(SQLModel, table=True):
    __tablename__ = "entry_placements"
    __table_args__ = (
        Index(
            "idx_entry_placements_triple",
            "entry_id",
            "page_id",
            "module_id",
            unique=True,
        ),
        Index("idx_entry_placements_module", "page_id", "module_id"),
    )

    id: str = Field(primary_key=True)
    entry_id: str
    page_id: str
    module_id: str
    created_at: str


class PackageUpload(SQLModel, table=True):
    __tablename__ = "package_uploads"
    __table_args__ = (
        Index("idx_package_uploads_project_created_at", "project_id", "created_at"),
    )

    id: str = Field(primary_key=True)
    project_id: str
    locale: str
    shape: str
    operator: str | None = None
    summary_added: int = Field(default=0)
    summary_updated: int = Field(default=0)
    summary_missing: int = Field(default=0)
    summary_ignored: int = Field(default=0)
    summary_marked_needs_update: int = Field(default=0)
    summary_skipped_empty: int = Field(default=0)
    details_json: str = Field(default="{}")
    created_at: str
