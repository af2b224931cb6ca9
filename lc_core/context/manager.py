"""Explicit page/module management outside of imports."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from sqlmodel import col, select

from lc_core.constants import MAX_CONTEXT_NAME_LENGTH, ROOT_MODULE_NAME
from lc_core.context.binder import bind_entries, resolve_bind_target
from lc_core.db.models import EntryPlacement, Module, Page
from lc_core.db.session import session_for_db
from lc_core.errors import BindingError, CatalogValidationError
from lc_core.packages.requests import BindSpec
from lc_core.store.ports import CatalogTransaction, ModuleRecord, PageRecord
from lc_core.store.sqlite import SqliteCatalogStore

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ModuleNode:
    id: str
    name: str
    key_count: int


@dataclass(slots=True)
class PageNode:
    id: str
    route: str
    title: str | None
    key_count: int
    modules: list[ModuleNode] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.title or self.route


def _clean_name(value: str, what: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise CatalogValidationError(f"{what} must not be blank.")
    if len(cleaned) > MAX_CONTEXT_NAME_LENGTH:
        raise CatalogValidationError(
            f"{what} is too long (max {MAX_CONTEXT_NAME_LENGTH} characters)."
        )
    return cleaned


def create_page(
    db_path: Path, *, project_id: str, route: str, title: str | None = None
) -> PageRecord:
    normalized_route = _clean_name(route, "Page route")
    normalized_title = (title or "").strip() or None

    with SqliteCatalogStore(db_path).begin() as tx:
        page, created = tx.create_or_get_page(project_id, normalized_route, normalized_title)

    if created:
        log.info("Created page %s in project %s", page.route, project_id)
    return page


def create_module(db_path: Path, *, project_id: str, page_id: str, name: str) -> ModuleRecord:
    normalized_name = _clean_name(name, "Module name")
    if normalized_name == ROOT_MODULE_NAME:
        raise CatalogValidationError(f"Module name '{ROOT_MODULE_NAME}' is reserved.")

    with SqliteCatalogStore(db_path).begin() as tx:
        page = tx.get_page(project_id, page_id)
        if page is None:
            raise BindingError(f"Page not found in this project: {page_id}")
        module, created = tx.create_or_get_module(page.id, normalized_name)

    if created:
        log.info("Created module %s on page %s", module.name, page.route)
    return module


def _known_entry_ids(
    tx: CatalogTransaction, project_id: str, entry_ids: Sequence[str]
) -> list[str]:
    valid = {entry.id for entry in tx.load_entries(project_id).values()}
    unknown = [entry_id for entry_id in entry_ids if entry_id not in valid]
    if unknown:
        raise CatalogValidationError(f"Unknown entry id(s): {', '.join(unknown[:5])}")
    return list(entry_ids)


def bind_entries_to_context(
    db_path: Path,
    *,
    project_id: str,
    page_id: str,
    entry_ids: Sequence[str],
    module_id: str | None = None,
) -> int:
    """Place entries on a page (or one of its modules); returns new placements."""

    spec = BindSpec.build(page_id=page_id, module_id=module_id)
    with SqliteCatalogStore(db_path).begin() as tx:
        ids = _known_entry_ids(tx, project_id, entry_ids)
        target = resolve_bind_target(tx, project_id, spec)
        return bind_entries(tx, target, ids)


def unbind_entries_from_context(
    db_path: Path,
    *,
    project_id: str,
    page_id: str,
    entry_ids: Sequence[str],
    module_id: str | None = None,
) -> int:
    """Remove placements from a page module; without ``module_id`` the root module is used.

    Nothing is created here: a page whose root module was never used has no
    placements to remove.
    """

    with SqliteCatalogStore(db_path).begin() as tx:
        page = tx.get_page(project_id, page_id)
        if page is None:
            raise BindingError(f"Page not found in this project: {page_id}")

        if module_id:
            module = tx.get_module(page.id, module_id)
            if module is None:
                raise BindingError(f"Module not found on page '{page.route}': {module_id}")
        else:
            module = tx.find_module_by_name(page.id, ROOT_MODULE_NAME)
            if module is None:
                return 0

        removed = tx.delete_placements(page.id, module.id, list(entry_ids))

    log.info("Removed %s placements from page %s", removed, page.route)
    return removed


def delete_page(db_path: Path, *, project_id: str, page_id: str) -> bool:
    """Delete a page together with its modules and placements."""

    with session_for_db(db_path) as session:
        page = session.exec(
            select(Page).where(Page.id == page_id, Page.project_id == project_id)
        ).first()
        if page is None:
            return False
        session.delete(page)
        session.commit()
    return True


def delete_module(db_path: Path, *, project_id: str, page_id: str, module_id: str) -> bool:
    with session_for_db(db_path) as session:
        module = session.exec(
            select(Module)
            .join(Page, Page.id == Module.page_id)
            .where(
                Module.id == module_id,
                Module.page_id == page_id,
                Page.project_id == project_id,
            )
        ).first()
        if module is None:
            return False
        if module.name == ROOT_MODULE_NAME:
            raise CatalogValidationError("The root module cannot be deleted on its own.")
        session.delete(module)
        session.commit()
    return True


def context_tree(db_path: Path, project_id: str) -> list[PageNode]:
    """Pages with their visible modules and distinct key counts."""

    with session_for_db(db_path) as session:
        pages = session.exec(select(Page).where(Page.project_id == project_id)).all()
        page_ids = [page.id for page in pages]
        if not page_ids:
            return []

        modules = session.exec(select(Module).where(col(Module.page_id).in_(page_ids))).all()
        placements = session.exec(
            select(EntryPlacement).where(col(EntryPlacement.page_id).in_(page_ids))
        ).all()

    entries_by_page: dict[str, set[str]] = defaultdict(set)
    entries_by_module: dict[str, set[str]] = defaultdict(set)
    for placement in placements:
        entries_by_page[placement.page_id].add(placement.entry_id)
        entries_by_module[placement.module_id].add(placement.entry_id)

    modules_by_page: dict[str, list[ModuleNode]] = defaultdict(list)
    for module in modules:
        if module.name == ROOT_MODULE_NAME:
            continue
        modules_by_page[module.page_id].append(
            ModuleNode(
                id=module.id,
                name=module.name,
                key_count=len(entries_by_module.get(module.id, ())),
            )
        )

    nodes = [
        PageNode(
            id=page.id,
            route=page.route,
            title=page.title,
            key_count=len(entries_by_page.get(page.id, ())),
            modules=sorted(modules_by_page.get(page.id, []), key=lambda item: item.name.lower()),
        )
        for page in pages
    ]
    nodes.sort(key=lambda node: node.label.lower())
    return nodes
