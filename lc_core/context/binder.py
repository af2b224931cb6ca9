"""Attach imported entries to a page/module context."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from lc_core.constants import PLACEMENT_BATCH_SIZE, ROOT_MODULE_NAME
from lc_core.errors import BindingError
from lc_core.packages.requests import BindMode, BindSpec
from lc_core.store.ports import CatalogTransaction

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class BindTarget:
    page_id: str
    module_id: str
    is_root_module: bool
    page_created: bool = False
    module_created: bool = False
    created_page_route: str | None = None
    created_module_name: str | None = None

    @property
    def visible_module_id(self) -> str | None:
        return None if self.is_root_module else self.module_id


@dataclass(slots=True, frozen=True)
class BindSummary:
    target: BindTarget
    mode: BindMode
    bound_count: int

    def to_dict(self) -> dict[str, object]:
        return {
            "pageId": self.target.page_id,
            "moduleId": self.target.visible_module_id,
            "boundCount": self.bound_count,
            "mode": self.mode,
            "createdPage": self.target.page_created,
            "createdModule": self.target.module_created,
        }


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    output: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        output.append(value)
    return output


def resolve_bind_target(tx: CatalogTransaction, project_id: str, spec: BindSpec) -> BindTarget:
    """Find or create the page and module named by ``spec``.

    Creating by route or name reuses a row that already exists. Without a
    module the hidden root module of the page is used.
    """

    page_created = False
    created_route: str | None = None
    if spec.page_id:
        page = tx.get_page(project_id, spec.page_id)
        if page is None:
            raise BindingError(f"Page not found in this project: {spec.page_id}")
    elif spec.create_page_route:
        page, page_created = tx.create_or_get_page(
            project_id, spec.create_page_route, spec.create_page_title or None
        )
        created_route = page.route if page_created else None
    else:
        raise BindingError("No page selected for binding.")

    if spec.module_id:
        module = tx.get_module(page.id, spec.module_id)
        if module is None:
            raise BindingError(f"Module not found on page '{page.route}': {spec.module_id}")
        return BindTarget(
            page_id=page.id,
            module_id=module.id,
            is_root_module=module.name == ROOT_MODULE_NAME,
            page_created=page_created,
            created_page_route=created_route,
        )

    if spec.create_module_name:
        if spec.create_module_name == ROOT_MODULE_NAME:
            raise BindingError(f"Module name '{ROOT_MODULE_NAME}' is reserved.")
        module, module_created = tx.create_or_get_module(page.id, spec.create_module_name)
        return BindTarget(
            page_id=page.id,
            module_id=module.id,
            is_root_module=False,
            page_created=page_created,
            module_created=module_created,
            created_page_route=created_route,
            created_module_name=module.name if module_created else None,
        )

    root_module, _ = tx.create_or_get_module(page.id, ROOT_MODULE_NAME)
    return BindTarget(
        page_id=page.id,
        module_id=root_module.id,
        is_root_module=True,
        page_created=page_created,
        created_page_route=created_route,
    )


def effective_bind_mode(kind: str, mode: BindMode) -> BindMode:
    # Target imports never add entries.
    if kind == "target":
        return "all"
    return mode


def bind_entries(tx: CatalogTransaction, target: BindTarget, entry_ids: Iterable[str]) -> int:
    """Insert the placements that do not exist yet and return how many were added."""

    ids = _unique(entry_ids)
    inserted = 0
    for start in range(0, len(ids), PLACEMENT_BATCH_SIZE):
        chunk = ids[start : start + PLACEMENT_BATCH_SIZE]
        present = tx.existing_placements(target.page_id, target.module_id, chunk)
        missing = [entry_id for entry_id in chunk if entry_id not in present]
        if missing:
            inserted += tx.insert_placements(target.page_id, target.module_id, missing)

    log.debug(
        "Bound %s of %s entries to page %s module %s",
        inserted,
        len(ids),
        target.page_id,
        target.module_id,
    )
    return inserted
