from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from lc_core.errors import StorageError
from lc_core.project.create_project import ProjectInfo, create_project, load_project_info
from lc_core.store.ports import CatalogStore, CatalogTransaction
from lc_core.store.sqlite import SqliteCatalogStore


def _setup_project(tmp_path: Path) -> tuple[SqliteCatalogStore, ProjectInfo]:
    projects_root = tmp_path / "projects"
    created = create_project(
        "Store",
        source_locale="zh-CN",
        target_locales=["en-US", "ja-JP"],
        root=projects_root,
    )
    project = load_project_info(created.slug, root=projects_root)
    return SqliteCatalogStore(project.db_path), project


def test_sqlite_store_satisfies_the_protocols(tmp_path: Path) -> None:
    store, _ = _setup_project(tmp_path)

    assert isinstance(store, CatalogStore)
    with store.read() as tx:
        assert isinstance(tx, CatalogTransaction)


def test_project_record_carries_locales_in_order(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)

    with store.read() as tx:
        record = tx.get_project(project.project_id)
        missing = tx.get_project("missing")

    assert missing is None
    assert record is not None
    assert record.locales == ("zh-CN", "en-US", "ja-JP")
    assert record.target_locales == ["en-US", "ja-JP"]
    assert record.has_locale("zh-CN")
    assert not record.has_locale("fr-FR")


def test_failed_unit_of_work_rolls_back(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)

    with pytest.raises(RuntimeError, match="abort"):
        with store.begin() as tx:
            tx.insert_entries(project.project_id, "zh-CN", [("a", "甲")])
            raise RuntimeError("abort")

    with store.read() as tx:
        assert tx.load_entries(project.project_id) == {}


def test_unexpected_constraint_violation_is_a_storage_error(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    with store.begin() as tx:
        tx.insert_entries(project.project_id, "zh-CN", [("a", "甲")])

    with pytest.raises(StorageError, match="constraint"):
        with store.begin() as tx:
            tx.insert_entries(project.project_id, "zh-CN", [("b", "乙")])
            tx.insert_entries(project.project_id, "zh-CN", [("a", "again")])

    with store.read() as tx:
        assert sorted(tx.load_entries(project.project_id)) == ["a"]


def test_template_paths_survive_garbage(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    with store.begin() as tx:
        tx.save_template(project.project_id, "tree", [("a", "b"), ("c",)])

    with store.read() as tx:
        template = tx.get_template(project.project_id)
    assert template is not None
    assert template.paths == [("a", "b"), ("c",)]

    conn = sqlite3.connect(project.db_path)
    try:
        conn.execute("UPDATE template_meta SET template_paths_json = '{broken'")
        conn.commit()
    finally:
        conn.close()

    with store.read() as tx:
        template = tx.get_template(project.project_id)
    assert template is not None
    assert template.shape == "tree"
    assert template.paths == []


def test_blocking_count_treats_whitespace_as_empty(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    with store.begin() as tx:
        ids = tx.insert_entries(project.project_id, "zh-CN", [("a", "甲"), ("b", "乙")])
        tx.write_translation_texts(project.project_id, "en-US", [(ids["a"], "A")], "approved")
        tx.write_translation_texts(project.project_id, "en-US", [(ids["b"], "  ")], "approved")

    with store.read() as tx:
        assert tx.count_blocking_translations(project.project_id, "en-US") == 1
        rows = tx.list_export_rows(project.project_id, "en-US")

    assert [(row.key, row.text) for row in rows] == [("a", "A"), ("b", "  ")]


def test_store_refuses_a_missing_project_directory(tmp_path: Path) -> None:
    store = SqliteCatalogStore(tmp_path / "nope" / "project.db")

    with pytest.raises(StorageError, match="does not exist"):
        with store.read():
            pass
    assert not (tmp_path / "nope").exists()


def test_store_refuses_a_newer_schema_version(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    conn = sqlite3.connect(project.db_path)
    try:
        conn.execute("UPDATE schema_meta SET value = '99' WHERE key = 'schema_version'")
        conn.commit()
    finally:
        conn.close()

    with pytest.raises(StorageError, match="newer than supported"):
        with store.begin():
            pass


def test_insert_placements_counts_only_new_rows(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    with store.begin() as tx:
        ids = tx.insert_entries(project.project_id, "zh-CN", [("a", "甲"), ("b", "乙")])
        page, _ = tx.create_or_get_page(project.project_id, "/home")
        module, _ = tx.create_or_get_module(page.id, "hero")

        assert tx.insert_placements(page.id, module.id, [ids["a"]]) == 1
        # "a" is already placed, so only "b" is inserted.
        assert tx.insert_placements(page.id, module.id, [ids["a"], ids["b"]]) == 1

    conn = sqlite3.connect(project.db_path)
    try:
        placed = conn.execute("SELECT COUNT(*) FROM entry_placements").fetchone()[0]
    finally:
        conn.close()
    assert placed == 2
