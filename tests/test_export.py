from __future__ import annotations

import io
import json
import sqlite3
import zipfile
from pathlib import Path

from lc_core.export.exporter import build_locale_map, render_pack
from lc_core.project.create_project import (
    ProjectInfo,
    create_project,
    load_project_info,
    set_quality_mode,
)
from lc_core.review.review_service import approve_translation
from lc_core.service import (
    ServiceResult,
    export_all_language_packs,
    export_language_pack,
    import_language_pack,
)
from lc_core.settings import EngineSettings
from lc_core.store.ports import ExportRow
from lc_core.store.sqlite import SqliteCatalogStore

SETTINGS = EngineSettings()


def _setup_project(tmp_path: Path) -> tuple[SqliteCatalogStore, ProjectInfo]:
    projects_root = tmp_path / "projects"
    created = create_project(
        "Export App",
        source_locale="zh-CN",
        target_locales=["en-US", "ja-JP"],
        root=projects_root,
    )
    project = load_project_info(created.slug, root=projects_root)
    return SqliteCatalogStore(project.db_path), project


def _import(
    store: SqliteCatalogStore, project: ProjectInfo, locale: str, payload: dict
) -> ServiceResult:
    return import_language_pack(
        store,
        {
            "project_id": project.project_id,
            "locale": locale,
            "raw_json": json.dumps(payload, ensure_ascii=False),
        },
        operator="tester",
        can_manage=True,
        settings=SETTINGS,
    )


def _export(store: SqliteCatalogStore, project: ProjectInfo, locale: str, mode: str) -> dict:
    result = export_language_pack(
        store,
        {"project_id": project.project_id, "locale": locale, "mode": mode},
        settings=SETTINGS,
    )
    assert result.ok, result.error
    assert result.data is not None
    return result.data


def test_build_locale_map_fill_modes() -> None:
    rows = [
        ExportRow(key="a", source_text="甲", text="A"),
        ExportRow(key="b", source_text="乙", text="   "),
        ExportRow(key="c", source_text="丙", text=None),
    ]

    common = {"locale": "en-US", "source_locale": "zh-CN"}
    assert build_locale_map(rows, mode="fallback", **common) == {"a": "A", "b": "乙", "c": "丙"}
    assert build_locale_map(rows, mode="empty", **common) == {"a": "A", "b": "", "c": ""}
    assert build_locale_map(rows, mode="filled", **common) == {"a": "A"}
    assert build_locale_map(rows, locale="zh-CN", source_locale="zh-CN", mode="filled") == {
        "a": "甲",
        "b": "乙",
        "c": "丙",
    }


def test_render_pack_appends_keys_missing_from_template() -> None:
    document = render_pack(
        {"home.title": "Home", "home.extra": "Extra", "footer": "Foot"},
        shape="tree",
        template_paths=[("home", "title"), ("home", "gone")],
    )

    assert document == {"home": {"title": "Home", "gone": "", "extra": "Extra"}, "footer": "Foot"}
    assert list(document["home"]) == ["title", "gone", "extra"]


def test_render_pack_without_template_splits_keys() -> None:
    document = render_pack({"a.b": "1", "a.c": "2", "d": "3"}, shape="tree")

    assert document == {"a": {"b": "1", "c": "2"}, "d": "3"}


def test_flat_export_is_sorted_and_names_file_by_locale(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    assert _import(store, project, "zh-CN", {"zeta": "Z", "alpha": "A", "mid.key": "M"}).ok
    assert _import(store, project, "en-US", {"alpha": "Alpha"}).ok

    data = _export(store, project, "en-US", "fallback")

    assert data["fileName"] == f"project-{project.project_id}.en-US.json"
    assert data["contentType"] == "application/json"
    exported = json.loads(data["content"])
    assert list(exported) == ["alpha", "mid.key", "zeta"]
    assert exported == {"alpha": "Alpha", "mid.key": "M", "zeta": "Z"}
    assert data["content"].startswith('{\n  "alpha"')


def test_fill_modes_against_catalog(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    assert _import(store, project, "zh-CN", {"common.save": "保存", "common.cancel": "取消"}).ok
    assert _import(store, project, "en-US", {"common.save": "Save"}).ok

    assert json.loads(_export(store, project, "en-US", "fallback")["content"]) == {
        "common.cancel": "取消",
        "common.save": "Save",
    }
    assert json.loads(_export(store, project, "en-US", "empty")["content"]) == {
        "common.cancel": "",
        "common.save": "Save",
    }
    assert json.loads(_export(store, project, "en-US", "filled")["content"]) == {
        "common.save": "Save",
    }
    # Non-ASCII is written as-is.
    assert "保存" in _export(store, project, "zh-CN", "filled")["content"]


def test_tree_export_round_trips_without_changes(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    original = {
        "common": {"save": "保存", "cancel": "取消"},
        "home": {"hero": {"title": "欢迎"}},
        "footer": "页脚",
    }
    assert _import(store, project, "zh-CN", original).ok

    source_export = _export(store, project, "zh-CN", "empty")
    assert json.loads(source_export["content"]) == original
    assert list(json.loads(source_export["content"])) == ["common", "home", "footer"]

    reimport = import_language_pack(
        store,
        {
            "project_id": project.project_id,
            "locale": "zh-CN",
            "raw_json": source_export["content"],
        },
        operator="tester",
        can_manage=True,
        settings=SETTINGS,
    )
    assert reimport.data is not None
    assert reimport.data["summary"] == {"added": 0, "updated": 0, "markedNeedsUpdate": 0}

    target_export = _export(store, project, "en-US", "empty")
    assert json.loads(target_export["content"]) == {
        "common": {"save": "", "cancel": ""},
        "home": {"hero": {"title": ""}},
        "footer": "",
    }
    target_reimport = import_language_pack(
        store,
        {
            "project_id": project.project_id,
            "locale": "en-US",
            "raw_json": target_export["content"],
        },
        operator="tester",
        can_manage=True,
        settings=SETTINGS,
    )
    assert target_reimport.data is not None
    assert target_reimport.data["summary"]["updated"] == 0
    assert target_reimport.data["summary"]["ignored"] == 0


def test_filled_tree_export_omits_untranslated_paths(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    assert _import(store, project, "zh-CN", {"home": {"title": "首页", "intro": "介绍"}}).ok
    assert _import(store, project, "en-US", {"home": {"title": "Home"}}).ok

    data = _export(store, project, "en-US", "filled")

    assert json.loads(data["content"]) == {"home": {"title": "Home"}}


def test_export_rejects_unknown_locale_and_mode(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)

    unknown_locale = export_language_pack(
        store,
        {"project_id": project.project_id, "locale": "de-DE", "mode": "fallback"},
        settings=SETTINGS,
    )
    bad_mode = export_language_pack(
        store,
        {"project_id": project.project_id, "locale": "en-US", "mode": "everything"},
        settings=SETTINGS,
    )

    assert not unknown_locale.ok
    assert unknown_locale.kind == "validation"
    assert not bad_mode.ok
    assert bad_mode.kind == "validation"


def test_strict_quality_gate_blocks_unapproved_target_export(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    assert _import(store, project, "zh-CN", {"a": "甲", "b": "乙"}).ok
    assert _import(store, project, "en-US", {"a": "A", "b": "B"}).ok
    set_quality_mode(project.slug, "strict", root=project.project_path.parent)

    blocked = export_language_pack(
        store,
        {"project_id": project.project_id, "locale": "en-US", "mode": "fallback"},
        settings=SETTINGS,
    )
    assert not blocked.ok
    assert blocked.kind == "quality_gate"
    assert "2 unapproved or empty" in (blocked.error or "")

    # The source locale is never gated.
    assert _export(store, project, "zh-CN", "fallback")["content"]

    conn = sqlite3.connect(project.db_path)
    try:
        entry_ids = [row[0] for row in conn.execute("SELECT id FROM entries").fetchall()]
    finally:
        conn.close()
    for entry_id in entry_ids:
        approve_translation(
            db_path=project.db_path,
            project_id=project.project_id,
            entry_id=entry_id,
            locale="en-US",
        )

    assert json.loads(_export(store, project, "en-US", "filled")["content"]) == {"a": "A", "b": "B"}


def test_export_all_packages_every_locale(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    assert _import(store, project, "zh-CN", {"nav": {"home": "首页"}}).ok
    assert _import(store, project, "ja-JP", {"nav": {"home": "ホーム"}}).ok

    result = export_all_language_packs(store, project.project_id, "fallback", settings=SETTINGS)

    assert result.ok, result.error
    assert result.data is not None
    assert result.data["fileName"] == f"project-{project.project_id}.langpacks.zip"
    assert result.data["contentType"] == "application/zip"
    assert result.data["locales"] == ["zh-CN", "en-US", "ja-JP"]

    with zipfile.ZipFile(io.BytesIO(result.data["content"])) as archive:
        names = archive.namelist()
        assert names == [
            f"project-{project.project_id}.zh-CN.json",
            f"project-{project.project_id}.en-US.json",
            f"project-{project.project_id}.ja-JP.json",
        ]
        english = json.loads(archive.read(names[1]).decode("utf-8"))
        japanese = json.loads(archive.read(names[2]).decode("utf-8"))

    assert english == {"nav": {"home": "首页"}}
    assert japanese == {"nav": {"home": "ホーム"}}


def test_export_all_is_refused_when_any_target_is_blocked(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    assert _import(store, project, "zh-CN", {"a": "甲"}).ok
    set_quality_mode(project.slug, "strict", root=project.project_path.parent)

    result = export_all_language_packs(store, project.project_id, "fallback", settings=SETTINGS)

    assert not result.ok
    assert result.kind == "quality_gate"
    assert "en-US" in (result.error or "")


def test_render_pack_writes_each_dotted_key_once() -> None:
    document = render_pack(
        {"common.save": "Save"},
        shape="tree",
        template_paths=[("common", "save"), ("common.save",)],
    )

    assert document == {"common": {"save": "Save"}}


def test_tree_export_stays_parseable_after_dotted_key_import(tmp_path: Path) -> None:
    store, project = _setup_project(tmp_path)
    assert _import(store, project, "zh-CN", {"common": {"save": "保存"}}).ok
    assert _import(store, project, "zh-CN", {"x": {"y": "1"}, "common.save": "保存"}).ok

    data = _export(store, project, "zh-CN", "empty")
    assert json.loads(data["content"]) == {"common": {"save": "保存"}, "x": {"y": "1"}}

    reimport = import_language_pack(
        store,
        {"project_id": project.project_id, "locale": "zh-CN", "raw_json": data["content"]},
        operator="tester",
        can_manage=True,
        settings=SETTINGS,
    )
    assert reimport.ok, reimport.error
    assert reimport.data is not None
    assert reimport.data["summary"] == {"added": 0, "updated": 0, "markedNeedsUpdate": 0}
