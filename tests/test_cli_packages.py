from __future__ import annotations

import json
import zipfile
from pathlib import Path

from typer.testing import CliRunner

from lc_cli.main import app

runner = CliRunner()


def _create(projects_root: Path, *extra: str) -> None:
    result = runner.invoke(
        app,
        [
            "create-project",
            "Cli Shop",
            "--source",
            "zh-CN",
            "--targets",
            "en-US",
            "--root",
            str(projects_root),
            *extra,
        ],
    )
    assert result.exit_code == 0, result.output


def _write_pack(path: Path, payload: dict) -> Path:
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def test_import_export_and_history_through_cli(tmp_path: Path) -> None:
    projects_root = tmp_path / "projects"
    _create(projects_root)
    source_pack = _write_pack(tmp_path / "zh.json", {"cart": {"title": "购物车", "empty": "空"}})
    target_pack = _write_pack(tmp_path / "en.json", {"cart": {"title": "Cart", "ghost": "?"}})

    imported = runner.invoke(
        app,
        [
            "import-pack",
            "cli-shop",
            str(source_pack),
            "--locale",
            "zh-CN",
            "--page-route",
            "/cart",
            "--module-name",
            "header",
            "--root",
            str(projects_root),
        ],
    )
    assert imported.exit_code == 0, imported.output
    assert "Imported source pack (tree): added=2, updated=0, markedNeedsUpdate=0" in imported.output
    assert "Bound 2 entries" in imported.output

    target = runner.invoke(
        app,
        ["import-pack", "cli-shop", str(target_pack), "--locale", "en-US", "--root", str(projects_root)],
    )
    assert target.exit_code == 0, target.output
    assert "updated=1, ignored=1, skippedEmpty=0" in target.output

    exported = runner.invoke(
        app,
        ["export-pack", "cli-shop", "en-US", "--mode", "empty", "--root", str(projects_root)],
    )
    assert exported.exit_code == 0, exported.output

    export_files = list((projects_root / "cli-shop" / "exports").glob("project-*.en-US.json"))
    assert len(export_files) == 1
    assert json.loads(export_files[0].read_text(encoding="utf-8")) == {
        "cart": {"title": "Cart", "empty": ""}
    }

    history = runner.invoke(app, ["uploads", "cli-shop", "--root", str(projects_root)])
    assert history.exit_code == 0, history.output
    lines = [line for line in history.output.splitlines() if " flat" in line or " tree" in line]
    assert len(lines) == 2
    assert " en-US " in lines[0]

    upload_id = lines[0].split()[0]
    detail = runner.invoke(
        app, ["uploads", "cli-shop", "--id", upload_id, "--root", str(projects_root)]
    )
    assert detail.exit_code == 0, detail.output
    assert "ignored: 1" in detail.output


def test_approve_and_strict_bulk_export(tmp_path: Path) -> None:
    projects_root = tmp_path / "projects"
    _create(projects_root, "--quality-mode", "strict")
    source_pack = _write_pack(tmp_path / "zh.json", {"ok": "好"})
    target_pack = _write_pack(tmp_path / "en.json", {"ok": "OK"})
    for pack, locale in ((source_pack, "zh-CN"), (target_pack, "en-US")):
        result = runner.invoke(
            app,
            ["import-pack", "cli-shop", str(pack), "--locale", locale, "--root", str(projects_root)],
        )
        assert result.exit_code == 0, result.output

    blocked = runner.invoke(app, ["export-all", "cli-shop", "--root", str(projects_root)])
    assert blocked.exit_code == 1
    assert "Quality gate" in blocked.output

    unknown = runner.invoke(
        app, ["approve", "cli-shop", "en-US", "missing", "--root", str(projects_root)]
    )
    assert unknown.exit_code == 1

    approved = runner.invoke(
        app, ["approve", "cli-shop", "en-US", "ok", "--root", str(projects_root)]
    )
    assert approved.exit_code == 0, approved.output

    bulk = runner.invoke(
        app,
        ["export-all", "cli-shop", "--out-dir", str(tmp_path / "out"), "--root", str(projects_root)],
    )
    assert bulk.exit_code == 0, bulk.output

    archives = list((tmp_path / "out").glob("*.langpacks.zip"))
    assert len(archives) == 1
    with zipfile.ZipFile(archives[0]) as archive:
        assert sorted(name.rsplit(".", 2)[1] for name in archive.namelist()) == ["en-US", "zh-CN"]

    info = runner.invoke(app, ["project-info", "cli-shop", "--root", str(projects_root)])
    assert info.exit_code == 0, info.output
    assert "en-US: 100% translated" in info.output


def test_locale_and_quality_commands(tmp_path: Path) -> None:
    projects_root = tmp_path / "projects"
    _create(projects_root)

    added = runner.invoke(app, ["add-locale", "cli-shop", "fr-FR", "--root", str(projects_root)])
    assert added.exit_code == 0, added.output
    assert "Target locales: en-US, fr-FR" in added.output

    mode = runner.invoke(
        app, ["quality-mode", "cli-shop", "strict", "--root", str(projects_root)]
    )
    assert mode.exit_code == 0, mode.output
    assert "Quality mode: strict" in mode.output

    bad = runner.invoke(app, ["quality-mode", "cli-shop", "loose", "--root", str(projects_root)])
    assert bad.exit_code == 1


def test_import_of_invalid_pack_fails_cleanly(tmp_path: Path) -> None:
    projects_root = tmp_path / "projects"
    _create(projects_root)
    broken = tmp_path / "broken.json"
    broken.write_text('{"a": 1}', encoding="utf-8")

    result = runner.invoke(
        app,
        ["import-pack", "cli-shop", str(broken), "--locale", "zh-CN", "--root", str(projects_root)],
    )

    assert result.exit_code == 1
    assert "must be a string" in result.output


def test_invalid_log_level_exits_cleanly(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["project-info", "cli-shop", "--root", str(tmp_path / "projects")],
        env={"LC_LOG_LEVEL": "chatty"},
    )

    assert result.exit_code == 1
    assert "Invalid LC_* setting" in result.output
