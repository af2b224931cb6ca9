from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from lc_core.audit.recorder import get_upload_detail, list_upload_history
from lc_core.errors import CatalogError
from lc_core.logging import configure_logging
from lc_core.packages.requests import BindSpec, ImportRequest
from lc_core.project.create_project import (
    ProjectInfo,
    add_target_locale,
    create_project,
    load_project_info,
    set_quality_mode,
)
from lc_core.project.paths import project_exports_dir
from lc_core.review.review_service import approve_translation, locale_progress
from lc_core.service import (
    ServiceResult,
    export_all_language_packs,
    export_language_pack,
    import_language_pack,
)
from lc_core.settings import load_settings
from lc_core.store.sqlite import SqliteCatalogStore

app = typer.Typer(help="Language pack catalog CLI")

_ROOT_OPTION_HELP = "Projects root path. Defaults to ./projects."


def _root_option() -> Any:
    return typer.Option(
        None,
        "--root",
        help=_ROOT_OPTION_HELP,
        file_okay=False,
        resolve_path=False,
    )


def _parse_targets(targets_option: str | None) -> list[str]:
    if not targets_option:
        return []

    deduped: list[str] = []
    seen: set[str] = set()
    for chunk in targets_option.split(","):
        target = chunk.strip()
        if not target or target in seen:
            continue
        seen.add(target)
        deduped.append(target)
    return deduped


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


def _load_project(slug: str, root: Path | None) -> ProjectInfo:
    try:
        return load_project_info(slug, root=root)
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        raise _fail(str(exc)) from exc


def _require_ok(result: ServiceResult) -> dict[str, Any]:
    if not result.ok or result.data is None:
        raise _fail(result.error or "Operation failed.")
    return result.data


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output."),
) -> None:
    try:
        settings = load_settings()
    except CatalogError as exc:
        raise _fail(str(exc)) from exc
    configure_logging(level="DEBUG" if verbose else settings.log_level)


@app.command("create-project")
def create_project_command(
    name: str = typer.Argument(..., help="Human-readable project name."),
    slug: str | None = typer.Option(None, "--slug", help="Slug override."),
    source: str = typer.Option("zh-CN", "--source", help="Source locale."),
    targets: str | None = typer.Option(
        "en-US",
        "--targets",
        help="Comma-separated target locales.",
    ),
    quality_mode: str = typer.Option("off", "--quality-mode", help="off or strict."),
    root: Path | None = _root_option(),
) -> None:
    """Create a project folder with its SQLite catalog."""

    try:
        created = create_project(
            name,
            slug=slug,
            source_locale=source,
            target_locales=_parse_targets(targets),
            quality_mode=quality_mode,
            root=root,
        )
    except (FileExistsError, ValueError) as exc:
        raise _fail(str(exc)) from exc

    typer.echo(f"Project created: {created.slug}")
    typer.echo(f"Project id: {created.project_id}")
    typer.echo(f"Path: {created.project_path}")
    typer.echo(f"Database: {created.db_path}")
    typer.echo("Next steps:")
    typer.echo(f"  lc import-pack {created.slug} <file.json> --locale {source} --root {created.root}")


@app.command("project-info")
def project_info_command(
    slug: str = typer.Argument(..., help="Project slug."),
    root: Path | None = _root_option(),
) -> None:
    """Show project configuration and per-locale progress."""

    project = _load_project(slug, root)

    typer.echo(f"Project: {project.name} ({project.slug})")
    typer.echo(f"Project id: {project.project_id}")
    typer.echo(f"Path: {project.project_path}")
    typer.echo(f"Source locale: {project.source_locale}")
    typer.echo(f"Target locales: {', '.join(project.target_locales) or '-'}")
    typer.echo(f"Quality mode: {project.quality_mode}")
    typer.echo(f"Schema version: {project.schema_version}")

    for progress in locale_progress(db_path=project.db_path, project_id=project.project_id):
        typer.echo(
            f"  {progress.locale}: {progress.percent}% translated "
            f"({progress.translated}/{progress.total}, approved {progress.approved}, "
            f"review {progress.needs_review}, stale {progress.needs_update}, "
            f"missing {progress.missing})"
        )


@app.command("add-locale")
def add_locale_command(
    slug: str = typer.Argument(..., help="Project slug."),
    locale: str = typer.Argument(..., help="Target locale to add."),
    root: Path | None = _root_option(),
) -> None:
    """Add a target locale and create pending translations for it."""

    try:
        project = add_target_locale(slug, locale, root=root)
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        raise _fail(str(exc)) from exc
    typer.echo(f"Target locales: {', '.join(project.target_locales)}")


@app.command("quality-mode")
def quality_mode_command(
    slug: str = typer.Argument(..., help="Project slug."),
    mode: str = typer.Argument(..., help="off or strict."),
    root: Path | None = _root_option(),
) -> None:
    """Switch the export quality gate on or off."""

    try:
        project = set_quality_mode(slug, mode, root=root)
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        raise _fail(str(exc)) from exc
    typer.echo(f"Quality mode: {project.quality_mode}")


@app.command("import-pack")
def import_pack_command(
    slug: str = typer.Argument(..., help="Project slug."),
    pack_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Language pack JSON."),
    locale: str = typer.Option(..., "--locale", help="Locale of the pack."),
    operator: str = typer.Option("cli", "--operator", envvar="LC_OPERATOR"),
    page_id: str | None = typer.Option(None, "--page-id", help="Bind to an existing page."),
    page_route: str | None = typer.Option(
        None, "--page-route", help="Bind to this page route, creating it when missing."
    ),
    page_title: str | None = typer.Option(None, "--page-title"),
    module_id: str | None = typer.Option(None, "--module-id"),
    module_name: str | None = typer.Option(
        None, "--module-name", help="Bind to this module, creating it when missing."
    ),
    bind_mode: str = typer.Option("all", "--bind-mode", help="all or addedOnly."),
    root: Path | None = _root_option(),
) -> None:
    """Import a language pack for the source or a target locale."""

    project = _load_project(slug, root)

    try:
        bind = None
        if page_id or page_route:
            bind = BindSpec.build(
                mode=bind_mode,
                page_id=page_id,
                create_page_route=page_route,
                create_page_title=page_title,
                module_id=module_id,
                create_module_name=module_name,
            )
        request = ImportRequest.build(
            project_id=project.project_id,
            locale=locale,
            raw_json=pack_path.read_text(encoding="utf-8"),
            bind=bind,
        )
    except (CatalogError, OSError, UnicodeDecodeError) as exc:
        raise _fail(str(exc)) from exc

    result = import_language_pack(
        SqliteCatalogStore(project.db_path),
        request,
        operator=operator,
        can_manage=True,
    )
    data = _require_ok(result)

    summary = ", ".join(f"{name}={value}" for name, value in data["summary"].items())
    typer.echo(f"Imported {data['kind']} pack ({data['shape']}): {summary}")
    if "bind" in data:
        bind_data = data["bind"]
        typer.echo(
            f"Bound {bind_data['boundCount']} entries to page {bind_data['pageId']} "
            f"(mode {bind_data['mode']})"
        )


@app.command("export-pack")
def export_pack_command(
    slug: str = typer.Argument(..., help="Project slug."),
    locale: str = typer.Argument(..., help="Locale to export."),
    mode: str = typer.Option("fallback", "--mode", help="empty, fallback or filled."),
    out_dir: Path | None = typer.Option(
        None, "--out-dir", file_okay=False, help="Defaults to the project's exports/ folder."
    ),
    root: Path | None = _root_option(),
) -> None:
    """Export one locale as a language pack JSON file."""

    project = _load_project(slug, root)
    result = export_language_pack(
        SqliteCatalogStore(project.db_path),
        {"project_id": project.project_id, "locale": locale, "mode": mode},
    )
    data = _require_ok(result)

    target_dir = out_dir or project_exports_dir(project.project_path)
    target_dir.mkdir(parents=True, exist_ok=True)
    output_path = target_dir / data["fileName"]
    output_path.write_text(data["content"], encoding="utf-8")
    typer.echo(f"Exported: {output_path}")


@app.command("export-all")
def export_all_command(
    slug: str = typer.Argument(..., help="Project slug."),
    mode: str = typer.Option("fallback", "--mode", help="empty, fallback or filled."),
    out_dir: Path | None = typer.Option(
        None, "--out-dir", file_okay=False, help="Defaults to the project's exports/ folder."
    ),
    root: Path | None = _root_option(),
) -> None:
    """Export every locale into one zip archive."""

    project = _load_project(slug, root)
    result = export_all_language_packs(SqliteCatalogStore(project.db_path), project.project_id, mode)
    data = _require_ok(result)

    target_dir = out_dir or project_exports_dir(project.project_path)
    target_dir.mkdir(parents=True, exist_ok=True)
    output_path = target_dir / data["fileName"]
    output_path.write_bytes(data["content"])
    typer.echo(f"Exported {len(data['locales'])} locales: {output_path}")


@app.command("uploads")
def uploads_command(
    slug: str = typer.Argument(..., help="Project slug."),
    upload_id: str | None = typer.Option(None, "--id", help="Show details for one upload."),
    limit: int = typer.Option(20, "--limit", min=1, max=200),
    root: Path | None = _root_option(),
) -> None:
    """List import history, newest first."""

    project = _load_project(slug, root)

    if upload_id:
        detail = get_upload_detail(project.db_path, project.project_id, upload_id)
        if detail is None:
            raise _fail(f"Upload not found: {upload_id}")
        item = detail.item
        typer.echo(f"{item.created_at} {item.locale} ({item.shape}) by {item.operator or '-'}")
        for name, value in item.summary.to_dict().items():
            typer.echo(f"  {name}: {value}")
        for name, value in detail.details.items():
            if isinstance(value, list) and value:
                typer.echo(f"  {name}: {len(value)} shown")
        return

    items = list_upload_history(project.db_path, project.project_id, limit=limit)
    if not items:
        typer.echo("No uploads yet.")
        return
    for item in items:
        counts = ", ".join(f"{name}={value}" for name, value in item.summary.to_dict().items())
        typer.echo(f"{item.id} {item.created_at} {item.locale} {item.shape}: {counts}")


@app.command("approve")
def approve_command(
    slug: str = typer.Argument(..., help="Project slug."),
    locale: str = typer.Argument(..., help="Target locale."),
    keys: list[str] = typer.Argument(..., help="Entry keys to approve."),
    root: Path | None = _root_option(),
) -> None:
    """Approve the current translation of one or more keys."""

    project = _load_project(slug, root)
    with SqliteCatalogStore(project.db_path).read() as tx:
        entries = tx.load_entries(project.project_id)

    unknown = [key for key in keys if key not in entries]
    if unknown:
        raise _fail(f"Unknown key(s): {', '.join(unknown)}")

    for key in keys:
        try:
            approve_translation(
                db_path=project.db_path,
                project_id=project.project_id,
                entry_id=entries[key].id,
                locale=locale,
            )
        except CatalogError as exc:
            raise _fail(f"{key}: {exc}") from exc
        typer.echo(f"Approved {locale} {key}")


if __name__ == "__main__":
    app()
