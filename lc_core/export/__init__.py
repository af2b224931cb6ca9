"""Language pack export."""

from lc_core.export.exporter import (
    ExportedArchive,
    ExportedPack,
    archive_file_name,
    build_locale_map,
    check_quality_gate,
    export_all_archive,
    export_language_pack,
    pack_file_name,
    render_pack,
    serialize_pack,
)

__all__ = [
    "ExportedArchive",
    "ExportedPack",
    "archive_file_name",
    "build_locale_map",
    "check_quality_gate",
    "export_all_archive",
    "export_language_pack",
    "pack_file_name",
    "render_pack",
    "serialize_pack",
]
