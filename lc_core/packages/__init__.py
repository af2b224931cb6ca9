"""Language pack parsing and validated request structs."""

from lc_core.packages.parser import LeafDraft, ParsedPack, parse_language_pack
from lc_core.packages.requests import BindSpec, ExportRequest, ImportRequest

__all__ = [
    "BindSpec",
    "ExportRequest",
    "ImportRequest",
    "LeafDraft",
    "ParsedPack",
    "parse_language_pack",
]
