"""Language pack parsing.

A language pack is a JSON object whose leaves are strings. A pack whose root
values are all strings is ``flat``; any object-valued child makes it a
``tree``. Leaf keys are the dot-joined, trimmed path segments.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from lc_core.constants import MAX_PACK_CHARS, MAX_PACK_LEAVES, SHAPE_FLAT, SHAPE_TREE
from lc_core.errors import CatalogValidationError, PackParseError


@dataclass(slots=True, frozen=True)
class LeafDraft:
    path: tuple[str, ...]
    key: str
    value: str


@dataclass(slots=True)
class ParsedPack:
    shape: str
    drafts: list[LeafDraft] = field(default_factory=list)
    map: dict[str, str] = field(default_factory=dict)

    @property
    def keys(self) -> list[str]:
        return list(self.map)

    @property
    def paths(self) -> list[tuple[str, ...]]:
        return [draft.path for draft in self.drafts]


class _ObjectPairs:
    """Ordered ``(name, value)`` pairs of a JSON object, duplicates preserved."""

    __slots__ = ("pairs",)

    def __init__(self, pairs: list[tuple[str, object]]) -> None:
        self.pairs = pairs


def _load_json(raw_text: str) -> object:
    try:
        return json.loads(raw_text, object_pairs_hook=_ObjectPairs)
    except json.JSONDecodeError as exc:
        raise PackParseError(
            f"Invalid JSON at line {exc.lineno} column {exc.colno}: {exc.msg}"
        ) from exc
    except RecursionError as exc:
        raise PackParseError("JSON nesting is too deep.") from exc


def _describe(value: object) -> str:
    if isinstance(value, list):
        return "array"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return type(value).__name__


def _detect_shape(root: _ObjectPairs) -> str:
    for _, value in root.pairs:
        if isinstance(value, _ObjectPairs):
            return SHAPE_TREE
    return SHAPE_FLAT


def _normalize_segment(name: str, parent: tuple[str, ...]) -> str:
    segment = name.strip()
    if not segment:
        location = ".".join(parent) or "<root>"
        raise PackParseError(f"Empty key segment under '{location}'.")
    return segment


def parse_language_pack(raw_text: str) -> ParsedPack:
    if len(raw_text) > MAX_PACK_CHARS:
        raise CatalogValidationError(
            f"Language pack is too large: {len(raw_text)} characters (max {MAX_PACK_CHARS})."
        )

    root = _load_json(raw_text)
    if not isinstance(root, _ObjectPairs):
        raise PackParseError(f"Language pack root must be a JSON object, got {_describe(root)}.")

    shape = _detect_shape(root)
    drafts: list[LeafDraft] = []
    values: dict[str, str] = {}

    # Depth-first walk in document order; children are pushed reversed.
    stack: list[tuple[tuple[str, ...], object]] = [
        ((_normalize_segment(name, ()),), value) for name, value in reversed(root.pairs)
    ]
    while stack:
        path, value = stack.pop()

        if isinstance(value, _ObjectPairs):
            children = [
                ((*path, _normalize_segment(name, path)), child)
                for name, child in value.pairs
            ]
            stack.extend(reversed(children))
            continue

        if not isinstance(value, str):
            raise PackParseError(
                f"Value at '{'.'.join(path)}' must be a string, got {_describe(value)}."
            )

        key = ".".join(path)
        if key in values:
            raise PackParseError(f"Duplicate key after normalization: '{key}'.")
        if len(drafts) >= MAX_PACK_LEAVES:
            raise PackParseError(
                f"Language pack has more than {MAX_PACK_LEAVES} keys; split it into smaller files."
            )

        values[key] = value
        drafts.append(LeafDraft(path=path, key=key, value=value))

    return ParsedPack(shape=shape, drafts=drafts, map=values)
