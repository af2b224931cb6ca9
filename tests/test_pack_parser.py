from __future__ import annotations

import json

import pytest

from lc_core.constants import MAX_PACK_CHARS, MAX_PACK_LEAVES
from lc_core.errors import CatalogValidationError, PackParseError
from lc_core.packages.parser import parse_language_pack


def test_flat_pack_keeps_document_order() -> None:
    parsed = parse_language_pack('{"b.title": "B", "a.title": "A", "c": "C"}')

    assert parsed.shape == "flat"
    assert parsed.keys == ["b.title", "a.title", "c"]
    assert parsed.map == {"b.title": "B", "a.title": "A", "c": "C"}
    assert parsed.paths == [("b.title",), ("a.title",), ("c",)]


def test_nested_pack_is_tree_with_dot_joined_keys() -> None:
    raw = json.dumps(
        {
            "common": {"save": "保存", "dialog": {"ok": "确定"}},
            "title": "首页",
        },
        ensure_ascii=False,
    )

    parsed = parse_language_pack(raw)

    assert parsed.shape == "tree"
    assert parsed.keys == ["common.save", "common.dialog.ok", "title"]
    assert [draft.path for draft in parsed.drafts] == [
        ("common", "save"),
        ("common", "dialog", "ok"),
        ("title",),
    ]
    assert parsed.map["common.dialog.ok"] == "确定"


def test_segments_are_trimmed() -> None:
    parsed = parse_language_pack('{" common ": {" save ": "Save"}}')

    assert parsed.keys == ["common.save"]
    assert parsed.drafts[0].path == ("common", "save")


def test_empty_object_is_flat_without_drafts() -> None:
    parsed = parse_language_pack("{}")

    assert parsed.shape == "flat"
    assert parsed.drafts == []
    assert parsed.map == {}


@pytest.mark.parametrize(
    "raw",
    [
        "[]",
        '"text"',
        "42",
        "null",
    ],
)
def test_root_must_be_an_object(raw: str) -> None:
    with pytest.raises(PackParseError, match="root must be a JSON object"):
        parse_language_pack(raw)


@pytest.mark.parametrize(
    ("raw", "described"),
    [
        ('{"a": ["x"]}', "array"),
        ('{"a": {"b": 1}}', "number"),
        ('{"a": true}', "boolean"),
        ('{"a": null}', "null"),
    ],
)
def test_non_string_leaves_are_rejected(raw: str, described: str) -> None:
    with pytest.raises(PackParseError, match=described):
        parse_language_pack(raw)


def test_invalid_json_is_a_parse_error() -> None:
    with pytest.raises(PackParseError, match="Invalid JSON"):
        parse_language_pack('{"a": "x",')


def test_empty_segment_is_rejected() -> None:
    with pytest.raises(PackParseError, match="Empty key segment"):
        parse_language_pack('{"common": {"  ": "x"}}')


def test_duplicate_key_after_trimming_is_rejected() -> None:
    with pytest.raises(PackParseError, match="Duplicate key"):
        parse_language_pack('{"save": "a", " save": "b"}')


def test_duplicate_key_between_flat_and_nested_paths_is_rejected() -> None:
    with pytest.raises(PackParseError, match="common.save"):
        parse_language_pack('{"common.save": "a", "common": {"save": "b"}}')


def test_too_many_leaves_is_rejected() -> None:
    payload = {f"k{index}": "v" for index in range(MAX_PACK_LEAVES + 1)}

    with pytest.raises(PackParseError, match="more than"):
        parse_language_pack(json.dumps(payload))


def test_oversized_text_is_a_validation_error() -> None:
    raw = '{"a": "' + "x" * MAX_PACK_CHARS + '"}'

    with pytest.raises(CatalogValidationError, match="too large"):
        parse_language_pack(raw)
