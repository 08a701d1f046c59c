import subprocess
from unittest import mock

import pytest

from barblocks.blocks import BlockError
from barblocks.keyboard_layout import (
    LayoutInfo,
    apply_mappings,
    parse_layout,
    parse_setxkbmap,
    query_setxkbmap,
)


def test_parse_layout_with_variant():
    assert parse_layout("English (US)") == LayoutInfo("English", "US")


def test_parse_layout_without_variant():
    assert parse_layout("us") == LayoutInfo("us", None)


def test_parse_layout_nested_parentheses_trimmed():
    info = parse_layout("Bulgarian (new phonetic))")
    assert info.layout == "Bulgarian"
    assert info.variant == "new phonetic"


def test_parse_setxkbmap_finds_layout():
    output = "rules:      evdev\nmodel:      pc105\nlayout:     us\n"
    assert parse_setxkbmap(output) == "us"


def test_parse_setxkbmap_takes_last_field():
    assert parse_setxkbmap("layout:  us,de\n") == "us,de"


def test_parse_setxkbmap_missing_layout():
    with pytest.raises(BlockError, match="Could not find the layout entry"):
        parse_setxkbmap("rules: evdev\nmodel: pc105\n")


def test_apply_mappings_with_variant():
    info = LayoutInfo("English", "US")
    result = apply_mappings(info, {"English (US)": "us"})
    assert result == LayoutInfo("us", "US")


def test_apply_mappings_fills_missing_variant():
    result = apply_mappings(LayoutInfo("Russian"), {"Russian (N/A)": "RU"})
    assert result == LayoutInfo("RU", "N/A")


def test_apply_mappings_without_match_keeps_layout():
    info = LayoutInfo("English", "Workman")
    assert apply_mappings(info, {"English (US)": "us"}) == info


def test_apply_mappings_none():
    assert apply_mappings(LayoutInfo("de"), None) == LayoutInfo("de", "N/A")


def test_query_setxkbmap_parses_output():
    completed = subprocess.CompletedProcess(
        ["setxkbmap", "-query"], 0, stdout=b"rules: evdev\nlayout:     fr\n"
    )
    with mock.patch("barblocks.keyboard_layout.subprocess.run", return_value=completed) as run:
        info = query_setxkbmap()
    assert info == LayoutInfo("fr", None)
    assert run.call_args.args[0] == ["setxkbmap", "-query"]


def test_query_setxkbmap_missing_program():
    with mock.patch(
        "barblocks.keyboard_layout.subprocess.run", side_effect=FileNotFoundError()
    ):
        with pytest.raises(BlockError, match="Failed to execute setxkbmap"):
            query_setxkbmap()


def test_query_setxkbmap_non_utf8():
    completed = subprocess.CompletedProcess(["setxkbmap"], 0, stdout=b"\xff\xfe")
    with mock.patch("barblocks.keyboard_layout.subprocess.run", return_value=completed):
        with pytest.raises(BlockError, match="non-UTF8"):
            query_setxkbmap()