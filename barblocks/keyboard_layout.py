"""Keyboard layout names and their parsing, mapping and querying."""

from __future__ import annotations

import subprocess
from collections.abc import Mapping
from dataclasses import dataclass

from barblocks.blocks import BlockError

NO_VARIANT = "N/A"


@dataclass(frozen=True)
class LayoutInfo:
    """A keyboard layout and, when known, its variant."""

    layout: str
    variant: str | None = None


def parse_layout(layout: str) -> LayoutInfo:
    """Split ``"Name (Variant)"`` into a layout and a variant."""
    layout_part, sep, variant_part = layout.partition("(")
    if not sep:
        return LayoutInfo(layout, None)
    return LayoutInfo(layout_part.rstrip(), variant_part.rstrip(")"))


def parse_setxkbmap(output: str) -> str:
    """The layout named in ``setxkbmap -query`` output."""
    for line in output.splitlines():
        if line.startswith("layout"):
            fields = line.split()
            if not fields:
                raise BlockError("Could not read the layout entry from setxkbmap.")
            return fields[-1]
    raise BlockError("Could not find the layout entry from setxkbmap")


def apply_mappings(
    info: LayoutInfo, mappings: Mapping[str, str] | None = None
) -> LayoutInfo:
    """Fill in a missing variant and replace the layout by its mapped short name."""
    variant = info.variant if info.variant is not None else NO_VARIANT
    layout = info.layout
    if mappings is not None:
        layout = mappings.get(f"{layout} ({variant})", layout)
    return LayoutInfo(layout, variant)


def query_setxkbmap() -> LayoutInfo:
    """Ask ``setxkbmap`` for the current layout; it reports no variant."""
    try:
        result = subprocess.run(
            ["setxkbmap", "-query"], stdout=subprocess.PIPE, check=False
        )
    except OSError as err:
        raise BlockError("Failed to execute setxkbmap") from err
    try:
        output = result.stdout.decode("utf-8")
    except UnicodeDecodeError as err:
        raise BlockError("setxkbmap produced a non-UTF8 output") from err
    return LayoutInfo(parse_setxkbmap(output), None)