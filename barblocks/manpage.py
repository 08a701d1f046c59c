"""Build a markdown manual of the blocks from the doc comments at the top of their sources."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from itertools import takewhile
from pathlib import Path

USAGE = (
    "block manpage generator\n"
    "\n"
    "USAGE:\n"
    "  gen-manpage <src dir> <output file>\n"
    "EXAMPLE:\n"
    "  gen-manpage ../src/blocks ../man/blocks.md\n"
)

_DOC_PREFIX = "//!"


def extract_block_doc(lines: Iterable[str]) -> str:
    """Return the leading doc-comment lines as markdown, headings pushed down two levels."""
    parts = []
    for line in takewhile(lambda l: l.startswith(_DOC_PREFIX), lines):
        text = line[len(_DOC_PREFIX):]
        if text.startswith(" "):
            text = text[1:]
        if text.startswith("#"):
            parts.append("##")
        parts.append(text)
        parts.append("\n")
    return "".join(parts)


def _read_lines(path: Path) -> list[str]:
    with path.open(encoding="utf-8") as handle:
        return [line.rstrip("\n").rstrip("\r") for line in handle]


def collect_block_docs(src_dir: str | Path) -> list[tuple[str, str]]:
    """Return ``(block name, doc)`` for every documented file in ``src_dir/blocks``, sorted."""
    blocks_dir = Path(src_dir) / "blocks"
    result = []
    for entry in blocks_dir.iterdir():
        if not entry.is_file():
            continue
        if "." not in entry.name:
            raise ValueError(f"file name without extension: {entry.name}")
        block_name = entry.name.rsplit(".", 1)[0]
        doc = extract_block_doc(_read_lines(entry))
        if doc:
            result.append((block_name, doc))
    result.sort(key=lambda item: item[0])
    return result


def render_markdown(docs: Iterable[tuple[str, str]]) -> str:
    """Join the block docs into one markdown document."""
    return "".join(f"## {block}\n{doc}\n" for block, doc in docs)


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``gen-manpage <src dir> <output file>``."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 2:
        print(USAGE, file=sys.stderr)
        return 1
    src_dir, out_path = Path(args[0]), Path(args[1])
    markdown = render_markdown(collect_block_docs(src_dir))
    out_path.write_text(markdown, encoding="utf-8")
    return 0


if __name__ == "__main__":
    sys.exit(main())