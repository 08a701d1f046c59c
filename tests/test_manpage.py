import pytest

from barblocks.manpage import (
    collect_block_docs,
    extract_block_doc,
    main,
    render_markdown,
)


def test_extract_block_doc_headings_and_blank_lines():
    lines = ["//! System load average", "//!", "//! # Configuration", "use x;", "//! late"]
    assert extract_block_doc(lines) == (
        "System load average\n\n### Configuration\n"
    )


def test_extract_block_doc_keeps_extra_indent():
    assert extract_block_doc(["//!x", "//!   y"]) == "x\n  y\n"


def test_extract_block_doc_without_docs():
    assert extract_block_doc(["use super::prelude::*;", "//! not leading"]) == ""


def _make_src(tmp_path):
    blocks = tmp_path / "blocks"
    blocks.mkdir()
    (blocks / "load.rs").write_text("//! System load average\n//!\n//! # Example\nuse x;\n")
    (blocks / "apt.rs").write_text("//! Pending updates\nfn main() {}\n")
    (blocks / "prelude.rs").write_text("use std::fmt;\n")
    (blocks / "battery").mkdir()
    (blocks / "battery" / "sysfs.rs").write_text("//! ignored\n")
    return tmp_path


def test_collect_block_docs_sorted_and_filtered(tmp_path):
    docs = collect_block_docs(_make_src(tmp_path))
    assert [name for name, _ in docs] == ["apt", "load"]
    assert docs[0][1] == "Pending updates\n"
    assert docs[1][1] == "System load average\n\n### Example\n"


def test_collect_block_docs_rejects_name_without_extension(tmp_path):
    blocks = tmp_path / "blocks"
    blocks.mkdir()
    (blocks / "README").write_text("//! doc\n")
    with pytest.raises(ValueError):
        collect_block_docs(tmp_path)


def test_render_markdown():
    docs = [("apt", "Pending\n"), ("load", "Load\n")]
    assert render_markdown(docs) == "## apt\nPending\n\n## load\nLoad\n\n"


def test_main_missing_arguments(capsys):
    assert main(["only-src"]) == 1
    err = capsys.readouterr().err
    assert "USAGE:" in err
    assert main([]) == 1