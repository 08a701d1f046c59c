import subprocess
from unittest import mock

from barblocks.version import detect_version, format_version


def test_format_version_with_commit():
    assert (
        format_version("0.1.0", "abc123\n", "'2023-01-02'")
        == "0.1.0 (commit abc123 2023-01-02)"
    )


def test_format_version_without_git_data():
    assert format_version("0.1.0", None, "'2023-01-02'") == "0.1.0"
    assert format_version("0.1.0", "abc123", None) == "0.1.0"


def _fake_run(args, **kwargs):
    if "rev-parse" in args:
        out = b"deadbee\n"
    else:
        out = b"'2022-05-06'"
    return subprocess.CompletedProcess(args, 0, stdout=out, stderr=b"")


def test_detect_version_uses_git_output(tmp_path):
    with mock.patch("barblocks.version.subprocess.run", side_effect=_fake_run) as run:
        version = detect_version("1.2.3", tmp_path)
    assert version == "1.2.3 (commit deadbee 2022-05-06)"
    assert run.call_count == 2
    for call in run.call_args_list:
        assert call.kwargs["env"]["GIT_CONFIG_GLOBAL"] == "/dev/null"
        assert call.kwargs["cwd"] == tmp_path
    assert run.call_args_list[0].args[0] == ["git", "rev-parse", "--short", "HEAD"]


def test_detect_version_without_git(tmp_path):
    with mock.patch(
        "barblocks.version.subprocess.run", side_effect=FileNotFoundError("git")
    ):
        assert detect_version("1.2.3", tmp_path) == "1.2.3"