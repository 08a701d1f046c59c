"""Version string built from the package version and the current git commit."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path


def format_version(
    pkg_version: str, commit_hash: str | None, commit_date: str | None
) -> str:
    """Return ``"<version> (commit <hash> <date>)"``, or just the version without git data."""
    if commit_hash is None or commit_date is None:
        return pkg_version
    return f"{pkg_version} (commit {commit_hash.strip()} {commit_date.strip(chr(39))})"


def _git_output(args: list[str], cwd: str | Path | None) -> str | None:
    env = dict(os.environ, GIT_CONFIG_GLOBAL="/dev/null")
    try:
        result = subprocess.run(
            ["git", *args], cwd=cwd, env=env, capture_output=True, check=False
        )
    except OSError:
        return None
    return result.stdout.decode("utf-8")


def detect_version(pkg_version: str, cwd: str | Path | None = None) -> str:
    """Ask git for the short commit hash and date and build the version string."""
    commit_hash = _git_output(["rev-parse", "--short", "HEAD"], cwd)
    commit_date = _git_output(
        ["log", "--pretty=format:'%ad'", "-n1", "--date=short"], cwd
    )
    return format_version(pkg_version, commit_hash, commit_date)