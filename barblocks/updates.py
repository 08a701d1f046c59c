"""Pending package updates reported by apt and dnf."""

from __future__ import annotations

import os
import re
import subprocess
import tempfile
from pathlib import Path
from typing import TypeVar

from barblocks.blocks import BlockError, State

T = TypeVar("T")

APT_CACHE_DIR_NAME = "barblocks-apt"
APT_CONFIG_FILE_NAME = "apt.conf"

_APT_CONFIG_TEMPLATE = (
    'Dir::State "{cache}";\n\n'
    '             Dir::State::lists "lists";\n\n'
    '             Dir::Cache "{cache}";\n\n'
    '             Dir::Cache::srcpkgcache "srcpkgcache.bin";\n\n'
    '             Dir::Cache::pkgcache "pkgcache.bin";'
)


def count_apt_updates(updates: str) -> int:
    """Count the lines of ``apt list --upgradable`` that name an upgradable package."""
    return sum(1 for line in updates.splitlines() if "[upgradable" in line)


def count_dnf_updates(updates: str) -> int:
    """Count the lines of ``dnf check-update`` output longer than one byte."""
    return sum(1 for line in updates.splitlines() if len(line.encode("utf-8")) > 1)


def has_matching_update(updates: str, pattern: re.Pattern[str]) -> bool:
    """Whether any line of the update list matches ``pattern``."""
    return any(pattern.search(line) for line in updates.splitlines())


def compile_optional_regex(pattern: str | None, what: str) -> re.Pattern[str] | None:
    """Compile ``pattern`` if given; ``what`` names it in the error message."""
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as err:
        raise BlockError(f"invalid {what} updates regex") from err


def update_state(
    count: int,
    updates: str,
    warning_regex: re.Pattern[str] | None,
    critical_regex: re.Pattern[str] | None,
) -> State:
    """The widget state for ``count`` pending updates."""
    if count == 0:
        return State.IDLE
    if critical_regex is not None and has_matching_update(updates, critical_regex):
        return State.CRITICAL
    if warning_regex is not None and has_matching_update(updates, warning_regex):
        return State.WARNING
    return State.INFO


def select_format(count: int, format: T, format_singular: T, format_up_to_date: T) -> T:
    """Pick the format for ``count`` pending updates."""
    if count == 0:
        return format_up_to_date
    if count == 1:
        return format_singular
    return format


def apt_config_text(cache_dir: str | Path) -> str:
    """The apt configuration that keeps package state in ``cache_dir``."""
    return _APT_CONFIG_TEMPLATE.format(cache=str(cache_dir))


def prepare_apt_cache(temp_dir: str | Path | None = None) -> Path:
    """Create a private apt state directory and its config file; return the config path."""
    base = Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())
    cache_dir = base / APT_CACHE_DIR_NAME
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise BlockError("Failed to create temp dir") from err
    config_file = cache_dir / APT_CONFIG_FILE_NAME
    try:
        config_file.write_text(apt_config_text(cache_dir), encoding="utf-8")
    except OSError as err:
        raise BlockError("Failed to write to config file") from err
    return config_file


def _decode(stdout: bytes, tool: str) -> str:
    try:
        return stdout.decode("utf-8")
    except UnicodeDecodeError as err:
        raise BlockError(f"{tool} produced non-UTF8 output") from err


def fetch_apt_updates(config_path: str | Path) -> str:
    """Refresh the private apt database and return ``apt list --upgradable`` output."""
    env = dict(os.environ, APT_CONFIG=str(config_path))
    try:
        subprocess.run(
            ["sh", "-c", "apt update"], env=env, stdout=subprocess.DEVNULL, check=False
        )
    except OSError as err:
        raise BlockError("Failed to run `apt update` command") from err
    try:
        result = subprocess.run(
            ["sh", "-c", "apt list --upgradable"],
            env=env,
            stdout=subprocess.PIPE,
            check=False,
        )
    except OSError as err:
        raise BlockError("Problem running apt command") from err
    return _decode(result.stdout, "apt")


def fetch_dnf_updates() -> str:
    """Return the output of ``dnf check-update``."""
    env = dict(os.environ, LC_LANG="C")
    try:
        result = subprocess.run(
            ["sh", "-c", "dnf check-update -q --skip-broken"],
            env=env,
            stdout=subprocess.PIPE,
            check=False,
        )
    except OSError as err:
        raise BlockError("Failed to run dnf check-update") from err
    return _decode(result.stdout, "dnf")