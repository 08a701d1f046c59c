"""System load average from procfs."""

from __future__ import annotations

import math
import re
from pathlib import Path

from barblocks.blocks import BlockError, State

PROC_LOADAVG_PATH = "/proc/loadavg"
PROC_CPUINFO_PATH = "/proc/cpuinfo"

_FLOAT = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)", re.IGNORECASE
)


def parse_loadavg(text: str) -> tuple[float, float, float]:
    """The 1, 5 and 15 minute load averages of ``/proc/loadavg`` text."""
    fields = text.split(" ")
    if len(fields) < 3 or not all(_FLOAT.fullmatch(field) for field in fields[:3]):
        raise BlockError("bad /proc/loadavg file")
    m1, m5, m15 = (float(field) for field in fields[:3])
    return m1, m5, m15


def count_logical_cores(cpuinfo: str) -> int:
    """The number of ``processor`` entries in ``/proc/cpuinfo`` text."""
    return sum(1 for line in cpuinfo.splitlines() if line.startswith("processor"))


def load_state(
    m1: float,
    cores: int,
    info: float = 0.3,
    warning: float = 0.6,
    critical: float = 0.9,
) -> State:
    """The widget state for a one minute load spread over ``cores`` CPUs."""
    if cores:
        per_core = m1 / cores
    elif m1 == 0 or math.isnan(m1):
        per_core = math.nan
    else:
        per_core = math.copysign(math.inf, m1)
    if per_core > critical:
        return State.CRITICAL
    if per_core > warning:
        return State.WARNING
    if per_core > info:
        return State.INFO
    return State.IDLE


def read_load(path: str | Path = PROC_LOADAVG_PATH) -> tuple[float, float, float]:
    """Read the load averages from ``/proc/loadavg``."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise BlockError(
            "Your system does not support reading the load average from /proc/loadavg"
        ) from err
    return parse_loadavg(text)