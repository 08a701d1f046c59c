"""Disk usage statistics of a file system."""

from __future__ import annotations

import enum
import math
import os
from dataclasses import dataclass
from pathlib import Path

from barblocks.blocks import BlockError, State

_UNIT_FACTORS = {
    "TB": 1e-12,
    "GB": 1e-9,
    "MB": 1e-6,
    "KB": 1e-3,
    "B": 1.0,
}


class InfoType(enum.Enum):
    """Which quantity decides the block's state."""

    AVAILABLE = "available"
    FREE = "free"
    USED = "used"


def parse_alert_unit(unit: str | None) -> float | None:
    """The factor turning bytes into ``unit``; None means thresholds are percentages."""
    if unit is None:
        return None
    try:
        return _UNIT_FACTORS[unit]
    except KeyError:
        raise BlockError(f"Unknown unit: '{unit}'") from None


def _div(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator)


@dataclass(frozen=True)
class DiskUsage:
    """Sizes of a file system, in bytes."""

    total: int
    used: int
    free: int
    available: int

    def value(self, info_type: InfoType) -> int:
        """The size the info type refers to."""
        if info_type is InfoType.USED:
            return self.used
        if info_type is InfoType.FREE:
            return self.free
        return self.available

    def percentage(self, info_type: InfoType) -> float:
        """The size the info type refers to, as a percentage of the total."""
        return _div(float(self.value(info_type)), float(self.total)) * 100.0


def disk_usage(path: str | Path = "/") -> DiskUsage:
    """Sizes of the file system holding ``path``; ``~`` and variables are expanded."""
    expanded = os.path.expandvars(os.path.expanduser(str(path)))
    try:
        stat = os.statvfs(expanded)
    except OSError as err:
        raise BlockError("failed to retrieve statvfs") from err
    return DiskUsage(
        total=stat.f_blocks * stat.f_frsize,
        used=(stat.f_blocks - stat.f_bfree) * stat.f_frsize,
        free=stat.f_bfree * stat.f_bsize,
        available=stat.f_bavail * stat.f_bsize,
    )


def alert_value(usage: DiskUsage, info_type: InfoType, unit_factor: float | None) -> float:
    """The value compared with the thresholds: a percentage, or a size in the alert unit."""
    if unit_factor is None:
        return usage.percentage(info_type)
    return usage.value(info_type) * unit_factor


def disk_state(
    value: float, info_type: InfoType, warning: float = 20.0, alert: float = 10.0
) -> State:
    """The widget state: used space alerts when high, free space when low."""
    if info_type is InfoType.USED:
        if value >= alert:
            return State.CRITICAL
        if value >= warning:
            return State.WARNING
        return State.IDLE
    if value <= alert:
        return State.CRITICAL
    if value <= warning:
        return State.WARNING
    return State.IDLE