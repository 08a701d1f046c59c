"""Battery status, device selection and the state shown for a power supply."""

from __future__ import annotations

import enum
import math
import re
from dataclasses import dataclass, replace

from barblocks.blocks import BlockError, State

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


class BatteryStatus(enum.Enum):
    """Charging state of a battery."""

    CHARGING = "Charging"
    DISCHARGING = "Discharging"
    EMPTY = "Empty"
    FULL = "Full"
    NOT_CHARGING = "Not charging"
    UNKNOWN = "Unknown"


def parse_battery_status(text: str) -> BatteryStatus:
    """Map the kernel's status text to a status; anything unrecognised is UNKNOWN."""
    try:
        status = BatteryStatus(text)
    except ValueError:
        return BatteryStatus.UNKNOWN
    return status


@dataclass(frozen=True)
class BatteryInfo:
    """A snapshot of a battery.

    ``capacity`` is in percent, ``power`` in watts and ``time_remaining`` in
    seconds; the last two are None when unknown.
    """

    status: BatteryStatus
    capacity: float
    power: float | None = None
    time_remaining: float | None = None


class DeviceName:
    """Selects a device by a regular expression on its name, or any device."""

    def __init__(self, pattern: str | None = None) -> None:
        self._pattern: re.Pattern[str] | None
        if pattern is None:
            self._pattern = None
        else:
            try:
                self._pattern = re.compile(pattern)
            except re.error as err:
                raise BlockError("failed to parse regex") from err

    def matches(self, name: str) -> bool:
        """Whether ``name`` is selected."""
        return self._pattern is None or self._pattern.search(name) is not None

    def exact(self) -> str | None:
        """The pattern as written, or None when any device will do."""
        return None if self._pattern is None else self._pattern.pattern

    def __repr__(self) -> str:
        return f"DeviceName({self.exact()!r})"


def apply_thresholds(
    info: BatteryInfo, full_threshold: float = 95.0, empty_threshold: float = 7.5
) -> BatteryInfo:
    """Mark the battery full or empty when its capacity crosses the thresholds."""
    if info.capacity >= full_threshold:
        return replace(info, status=BatteryStatus.FULL)
    if info.capacity <= empty_threshold:
        return replace(info, status=BatteryStatus.EMPTY)
    return info


def _as_i32(value: float) -> int:
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return _I32_MAX if value > 0 else _I32_MIN
    return max(_I32_MIN, min(_I32_MAX, int(value)))


def format_time_remaining(seconds: float) -> str:
    """Format a duration in seconds as ``H:MM``."""
    hours = _as_i32(seconds / 3600.0)
    if math.isinf(seconds) or math.isnan(seconds):
        minutes = 0
    else:
        minutes = _as_i32(math.fmod(seconds, 3600.0) / 60.0)
    return f"{hours}:{minutes:02}"


def battery_state(
    info: BatteryInfo,
    critical: float = 15.0,
    warning: float = 30.0,
    info_level: float = 60.0,
    good: float = 60.0,
) -> State:
    """The widget state for a battery snapshot."""
    if info.status is BatteryStatus.EMPTY:
        return State.CRITICAL
    if info.status is BatteryStatus.FULL:
        return State.IDLE
    if info.status is BatteryStatus.CHARGING:
        return State.GOOD
    capacity = info.capacity
    if capacity <= critical:
        return State.CRITICAL
    if capacity <= warning:
        return State.WARNING
    if capacity <= info_level:
        return State.INFO
    if capacity > good:
        return State.GOOD
    return State.IDLE