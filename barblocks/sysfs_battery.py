"""Batteries read from the kernel's power supply class in sysfs."""

from __future__ import annotations

import enum
import logging
import math
import re
from collections.abc import Mapping
from pathlib import Path

from barblocks.battery import BatteryInfo, BatteryStatus, DeviceName, parse_battery_status
from barblocks.blocks import BlockError

POWER_SUPPLY_DEVICES_PATH = "/sys/class/power_supply"

PROPERTIES = (
    "status",
    "capacity_level",
    "capacity",
    "charge_now",
    "charge_full",
    "energy_now",
    "energy_full",
    "power_now",
    "current_now",
    "voltage_now",
    "time_to_empty",
    "time_to_full",
)

_log = logging.getLogger(__name__)

_FLOAT = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)", re.IGNORECASE
)
_U8 = re.compile(r"\+?\d+")


class CapacityLevel(enum.Enum):
    """Coarse charge level reported by devices without a precise capacity."""

    FULL = "Full"
    HIGH = "High"
    NORMAL = "Normal"
    LOW = "Low"
    CRITICAL = "Critical"
    UNKNOWN = "Unknown"

    def percentage(self) -> float | None:
        """An estimated capacity in percent, or None for UNKNOWN."""
        return _LEVEL_PERCENTAGES.get(self)


_LEVEL_PERCENTAGES = {
    CapacityLevel.FULL: 100.0,
    CapacityLevel.HIGH: 75.0,
    CapacityLevel.NORMAL: 50.0,
    CapacityLevel.LOW: 25.0,
    CapacityLevel.CRITICAL: 5.0,
}


def parse_capacity_level(text: str) -> CapacityLevel:
    """Map the kernel's capacity level text; anything unrecognised is UNKNOWN."""
    try:
        level = CapacityLevel(text)
    except ValueError:
        return CapacityLevel.UNKNOWN
    return level


def read_prop(path: str | Path, prop: str) -> str | None:
    """The trimmed content of the property file, or None if it cannot be read."""
    try:
        return (Path(path) / prop).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None


def _parse_float(text: str | None) -> float | None:
    if text is None or not _FLOAT.fullmatch(text):
        return None
    return float(text)


def _parse_u8(text: str | None) -> int | None:
    if text is None or not _U8.fullmatch(text):
        return None
    value = int(text)
    return value if value <= 255 else None


def device_available(path: str | Path) -> bool:
    """Whether the power supply at ``path`` is present.

    A device-scoped supply (HID) is available whenever its directory exists.
    """
    return read_prop(path, "scope") == "Device" or _parse_u8(read_prop(path, "present")) == 1


def _micro(value: float | None) -> float | None:
    return None if value is None else value * 1e-6


def _div(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    sign = math.copysign(1.0, numerator) * math.copysign(1.0, denominator)
    return math.copysign(math.inf, sign)


def battery_info_from_props(props: Mapping[str, str | None]) -> BatteryInfo:
    """Build a battery snapshot from raw sysfs property values (in micro-units)."""
    status_text = props.get("status")
    status = BatteryStatus.UNKNOWN if status_text is None else parse_battery_status(status_text)
    level_text = props.get("capacity_level")
    capacity_level = None if level_text is None else parse_capacity_level(level_text)

    capacity = _parse_float(props.get("capacity"))
    charge_now = _micro(_parse_float(props.get("charge_now")))  # Ah
    charge_full = _micro(_parse_float(props.get("charge_full")))  # Ah
    energy_now = _micro(_parse_float(props.get("energy_now")))  # Wh
    energy_full = _micro(_parse_float(props.get("energy_full")))  # Wh
    power_now = _micro(_parse_float(props.get("power_now")))  # W
    current_now = _micro(_parse_float(props.get("current_now")))  # A
    voltage_now = _micro(_parse_float(props.get("voltage_now")))  # V
    time_to_empty = _parse_float(props.get("time_to_empty"))
    time_to_full = _parse_float(props.get("time_to_full"))

    if capacity is None and charge_now is not None and charge_full is not None:
        capacity = _div(charge_now, charge_full) * 100.0
    if capacity is None and energy_now is not None and energy_full is not None:
        capacity = _div(energy_now, energy_full) * 100.0
    if capacity is None and capacity_level is not None:
        capacity = capacity_level.percentage()
    if capacity is None:
        raise BlockError("Failed to get capacity")

    power = power_now
    if power is None and current_now is not None and voltage_now is not None:
        power = current_now * voltage_now

    time_remaining = None
    if status is BatteryStatus.CHARGING:
        time_remaining = time_to_full
        if time_remaining is None and power is not None:
            if energy_now is not None and energy_full is not None:
                time_remaining = _div(energy_full - energy_now, power) * 3600.0
            elif None not in (charge_now, charge_full, voltage_now):
                time_remaining = _div((charge_full - charge_now) * voltage_now, power) * 3600.0
    elif status is BatteryStatus.DISCHARGING:
        time_remaining = time_to_empty
        if time_remaining is None and power is not None:
            if energy_now is not None:
                time_remaining = _div(energy_now, power) * 3600.0
            elif charge_now is not None and voltage_now is not None:
                time_remaining = _div(charge_now * voltage_now, power) * 3600.0

    return BatteryInfo(status, capacity, power, time_remaining)


class SysfsBattery:
    """A battery found among the power supplies in sysfs."""

    def __init__(
        self,
        dev_name: DeviceName | None = None,
        devices_path: str | Path = POWER_SUPPLY_DEVICES_PATH,
    ) -> None:
        self.dev_name = dev_name if dev_name is not None else DeviceName()
        self.devices_path = Path(devices_path)
        self.dev_path: Path | None = None

    def find_device_path(self) -> Path | None:
        """The path of the selected battery, preferring system batteries (BAT*, CMB*)."""
        if self.dev_path is not None and device_available(self.dev_path):
            _log.debug("battery '%s' is still available", self.dev_path)
            return self.dev_path

        try:
            entries = sorted(self.devices_path.iterdir())
        except OSError as err:
            raise BlockError(f"failed to read {self.devices_path} directory") from err

        matching = None
        for path in entries:
            name = path.name
            if (
                not self.dev_name.matches(name)
                or read_prop(path, "type") != "Battery"
                or not device_available(path)
            ):
                continue
            _log.debug("Found matching battery: '%s' matches %r", path, self.dev_name)
            if name.startswith(("BAT", "CMB")):
                self.dev_path = path
                return path
            matching = path

        if matching is None:
            _log.debug("No batteries found")
            return None
        self.dev_path = matching
        return matching

    def get_info(self) -> BatteryInfo | None:
        """A snapshot of the battery, or None if no battery is available."""
        path = self.find_device_path()
        if path is None:
            return None
        props = {prop: read_prop(path, prop) for prop in PROPERTIES}
        if not device_available(path):
            _log.debug("battery suddenly unavailable")
            return None
        for prop, value in props.items():
            _log.debug("%s = %r", prop, value)
        return battery_info_from_props(props)