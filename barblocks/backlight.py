"""Brightness of a backlight device, read from sysfs."""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path

from barblocks.blocks import BlockError

DEVICES_PATH = "/sys/class/backlight"
FILE_MAX_BRIGHTNESS = "max_brightness"
FILE_BRIGHTNESS = "actual_brightness"
# amdgpu reports actual_brightness on a different scale than [0, max_brightness].
FILE_BRIGHTNESS_AMD = "brightness"

ROOT_SCALING_MIN = 0.1
ROOT_SCALING_MAX = 10.0

BACKLIGHT_ICONS = (
    "backlight_empty",
    "backlight_1",
    "backlight_2",
    "backlight_3",
    "backlight_4",
    "backlight_5",
    "backlight_6",
    "backlight_7",
    "backlight_8",
    "backlight_9",
    "backlight_10",
    "backlight_11",
    "backlight_12",
    "backlight_13",
    "backlight_full",
)

_U32_MAX = 2**32 - 1
_U64 = re.compile(r"\+?\d+")

_log = logging.getLogger(__name__)


def icon_index(brightness: int, invert: bool = False) -> int:
    """Index into BACKLIGHT_ICONS for a brightness in percent."""
    index = (brightness * len(BACKLIGHT_ICONS)) // 101
    if invert:
        index = len(BACKLIGHT_ICONS) - index - 1
    return index


def backlight_icon(brightness: int, invert: bool = False) -> str:
    """Name of the icon for a brightness in percent."""
    return BACKLIGHT_ICONS[icon_index(brightness, invert)]


def clamp_root_scaling(value: float) -> float:
    """Limit the root scaling exponent to its valid range."""
    if math.isnan(value):
        return value
    return min(max(value, ROOT_SCALING_MIN), ROOT_SCALING_MAX)


def _round_half_away(value: float) -> float:
    if value >= 0:
        return math.floor(value + 0.5)
    return math.ceil(value - 0.5)


def _ratio(raw: float, maximum: float) -> float:
    if maximum != 0:
        return raw / maximum
    if raw == 0:
        return math.nan
    return math.copysign(math.inf, raw)


def brightness_percent(raw: int, max_brightness: int, root_scaling: float = 1.0) -> int:
    """Turn a raw brightness value into a percentage between 0 and 100."""
    ratio = _ratio(float(raw), float(max_brightness)) ** (1.0 / root_scaling)
    scaled = ratio * 100.0
    if math.isnan(scaled):
        percent = 0
    elif math.isinf(scaled):
        raise BlockError("Brightness is not in [0, 100]")
    else:
        percent = int(_round_half_away(scaled))
    if not 0 <= percent <= 100:
        raise BlockError("Brightness is not in [0, 100]")
    return percent


def raw_from_percent(value: int, max_brightness: int, root_scaling: float = 1.0) -> int:
    """Turn a percentage into the raw value to write; never less than 1."""
    value = min(max(value, 0), 100)
    ratio = (value / 100.0) ** root_scaling
    scaled = ratio * max_brightness
    if math.isnan(scaled):
        raw = 0
    elif math.isinf(scaled):
        raw = _U32_MAX if scaled > 0 else 0
    else:
        raw = min(max(int(_round_half_away(scaled)), 0), _U32_MAX)
    return max(1, raw)


def step_brightness(
    brightness: int, step: int, minimum: int = 5, maximum: int = 100, up: bool = True
) -> int:
    """The brightness one scroll step up or down, kept within [minimum, maximum]."""
    if minimum > maximum:
        raise ValueError("minimum must not be greater than maximum")
    target = brightness + step if up else max(brightness - step, 0)
    return min(max(target, minimum), maximum)


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8").strip()


def read_brightness_raw(path: str | Path) -> int:
    """Read a raw brightness value, retrying once if the first read fails."""
    path = Path(path)
    try:
        text = _read_text(path)
    except (OSError, UnicodeDecodeError):
        # Some devices (ddcci) fail the first read with "Bad Message".
        _log.debug("First read of brightness file failed, retrying")
        try:
            text = _read_text(path)
        except (OSError, UnicodeDecodeError) as err:
            raise BlockError("Failed to read brightness file") from err
    if not _U64.fullmatch(text):
        raise BlockError("Failed to read value from brightness file")
    return int(text)


class BacklightDevice:
    """A backlight device whose brightness can be queried."""

    def __init__(self, device_path: str | Path, root_scaling: float = 1.0) -> None:
        device_path = Path(device_path)
        if not device_path.name:
            raise BlockError("Malformed device path")
        self.device_name = device_path.name
        self.brightness_file = device_path / (
            FILE_BRIGHTNESS_AMD if device_path.name == "amdgpu_bl0" else FILE_BRIGHTNESS
        )
        self.max_brightness = read_brightness_raw(device_path / FILE_MAX_BRIGHTNESS)
        self.root_scaling = clamp_root_scaling(root_scaling)

    def brightness(self) -> int:
        """The current brightness, in percent."""
        raw = read_brightness_raw(self.brightness_file)
        return brightness_percent(raw, self.max_brightness, self.root_scaling)

    def __repr__(self) -> str:
        return f"BacklightDevice({self.device_name!r})"


def open_device(
    device: str | None = None,
    root_scaling: float = 1.0,
    devices_path: str | Path = DEVICES_PATH,
) -> BacklightDevice:
    """Open the named device, or the first one found in ``devices_path``."""
    base = Path(devices_path)
    if device is not None:
        return BacklightDevice(base / device, root_scaling)
    try:
        entries = sorted(base.iterdir())
    except OSError as err:
        raise BlockError("Failed to read backlight device directory") from err
    if not entries:
        raise BlockError("No backlight devices found")
    return BacklightDevice(entries[0], root_scaling)