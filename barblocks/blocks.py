"""Core block types: errors, states, events and the API a running block talks through."""

from __future__ import annotations

import asyncio
import copy
import enum
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

T = TypeVar("T")


class BlockError(Exception):
    """An error raised by a block; shown in the bar instead of the block's widget."""

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    def __str__(self) -> str:
        return self.message


class ConfigError(BlockError):
    """The configuration of a block is invalid."""


class State(enum.Enum):
    """Visual state of a widget."""

    IDLE = "Idle"
    INFO = "Info"
    GOOD = "Good"
    WARNING = "Warning"
    CRITICAL = "Critical"


class BlockType(enum.Enum):
    """Every block that can be named in the configuration."""

    apt = "apt"
    backlight = "backlight"
    battery = "battery"
    bluetooth = "bluetooth"
    cpu = "cpu"
    custom = "custom"
    custom_dbus = "custom_dbus"
    disk_space = "disk_space"
    dnf = "dnf"
    docker = "docker"
    external_ip = "external_ip"
    focused_window = "focused_window"
    github = "github"
    hueshift = "hueshift"
    kdeconnect = "kdeconnect"
    load = "load"
    maildir = "maildir"
    menu = "menu"
    memory = "memory"
    music = "music"
    net = "net"
    notify = "notify"
    notmuch = "notmuch"
    nvidia_gpu = "nvidia_gpu"
    pacman = "pacman"
    pomodoro = "pomodoro"
    rofication = "rofication"
    sound = "sound"
    speedtest = "speedtest"
    keyboard_layout = "keyboard_layout"
    taskwarrior = "taskwarrior"
    temperature = "temperature"
    time = "time"
    toggle = "toggle"
    uptime = "uptime"
    watson = "watson"
    weather = "weather"
    xrandr = "xrandr"


def parse_block_type(name: str) -> BlockType:
    """Return the block type called ``name``; raise ConfigError for unknown names."""
    if not isinstance(name, str):
        raise ConfigError("invalid type: expected a block name")
    try:
        return BlockType(name)
    except ValueError:
        raise ConfigError(f"Unknown block '{name}'") from None


@dataclass(frozen=True)
class UpdateRequest:
    """A request to refresh the block, from a click with ``update`` set or a signal."""


@dataclass(frozen=True)
class Click:
    """A mouse click on the block."""

    button: str
    instance: str | None = None


BlockEvent = UpdateRequest | Click


class RequestCmd(enum.Enum):
    """What a block asks the bar to do."""

    SET_WIDGET = "set_widget"
    UNSET_WIDGET = "unset_widget"
    SET_ERROR = "set_error"


@dataclass
class Request:
    """A message from a block to the bar."""

    block_id: int
    cmd: RequestCmd
    payload: Any = None


class CommonApi:
    """The channel between a running block and the bar.

    Events arrive on ``event_queue``; a ``None`` put on it marks the end of the
    event stream. Requests are put on ``request_queue``.
    """

    def __init__(
        self,
        id: int,
        event_queue: asyncio.Queue,
        request_queue: asyncio.Queue,
        icons: Mapping[str, str] | None = None,
        error_interval: float = 5.0,
    ) -> None:
        self.id = id
        self.event_queue = event_queue
        self.request_queue = request_queue
        self.icons = dict(icons or {})
        self.error_interval = error_interval

    async def _send(self, cmd: RequestCmd, payload: Any = None) -> None:
        await self.request_queue.put(Request(self.id, cmd, payload))

    async def set_widget(self, widget: Any) -> None:
        """Send a copy of the widget to be displayed."""
        await self._send(RequestCmd.SET_WIDGET, copy.deepcopy(widget))

    async def hide(self) -> None:
        """Hide the block until a new widget is sent."""
        await self._send(RequestCmd.UNSET_WIDGET)

    async def set_error(self, error: BlockError) -> None:
        """Send an error to be displayed."""
        await self._send(RequestCmd.SET_ERROR, error)

    async def event(self) -> BlockEvent:
        """Receive the next event; raise RuntimeError if the stream has ended."""
        event = await self.event_queue.get()
        if event is None:
            # Keep the marker so later calls fail the same way.
            self.event_queue.put_nowait(None)
            raise RuntimeError("events stream ended")
        return event

    async def wait_for_update_request(self) -> None:
        """Wait until an update request arrives, discarding other events."""
        while not isinstance(await self.event(), UpdateRequest):
            pass

    def get_icon(self, icon: str) -> str:
        """Return the icon text for ``icon``."""
        try:
            return self.icons[icon]
        except KeyError:
            raise BlockError(f"Icon '{icon}' not found") from None

    async def recoverable(self, func: Callable[[], Awaitable[T]]) -> T:
        """Call ``func`` until it succeeds, showing each failure as the block's error."""
        while True:
            try:
                return await func()
            except Exception as err:
                if isinstance(err, BlockError):
                    error = err
                else:
                    error = BlockError(str(err))
                    error.__cause__ = err
                await self.set_error(error)
                await self._pause_after_error()

    async def _pause_after_error(self) -> None:
        sleeper = asyncio.ensure_future(asyncio.sleep(self.error_interval))
        waiter = asyncio.ensure_future(self.wait_for_update_request())
        done, pending = await asyncio.wait(
            {sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            task.result()


_COMMON_FIELDS = (
    "block",
    "click",
    "signal",
    "icons_format",
    "theme_overrides",
    "icons_overrides",
    "error_interval",
    "error_format",
    "error_fullscreen_format",
    "if_command",
)


@dataclass
class CommonConfig:
    """Options every block accepts, whatever its type."""

    block: BlockType
    click: list = field(default_factory=list)
    signal: int | None = None
    icons_format: str | None = None
    theme_overrides: dict[str, str] | None = None
    icons_overrides: dict[str, str] | None = None
    error_interval: int = 5
    error_format: Any = None
    error_fullscreen_format: Any = None
    if_command: str | None = None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _optional_str(common: dict, name: str) -> str | None:
    value = common.get(name)
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"invalid type for `{name}`: expected a string")
    return value


def _optional_str_map(common: dict, name: str) -> dict[str, str] | None:
    value = common.get(name)
    if value is None:
        return None
    if not isinstance(value, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise ConfigError(f"invalid type for `{name}`: expected a map of strings")
    return dict(value)


def split_common_config(table: Any) -> CommonConfig:
    """Remove the common options from a block's table and return them parsed."""
    common: dict[str, Any] = {}
    if isinstance(table, dict):
        for name in _COMMON_FIELDS:
            if name in table:
                common[name] = table.pop(name)

    if "block" not in common:
        raise ConfigError("missing field `block`")
    block = parse_block_type(common["block"])

    click = common.get("click", [])
    if not isinstance(click, list):
        raise ConfigError("invalid type for `click`: expected a list")

    signal = common.get("signal")
    if signal is not None and not _is_int(signal):
        raise ConfigError("invalid type for `signal`: expected an integer")

    error_interval = common.get("error_interval", 5)
    if not _is_int(error_interval) or error_interval < 0:
        raise ConfigError("invalid value for `error_interval`: expected a non-negative integer")

    return CommonConfig(
        block=block,
        click=click,
        signal=signal,
        icons_format=_optional_str(common, "icons_format"),
        theme_overrides=_optional_str_map(common, "theme_overrides"),
        icons_overrides=_optional_str_map(common, "icons_overrides"),
        error_interval=error_interval,
        error_format=common.get("error_format"),
        error_fullscreen_format=common.get("error_fullscreen_format"),
        if_command=_optional_str(common, "if_command"),
    )