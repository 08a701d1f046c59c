"""Batteries of uninterruptible power supplies served by the apcupsd network daemon."""

from __future__ import annotations

import logging
import re
import socket
import struct
from collections.abc import Iterable, Iterator, Mapping

from barblocks.battery import BatteryInfo, BatteryStatus, DeviceName
from barblocks.blocks import BlockError

DEFAULT_ADDRESS = "localhost:3551"

_MAX_MESSAGE_LEN = 0xFFFF
_LENGTH = struct.Struct(">H")
_FLOAT = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)", re.IGNORECASE
)

_log = logging.getLogger(__name__)


class PropertyMap(dict):
    """The ``KEY: value`` pairs of an apcupsd status report."""

    def get_property(self, name: str, required_unit: str) -> float:
        """The number in a ``<number> <unit>`` property; raise if the unit differs."""
        stat = self.get(name)
        if stat is None:
            raise BlockError(f"{name} not in apc ups data")
        value, sep, unit = stat.partition(" ")
        if not sep:
            raise BlockError(f"could not split {name}")
        if unit != required_unit:
            raise BlockError(
                f"Expected unit for {name} are {required_unit}, but got {unit}"
            )
        if not _FLOAT.fullmatch(value):
            raise BlockError("Could not parse data")
        return float(value)


def parse_status_lines(lines: Iterable[str]) -> PropertyMap:
    """Collect the ``key: value`` lines of a status report; other lines are ignored."""
    properties = PropertyMap()
    for line in lines:
        key, sep, value = line.partition(":")
        if sep:
            properties[key.strip()] = value.strip()
    return properties


def _optional_property(status: PropertyMap, name: str, unit: str) -> float | None:
    try:
        return status.get_property(name, unit)
    except BlockError:
        return None


def battery_info_from_status(status: Mapping[str, str]) -> BatteryInfo | None:
    """A battery snapshot from a status report, or None if the UPS is not reachable."""
    props = status if isinstance(status, PropertyMap) else PropertyMap(status)
    status_text = props.get("STATUS", "COMMLOST")
    # BCHARGE may be missing in the first seconds after the daemon starts.
    capacity = _optional_property(props, "BCHARGE", "Percent")
    if status_text == "COMMLOST" or capacity is None:
        return None

    if status_text == "ONBATT":
        battery_status = BatteryStatus.EMPTY if capacity == 0.0 else BatteryStatus.DISCHARGING
    elif status_text == "ONLINE":
        battery_status = BatteryStatus.FULL if capacity == 100.0 else BatteryStatus.CHARGING
    else:
        battery_status = BatteryStatus.UNKNOWN

    power = None
    nominal_power = _optional_property(props, "NOMPOWER", "Watts")
    if nominal_power is not None:
        load_percent = _optional_property(props, "LOADPCT", "Percent")
        if load_percent is not None:
            power = nominal_power * load_percent / 100.0

    time_left = _optional_property(props, "TIMELEFT", "Minutes")
    time_remaining = None if time_left is None else time_left * 60.0

    return BatteryInfo(battery_status, capacity, power, time_remaining)


def encode_message(msg: bytes) -> bytes:
    """Frame a message for the daemon: a big-endian 16-bit length, then the bytes."""
    if len(msg) > _MAX_MESSAGE_LEN:
        raise BlockError("msg is too long, it must be less than 2^16 characters long")
    return _LENGTH.pack(len(msg)) + msg


def _split_address(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise BlockError("Failed to connect to socket")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


def _recv_exact(conn: socket.socket, size: int, what: str) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        try:
            chunk = conn.recv(size - len(buf))
        except OSError as err:
            raise BlockError(what) from err
        if not chunk:
            raise BlockError(what)
        buf.extend(chunk)
    return bytes(buf)


def _read_lines(conn: socket.socket) -> Iterator[str]:
    while True:
        header = _recv_exact(conn, _LENGTH.size, "Could not read response length from socket")
        (size,) = _LENGTH.unpack(header)
        if size == 0:
            return
        data = _recv_exact(conn, size, "Could not read from socket")
        try:
            yield data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise BlockError("invalid UTF8") from err


def read_status(addr: str = DEFAULT_ADDRESS, timeout: float | None = None) -> PropertyMap:
    """Ask the daemon at ``host:port`` for its status report."""
    host, port = _split_address(addr)
    try:
        conn = socket.create_connection((host, port), timeout=timeout)
    except OSError as err:
        raise BlockError("Failed to connect to socket") from err
    with conn:
        try:
            conn.sendall(encode_message(b"status"))
        except OSError as err:
            raise BlockError("Could not write message to socket") from err
        return parse_status_lines(_read_lines(conn))


class ApcUpsBattery:
    """The battery of the UPS served by one apcupsd daemon."""

    def __init__(self, dev_name: DeviceName | None = None, timeout: float | None = None) -> None:
        exact = dev_name.exact() if dev_name is not None else None
        self.addr = exact if exact is not None else DEFAULT_ADDRESS
        self.timeout = timeout

    def get_info(self) -> BatteryInfo | None:
        """A snapshot of the UPS battery, or None if it cannot be reached."""
        try:
            status = read_status(self.addr, self.timeout)
        except BlockError as err:
            _log.debug("%s", err)
            status = PropertyMap()
        return battery_info_from_status(status)