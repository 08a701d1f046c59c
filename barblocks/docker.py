"""Container and image counts reported by the local Docker daemon."""

from __future__ import annotations

import http.client
import json
import os
import socket
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from barblocks.blocks import BlockError

DEFAULT_SOCKET_PATH = "/var/run/docker.sock"

_FIELDS = {
    "total": "Containers",
    "running": "ContainersRunning",
    "stopped": "ContainersStopped",
    "paused": "ContainersPaused",
    "images": "Images",
}


@dataclass(frozen=True)
class DockerStatus:
    """Counts of containers by state, and of images."""

    total: int
    running: int
    stopped: int
    paused: int
    images: int


def parse_docker_info(data: bytes | str | Mapping[str, Any]) -> DockerStatus:
    """Build the status from the JSON of the daemon's ``/info`` endpoint."""
    if isinstance(data, (bytes, str)):
        try:
            data = json.loads(data)
        except ValueError as err:
            raise BlockError("Failed to deserialize JSON") from err
    if not isinstance(data, Mapping):
        raise BlockError("Failed to deserialize JSON")
    counts = {}
    for name, key in _FIELDS.items():
        value = data.get(key)
        if not isinstance(value, int) or isinstance(value, bool):
            raise BlockError("Failed to deserialize JSON")
        counts[name] = value
    return DockerStatus(**counts)


class _UnixHTTPConnection(http.client.HTTPConnection):
    def __init__(self, socket_path: str, timeout: float | None = None) -> None:
        super().__init__("localhost", timeout=timeout)
        self._socket_path = socket_path

    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        if self.timeout is not None:
            sock.settimeout(self.timeout)
        try:
            sock.connect(self._socket_path)
        except OSError:
            sock.close()
            raise
        self.sock = sock


def fetch_docker_status(
    socket_path: str | Path = DEFAULT_SOCKET_PATH,
) -> DockerStatus:
    """Query the daemon listening on ``socket_path``; ``~`` and variables are expanded."""
    path = os.path.expandvars(os.path.expanduser(str(socket_path)))
    conn = _UnixHTTPConnection(path)
    try:
        try:
            conn.connect()
        except OSError as err:
            raise BlockError("Failed to connect to socket") from err
        try:
            conn.request("GET", "/info", headers={"Host": "localhost"})
            response = conn.getresponse()
        except (OSError, http.client.HTTPException) as err:
            raise BlockError("Failed to get response") from err
        try:
            body = response.read()
        except (OSError, http.client.HTTPException) as err:
            raise BlockError("Failed to get response bytes") from err
    finally:
        conn.close()
    return parse_docker_info(body)