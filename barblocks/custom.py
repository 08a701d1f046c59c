"""Output of a custom shell command, as plain text or JSON."""

from __future__ import annotations

import itertools
import json
import os
import subprocess
from collections.abc import Iterator
from dataclasses import dataclass

from barblocks.blocks import BlockError, State


@dataclass(frozen=True)
class CustomInput:
    """The JSON a command may print: icon name, state, text and short text."""

    icon: str = ""
    state: State = State.IDLE
    text: str = ""
    short_text: str | None = None


def _string_field(data: dict, name: str, default: str) -> str:
    value = data.get(name, default)
    if not isinstance(value, str):
        raise BlockError("Invalid JSON")
    return value


def parse_json_input(text: str) -> CustomInput:
    """Parse a command's JSON output; missing fields take their defaults."""
    try:
        data = json.loads(text)
    except ValueError as err:
        raise BlockError("Invalid JSON") from err
    if not isinstance(data, dict):
        raise BlockError("Invalid JSON")
    state_text = data.get("state", State.IDLE.value)
    try:
        state = State(state_text)
    except (ValueError, TypeError) as err:
        raise BlockError("Invalid JSON") from err
    short_text = data.get("short_text")
    if short_text is not None and not isinstance(short_text, str):
        raise BlockError("Invalid JSON")
    return CustomInput(
        icon=_string_field(data, "icon", ""),
        state=state,
        text=_string_field(data, "text", ""),
        short_text=short_text,
    )


def choose_shell(shell: str | None = None) -> str:
    """The configured shell, else $SHELL, else ``sh``."""
    if shell is not None:
        return shell
    return os.environ.get("SHELL", "sh")


def run_command(shell: str, command: str) -> str:
    """Run ``command`` with ``shell -c`` and return its trimmed standard output."""
    try:
        result = subprocess.run(
            [shell, "-c", command], stdout=subprocess.PIPE, check=False
        )
    except OSError as err:
        raise BlockError("failed to run command") from err
    try:
        return result.stdout.decode("utf-8").strip()
    except UnicodeDecodeError as err:
        raise BlockError("the output of command is invalid UTF-8") from err


def command_cycle(cycle: list[str] | None, command: str | None) -> Iterator[str]:
    """Endless iterator over the commands to run; a single command repeats."""
    if cycle is None:
        if command is None:
            raise BlockError("either 'command' or 'cycle' must be specified")
        cycle = [command]
    if not cycle:
        raise BlockError("'cycle' must not be empty")
    return itertools.cycle(list(cycle))


def block_output(
    stdout: str, json_mode: bool = False, hide_when_empty: bool = False
) -> tuple[dict[str, str], State | None] | None:
    """Placeholder values and state for a command's output, or None to hide the block.

    ``icon`` in the values is an icon name still to be resolved. The state is
    None in text mode, where the output does not set it.
    """
    if json_mode:
        parsed = parse_json_input(stdout)
        values = {"text": parsed.text}
        if parsed.icon:
            values["icon"] = parsed.icon
        if parsed.short_text is not None:
            values["short_text"] = parsed.short_text
        text_empty = not parsed.text
        state: State | None = parsed.state
    else:
        values = {"text": stdout}
        text_empty = not stdout
        state = None
    if text_empty and hide_when_empty:
        return None
    return values, state