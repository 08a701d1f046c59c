"""Counts of unread GitHub notifications, grouped by reason."""

from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence

from barblocks.blocks import BlockError, State

TOKEN_ENV_VAR = "BARBLOCKS_GITHUB_TOKEN"
API_URL = "https://api.github.com/notifications?per_page=100&page={page}"
USER_AGENT = "barblocks"
REQUEST_TIMEOUT = 30.0
MAX_PAGES = 99

REASONS = (
    "assign",
    "author",
    "comment",
    "ci_activity",
    "invitation",
    "manual",
    "mention",
    "review_requested",
    "security_alert",
    "state_change",
    "subscribed",
    "team_mention",
)


def tally_notifications(reasons: Iterable[str]) -> dict[str, int]:
    """Count notifications by reason, with ``total`` and every known reason present."""
    counts = Counter(reasons)
    stats = dict(counts)
    stats["total"] = sum(counts.values())
    for reason in REASONS:
        stats.setdefault(reason, 0)
    return stats


def notification_state(
    stats: Mapping[str, int],
    critical: Sequence[str] | None = None,
    warning: Sequence[str] | None = None,
    info: Sequence[str] | None = None,
    good: Sequence[str] | None = None,
) -> State:
    """The state of the most severe list naming a reason with notifications."""
    for names, state in (
        (critical, State.CRITICAL),
        (warning, State.WARNING),
        (info, State.INFO),
        (good, State.GOOD),
    ):
        if names and any(stats.get(name, 0) > 0 for name in names):
            return state
    return State.IDLE


def should_show(stats: Mapping[str, int], hide_if_total_is_zero: bool = False) -> bool:
    """Whether the block is shown for these counts."""
    return stats.get("total", 0) > 0 or not hide_if_total_is_zero


def resolve_token(token: str | None = None) -> str:
    """The configured token, else the one in the environment."""
    if token is not None:
        return token
    env_token = os.environ.get(TOKEN_ENV_VAR)
    if env_token is None:
        raise BlockError("Github token not found")
    return env_token


def _parse_page(body: bytes) -> list[str]:
    try:
        data = json.loads(body)
    except ValueError as err:
        raise BlockError("Failed to get JSON") from err
    if isinstance(data, list):
        reasons = []
        for item in data:
            if not isinstance(item, dict) or not isinstance(item.get("reason"), str):
                raise BlockError("Failed to get JSON")
            reasons.append(item["reason"])
        return reasons
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        raise BlockError(f"API error: {data['message']}")
    raise BlockError("Failed to get JSON")


def fetch_page(token: str, page: int) -> list[str]:
    """The reasons of the notifications on one page of the API."""
    request = urllib.request.Request(
        API_URL.format(page=page),
        headers={"Authorization": f"token {token}", "User-Agent": USER_AGENT},
    )
    try:
        with urllib.request.urlopen(request, timeout=REQUEST_TIMEOUT) as response:
            body = response.read()
    except urllib.error.HTTPError as err:
        body = err.read()
    except (urllib.error.URLError, OSError) as err:
        raise BlockError("Failed to send request") from err
    return _parse_page(body)


_default_fetch_page = fetch_page


def get_stats(
    token: str, fetch_page: Callable[[str, int], list[str]] | None = None
) -> dict[str, int]:
    """Fetch pages until an empty one and count the notifications by reason."""
    fetch = fetch_page if fetch_page is not None else _default_fetch_page
    reasons: list[str] = []
    for page in range(1, MAX_PAGES + 1):
        on_page = fetch(token, page)
        if not on_page:
            break
        reasons.extend(on_page)
    return tally_notifications(reasons)