import io
import json
import urllib.error
from unittest import mock

import pytest

from barblocks.blocks import BlockError, State
from barblocks.github import (
    REASONS,
    fetch_page,
    get_stats,
    notification_state,
    resolve_token,
    should_show,
    tally_notifications,
)


def test_tally_counts_and_defaults():
    reasons = ["mention", "mention", "author"]
    stats = tally_notifications(reasons)
    assert stats["total"] == len(reasons)
    assert stats["mention"] == reasons.count("mention")
    assert stats["author"] == reasons.count("author")
    assert all(stats[r] == 0 for r in REASONS if r not in reasons)


def test_tally_unknown_reason_kept():
    stats = tally_notifications(["approval_requested"])
    assert stats["approval_requested"] == stats["total"]
    assert set(REASONS) <= set(stats)


def test_tally_empty():
    stats = tally_notifications([])
    assert stats["total"] == 0


def test_state_prefers_critical():
    stats = tally_notifications(["mention", "author"])
    assert notification_state(stats, ["mention"], ["author"]) is State.CRITICAL


def test_state_falls_through_lists():
    stats = tally_notifications(["author"])
    assert (
        notification_state(stats, ["mention"], None, ["author"], ["total"])
        is State.INFO
    )


def test_state_idle_when_nothing_matches():
    stats = tally_notifications([])
    assert notification_state(stats, ["total"], ["mention"], ["total"], ["total"]) is State.IDLE


def test_should_show():
    empty = tally_notifications([])
    some = tally_notifications(["comment"])
    assert should_show(empty, False) is True
    assert should_show(empty, True) is False
    assert should_show(some, True) is True


def test_resolve_token_explicit(monkeypatch):
    monkeypatch.delenv("BARBLOCKS_GITHUB_TOKEN", raising=False)
    assert resolve_token("token") == "token"


def test_resolve_token_from_env(monkeypatch):
    monkeypatch.setenv("BARBLOCKS_GITHUB_TOKEN", "secret")
    assert resolve_token(None) == "secret"


def test_resolve_token_missing(monkeypatch):
    monkeypatch.delenv("BARBLOCKS_GITHUB_TOKEN", raising=False)
    with pytest.raises(BlockError, match="Github token not found"):
        resolve_token(None)


def test_get_stats_stops_at_empty_page():
    pages = {1: ["mention", "author"], 2: ["mention"], 3: []}
    calls = []

    def fake(token, page):
        calls.append((token, page))
        return pages[page]

    stats = get_stats("token", fake)
    assert [page for _, page in calls] == [1, 2, 3]
    assert stats["total"] == len(pages[1]) + len(pages[2])
    assert stats["mention"] == (pages[1] + pages[2]).count("mention")


def test_get_stats_page_limit():
    calls = []

    def fake(token, page):
        calls.append(page)
        return ["subscribed"]

    stats = get_stats("token", fake)
    assert calls == list(range(1, 100))
    assert stats["total"] == len(calls)


def test_get_stats_propagates_errors():
    def fake(token, page):
        raise BlockError("API error: boom")

    with pytest.raises(BlockError, match="API error"):
        get_stats("token", fake)


def test_fetch_page_parses_reasons_and_sends_token():
    body = json.dumps([{"reason": "mention", "id": "1"}, {"reason": "author"}]).encode()
    with mock.patch(
        "barblocks.github.urllib.request.urlopen", return_value=io.BytesIO(body)
    ) as urlopen:
        reasons = fetch_page("token", 2)
    assert reasons == ["mention", "author"]
    request = urlopen.call_args.args[0]
    assert request.get_header("Authorization") == "token token"
    assert request.full_url.endswith("per_page=100&page=2")


def test_fetch_page_api_error_message():
    body = json.dumps({"message": "Bad credentials"}).encode()
    with mock.patch(
        "barblocks.github.urllib.request.urlopen", return_value=io.BytesIO(body)
    ):
        with pytest.raises(BlockError, match="API error: Bad credentials"):
            fetch_page("token", 1)


def test_fetch_page_http_error_body():
    body = json.dumps({"message": "Bad credentials"}).encode()
    error = urllib.error.HTTPError(
        "https://api.github.com/notifications", 401, "Unauthorized", {}, io.BytesIO(body)
    )
    with mock.patch("barblocks.github.urllib.request.urlopen", side_effect=error):
        with pytest.raises(BlockError, match="API error: Bad credentials"):
            fetch_page("token", 1)


def test_fetch_page_invalid_json():
    with mock.patch(
        "barblocks.github.urllib.request.urlopen", return_value=io.BytesIO(b"not json")
    ):
        with pytest.raises(BlockError, match="Failed to get JSON"):
            fetch_page("token", 1)


def test_fetch_page_network_failure():
    with mock.patch(
        "barblocks.github.urllib.request.urlopen",
        side_effect=urllib.error.URLError("down"),
    ):
        with pytest.raises(BlockError, match="Failed to send request"):
            fetch_page("token", 1)