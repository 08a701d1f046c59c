import math

import pytest

from barblocks.blocks import BlockError, State
from barblocks.disk_space import (
    DiskUsage,
    InfoType,
    alert_value,
    disk_state,
    disk_usage,
    parse_alert_unit,
)

USAGE = DiskUsage(total=4000, used=3000, free=1000, available=800)


def test_info_type_names():
    assert InfoType("available") is InfoType.AVAILABLE
    assert InfoType("free") is InfoType.FREE
    assert InfoType("used") is InfoType.USED


def test_parse_alert_unit():
    assert parse_alert_unit(None) is None
    assert parse_alert_unit("B") == 1.0
    assert parse_alert_unit("GB") == 1e-9
    assert parse_alert_unit("TB") == 1e-12


def test_parse_alert_unit_unknown():
    with pytest.raises(BlockError, match="Unknown unit: 'PB'"):
        parse_alert_unit("PB")


@pytest.mark.parametrize("info_type", list(InfoType))
def test_percentage_matches_value(info_type):
    pct = USAGE.percentage(info_type)
    assert pct * USAGE.total / 100 == pytest.approx(USAGE.value(info_type))


def test_value_selects_field():
    assert USAGE.value(InfoType.USED) == USAGE.used
    assert USAGE.value(InfoType.FREE) == USAGE.free
    assert USAGE.value(InfoType.AVAILABLE) == USAGE.available


def test_percentage_of_empty_filesystem_is_nan():
    result = DiskUsage(0, 0, 0, 0).percentage(InfoType.USED)
    assert str(result) == "nan"
    assert math.isnan(result)


def test_alert_value_percentage_without_unit():
    assert alert_value(USAGE, InfoType.FREE, None) == USAGE.percentage(InfoType.FREE)


def test_alert_value_in_bytes():
    assert alert_value(USAGE, InfoType.USED, parse_alert_unit("B")) == USAGE.used


def test_alert_value_scaled():
    scaled = alert_value(USAGE, InfoType.AVAILABLE, parse_alert_unit("KB"))
    assert scaled * 1000 == pytest.approx(USAGE.available)


@pytest.mark.parametrize(
    "value, expected",
    [(95.0, State.CRITICAL), (90.0, State.CRITICAL), (85.0, State.WARNING), (50.0, State.IDLE)],
)
def test_disk_state_used(value, expected):
    assert disk_state(value, InfoType.USED, warning=80.0, alert=90.0) is expected


@pytest.mark.parametrize(
    "value, expected",
    [(5.0, State.CRITICAL), (10.0, State.CRITICAL), (15.0, State.WARNING), (50.0, State.IDLE)],
)
@pytest.mark.parametrize("info_type", [InfoType.AVAILABLE, InfoType.FREE])
def test_disk_state_free_defaults(value, expected, info_type):
    assert disk_state(value, info_type) is expected


def test_disk_usage_invariants(tmp_path):
    usage = disk_usage(tmp_path)
    assert usage.total > 0
    assert 0 <= usage.used <= usage.total
    assert usage.available <= usage.free


def test_disk_usage_expands_home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert disk_usage("~").total == disk_usage(tmp_path).total


def test_disk_usage_missing_path(tmp_path):
    with pytest.raises(BlockError, match="failed to retrieve statvfs"):
        disk_usage(tmp_path / "does" / "not" / "exist")