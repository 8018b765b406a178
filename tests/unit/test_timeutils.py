"""Tests for interval and window helpers."""

import pytest

from kline_fetcher.utils.timeutils import (
    DAY_MS,
    interval_to_millis,
    lookback_window,
    ms_to_iso8601,
)


@pytest.mark.unit
class TestIntervalToMillis:

    @pytest.mark.parametrize("interval,expected", [
        ("1", 60_000),
        ("5", 300_000),
        ("60", 3_600_000),
        ("720", 43_200_000),
        ("D", DAY_MS),
        ("W", 7 * DAY_MS),
        ("M", 28 * DAY_MS),
    ])
    def test_supported(self, interval, expected):
        assert interval_to_millis(interval) == expected

    @pytest.mark.parametrize("interval", ["7", "1m", "", "d", "0"])
    def test_unsupported(self, interval):
        with pytest.raises(ValueError, match="Unsupported interval"):
            interval_to_millis(interval)


@pytest.mark.unit
def test_lookback_window():
    start, end = lookback_window(360, end_ms=1_700_000_000_000)

    assert end == 1_700_000_000_000
    assert end - start == 12 * 30 * 24 * 60 * 60 * 1000


@pytest.mark.unit
def test_ms_to_iso8601():
    assert ms_to_iso8601(1_700_000_000_123) == "2023-11-14T22:13:20.123Z"
