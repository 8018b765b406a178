"""Tests for the CSV writer."""

import pytest

from kline_fetcher.models import Kline
from kline_fetcher.writers.csv_writer import CSV_HEADER, read_klines_from_csv, save_klines_to_csv


@pytest.mark.unit
class TestSaveKlinesToCsv:
    """Test CSV layout and failure reporting."""

    def test_layout(self, tmp_path, sample_klines):
        path = tmp_path / "out.csv"

        assert save_klines_to_csv(sample_klines, path) is True

        lines = path.read_text(encoding="utf-8").split("\n")
        assert lines[0] == "timestamp, open, high, low, close, volume"
        assert lines[1] == "1700000000000,55.80000000,56.05000000,55.75000000,56.00000000,998.25000000"
        assert len(lines) == len(sample_klines) + 2
        assert lines[-1] == ""

    def test_creates_parent_directories(self, tmp_path, sample_klines):
        path = tmp_path / "nested" / "dir" / "klines.csv"

        assert save_klines_to_csv(sample_klines, str(path)) is True
        assert path.exists()

    def test_empty_series_writes_header_only(self, tmp_path):
        path = tmp_path / "empty.csv"

        assert save_klines_to_csv([], path) is True
        assert path.read_text(encoding="utf-8") == CSV_HEADER + "\n"

    def test_round_trip_at_eight_decimals(self, tmp_path):
        """Test N rows come back with integer starts and 8-decimal prices."""
        klines = [
            Kline(start=1700000000000 + i * 300000, open=0.123456789, high=123.45678912,
                  low=1e-9, close=98765.4321, volume=3.0)
            for i in range(25)
        ]
        path = tmp_path / "round_trip.csv"

        assert save_klines_to_csv(klines, path)
        loaded = read_klines_from_csv(path)

        assert len(loaded) == 25
        for original, parsed in zip(klines, loaded):
            assert isinstance(parsed.start, int)
            assert parsed.start == original.start
            for field in ("open", "high", "low", "close", "volume"):
                assert getattr(parsed, field) == round(getattr(original, field), 8)

    def test_write_failure_returns_false(self, tmp_path, sample_klines):
        """Test I/O errors are reported, not raised."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        assert save_klines_to_csv(sample_klines, blocker / "out.csv") is False

    def test_unexpected_error_returns_false(self, tmp_path):
        assert save_klines_to_csv([object()], tmp_path / "bad.csv") is False

    def test_failed_write_leaves_no_partial_file(self, tmp_path, sample_klines):
        path = tmp_path / "partial.csv"

        assert save_klines_to_csv([sample_klines[0], object()], path) is False

        assert not path.exists()
        assert list(tmp_path.iterdir()) == []

    def test_failed_write_keeps_previous_file(self, tmp_path, sample_klines):
        """Test an interrupted rewrite does not clobber the last good CSV."""
        path = tmp_path / "sol.csv"
        assert save_klines_to_csv(sample_klines, path)
        previous = path.read_text(encoding="utf-8")

        assert save_klines_to_csv([sample_klines[0], object()], path) is False

        assert path.read_text(encoding="utf-8") == previous
        assert not (tmp_path / "sol.csv.tmp").exists()
