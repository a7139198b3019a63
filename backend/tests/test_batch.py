"""
Tests for sequential batch parsing.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from trackheat.services.batch import TrackBatch
from trackheat.utils.sample_data import build_fit_bytes, build_gpx_text, generate_loop_track


@pytest.fixture
def batch_files(tmp_path, fit_bytes):
    """One good FIT file, one corrupt FIT file and one unsupported file."""
    good = tmp_path / "good.fit"
    good.write_bytes(fit_bytes)
    bad = tmp_path / "bad.fit"
    bad.write_bytes(b"garbage" * 4)
    other = tmp_path / "notes.txt"
    other.write_text("not a track")
    return [good, bad, other]


class TestTrackBatch:
    """Tests for TrackBatch."""

    def test_failures_do_not_stop_batch(self, batch_files, loop_points):
        """Every input gets a result; failures carry their error."""
        results = TrackBatch().parse_files(batch_files)

        assert [r.filename for r in results] == ["good.fit", "bad.fit", "notes.txt"]
        assert [r.ok for r in results] == [True, False, False]
        assert results[0].point_count == len(loop_points)
        assert "bad.fit" in results[1].error
        assert results[2].point_count == 0

    def test_progress_events(self, batch_files):
        """Each file reports processing, then completed or error."""
        events = []
        TrackBatch().parse_files(batch_files, progress=events.append)

        assert [(e.current, e.status) for e in events] == [
            (1, "processing"), (1, "completed"),
            (2, "processing"), (2, "error"),
            (3, "processing"), (3, "error"),
        ]
        assert all(e.total == 3 for e in events)
        assert events[1].points is not None
        assert events[3].error

    def test_totals(self, batch_files):
        """Totals count only successful files."""
        batch = TrackBatch()
        results = batch.parse_files(batch_files)
        stats = batch.statistics()

        assert stats.total_points == results[0].point_count
        assert stats.total_distance_km == round(results[0].distance_km, 2)
        assert stats.date_range[0] == datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)

    def test_totals_reset_per_batch(self, batch_files):
        batch = TrackBatch()
        batch.parse_files(batch_files)
        batch.parse_files([])
        assert batch.total_points == 0
        assert batch.total_distance_km == 0.0
        assert batch.date_range == (None, None)

    def test_in_memory_inputs(self, fit_bytes, gpx_text):
        """(filename, bytes) tuples are parsed without touching disk."""
        results = TrackBatch().parse_files([
            ("a.fit", fit_bytes),
            ("b.gpx", gpx_text.encode("utf-8")),
        ])
        assert all(r.ok for r in results)
        assert results[1].track.source_format == "gpx"

    def test_missing_file_is_error_entry(self, tmp_path):
        results = TrackBatch().parse_files([tmp_path / "missing.fit"])
        assert not results[0].ok
        assert results[0].error

    def test_async(self, batch_files):
        """The async variant gives the same results."""
        batch = TrackBatch()
        results = asyncio.run(batch.parse_files_async(batch_files))
        assert [r.ok for r in results] == [True, False, False]
        assert batch.total_points == results[0].point_count


class TestDateRangeText:
    """Tests for date_range_text."""

    def test_empty(self):
        assert TrackBatch().date_range_text() == "-"

    def test_single_day(self, fit_bytes):
        batch = TrackBatch()
        batch.parse_files([("a.fit", fit_bytes)])
        assert batch.date_range_text() == "2024-05-01"

    def test_span(self, fit_bytes):
        later = generate_loop_track(start=datetime(2024, 6, 2, 9, 0, tzinfo=timezone.utc))
        batch = TrackBatch()
        batch.parse_files([
            ("a.fit", fit_bytes),
            ("b.gpx", build_gpx_text(later).encode("utf-8")),
        ])
        assert batch.date_range_text() == "2024-05-01 ~ 2024-06-02"

    def test_undated_tracks(self):
        points = generate_loop_track()
        for p in points:
            p.time = None
        batch = TrackBatch()
        results = batch.parse_files([("a.fit", build_fit_bytes(points))])
        assert results[0].ok
        assert batch.date_range_text() == "-"
