"""
Tests for adapter selection and the parse entry points.
"""

import pytest

from trackheat.errors import DecoderUnavailable, HeaderInvalid, TrackParseError, UnsupportedFormat
from trackheat.services.ingest import (
    FitAdapter,
    GpxAdapter,
    _select_adapter,
    is_supported,
    parse_track_bytes,
    parse_track_file,
)


class TestAdapterSelection:
    """Tests for suffix-based adapter selection."""

    @pytest.mark.parametrize("filename,adapter_type", [
        ("ride.fit", FitAdapter),
        ("RIDE.FIT", FitAdapter),
        ("ride.gpx", GpxAdapter),
        ("Ride.Gpx", GpxAdapter),
    ])
    def test_select(self, filename, adapter_type):
        assert isinstance(_select_adapter(filename), adapter_type)

    @pytest.mark.parametrize("filename", ["ride.csv", "ride", "fit.txt"])
    def test_unsupported(self, filename):
        assert not is_supported(filename)
        with pytest.raises(UnsupportedFormat):
            _select_adapter(filename)


class TestParseTrack:
    """Tests for parse_track_bytes and parse_track_file."""

    def test_fit_bytes(self, fit_bytes, loop_points):
        track = parse_track_bytes(fit_bytes, "loop.fit")
        assert track.point_count == len(loop_points)
        assert track.source_format == "fit"

    def test_gpx_bytes(self, gpx_text, loop_points):
        track = parse_track_bytes(gpx_text.encode("utf-8"), "loop.gpx")
        assert track.point_count == len(loop_points)
        assert track.source_format == "gpx"

    def test_both_formats_agree(self, fit_bytes, gpx_text):
        """The same ride gives the same distance in both formats."""
        fit_track = parse_track_bytes(fit_bytes, "loop.fit")
        gpx_track = parse_track_bytes(gpx_text.encode("utf-8"), "loop.gpx")
        assert fit_track.distance_km == pytest.approx(gpx_track.distance_km, rel=1e-6)
        assert fit_track.date_range == gpx_track.date_range

    def test_header_error_names_file(self):
        """Header errors are re-raised with the filename attached."""
        with pytest.raises(HeaderInvalid) as exc_info:
            parse_track_bytes(b"not a container", "junk.fit")
        assert exc_info.value.filename == "junk.fit"
        assert isinstance(exc_info.value, TrackParseError)

    def test_no_decoder_available(self, fit_bytes):
        class Unavailable:
            name = "unavailable"

            def available(self):
                return False

            def decode(self, data):
                return []

        with pytest.raises(DecoderUnavailable):
            FitAdapter(decoders=[Unavailable()]).parse(fit_bytes, "loop.fit")

    def test_parse_file(self, tmp_path, fit_bytes):
        path = tmp_path / "loop.fit"
        path.write_bytes(fit_bytes)
        track = parse_track_file(path)
        assert track.filename == "loop.fit"

    def test_unsupported_file_not_read(self, tmp_path):
        """Unsupported suffixes fail before the file is opened."""
        with pytest.raises(UnsupportedFormat):
            parse_track_file(tmp_path / "missing.csv")
