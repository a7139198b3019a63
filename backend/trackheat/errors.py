"""
Error types raised while turning a recording into a Track.

Every error here is fatal for a single file only. Batch and repository code
catch TrackParseError per file and record it as a failed entry.
"""

from typing import Optional


class TrackParseError(ValueError):
    """Base class for per-file ingest failures."""

    def __init__(self, message: str, filename: Optional[str] = None):
        self.filename = filename
        if filename:
            message = f"{filename}: {message}"
        super().__init__(message)


class HeaderInvalid(TrackParseError):
    """Binary container header is too short, has a bad size or bad signature."""


class NoGpsData(TrackParseError):
    """The file decoded cleanly but exposed no latitude/longitude records."""


class NoValidCoordinates(TrackParseError):
    """Every coordinate pair failed the range or near-origin checks."""


class NoSurvivingPoints(TrackParseError):
    """The outlier filter rejected every remaining point."""


class GpxFormatError(TrackParseError):
    """The XML track document could not be parsed."""


class UnsupportedFormat(TrackParseError):
    """No adapter recognises the file."""


class DecoderUnavailable(TrackParseError):
    """No binary decoder strategy reported itself available."""
