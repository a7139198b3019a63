"""
Canonical track data model.

A Track is built once per parsed file and never mutated afterwards:
- points keep original record order (by raw_index)
- every point lies inside [-90, 90] x [-180, 180]
- distance_km is the Haversine sum over the surviving points only
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class ConvertedPoint:
    """A point in degrees with optional metadata."""

    lat: float
    lon: float
    timestamp_ms: Optional[int] = None
    elevation_m: Optional[float] = None
    raw_index: int = 0

    def as_pair(self) -> list[float]:
        return [self.lat, self.lon]

    def as_record(self) -> dict:
        return {
            "lat": self.lat,
            "lon": self.lon,
            "timestamp_ms": self.timestamp_ms,
            "elevation_m": self.elevation_m,
        }


@dataclass(frozen=True)
class FormatAnalysis:
    """Outcome of coordinate unit classification for one file."""

    is_fixed_point_unit: bool
    avg_adjacent_distance_m: float
    max_adjacent_distance_m: float
    valid_ratio: float


@dataclass(frozen=True)
class Track:
    """
    Immutable, cleaned track.

    Owned by whoever requested the parse; nothing else keeps a reference.
    """

    filename: str
    points: tuple[ConvertedPoint, ...]
    distance_km: float
    date_range: Optional[tuple[int, int]] = None  # (min, max) Unix ms
    source_format: str = "fit"
    format_analysis: Optional[FormatAnalysis] = field(default=None, repr=False)

    @property
    def point_count(self) -> int:
        return len(self.points)

    @property
    def latlon(self) -> list[list[float]]:
        """Points as [lat, lon] pairs for the renderer."""
        return [p.as_pair() for p in self.points]

    @property
    def dates(self) -> list[int]:
        """Timestamps (Unix ms) of points that carry one, in track order."""
        return [p.timestamp_ms for p in self.points if p.timestamp_ms is not None]

    def to_array(self) -> NDArray[np.float64]:
        """(N, 2) array of lat/lon."""
        if not self.points:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([[p.lat, p.lon] for p in self.points], dtype=np.float64)

    def get_time_range(self) -> tuple[Optional[datetime], Optional[datetime]]:
        if self.date_range is None:
            return (None, None)
        start, end = self.date_range
        return (_ms_to_datetime(start), _ms_to_datetime(end))

    def get_bounding_box(self) -> tuple[float, float, float, float]:
        """(min_lat, min_lon, max_lat, max_lon)."""
        if not self.points:
            return (0.0, 0.0, 0.0, 0.0)
        arr = self.to_array()
        return (
            float(np.min(arr[:, 0])),
            float(np.min(arr[:, 1])),
            float(np.max(arr[:, 0])),
            float(np.max(arr[:, 1])),
        )


@dataclass
class TrackSummary:
    """Lightweight per-track summary for listings."""

    id: str
    filename: str
    point_count: int
    distance_km: float
    start: Optional[str]
    end: Optional[str]

    @classmethod
    def from_track(cls, track_id: str, track: Track) -> "TrackSummary":
        start, end = track.get_time_range()
        return cls(
            id=track_id,
            filename=track.filename,
            point_count=track.point_count,
            distance_km=round(track.distance_km, 3),
            start=start.isoformat() if start else None,
            end=end.isoformat() if end else None,
        )


@dataclass
class TrackResult:
    """One entry of a batch: either a track or the error that stopped it."""

    filename: str
    track: Optional[Track] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.track is not None

    @property
    def point_count(self) -> int:
        return self.track.point_count if self.track is not None else 0

    @property
    def distance_km(self) -> float:
        return self.track.distance_km if self.track is not None else 0.0


def _ms_to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)
