"""
Track assembler for decoded binary records.

Turns decoder output into an immutable Track:
raw pairs -> unit classification -> conversion -> range checks ->
outlier rejection -> compaction -> distance and date range.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from trackheat.config import DEFAULT_POLICY, CoordinatePolicy, PipelinePolicy
from trackheat.errors import NoGpsData, NoSurvivingPoints, NoValidCoordinates
from trackheat.models.raw import GPSRecord, RawCoordinatePair, TimestampLike
from trackheat.models.track import ConvertedPoint, FormatAnalysis, Track
from trackheat.services.coordinate_format import (
    CoordinateFormatClassifier,
    semicircles_to_degrees_array,
)
from trackheat.services.outliers import OutlierFilter
from trackheat.utils.geo import path_length_km


logger = logging.getLogger(__name__)


MILLISECONDS_THRESHOLD = 1e12  # numbers above this are already Unix ms


def build_track(
    records: Sequence[GPSRecord],
    filename: str,
    policy: Optional[PipelinePolicy] = None,
) -> Track:
    """
    Build a Track from decoded records.

    Raises:
        NoGpsData: no records, or none survive the raw pre-filter
        NoValidCoordinates: every pair fails the range/near-origin checks
        NoSurvivingPoints: the outlier filter rejects everything
    """
    policy = policy or DEFAULT_POLICY

    if not records:
        raise NoGpsData("no GPS records found", filename)

    pairs = collect_raw_pairs(records, policy.coordinates)
    if not pairs:
        raise NoGpsData("no usable latitude/longitude values", filename)

    classifier = CoordinateFormatClassifier(policy.format, policy.coordinates)
    analysis = classifier.classify(pairs[:policy.format.sample_size])

    lat, lon, valid = convert_pairs(pairs, analysis, policy)
    if not np.any(valid):
        raise NoValidCoordinates("no coordinates in range after conversion", filename)

    # Arena: converted points stay in raw order, filters only touch the mask
    idx = np.flatnonzero(valid)
    arena_lat = lat[idx]
    arena_lon = lon[idx]
    mask = OutlierFilter(arena_lat, arena_lon, policy.outliers).run()
    if not np.any(mask):
        raise NoSurvivingPoints("every point was rejected as an outlier", filename)

    points = []
    for k in np.flatnonzero(mask):
        pair = pairs[idx[k]]
        record = records[pair.source_index]
        points.append(ConvertedPoint(
            lat=float(arena_lat[k]),
            lon=float(arena_lon[k]),
            timestamp_ms=normalize_timestamp(record.timestamp_ms, unit="ms"),
            elevation_m=_normalize_elevation(record.elevation_m),
            raw_index=pair.source_index,
        ))

    dropped = len(records) - len(points)
    if dropped:
        logger.info(f"{filename}: kept {len(points)} of {len(records)} records")

    return finalize_track(filename, points, source_format="fit", format_analysis=analysis)


def collect_raw_pairs(
    records: Sequence[GPSRecord],
    policy: Optional[CoordinatePolicy] = None,
) -> list[RawCoordinatePair]:
    """Raw (lat, lon) values with obvious noise removed; source_index points into records."""
    cp = policy or DEFAULT_POLICY.coordinates
    pairs = []
    for i, record in enumerate(records):
        lat, lon = record.raw_lat, record.raw_lon
        if lat is None or lon is None:
            continue
        if lat == 0 and lon == 0:
            continue
        # Tiny longitude next to a semicircle-scale latitude is a misdecode
        if 0 < abs(lon) < cp.invalid_small and abs(lat) > cp.fixed_point_lat_floor:
            continue
        pairs.append(RawCoordinatePair(lat=float(lat), lon=float(lon), source_index=i))
    return pairs


def convert_pairs(
    pairs: Sequence[RawCoordinatePair],
    analysis: FormatAnalysis,
    policy: Optional[PipelinePolicy] = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.bool_]]:
    """
    Convert every pair to degrees.

    In degrees mode a pair that is out of degree range is retried as
    fixed-point. Returns (lat, lon, valid) arrays aligned with pairs.
    """
    policy = policy or DEFAULT_POLICY
    cp = policy.coordinates
    decimals = policy.format.decimals

    raw_lat = np.array([p.lat for p in pairs], dtype=np.float64)
    raw_lon = np.array([p.lon for p in pairs], dtype=np.float64)
    abs_lat = np.abs(raw_lat)
    abs_lon = np.abs(raw_lon)

    if analysis.is_fixed_point_unit:
        as_fixed = np.ones(raw_lat.shape, dtype=np.bool_)
    else:
        as_fixed = (abs_lat > cp.degrees_max_lat) | (abs_lon > cp.degrees_max_lon)

    lat = raw_lat.copy()
    lon = raw_lon.copy()
    if np.any(as_fixed):
        lat[as_fixed] = semicircles_to_degrees_array(raw_lat[as_fixed], decimals)
        lon[as_fixed] = semicircles_to_degrees_array(raw_lon[as_fixed], decimals)

    noise = (
        (abs_lat < cp.invalid_tiny) & (abs_lon < cp.invalid_tiny)
        & (raw_lat >= 0) & (raw_lon >= 0)
    )
    in_range = (
        np.isfinite(lat) & np.isfinite(lon)
        & (lat >= -90) & (lat <= 90)
        & (lon >= -180) & (lon <= 180)
    )
    near_origin = (np.abs(lat) < cp.origin_near) & (np.abs(lon) < cp.origin_near)
    valid = ~noise & in_range & ~near_origin

    skipped = int(np.count_nonzero(~valid))
    if skipped:
        logger.debug(f"Skipped {skipped} coordinates out of range or near the origin")
    return lat, lon, valid


def finalize_track(
    filename: str,
    points: Sequence[ConvertedPoint],
    source_format: str,
    format_analysis: Optional[FormatAnalysis] = None,
) -> Track:
    """Compute distance and date range over the surviving points."""
    lat = np.array([p.lat for p in points], dtype=np.float64)
    lon = np.array([p.lon for p in points], dtype=np.float64)
    timestamps = [p.timestamp_ms for p in points if p.timestamp_ms is not None]
    date_range = (min(timestamps), max(timestamps)) if timestamps else None

    return Track(
        filename=filename,
        points=tuple(points),
        distance_km=path_length_km(lat, lon),
        date_range=date_range,
        source_format=source_format,
        format_analysis=format_analysis,
    )


def normalize_timestamp(
    value: Optional[TimestampLike],
    unit: str = "auto",
) -> Optional[int]:
    """
    Convert a timestamp to Unix milliseconds.

    Accepts datetimes (naive means UTC), ISO-8601 strings and numbers.
    With unit="auto" numbers above 1e12 are read as ms, others as seconds;
    "s" and "ms" force the unit. Invalid or non-positive values give None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(round(value.timestamp() * 1000))

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Unparseable timestamp: {value!r}")
            return None
        return normalize_timestamp(parsed)

    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None

    if unit == "ms" or (unit == "auto" and number > MILLISECONDS_THRESHOLD):
        return int(number)
    return int(round(number * 1000))


def _normalize_elevation(value) -> Optional[float]:
    if value is None:
        return None
    try:
        elevation = float(value)
    except (TypeError, ValueError):
        return None
    return elevation if math.isfinite(elevation) else None
