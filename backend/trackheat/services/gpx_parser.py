"""
GPX track assembler.

GPX coordinates are literal degrees, so there is no unit classification and
no outlier filter; only the per-point range and near-origin checks of the
binary path apply.
"""

import logging
import math
from io import StringIO
from typing import Optional, Union

import gpxpy
import gpxpy.gpx

from trackheat.config import DEFAULT_POLICY, PipelinePolicy
from trackheat.errors import GpxFormatError, NoGpsData, NoValidCoordinates
from trackheat.models.track import ConvertedPoint, Track
from trackheat.services.assembler import finalize_track, normalize_timestamp


logger = logging.getLogger(__name__)


def build_gpx_track(
    data: Union[str, bytes],
    filename: str,
    policy: Optional[PipelinePolicy] = None,
) -> Track:
    """
    Parse a GPX document into a Track.

    Point source precedence: track points, then route points, then waypoints.

    Raises:
        GpxFormatError: the document is not valid GPX
        NoGpsData: the document has no points at all
        NoValidCoordinates: every point failed validation
    """
    policy = policy or DEFAULT_POLICY
    gpx = _parse_document(data, filename)

    source, raw_points = _select_points(gpx)
    if not raw_points:
        raise NoGpsData("no track, route or waypoint data", filename)

    origin_near = policy.coordinates.origin_near
    points = []
    for i, p in enumerate(raw_points):
        lat, lon = p.latitude, p.longitude
        if not _is_valid(lat, lon):
            logger.debug(f"{filename}: skipping invalid {source} point [{i}] ({lat}, {lon})")
            continue
        if abs(lat) < origin_near and abs(lon) < origin_near:
            logger.debug(f"{filename}: skipping near-origin {source} point [{i}]")
            continue
        points.append(ConvertedPoint(
            lat=float(lat),
            lon=float(lon),
            timestamp_ms=normalize_timestamp(p.time),
            elevation_m=float(p.elevation) if p.elevation is not None else None,
            raw_index=i,
        ))

    if not points:
        raise NoValidCoordinates("no valid coordinates", filename)

    logger.debug(f"{filename}: {len(points)} of {len(raw_points)} {source} points kept")
    return finalize_track(filename, points, source_format="gpx")


def _parse_document(data: Union[str, bytes], filename: str) -> gpxpy.gpx.GPX:
    if isinstance(data, bytes):
        data = data.decode("utf-8-sig", errors="replace")
    if not data.strip():
        raise GpxFormatError("empty document", filename)
    try:
        return gpxpy.parse(StringIO(data))
    except gpxpy.gpx.GPXException as e:
        raise GpxFormatError(f"invalid GPX: {e}", filename) from e


def _select_points(gpx: gpxpy.gpx.GPX) -> tuple[str, list]:
    track_points = [
        point
        for track in gpx.tracks
        for segment in track.segments
        for point in segment.points
    ]
    if track_points:
        return "trkpt", track_points

    route_points = [point for route in gpx.routes for point in route.points]
    if route_points:
        return "rtept", route_points

    return "wpt", list(gpx.waypoints)


def _is_valid(lat, lon) -> bool:
    if lat is None or lon is None:
        return False
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return False
    return (
        math.isfinite(lat) and math.isfinite(lon)
        and -90 <= lat <= 90
        and -180 <= lon <= 180
    )
