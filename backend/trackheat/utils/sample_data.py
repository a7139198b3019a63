"""
Sample data generator for testing.

Writes minimal but valid binary (FIT-style) and GPX recordings of plausible
rides so the whole ingest path can be exercised without real device files.
"""

import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Sequence

import gpxpy
import gpxpy.gpx
import numpy as np


CONTAINER_EPOCH_OFFSET_S = 631065600
PROTOCOL_VERSION = 0x10
PROFILE_VERSION = 2132

# Global message numbers
MESG_FILE_ID = 0
MESG_RECORD = 20

# Base types
BASE_ENUM = 0
BASE_UINT8 = 2
BASE_ALTITUDE = 132
BASE_SINT32 = 133
BASE_UINT32 = 134


@dataclass
class SamplePoint:
    lat: float
    lon: float
    time: Optional[datetime] = None
    elevation: Optional[float] = None


def degrees_to_semicircles(degrees: float) -> int:
    value = int(round(degrees * 2**31 / 180.0))
    return max(-2**31, min(2**31 - 1, value))


def build_fit_bytes(
    points: Sequence[SamplePoint],
    big_endian: bool = False,
    header_size: int = 14,
    include_file_id: bool = True,
    raw_positions: Optional[Sequence[tuple[int, int]]] = None,
) -> bytes:
    """
    Encode points as a binary track container.

    Layout: header, an optional file_id message, then one record definition
    followed by one data message per point. Every record carries
    lat, lon, a heart-rate byte the decoder has to skip and, when
    available, timestamp and altitude.

    Args:
        points: Points to encode; time and altitude fields are only
            declared when every point has them
        big_endian: Declare architecture 1 for the record definition
        header_size: 12 or 14
        include_file_id: Prepend a file_id message with no position fields
        raw_positions: Raw (lat, lon) integers to write instead of semicircles
    """
    endian = ">" if big_endian else "<"
    body = bytearray()

    if include_file_id:
        # Local type 0, little-endian, one enum field: type = activity (4)
        body += bytes([0x40, 0, 0]) + struct.pack("<H", MESG_FILE_ID) + bytes([1])
        body += bytes([0, 1, BASE_ENUM])
        body += bytes([0x00, 4])

    has_time = bool(points) and all(p.time is not None for p in points)
    has_elevation = bool(points) and all(p.elevation is not None for p in points)

    record_fields = []
    if has_time:
        record_fields.append((253, 4, BASE_UINT32))
    record_fields += [(0, 4, BASE_SINT32), (1, 4, BASE_SINT32), (3, 1, BASE_UINT8)]
    if has_elevation:
        record_fields.append((5, 2, BASE_ALTITUDE))
    body += bytes([0x41, 0, 1 if big_endian else 0])
    body += struct.pack(f"{endian}H", MESG_RECORD)
    body += bytes([len(record_fields)])
    for number, size, base_type in record_fields:
        body += bytes([number, size, base_type])

    for i, p in enumerate(points):
        if raw_positions is not None:
            raw_lat, raw_lon = raw_positions[i]
        else:
            raw_lat, raw_lon = degrees_to_semicircles(p.lat), degrees_to_semicircles(p.lon)

        body += bytes([0x01])
        if has_time:
            body += struct.pack(f"{endian}I", int(p.time.timestamp()) - CONTAINER_EPOCH_OFFSET_S)
        body += struct.pack(f"{endian}ii", raw_lat, raw_lon)
        body += bytes([120])
        if has_elevation:
            body += struct.pack(f"{endian}H", int(round((p.elevation + 500) * 5)))

    header = struct.pack("<BBHI4s", header_size, PROTOCOL_VERSION, PROFILE_VERSION, len(body), b".FIT")
    if header_size == 14:
        header += b"\x00\x00"
    # Trailing file CRC is not checked by the decoder
    return bytes(header) + bytes(body) + b"\x00\x00"


def build_gpx_text(
    points: Sequence[SamplePoint],
    name: str = "Sample ride",
    kind: str = "trk",
) -> str:
    """
    GPX 1.1 document with the points as track points, route points or waypoints.

    kind is one of "trk", "rte", "wpt".
    """
    gpx = gpxpy.gpx.GPX()
    if kind == "trk":
        track = gpxpy.gpx.GPXTrack(name=name)
        segment = gpxpy.gpx.GPXTrackSegment()
        track.segments.append(segment)
        gpx.tracks.append(track)
        for p in points:
            segment.points.append(gpxpy.gpx.GPXTrackPoint(
                latitude=p.lat, longitude=p.lon, elevation=p.elevation, time=p.time,
            ))
    elif kind == "rte":
        route = gpxpy.gpx.GPXRoute(name=name)
        gpx.routes.append(route)
        for p in points:
            route.points.append(gpxpy.gpx.GPXRoutePoint(
                latitude=p.lat, longitude=p.lon, elevation=p.elevation, time=p.time,
            ))
    elif kind == "wpt":
        for p in points:
            gpx.waypoints.append(gpxpy.gpx.GPXWaypoint(
                latitude=p.lat, longitude=p.lon, elevation=p.elevation, time=p.time,
            ))
    else:
        raise ValueError(f"Unknown GPX point kind: {kind}")
    return gpx.to_xml(version="1.1")


def generate_loop_track(
    center_lat: float = 39.9042,
    center_lon: float = 116.4074,
    radius_m: float = 1500.0,
    n_points: int = 240,
    start: Optional[datetime] = None,
    interval_s: float = 5.0,
    base_elevation_m: float = 50.0,
    noise_m: float = 2.0,
    seed: int = 7,
) -> list[SamplePoint]:
    """A closed loop ride with a little GPS jitter and rolling elevation."""
    if start is None:
        start = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
    rng = np.random.default_rng(seed)

    theta = np.linspace(0, 2 * np.pi, n_points, endpoint=False)
    north = radius_m * np.sin(theta) + rng.normal(0, noise_m, n_points)
    east = radius_m * np.cos(theta) + rng.normal(0, noise_m, n_points)

    meters_per_deg_lat = 111000
    meters_per_deg_lon = 111000 * np.cos(np.radians(center_lat))
    lat = center_lat + north / meters_per_deg_lat
    lon = center_lon + east / meters_per_deg_lon
    elevation = base_elevation_m + 10 * np.sin(3 * theta)

    return [
        SamplePoint(
            lat=round(float(lat[i]), 6),
            lon=round(float(lon[i]), 6),
            time=start + timedelta(seconds=i * interval_s),
            elevation=round(float(elevation[i]), 1),
        )
        for i in range(n_points)
    ]


def generate_test_data_set(output_folder: Path) -> list[Path]:
    """Write a small folder of FIT and GPX rides."""
    output_folder.mkdir(parents=True, exist_ok=True)
    files = []

    morning = generate_loop_track(start=datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc))
    path = output_folder / "ride_001_loop.fit"
    path.write_bytes(build_fit_bytes(morning))
    files.append(path)

    evening = generate_loop_track(
        center_lat=31.2304,
        center_lon=121.4737,
        radius_m=2500.0,
        start=datetime(2024, 5, 3, 18, 30, tzinfo=timezone.utc),
        seed=11,
    )
    path = output_folder / "ride_002_loop.gpx"
    path.write_text(build_gpx_text(evening), encoding="utf-8")
    files.append(path)

    big_endian = generate_loop_track(
        radius_m=800.0,
        n_points=120,
        start=datetime(2024, 5, 5, 7, 15, tzinfo=timezone.utc),
        seed=3,
    )
    path = output_folder / "ride_003_big_endian.fit"
    path.write_bytes(build_fit_bytes(big_endian, big_endian=True))
    files.append(path)

    return files


if __name__ == "__main__":
    # Generate test data when run directly
    output = Path("./data/tracks")
    files = generate_test_data_set(output)
    print(f"Generated {len(files)} test files in {output}")
    for f in files:
        print(f"  - {f.name}")
