"""
Polyline simplification, subsampling and interpolation.

All functions work on [lat, lon] pairs in plain degree space (x = lon,
y = lat), which is what the heatmap renderer consumes.
"""

import math
from typing import Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from trackheat.config import DEFAULT_POLICY, SamplingPolicy


LatLon = Sequence[float]

# Relative allowance for float error when testing chord deviation
ROUNDING_EPS_DEG = 1e-12


def perpendicular_distance(
    points: ArrayLike,
    line_start: LatLon,
    line_end: LatLon,
) -> NDArray[np.float64]:
    """
    Distance in degrees from each point to the infinite line through start/end.

    Degenerate lines (start == end) fall back to point-to-point distance.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    y0, x0 = line_start[0], line_start[1]
    y1, x1 = line_end[0], line_end[1]
    dx = x1 - x0
    dy = y1 - y0

    if dx == 0 and dy == 0:
        return np.hypot(pts[:, 1] - x0, pts[:, 0] - y0)

    numerator = np.abs(dy * (pts[:, 1] - x0) - dx * (pts[:, 0] - y0))
    return numerator / math.hypot(dx, dy)


def simplify_track(points: Sequence[LatLon], tolerance_deg: float = 1e-4) -> list[list[float]]:
    """
    Douglas-Peucker simplification.

    Keeps the point of maximum deviation from each chord while it exceeds
    the tolerance; otherwise the segment collapses to its endpoints.
    Iterative, so long tracks do not hit the recursion limit.
    """
    arr = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    n = len(arr)
    if n <= 2:
        return arr.tolist()

    threshold = tolerance_deg + ROUNDING_EPS_DEG * max(1.0, float(np.abs(arr).max()))

    keep = np.zeros(n, dtype=np.bool_)
    keep[0] = keep[-1] = True
    stack = [(0, n - 1)]

    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue
        distances = perpendicular_distance(arr[start + 1:end], arr[start], arr[end])
        k = int(np.argmax(distances))
        if distances[k] > threshold:
            split = start + 1 + k
            keep[split] = True
            stack.append((start, split))
            stack.append((split, end))

    return arr[keep].tolist()


def quick_sample(points: Sequence[LatLon], max_points: int) -> list[list[float]]:
    """Uniform stride subsampling that always keeps the first and last point."""
    n = len(points)
    if n <= max_points:
        return [list(p) for p in points]

    if max_points < 2:
        return [list(points[0])][:max_points]

    step = n / max_points
    sampled = [list(points[int(k * step)]) for k in range(max_points - 1)]
    sampled.append(list(points[-1]))
    return sampled


def sample_points(
    points: Sequence[LatLon],
    max_points: int,
    policy: Optional[SamplingPolicy] = None,
) -> list[list[float]]:
    """
    Reduce a track to at most max_points while preserving shape.

    Douglas-Peucker with a doubling tolerance; stride sampling if the
    attempts run out.
    """
    policy = policy or DEFAULT_POLICY.sampling
    if len(points) <= max_points:
        return [list(p) for p in points]

    tolerance = policy.initial_tolerance_deg
    simplified = [list(p) for p in points]
    for _ in range(policy.max_attempts):
        simplified = simplify_track(points, tolerance)
        if len(simplified) <= max_points:
            return simplified
        tolerance *= 2

    return quick_sample(simplified, max_points)


def sample_points_fast(
    points: Sequence[LatLon],
    max_points: int,
    policy: Optional[SamplingPolicy] = None,
) -> list[list[float]]:
    """One Douglas-Peucker pass for moderate inputs, stride sampling otherwise."""
    policy = policy or DEFAULT_POLICY.sampling
    if len(points) <= max_points:
        return [list(p) for p in points]

    if len(points) < policy.fast_simplify_limit:
        simplified = simplify_track(points, policy.fast_tolerance_deg)
        if len(simplified) <= max_points:
            return simplified

    return quick_sample(points, max_points)


def interpolate_track_points(
    tracks: Sequence[Sequence[LatLon]],
    max_distance_deg: float = 5e-4,
) -> list[list[float]]:
    """
    Fill gaps inside each track with evenly spaced linear interpolants.

    A pair further apart than max_distance_deg gets ceil(d / max) points
    between them, so no output edge is longer than max_distance_deg.
    Tracks are processed independently: nothing is ever inserted between
    the last point of one track and the first point of the next.
    """
    if max_distance_deg <= 0:
        raise ValueError("max_distance_deg must be positive")

    output: list[list[float]] = []
    for track in tracks:
        if len(track) == 0:
            continue

        prev = [float(track[0][0]), float(track[0][1])]
        output.append(prev)
        for point in track[1:]:
            curr = [float(point[0]), float(point[1])]
            lat_diff = curr[0] - prev[0]
            lon_diff = curr[1] - prev[1]
            distance = math.hypot(lat_diff, lon_diff)

            if distance > max_distance_deg:
                count = math.ceil(distance / max_distance_deg)
                for j in range(1, count + 1):
                    ratio = j / (count + 1)
                    output.append([prev[0] + lat_diff * ratio, prev[1] + lon_diff * ratio])

            output.append(curr)
            prev = curr

    return output


def track_point_budget(
    max_points: int,
    track_count: int,
    policy: Optional[SamplingPolicy] = None,
) -> int:
    """Per-track share of the global point budget, never below the minimum."""
    policy = policy or DEFAULT_POLICY.sampling
    if track_count <= 0:
        return max_points
    return max(policy.min_track_points, max_points // track_count)
