"""
Heatmap point preparation.

Turns parsed tracks into the flat [lat, lon] list handed to the renderer:
date filtering, per-track budgeting and gap interpolation, one track at a
time so nothing is ever bridged between tracks.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import numpy as np

from trackheat.config import DEFAULT_POLICY, SamplingPolicy
from trackheat.models.track import ConvertedPoint, Track
from trackheat.utils.geo import adjacent_distances_m
from trackheat.utils.geometry import (
    interpolate_track_points,
    quick_sample,
    sample_points_fast,
    track_point_budget,
)


logger = logging.getLogger(__name__)


def filter_by_date_range(
    tracks: Sequence[Track],
    days: int,
    now: Optional[datetime] = None,
) -> list[list[float]]:
    """
    [lat, lon] of every point recorded within the last `days` days.

    days == 0 keeps everything; points without a timestamp are always kept.
    """
    cutoff_ms = _cutoff_ms(days, now)
    return [
        point.as_pair()
        for track in tracks
        for point in _filter_points(track.points, cutoff_ms)
    ]


def prepare_heatmap_points(
    tracks: Sequence[Track],
    days: int = 0,
    max_points: Optional[int] = None,
    policy: Optional[SamplingPolicy] = None,
    now: Optional[datetime] = None,
) -> list[list[float]]:
    """
    Build the renderer's point list.

    Each track is date-filtered, reduced to its share of max_points, and
    interpolated when sparse. Interpolated points do not count against the
    budget.
    """
    policy = policy or DEFAULT_POLICY.sampling
    max_points = policy.max_points if max_points is None else max_points
    cutoff_ms = _cutoff_ms(days, now)
    budget = track_point_budget(max_points, len(tracks), policy)

    output: list[list[float]] = []
    before = 0
    after = 0
    for track in tracks:
        filtered = [p.as_pair() for p in _filter_points(track.points, cutoff_ms)]
        if not filtered:
            continue
        before += len(filtered)

        sampled = filtered
        if len(filtered) > budget:
            if len(filtered) > policy.stride_only_limit:
                sampled = quick_sample(filtered, budget)
            else:
                sampled = sample_points_fast(filtered, budget, policy)
        after += len(sampled)

        output.extend(_fill_sparse(sampled, max_points, policy))

    logger.info(
        f"Heatmap: {before} points after date filter, {after} after sampling, "
        f"{len(output)} after interpolation ({len(tracks)} tracks)"
    )
    return output


def _fill_sparse(
    points: list[list[float]],
    max_points: int,
    policy: SamplingPolicy,
) -> list[list[float]]:
    if not (2 < len(points) < max_points * policy.sparse_ratio):
        return points

    arr = np.asarray(points, dtype=np.float64)
    mean_spacing_m = float(np.mean(adjacent_distances_m(arr[:, 0], arr[:, 1])))
    if mean_spacing_m <= policy.sparse_spacing_m:
        return points

    threshold = min(mean_spacing_m * policy.meters_to_degrees, policy.max_interpolation_deg)
    return interpolate_track_points([points], threshold)


def _filter_points(
    points: Sequence[ConvertedPoint],
    cutoff_ms: Optional[int],
) -> list[ConvertedPoint]:
    if cutoff_ms is None:
        return list(points)
    return [
        p for p in points
        if p.timestamp_ms is None or p.timestamp_ms >= cutoff_ms
    ]


def _cutoff_ms(days: int, now: Optional[datetime]) -> Optional[int]:
    if not days:
        return None
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int((now - timedelta(days=days)).timestamp() * 1000)


def heatmap_statistics(tracks: Sequence[Track]) -> dict:
    """Totals over the tracks feeding a heatmap."""
    starts = [t.date_range[0] for t in tracks if t.date_range is not None]
    ends = [t.date_range[1] for t in tracks if t.date_range is not None]
    return {
        "track_count": len(tracks),
        "total_points": sum(t.point_count for t in tracks),
        "total_distance_km": round(sum(t.distance_km for t in tracks), 2),
        "start": _ms_to_iso(min(starts)) if starts else None,
        "end": _ms_to_iso(max(ends)) if ends else None,
    }


def _ms_to_iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).isoformat()
