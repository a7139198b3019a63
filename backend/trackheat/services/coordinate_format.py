"""
Coordinate unit classification.

Position fields in the binary container are normally 32-bit "semicircles"
(the full int32 range maps to +/-180 degrees), but some writers store plain
degrees. A bounded leading sample decides which interpretation applies to
the whole file.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from trackheat.config import DEFAULT_POLICY, CoordinatePolicy, FormatPolicy
from trackheat.models.raw import RawCoordinatePair
from trackheat.models.track import FormatAnalysis
from trackheat.utils.geo import adjacent_distances_m


logger = logging.getLogger(__name__)


SEMICIRCLES_TO_DEGREES = 180.0 / 2**31

# Returned when nothing usable was sampled
EMPTY_SAMPLE_MAX_ADJACENT_M = 5000.0
EMPTY_SAMPLE_AVG_ADJACENT_M = 100.0
NO_POINTS_DISTANCE_M = 10000.0


def semicircles_to_degrees(value: float, decimals: int = 6) -> float:
    """
    Convert a fixed-point angular value to degrees.

    The value is truncated and wrapped to a signed 32-bit integer first, so
    unsigned readings of negative coordinates convert correctly.
    """
    signed = _to_int32(int(value))
    scale = 10 ** decimals
    return round(signed * SEMICIRCLES_TO_DEGREES * scale) / scale


def semicircles_to_degrees_array(values: ArrayLike, decimals: int = 6) -> NDArray[np.float64]:
    """Vectorised semicircles_to_degrees."""
    raw = np.trunc(np.asarray(values, dtype=np.float64)).astype(np.int64)
    signed = (raw + 2**31) % 2**32 - 2**31
    return np.round(signed * SEMICIRCLES_TO_DEGREES, decimals)


def is_valid_coordinate(lat: float, lon: float) -> bool:
    return bool(
        np.isfinite(lat) and np.isfinite(lon)
        and -90 <= lat <= 90
        and -180 <= lon <= 180
    )


class CoordinateFormatClassifier:
    """Decides whether raw position values are degrees or semicircles."""

    def __init__(
        self,
        format_policy: Optional[FormatPolicy] = None,
        coordinate_policy: Optional[CoordinatePolicy] = None,
    ):
        self.format_policy = format_policy or DEFAULT_POLICY.format
        self.coordinate_policy = coordinate_policy or DEFAULT_POLICY.coordinates

    def classify(
        self,
        sample: Sequence[RawCoordinatePair],
        max_sample_size: Optional[int] = None,
    ) -> FormatAnalysis:
        """
        Classify a leading sample of raw pairs.

        Rules, first match wins:
        1. many values above the semicircle floor -> fixed-point
        2. no semicircle-scale values and mostly plausible degrees -> degrees
        3. whichever interpretation gives the smaller mean adjacent spacing,
           if that spacing is under the configured maximum
        4. fixed-point (the container format default)
        """
        fmt = self.format_policy
        limit = fmt.sample_size if max_sample_size is None else max_sample_size
        samples = list(sample[:limit])

        if not samples:
            logger.warning("Coordinate classification got an empty sample; assuming fixed-point")
            return FormatAnalysis(
                is_fixed_point_unit=True,
                avg_adjacent_distance_m=EMPTY_SAMPLE_AVG_ADJACENT_M,
                max_adjacent_distance_m=EMPTY_SAMPLE_MAX_ADJACENT_M,
                valid_ratio=0.0,
            )

        cleaned = [s for s in samples if not self._is_noise(s.lat, s.lon)]
        analysis_samples = cleaned if len(cleaned) >= fmt.min_samples else samples

        fixed_count, degrees_count = self._count_kinds(analysis_samples)
        n = len(analysis_samples)

        if fixed_count > degrees_count * fmt.fixed_point_multiplier or fixed_count > n * fmt.fixed_point_ratio:
            use_fixed = True
        elif fixed_count == 0 and degrees_count > n * fmt.degrees_ratio:
            use_fixed = False
        else:
            use_fixed = self._closer_interpretation_is_fixed(samples)

        points = self._interpret(samples, use_fixed)
        avg_m, max_m = _adjacent_stats(points)
        analysis = FormatAnalysis(
            is_fixed_point_unit=use_fixed,
            avg_adjacent_distance_m=avg_m,
            max_adjacent_distance_m=max_m,
            valid_ratio=len(points) / len(samples),
        )
        logger.debug(
            f"Coordinate format: {'fixed-point' if use_fixed else 'degrees'} "
            f"(fixed={fixed_count}, degrees={degrees_count}, n={n}, avg={avg_m:.1f}m)"
        )
        return analysis

    def _is_noise(self, lat: float, lon: float) -> bool:
        cp = self.coordinate_policy
        return 0 < abs(lon) < cp.invalid_small and abs(lat) > cp.fixed_point_lat_floor

    def _count_kinds(self, samples: Sequence[RawCoordinatePair]) -> tuple[int, int]:
        cp = self.coordinate_policy
        fixed_count = 0
        degrees_count = 0
        for s in samples:
            abs_lat, abs_lon = abs(s.lat), abs(s.lon)
            if abs_lat > cp.fixed_point_min or abs_lon > cp.fixed_point_min:
                fixed_count += 1
            elif self._plausible_degrees(abs_lat, abs_lon):
                degrees_count += 1
        return fixed_count, degrees_count

    def _plausible_degrees(self, abs_lat: float, abs_lon: float) -> bool:
        cp = self.coordinate_policy
        return (
            abs_lat <= cp.degrees_max_lat
            and abs_lon <= cp.degrees_max_lon
            and abs_lat >= cp.degrees_min
            and abs_lon >= cp.degrees_min
        )

    def _closer_interpretation_is_fixed(self, samples: Sequence[RawCoordinatePair]) -> bool:
        fixed_avg, _ = _adjacent_stats(self._interpret(samples, True))
        degrees_avg, _ = _adjacent_stats(self._interpret(samples, False))
        limit = self.format_policy.adjacent_distance_max_m

        # A fixed-point win and "neither is plausible" both end in fixed-point
        return not (degrees_avg < fixed_avg and degrees_avg < limit)

    def _interpret(
        self,
        samples: Sequence[RawCoordinatePair],
        as_fixed_point: bool,
    ) -> list[tuple[float, float]]:
        """Read samples under one interpretation, dropping invalid or near-origin results."""
        cp = self.coordinate_policy
        decimals = self.format_policy.decimals
        points = []
        for s in samples:
            if as_fixed_point:
                lat = semicircles_to_degrees(s.lat, decimals)
                lon = semicircles_to_degrees(s.lon, decimals)
            else:
                if not self._plausible_degrees(abs(s.lat), abs(s.lon)):
                    continue
                lat, lon = float(s.lat), float(s.lon)
            if not is_valid_coordinate(lat, lon):
                continue
            if abs(lat) < cp.origin_near and abs(lon) < cp.origin_near:
                continue
            points.append((lat, lon))
        return points


def _adjacent_stats(points: Sequence[tuple[float, float]]) -> tuple[float, float]:
    """(mean, max) adjacent spacing in meters."""
    if not points:
        return NO_POINTS_DISTANCE_M, NO_POINTS_DISTANCE_M
    if len(points) == 1:
        return 0.0, 0.0
    arr = np.asarray(points, dtype=np.float64)
    distances = adjacent_distances_m(arr[:, 0], arr[:, 1])
    return float(np.mean(distances)), float(np.max(distances))


def _to_int32(value: int) -> int:
    return (value + 2**31) % 2**32 - 2**31


def classify(
    sample: Sequence[RawCoordinatePair],
    max_sample_size: int = 50,
) -> FormatAnalysis:
    """Classify with the default policy."""
    return CoordinateFormatClassifier().classify(sample, max_sample_size)
