"""
Tunable heuristics for the ingest pipeline.

All distance thresholds, sample sizes and iteration caps live here so they
can be overridden per call (tests, experiments) or per process via
TRACKHEAT_* environment variables.
"""

import os
from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class CoordinatePolicy:
    """Raw value thresholds used before and after unit conversion."""

    fixed_point_min: float = 1000.0      # |raw| above this looks like semicircles
    degrees_max_lat: float = 90.0
    degrees_max_lon: float = 180.0
    degrees_min: float = 0.1             # |raw| below this is not a plausible degree
    invalid_small: float = 10.0          # "tiny longitude" pre-filter bound
    invalid_tiny: float = 1.0
    fixed_point_lat_floor: float = 100.0  # latitude magnitude that marks semicircle scale
    origin_near: float = 0.001           # degrees; points this close to (0, 0) are dropped


@dataclass(frozen=True)
class FormatPolicy:
    """Coordinate unit classification."""

    sample_size: int = 50
    min_samples: int = 3
    fixed_point_ratio: float = 0.3
    degrees_ratio: float = 0.8
    fixed_point_multiplier: float = 1.5
    adjacent_distance_max_m: float = 1000.0
    decimals: int = 6


@dataclass(frozen=True)
class OutlierPolicy:
    """Global (centroid) and edge (adjacent) outlier rejection."""

    max_iterations: int = 3
    first_multiplier: float = 2.5
    subsequent_multiplier: float = 3.0
    first_min_km: float = 1000.0
    subsequent_min_km: float = 500.0
    floor_km: float = 500.0
    extreme_adjacent_km: float = 1000.0
    edge_min_points: int = 3
    edge_ratio: float = 0.01


@dataclass(frozen=True)
class SamplingPolicy:
    """Point budgets for simplification and interpolation at render time."""

    max_points: int = 50000
    min_track_points: int = 1000
    initial_tolerance_deg: float = 1e-5
    max_attempts: int = 10
    fast_tolerance_deg: float = 1e-4
    fast_simplify_limit: int = 5000
    stride_only_limit: int = 10000
    sparse_ratio: float = 0.7
    sparse_spacing_m: float = 50.0
    meters_to_degrees: float = 9e-6
    max_interpolation_deg: float = 8e-4


@dataclass(frozen=True)
class PipelinePolicy:
    coordinates: CoordinatePolicy = field(default_factory=CoordinatePolicy)
    format: FormatPolicy = field(default_factory=FormatPolicy)
    outliers: OutlierPolicy = field(default_factory=OutlierPolicy)
    sampling: SamplingPolicy = field(default_factory=SamplingPolicy)

    @classmethod
    def from_env(cls) -> "PipelinePolicy":
        """Build the default policy with TRACKHEAT_* overrides applied."""
        policy = cls()
        outliers = policy.outliers
        min_km = os.getenv("TRACKHEAT_MIN_OUTLIER_KM")
        if min_km is not None:
            value = float(min_km)
            outliers = replace(outliers, subsequent_min_km=value, floor_km=value)
        extreme_km = os.getenv("TRACKHEAT_EXTREME_ADJACENT_KM")
        if extreme_km is not None:
            outliers = replace(outliers, extreme_adjacent_km=float(extreme_km))

        fmt = policy.format
        sample_size = os.getenv("TRACKHEAT_FORMAT_SAMPLE_SIZE")
        if sample_size is not None:
            fmt = replace(fmt, sample_size=int(sample_size))

        sampling = policy.sampling
        max_points = os.getenv("TRACKHEAT_MAX_POINTS")
        if max_points is not None:
            sampling = replace(sampling, max_points=int(max_points))

        return replace(policy, outliers=outliers, format=fmt, sampling=sampling)


DEFAULT_POLICY = PipelinePolicy()
