"""
Tests for coordinate unit conversion and classification.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from trackheat.config import FormatPolicy
from trackheat.models.raw import RawCoordinatePair
from trackheat.services.coordinate_format import (
    CoordinateFormatClassifier,
    classify,
    is_valid_coordinate,
    semicircles_to_degrees,
    semicircles_to_degrees_array,
)
from trackheat.utils.sample_data import degrees_to_semicircles


def _pairs(values):
    return [RawCoordinatePair(lat=lat, lon=lon, source_index=i) for i, (lat, lon) in enumerate(values)]


def _degree_walk(n=20, lat=39.9042, lon=116.4074, step=1e-4):
    return [(lat + i * step, lon + i * step) for i in range(n)]


class TestSemicircles:
    """Tests for semicircle to degree conversion."""

    def test_quarter_turn(self):
        """2^29 semicircles is 45 degrees."""
        assert semicircles_to_degrees(2**29) == 45.0
        assert semicircles_to_degrees(-2**29) == -45.0

    def test_unsigned_wraps_to_negative(self):
        """Unsigned readings of negative values wrap around."""
        assert semicircles_to_degrees(2**32 - 2**29) == -45.0

    def test_rounded_to_six_decimals(self):
        """Output is rounded to six decimals by default."""
        value = semicircles_to_degrees(degrees_to_semicircles(39.904212))
        assert value == 39.904212

    def test_array_matches_scalar(self):
        """Vectorised conversion agrees with the scalar one."""
        raw = [2**29, -2**29, 2**32 - 2**29, 476000000, 1388000000.7]
        expected = [semicircles_to_degrees(v) for v in raw]
        assert_allclose(semicircles_to_degrees_array(raw), expected)

    @pytest.mark.parametrize("lat,lon,valid", [
        (0.0, 0.0, True),
        (90.0, 180.0, True),
        (-90.0, -180.0, True),
        (90.1, 0.0, False),
        (0.0, -180.5, False),
        (float("nan"), 10.0, False),
    ])
    def test_is_valid_coordinate(self, lat, lon, valid):
        """Range check on both axes."""
        assert is_valid_coordinate(lat, lon) is valid


class TestClassifier:
    """Tests for CoordinateFormatClassifier."""

    def test_semicircle_sample(self):
        """Values far above 1000 are fixed-point."""
        sample = _pairs(
            (degrees_to_semicircles(lat), degrees_to_semicircles(lon))
            for lat, lon in _degree_walk()
        )
        analysis = classify(sample)

        assert analysis.is_fixed_point_unit
        assert analysis.valid_ratio == 1.0
        assert analysis.avg_adjacent_distance_m < 100

    def test_degree_sample(self):
        """Plausible degree values with nothing at semicircle scale are degrees."""
        analysis = classify(_pairs(_degree_walk()))

        assert not analysis.is_fixed_point_unit
        assert analysis.valid_ratio == 1.0
        assert analysis.avg_adjacent_distance_m == pytest.approx(14, rel=0.1)

    def test_empty_sample(self):
        """An empty sample defaults to fixed-point with zero valid ratio."""
        analysis = classify([])

        assert analysis.is_fixed_point_unit
        assert analysis.valid_ratio == 0.0
        assert analysis.max_adjacent_distance_m == 5000.0
        assert analysis.avg_adjacent_distance_m == 100.0

    def test_sample_is_bounded(self):
        """Only the leading max_sample_size pairs are examined."""
        degrees = _degree_walk(10)
        semicircles = [(degrees_to_semicircles(a), degrees_to_semicircles(b)) for a, b in _degree_walk(100)]
        analysis = classify(_pairs(degrees + semicircles), max_sample_size=10)
        assert not analysis.is_fixed_point_unit

    def test_sample_size_from_policy(self):
        """Without an explicit size the policy's sample size applies."""
        degrees = _degree_walk(5)
        semicircles = [(degrees_to_semicircles(a), degrees_to_semicircles(b)) for a, b in _degree_walk(50)]
        classifier = CoordinateFormatClassifier(FormatPolicy(sample_size=5))
        assert not classifier.classify(_pairs(degrees + semicircles)).is_fixed_point_unit

    def test_ambiguous_prefers_closer_degrees(self):
        """Mixed plausible/implausible degrees fall back to adjacent spacing."""
        walk = _degree_walk(10)
        values = []
        for lat, lon in walk:
            values.append((lat, lon))
            values.append((lat, 0.05))  # not a plausible degree longitude
        analysis = classify(_pairs(values))
        assert not analysis.is_fixed_point_unit

    def test_ambiguous_without_plausible_reading(self):
        """When neither reading is plausible the result is fixed-point."""
        analysis = classify(_pairs([(0.05, 0.05)] * 10))
        assert analysis.is_fixed_point_unit
        assert analysis.valid_ratio == 0.0

    def test_noise_pairs_ignored_for_counting(self):
        """Tiny longitudes next to huge latitudes are left out of the vote."""
        walk = _degree_walk(10)
        noise = [(5000.0, 3.0)] * 6
        analysis = classify(_pairs(noise + walk))
        assert not analysis.is_fixed_point_unit

    def test_single_valid_point(self):
        """One usable point has zero adjacent spacing."""
        analysis = classify(_pairs([(degrees_to_semicircles(39.9), degrees_to_semicircles(116.4))]))
        assert analysis.is_fixed_point_unit
        assert analysis.avg_adjacent_distance_m == 0.0
        assert analysis.max_adjacent_distance_m == 0.0

    def test_near_origin_dropped_from_stats(self):
        """Points converting to near (0, 0) do not count as valid."""
        real = [(degrees_to_semicircles(a), degrees_to_semicircles(b)) for a, b in _degree_walk(4)]
        analysis = classify(_pairs(real + [(10, 10)] * 4))
        assert analysis.is_fixed_point_unit
        assert analysis.valid_ratio == pytest.approx(0.5)
        assert np.isfinite(analysis.avg_adjacent_distance_m)
