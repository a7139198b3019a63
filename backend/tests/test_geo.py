"""
Tests for great-circle distance utilities.
"""

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from trackheat.utils.geo import (
    EARTH_RADIUS_KM,
    adjacent_distances_m,
    haversine_km,
    haversine_km_array,
    path_length_km,
)


BEIJING = (39.9042, 116.4074)
SHANGHAI = (31.2304, 121.4737)


class TestHaversine:
    """Tests for haversine_km."""

    def test_beijing_shanghai(self):
        """Beijing to Shanghai is roughly 1068 km."""
        d = haversine_km(*BEIJING, *SHANGHAI)
        assert d == pytest.approx(1068, rel=0.05)

    @pytest.mark.parametrize("lat,lon", [(0.0, 0.0), (39.9, 116.4), (-33.9, 151.2), (89.9, -179.9)])
    def test_same_point_is_zero(self, lat, lon):
        """Distance from a point to itself is zero."""
        assert haversine_km(lat, lon, lat, lon) == pytest.approx(0.0, abs=1e-9)

    def test_symmetric(self):
        """Distance does not depend on direction."""
        assert haversine_km(*BEIJING, *SHANGHAI) == pytest.approx(haversine_km(*SHANGHAI, *BEIJING))

    def test_one_degree_latitude(self):
        """One degree of latitude is about 111 km."""
        assert haversine_km(10.0, 20.0, 11.0, 20.0) == pytest.approx(111.19, rel=0.01)

    @pytest.mark.parametrize("lat1,lon1,lat2,lon2", [
        (0.0, 0.0, 0.0, 180.0),
        (45.0, 30.0, -45.0, -150.0),
        (39.9042, 116.4074, -39.9042, -63.5926),
    ])
    def test_antipodal_is_half_circumference(self, lat1, lon1, lat2, lon2):
        """Antipodal points stay finite at half the circumference."""
        d = haversine_km(lat1, lon1, lat2, lon2)
        assert math.isfinite(d)
        assert d == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-6)

    def test_array_matches_scalar(self):
        """Vectorised version agrees with the scalar one."""
        lat2 = np.array([31.2304, 22.5431, 39.9042])
        lon2 = np.array([121.4737, 114.0579, 116.4074])
        expected = [haversine_km(*BEIJING, a, b) for a, b in zip(lat2, lon2)]
        assert_allclose(haversine_km_array(BEIJING[0], BEIJING[1], lat2, lon2), expected, atol=1e-9)


class TestPathLength:
    """Tests for adjacent distances and path length."""

    def test_adjacent_distances_length(self):
        """N points give N-1 spacings, in meters."""
        lat = [10.0, 10.001, 10.002]
        lon = [20.0, 20.0, 20.0]
        distances = adjacent_distances_m(lat, lon)
        assert len(distances) == 2
        assert_allclose(distances, [111.19, 111.19], rtol=0.01)

    def test_path_length_is_sum(self):
        """Path length is the sum of the segment lengths."""
        lat = [39.9042, 31.2304, 22.5431]
        lon = [116.4074, 121.4737, 114.0579]
        expected = haversine_km(lat[0], lon[0], lat[1], lon[1]) + haversine_km(lat[1], lon[1], lat[2], lon[2])
        assert path_length_km(lat, lon) == pytest.approx(expected)

    @pytest.mark.parametrize("lat,lon", [([], []), ([39.9], [116.4])])
    def test_short_input(self, lat, lon):
        """Fewer than two points have no length."""
        assert path_length_km(lat, lon) == 0.0
        assert adjacent_distances_m(lat, lon).size == 0
