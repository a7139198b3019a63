"""
Tests for global and edge outlier rejection.
"""

import numpy as np
import pytest

from trackheat.config import OutlierPolicy
from trackheat.services.outliers import OutlierFilter


BEIJING = (39.9042, 116.4074)
SHANGHAI = (31.2304, 121.4737)
PARIS = (48.8566, 2.3522)


def _cluster(n=50, center=BEIJING, spread=0.01, seed=1):
    rng = np.random.default_rng(seed)
    lat = center[0] + rng.uniform(-spread, spread, n)
    lon = center[1] + rng.uniform(-spread, spread, n)
    return lat, lon


class TestGlobalPass:
    """Tests for centroid-distance rejection."""

    def test_antipodal_point_removed(self):
        """A point on the far side of the planet is dropped."""
        lat, lon = _cluster()
        lat = np.append(lat, -BEIJING[0])
        lon = np.append(lon, BEIJING[1] - 180)

        mask = OutlierFilter(lat, lon).filter_global(np.ones(lat.size, dtype=bool))

        assert not mask[-1]
        assert mask[:-1].all()

    def test_clean_track_untouched(self):
        """No point of a tight cluster is removed."""
        lat, lon = _cluster()
        mask = OutlierFilter(lat, lon).run()
        assert mask.all()

    def test_floor_keeps_moderate_detour(self):
        """Points closer than the floor distance are never global outliers."""
        lat, lon = _cluster()
        lat = np.append(lat, BEIJING[0] + 2.7)  # about 300 km north
        lon = np.append(lon, BEIJING[1])
        mask = OutlierFilter(lat, lon).filter_global(np.ones(lat.size, dtype=bool))
        assert mask.all()

    def test_policy_lowers_floor(self):
        """A lower floor turns the same detour into an outlier."""
        lat, lon = _cluster()
        lat = np.append(lat, BEIJING[0] + 2.7)
        lon = np.append(lon, BEIJING[1])
        policy = OutlierPolicy(first_min_km=100, subsequent_min_km=100, floor_km=100)
        mask = OutlierFilter(lat, lon, policy).filter_global(np.ones(lat.size, dtype=bool))
        assert not mask[-1]
        assert mask[:-1].all()

    def test_input_mask_not_modified(self):
        """Filters return a new mask."""
        lat, lon = _cluster()
        lat = np.append(lat, -BEIJING[0])
        lon = np.append(lon, BEIJING[1] - 180)
        original = np.ones(lat.size, dtype=bool)
        OutlierFilter(lat, lon).filter_global(original)
        assert original.all()

    def test_shape_mismatch(self):
        """lat and lon must align."""
        with pytest.raises(ValueError):
            OutlierFilter(np.zeros(3), np.zeros(4))


class TestEdgePass:
    """Tests for continent-scale jumps at the track ends."""

    def test_leading_jump_removed(self):
        """A misdecoded first point is dropped."""
        lat, lon = _cluster(20)
        lat[0], lon[0] = SHANGHAI
        mask = OutlierFilter(lat, lon).filter_edges(np.ones(lat.size, dtype=bool))
        assert not mask[0]
        assert mask[1:].all()

    def test_trailing_jump_removed(self):
        """A misdecoded last point is dropped."""
        lat, lon = _cluster(20)
        lat[-1], lon[-1] = SHANGHAI
        mask = OutlierFilter(lat, lon).filter_edges(np.ones(lat.size, dtype=bool))
        assert not mask[-1]
        assert mask[:-1].all()

    def test_interior_untouched(self):
        """Jumps in the middle of a long track are not edge outliers."""
        lat, lon = _cluster(200)
        lat[100], lon[100] = SHANGHAI
        mask = OutlierFilter(lat, lon).filter_edges(np.ones(lat.size, dtype=bool))
        assert mask.all()

    def test_two_point_track(self):
        """With no third point, only jumps beyond twice the limit drop the second point."""
        lat = np.array([BEIJING[0], PARIS[0]])
        lon = np.array([BEIJING[1], PARIS[1]])
        mask = OutlierFilter(lat, lon).filter_edges(np.ones(2, dtype=bool))
        assert mask.tolist() == [True, False]

    def test_masked_points_ignored(self):
        """Already rejected points do not take part in the comparison."""
        lat, lon = _cluster(20)
        lat[0], lon[0] = SHANGHAI
        mask = np.ones(lat.size, dtype=bool)
        mask[0] = False
        result = OutlierFilter(lat, lon).filter_edges(mask)
        assert result.tolist() == mask.tolist()

    def test_single_point(self):
        """One point is left alone."""
        mask = OutlierFilter(np.array([BEIJING[0]]), np.array([BEIJING[1]])).run()
        assert mask.tolist() == [True]
