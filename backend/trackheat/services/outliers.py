"""
Outlier rejection for converted track points.

Points live in fixed-order lat/lon arrays; both passes only clear entries of
a boolean validity mask. Compaction happens once, in the assembler.
"""

import logging
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from trackheat.config import DEFAULT_POLICY, OutlierPolicy
from trackheat.utils.geo import haversine_km, haversine_km_array


logger = logging.getLogger(__name__)


class OutlierFilter:
    """
    Two-phase rejection of misdecoded coordinates.

    The global pass removes points far from the track centroid; the edge pass
    looks for continent-scale jumps among the first and last few points only.
    """

    def __init__(
        self,
        lat: NDArray[np.float64],
        lon: NDArray[np.float64],
        policy: Optional[OutlierPolicy] = None,
    ):
        self.lat = np.asarray(lat, dtype=np.float64)
        self.lon = np.asarray(lon, dtype=np.float64)
        if self.lat.shape != self.lon.shape:
            raise ValueError("lat and lon must have the same shape")
        self.policy = policy or DEFAULT_POLICY.outliers

    def run(self, mask: Optional[NDArray[np.bool_]] = None) -> NDArray[np.bool_]:
        """Apply the global pass, then the edge pass. Returns a new mask."""
        if mask is None:
            mask = np.ones(self.lat.shape, dtype=np.bool_)
        mask = self.filter_global(mask)
        return self.filter_edges(mask)

    def filter_global(self, mask: NDArray[np.bool_]) -> NDArray[np.bool_]:
        """
        Iterative centroid-distance rejection.

        threshold = max(std * multiplier, min_km), floored at floor_km.
        Stops early once an iteration removes nothing.
        """
        p = self.policy
        mask = np.array(mask, dtype=np.bool_, copy=True)
        removed_total = 0

        for iteration in range(p.max_iterations):
            idx = np.flatnonzero(mask)
            if idx.size == 0:
                break

            center_lat = float(np.mean(self.lat[idx]))
            center_lon = float(np.mean(self.lon[idx]))
            distances = haversine_km_array(center_lat, center_lon, self.lat[idx], self.lon[idx])

            std = float(np.std(distances))
            if iteration == 0:
                multiplier, min_km = p.first_multiplier, p.first_min_km
            else:
                multiplier, min_km = p.subsequent_multiplier, p.subsequent_min_km
            threshold = max(max(std * multiplier, min_km), p.floor_km)

            outliers = idx[distances > threshold]
            if outliers.size == 0:
                break

            for i, dist in zip(outliers, distances[distances > threshold]):
                logger.warning(
                    f"Dropping global outlier [{i}]: {dist:.0f} km from centroid "
                    f"({self.lat[i]:.6f}, {self.lon[i]:.6f})"
                )
            mask[outliers] = False
            removed_total += int(outliers.size)

        if removed_total:
            logger.info(f"Global outlier pass removed {removed_total} points")
        return mask

    def filter_edges(self, mask: NDArray[np.bool_]) -> NDArray[np.bool_]:
        """
        Continent-scale jump rejection among the first and last points.

        For a jump between i and i+1, the point further from its next-but-one
        neighbour is the inconsistent one. Interior points are never touched.
        """
        p = self.policy
        mask = np.array(mask, dtype=np.bool_, copy=True)
        n = self.lat.size
        if n < 2:
            return mask

        check = max(p.edge_min_points, int(n * p.edge_ratio))
        limit = p.extreme_adjacent_km
        removed = 0

        # Leading edge
        for i in range(min(check, n - 1)):
            if not (mask[i] and mask[i + 1]):
                continue
            dist = self._distance(i, i + 1)
            if dist <= limit:
                continue
            if i + 2 < n and mask[i + 2]:
                skip = self._distance(i, i + 2)
                via = self._distance(i + 1, i + 2)
                if skip > limit and skip > via:
                    removed += self._drop(mask, i, dist)
                elif via > limit and via > skip:
                    removed += self._drop(mask, i + 1, dist)
            elif dist > limit * 2:
                removed += self._drop(mask, i + 1, dist)

        # Trailing edge
        for i in range(n - 1, max(n - 1 - check, 0), -1):
            if not (mask[i] and mask[i - 1]):
                continue
            dist = self._distance(i - 1, i)
            if dist <= limit:
                continue
            if i - 2 >= 0 and mask[i - 2]:
                skip = self._distance(i, i - 2)
                via = self._distance(i - 1, i - 2)
                if skip > limit and skip > via:
                    removed += self._drop(mask, i, dist)
                elif via > limit and via > skip:
                    removed += self._drop(mask, i - 1, dist)
            elif dist > limit * 2:
                removed += self._drop(mask, i, dist)

        if removed:
            logger.info(f"Edge outlier pass removed {removed} points")
        return mask

    def _distance(self, i: int, j: int) -> float:
        return haversine_km(self.lat[i], self.lon[i], self.lat[j], self.lon[j])

    def _drop(self, mask: NDArray[np.bool_], i: int, jump_km: float) -> int:
        mask[i] = False
        logger.warning(
            f"Dropping edge outlier [{i}]: adjacent jump {jump_km:.0f} km "
            f"({self.lat[i]:.6f}, {self.lon[i]:.6f})"
        )
        return 1
