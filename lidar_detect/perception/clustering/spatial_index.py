"""Fixed-radius neighbor index for one frame.

Backed by :class:`scipy.spatial.cKDTree`.  Frames with at most
``brute_force_max_points`` points skip the tree and use a pairwise
distance scan, which is cheaper to build than a tree at that size.
Both paths return the same answer: the tree only proposes candidates, and
membership is decided by the exact test ``|p - q|^2 <= eps^2``.

Neighbor lists always include the query point and are sorted by index.
"""

from __future__ import annotations

import logging
from typing import List

import numpy as np
from scipy.spatial import cKDTree

from lidar_detect.data.schema import PointSet

logger = logging.getLogger(__name__)

BRUTE_FORCE_MAX_POINTS: int = 64

# Candidate radius slack so that rounding inside the tree never drops a
# point that passes the exact squared-distance test.
_RADIUS_SLACK: float = 1e-9


class SpatialIndex:
    """Read-only radius-query index over a :class:`PointSet`."""

    def __init__(
        self,
        points: PointSet,
        eps: float,
        brute_force_max_points: int = BRUTE_FORCE_MAX_POINTS,
        workers: int = 1,
    ):
        if not eps > 0:
            raise ValueError(f"eps must be > 0, got {eps}")
        self._pts = points.points
        self.eps = float(eps)
        self.eps_sq = self.eps * self.eps
        self.workers = workers
        self._tree = None
        if len(points) > brute_force_max_points:
            self._tree = cKDTree(self._pts)
        logger.debug(
            "SpatialIndex over %d points (eps=%.3f, %s)",
            len(points), self.eps, "kd-tree" if self._tree is not None else "pairwise",
        )

    @property
    def uses_tree(self) -> bool:
        return self._tree is not None

    def __len__(self) -> int:
        return self._pts.shape[0]

    def _exact(self, center: np.ndarray, candidates: np.ndarray) -> np.ndarray:
        diff = self._pts[candidates] - center
        d2 = np.einsum("ij,ij->i", diff, diff)
        return candidates[d2 <= self.eps_sq]

    def query_point(self, xyz: np.ndarray) -> np.ndarray:
        """Indices of all points within eps of an arbitrary location."""
        center = np.asarray(xyz, dtype=np.float64).reshape(3)
        if len(self) == 0:
            return np.empty(0, dtype=np.intp)
        if self._tree is None:
            candidates = np.arange(len(self), dtype=np.intp)
        else:
            found = self._tree.query_ball_point(
                center, self.eps * (1.0 + _RADIUS_SLACK), return_sorted=True
            )
            candidates = np.asarray(found, dtype=np.intp)
        return self._exact(center, candidates)

    def query(self, index: int) -> np.ndarray:
        """Indices of all points within eps of point ``index`` (itself included)."""
        return self.query_point(self._pts[index])

    def neighborhoods(self) -> List[np.ndarray]:
        """Neighbor lists for every point, in point order.

        The tree path issues all queries in one call so scipy can spread
        them across ``workers`` threads.
        """
        n = len(self)
        if n == 0:
            return []
        if self._tree is None:
            everything = np.arange(n, dtype=np.intp)
            return [self._exact(self._pts[i], everything) for i in range(n)]

        found = self._tree.query_ball_point(
            self._pts,
            self.eps * (1.0 + _RADIUS_SLACK),
            workers=self.workers,
            return_sorted=True,
        )
        return [
            self._exact(self._pts[i], np.asarray(found[i], dtype=np.intp))
            for i in range(n)
        ]
