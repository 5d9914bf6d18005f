"""Unified data schema for the LiDAR detection pipeline.

Every stage (admission filter, voxel grid, DBSCAN, summarizer) consumes and
produces :class:`PointSet`.  Loaders and callers convert their own formats
into it.

Coordinate conventions
----------------------
- ``PointSet.points`` : (N, 3) float64 in the sensor frame, x forward,
  y left, z up (KITTI Velodyne convention).
- A point's row index is its identity for the lifetime of one frame.
- Cluster labels: ``UNASSIGNED`` (-2), ``NOISE`` (-1), cluster ids 0, 1, ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, NamedTuple, Tuple, Union

import numpy as np

UNASSIGNED: int = -2
NOISE: int = -1

Vector3 = Tuple[float, float, float]


class Point3D(NamedTuple):
    x: float
    y: float
    z: float


class PointSet:
    """Immutable, ordered set of 3-D points for one frame.

    The backing array is copied on construction and flagged read-only, so a
    stage can only derive a new PointSet, never edit one in place.
    """

    __slots__ = ("_points",)

    def __init__(self, points: Union[np.ndarray, Iterable[Iterable[float]]]):
        arr = np.array(points, dtype=np.float64)
        if arr.ndim == 1 and arr.size == 0:
            arr = np.empty((0, 3), dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] < 3:
            raise ValueError(
                f"points must have shape (N, 3) or (N, >3), got {arr.shape}"
            )
        arr = np.ascontiguousarray(arr[:, :3])
        arr.flags.writeable = False
        self._points = arr

    # -- constructors ---------------------------------------------------------

    @classmethod
    def empty(cls) -> "PointSet":
        return cls(np.empty((0, 3), dtype=np.float64))

    @classmethod
    def from_iterable(cls, points: Iterable[Iterable[float]]) -> "PointSet":
        """Build from any iterable of (x, y, z[, ...]) rows."""
        return cls([tuple(p) for p in points])

    # -- accessors ------------------------------------------------------------

    @property
    def points(self) -> np.ndarray:
        """Read-only (N, 3) float64 view."""
        return self._points

    def __len__(self) -> int:
        return self._points.shape[0]

    def __getitem__(self, index: int) -> Point3D:
        row = self._points[index]
        return Point3D(float(row[0]), float(row[1]), float(row[2]))

    def __iter__(self) -> Iterator[Point3D]:
        for i in range(len(self)):
            yield self[i]

    def __repr__(self) -> str:
        return f"PointSet(num_points={len(self)})"

    def is_empty(self) -> bool:
        return len(self) == 0

    def subset(self, selector: np.ndarray) -> "PointSet":
        """Return a new PointSet from a boolean mask or an index array.

        Selection preserves input order.
        """
        selector = np.asarray(selector)
        if selector.dtype == bool and selector.shape != (len(self),):
            raise ValueError(
                f"mask length {selector.shape} does not match {len(self)} points"
            )
        return PointSet(self._points[selector])

    def spatial_index(self, eps: float, brute_force_max_points: int = 64):
        """Build a radius-query index over these points (see ``spatial_index``)."""
        from lidar_detect.perception.clustering.spatial_index import SpatialIndex

        return SpatialIndex(self, eps, brute_force_max_points=brute_force_max_points)


@dataclass(frozen=True)
class ClusterDescriptor:
    """Geometric summary of one cluster: count, centroid and axis-aligned box."""

    cluster_id: int
    num_points: int
    centroid: Vector3
    min_bound: Vector3
    max_bound: Vector3

    @property
    def extent(self) -> Vector3:
        """Box size along x, y, z."""
        return (
            self.max_bound[0] - self.min_bound[0],
            self.max_bound[1] - self.min_bound[1],
            self.max_bound[2] - self.min_bound[2],
        )

    @property
    def center(self) -> Vector3:
        """Box center (differs from the centroid for skewed clusters)."""
        return (
            0.5 * (self.max_bound[0] + self.min_bound[0]),
            0.5 * (self.max_bound[1] + self.min_bound[1]),
            0.5 * (self.max_bound[2] + self.min_bound[2]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cluster_id": self.cluster_id,
            "num_points": self.num_points,
            "centroid": list(self.centroid),
            "min_bound": list(self.min_bound),
            "max_bound": list(self.max_bound),
            "extent": list(self.extent),
        }
