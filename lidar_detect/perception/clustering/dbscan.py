"""DBSCAN clustering for LiDAR frames.

Labels every point of a :class:`PointSet` as ``NOISE`` or a cluster id,
following the classic density-based scheme:

1. Visit points in input order; skip points that already carry a label.
2. A point whose eps-neighborhood (itself included) holds fewer than
   ``min_points`` points is marked ``NOISE`` for now.
3. Otherwise it is a core point and opens a new cluster.  The cluster grows
   breadth-first over neighbor lists: ``NOISE`` neighbors become border
   points (never expanded), unlabeled neighbors join and are expanded when
   dense, and points already owned by another cluster are left alone.

Clusters never merge; a border point reachable from two cores belongs to
whichever cluster reached it first.  With a fixed input order and sorted
neighbor lists the outcome is fully deterministic.

The neighborhood scan is read-only and may run on several threads; labels
are only written in the sequential expansion.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import List

import numpy as np

from lidar_detect.data.schema import NOISE, UNASSIGNED, PointSet
from lidar_detect.engine.config.detector_config import ClusteringConfig
from lidar_detect.perception.clustering.spatial_index import (
    BRUTE_FORCE_MAX_POINTS,
    SpatialIndex,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBSCANResult:
    """Labels for one frame.

    Attributes:
        labels: (N,) int64, ``NOISE`` (-1) or a cluster id in
            ``[0, num_clusters)``; ids follow discovery order.
        core_mask: (N,) bool, True for core points.
        neighbor_counts: (N,) eps-neighborhood sizes, query point included.
        clusters: Per-cluster ascending index arrays, indexed by cluster id.
    """
    labels: np.ndarray
    core_mask: np.ndarray
    neighbor_counts: np.ndarray
    clusters: List[np.ndarray]

    @property
    def num_clusters(self) -> int:
        return len(self.clusters)

    @property
    def noise_indices(self) -> np.ndarray:
        return np.flatnonzero(self.labels == NOISE)

    @property
    def num_noise(self) -> int:
        return int(np.count_nonzero(self.labels == NOISE))


def _empty_result() -> DBSCANResult:
    return DBSCANResult(
        labels=np.empty(0, dtype=np.int64),
        core_mask=np.empty(0, dtype=bool),
        neighbor_counts=np.empty(0, dtype=np.intp),
        clusters=[],
    )


def expand_clusters(neighborhoods: List[List[int]], min_points: int) -> np.ndarray:
    """Assign labels from precomputed neighbor lists.

    Args:
        neighborhoods: For each point, the sorted indices within eps
            (the point itself included).
        min_points: Minimum neighborhood size of a core point.

    Returns:
        (N,) int64 labels, no entry left ``UNASSIGNED``.
    """
    n = len(neighborhoods)
    dense = [len(nb) >= min_points for nb in neighborhoods]
    labels = [UNASSIGNED] * n
    next_id = 0

    for i in range(n):
        if labels[i] != UNASSIGNED:
            continue
        if not dense[i]:
            labels[i] = NOISE
            continue

        cluster_id = next_id
        next_id += 1
        labels[i] = cluster_id

        frontier = deque(neighborhoods[i])
        while frontier:
            q = frontier.popleft()
            current = labels[q]
            if current == NOISE:
                # Border point: joins, but does not grow the cluster.
                labels[q] = cluster_id
            elif current == UNASSIGNED:
                labels[q] = cluster_id
                if dense[q]:
                    frontier.extend(neighborhoods[q])

    return np.asarray(labels, dtype=np.int64)


def dbscan(
    points: PointSet,
    eps: float,
    min_points: int,
    workers: int = 1,
    brute_force_max_points: int = BRUTE_FORCE_MAX_POINTS,
) -> DBSCANResult:
    """Cluster a frame with DBSCAN.

    Args:
        points: Input frame.
        eps: Neighborhood radius (> 0); a neighbor satisfies
            ``|p - q|^2 <= eps^2``.
        min_points: Core-point threshold (>= 1), query point included.
        workers: Threads for the neighborhood scan (-1 = all cores).
        brute_force_max_points: Frames up to this size use pairwise distances.

    Returns:
        :class:`DBSCANResult`.
    """
    if not eps > 0:
        raise ValueError(f"eps must be > 0, got {eps}")
    if min_points < 1:
        raise ValueError(f"min_points must be >= 1, got {min_points}")
    if points.is_empty():
        return _empty_result()

    index = SpatialIndex(
        points, eps, brute_force_max_points=brute_force_max_points, workers=workers
    )
    neighborhoods = [nb.tolist() for nb in index.neighborhoods()]
    neighbor_counts = np.fromiter(
        (len(nb) for nb in neighborhoods), dtype=np.intp, count=len(neighborhoods)
    )

    labels = expand_clusters(neighborhoods, min_points)
    num_clusters = int(labels.max()) + 1 if labels.size else 0

    # Group members per id in one pass; stable sort keeps indices ascending.
    order = np.argsort(labels, kind="stable")
    sorted_labels = labels[order]
    bounds = np.searchsorted(sorted_labels, np.arange(num_clusters + 1))
    clusters = [order[bounds[c]:bounds[c + 1]] for c in range(num_clusters)]

    result = DBSCANResult(
        labels=labels,
        core_mask=neighbor_counts >= min_points,
        neighbor_counts=neighbor_counts,
        clusters=clusters,
    )
    logger.debug(
        "DBSCAN eps=%.3f min_points=%d: %d points -> %d clusters, %d noise",
        eps, min_points, len(points), result.num_clusters, result.num_noise,
    )
    return result


class DensityClusterer:
    """DBSCAN bound to one :class:`ClusteringConfig`."""

    def __init__(self, config: ClusteringConfig):
        self.config = config

    def __call__(self, points: PointSet) -> DBSCANResult:
        c = self.config
        return dbscan(
            points,
            eps=c.eps,
            min_points=int(c.min_points),
            workers=c.workers,
            brute_force_max_points=c.brute_force_max_points,
        )
