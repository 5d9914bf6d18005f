"""Per-cluster geometric summaries (centroid + axis-aligned box)."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from lidar_detect.data.schema import ClusterDescriptor, PointSet


def _as_vector3(values: np.ndarray):
    return (float(values[0]), float(values[1]), float(values[2]))


def describe_cluster(cluster_id: int, members_xyz: np.ndarray) -> ClusterDescriptor:
    """Summarize one cluster's (K, 3) member coordinates, K >= 1."""
    if members_xyz.ndim != 2 or members_xyz.shape[1] != 3:
        raise ValueError("members_xyz must have shape (N, 3)")
    return ClusterDescriptor(
        cluster_id=int(cluster_id),
        num_points=int(members_xyz.shape[0]),
        centroid=_as_vector3(members_xyz.mean(axis=0)),
        min_bound=_as_vector3(members_xyz.min(axis=0)),
        max_bound=_as_vector3(members_xyz.max(axis=0)),
    )


def group_members(labels: np.ndarray) -> Tuple[np.ndarray, List[np.ndarray]]:
    """Split point indices by non-negative label in one sort.

    Returns:
        (ids, members): ascending cluster ids and, for each, the ascending
        indices of its points.
    """
    labelled = np.flatnonzero(labels >= 0)
    if labelled.size == 0:
        return np.empty(0, dtype=np.int64), []
    order = labelled[np.argsort(labels[labelled], kind="stable")]
    ids, starts = np.unique(labels[order], return_index=True)
    return ids, np.split(order, starts[1:])


def summarize_clusters(
    points: PointSet,
    labels: np.ndarray,
    clusters: Optional[Sequence[np.ndarray]] = None,
) -> List[ClusterDescriptor]:
    """Describe every cluster of a labeled frame.

    Noise (negative labels) is ignored.  Descriptors are ordered by ascending
    cluster id, which is the order clusters were discovered.

    Args:
        points: The labeled frame.
        labels: (N,) cluster labels.
        clusters: Member indices per cluster id, as in
            ``DBSCANResult.clusters``; grouped from ``labels`` when None.
    """
    labels = np.asarray(labels)
    if labels.shape != (len(points),):
        raise ValueError(
            f"labels shape {labels.shape} does not match {len(points)} points"
        )
    if clusters is None:
        ids, clusters = group_members(labels)
    else:
        ids = np.arange(len(clusters))
    pts = points.points
    return [describe_cluster(int(cid), pts[members]) for cid, members in zip(ids, clusters)]


class ClusterSummarizer:
    """Callable wrapper around :func:`summarize_clusters`."""

    def __call__(
        self,
        points: PointSet,
        labels: np.ndarray,
        clusters: Optional[Sequence[np.ndarray]] = None,
    ) -> List[ClusterDescriptor]:
        return summarize_clusters(points, labels, clusters)
