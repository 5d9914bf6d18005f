"""Voxel-grid downsampling.

Space is cut into cubic cells of edge ``voxel_size``; every occupied cell is
replaced by the centroid of the points it holds.  Output rows follow the
order in which cells are first seen in the input, so the result is
deterministic for a given frame.
"""

from __future__ import annotations

import numpy as np

from lidar_detect.data.schema import PointSet


def voxel_keys(points_xyz: np.ndarray, voxel_size: float) -> np.ndarray:
    """Integer cell coordinates ``floor(p / voxel_size)``, shape (N, 3)."""
    return np.floor(points_xyz / voxel_size).astype(np.int64)


def voxel_downsample(points: PointSet, voxel_size: float) -> PointSet:
    """Replace each occupied voxel by the centroid of its members.

    Args:
        points: Input frame.
        voxel_size: Cell edge length, must be > 0.

    Returns:
        PointSet with one point per distinct occupied cell.
    """
    if voxel_size <= 0:
        raise ValueError(f"voxel_size must be > 0, got {voxel_size}")
    if points.is_empty():
        return PointSet.empty()

    pts = points.points
    keys = voxel_keys(pts, voxel_size)

    # Cells come back lexicographically sorted; remap them to first-seen order.
    _, first_idx, inverse = np.unique(
        keys, axis=0, return_index=True, return_inverse=True
    )
    inverse = inverse.reshape(-1)
    order = np.argsort(first_idx, kind="stable")
    rank = np.empty_like(order)
    rank[order] = np.arange(order.shape[0])
    cell = rank[inverse]

    n_cells = order.shape[0]
    sums = np.zeros((n_cells, 3), dtype=np.float64)
    np.add.at(sums, cell, pts)
    counts = np.bincount(cell, minlength=n_cells).astype(np.float64)

    return PointSet(sums / counts[:, None])


class VoxelDownsampler:
    """Voxel downsampler bound to a fixed cell size."""

    def __init__(self, voxel_size: float):
        if voxel_size <= 0:
            raise ValueError(f"voxel_size must be > 0, got {voxel_size}")
        self.voxel_size = float(voxel_size)

    def __call__(self, points: PointSet) -> PointSet:
        return voxel_downsample(points, self.voxel_size)
