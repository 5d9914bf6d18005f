"""Geometric admission filter for LiDAR returns.

A point is admitted when it lies inside the forward sector, inside the
planar range annulus and above the ground cut::

    |atan2(y, x)| < opening_angle
    min_range < sqrt(x^2 + y^2) < max_range
    z > min_height

Every bound is strict, so borderline returns are dropped.  ``atan2(0, 0)``
evaluates to 0 and a zero range fails ``min_range``; degenerate points
therefore need no special case.
"""

from __future__ import annotations

import numpy as np

from lidar_detect.data.schema import PointSet
from lidar_detect.engine.config.detector_config import AdmissionConfig


def admission_mask(
    points_xyz: np.ndarray,
    opening_angle: float,
    min_range: float,
    max_range: float,
    min_height: float,
) -> np.ndarray:
    """Boolean mask of admitted rows of an (N, 3) array."""
    if points_xyz.ndim != 2 or points_xyz.shape[1] < 3:
        raise ValueError("points_xyz must have shape (N, 3)")
    x = points_xyz[:, 0]
    y = points_xyz[:, 1]
    z = points_xyz[:, 2]

    angle = np.abs(np.arctan2(y, x))
    planar_range = np.sqrt(x * x + y * y)

    return (
        (angle < opening_angle)
        & (planar_range > min_range)
        & (planar_range < max_range)
        & (z > min_height)
    )


def admit_points(
    points: PointSet,
    opening_angle: float,
    min_range: float,
    max_range: float,
    min_height: float,
) -> PointSet:
    """Return the ordered subsequence of admitted points."""
    if points.is_empty():
        return PointSet.empty()
    mask = admission_mask(points.points, opening_angle, min_range, max_range, min_height)
    return points.subset(mask)


class AdmissionFilter:
    """Admission filter bound to one :class:`AdmissionConfig`."""

    def __init__(self, config: AdmissionConfig):
        self.config = config

    def __call__(self, points: PointSet) -> PointSet:
        c = self.config
        return admit_points(
            points,
            opening_angle=c.opening_angle,
            min_range=c.min_range,
            max_range=c.max_range,
            min_height=c.min_height,
        )
