"""Shared fixtures and synthetic data factories for detector tests."""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
import pytest

from lidar_detect.engine.config.detector_config import DetectorConfig
from lidar_detect.engine.pipeline.detection_pipeline import DetectionPipeline


# ---------------------------------------------------------------------------
# Synthetic data factories
# ---------------------------------------------------------------------------

def make_grid(
    nx: int = 2,
    ny: int = 2,
    spacing: float = 1.0,
    origin: Tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> np.ndarray:
    """Flat nx*ny grid in the z = origin[2] plane, row-major."""
    xs = origin[0] + np.arange(nx, dtype=float) * spacing
    ys = origin[1] + np.arange(ny, dtype=float) * spacing
    xx, yy = np.meshgrid(xs, ys)
    zz = np.full_like(xx, origin[2])
    return np.column_stack([xx.ravel(), yy.ravel(), zz.ravel()])


def make_box(
    center: Sequence[float],
    half_size: float = 0.4,
    n_per_axis: int = 5,
) -> np.ndarray:
    """Regular lattice filling a cube around *center*.

    Default: 5x5x5 = 125 points with 0.2 m spacing, spanning center +- 0.4.
    """
    offsets = np.linspace(-half_size, half_size, n_per_axis)
    ox, oy, oz = np.meshgrid(offsets, offsets, offsets, indexing="ij")
    lattice = np.column_stack([ox.ravel(), oy.ravel(), oz.ravel()])
    return lattice + np.asarray(center, dtype=float)


def make_line(xs: Sequence[float]) -> np.ndarray:
    """Points on the x axis."""
    xs = np.asarray(xs, dtype=float)
    return np.column_stack([xs, np.zeros_like(xs), np.zeros_like(xs)])


CAR_A = (8.0, 2.0, -0.5)
CAR_B = (12.0, -3.0, -0.5)
SCENE_NOISE = np.array(
    [
        [5.0, -4.0, 0.5],
        [15.0, 5.0, 0.5],
        [18.0, 0.0, 1.0],
        [6.0, 4.0, 1.5],
    ],
    dtype=float,
)


def make_scene() -> np.ndarray:
    """A KITTI-like frame with two objects the default gate admits.

    Layout (in input order):
    - car A and car B: 125-point boxes inside the forward sector
    - 4 isolated returns inside the sector (noise)
    - ground grid at z = -1.7 (below the height cut)
    - a box behind the sensor, one beyond max range, one inside min range
    """
    ground = make_grid(nx=16, ny=7, spacing=1.0, origin=(4.0, -3.0, -1.7))
    behind = make_box((-8.0, 0.0, -0.5))
    too_far = make_box((25.0, 0.0, -0.5))
    too_close = make_box((1.5, 0.0, -0.5))
    return np.vstack(
        [make_box(CAR_A), make_box(CAR_B), SCENE_NOISE, ground, behind, too_far, too_close]
    )


# ---------------------------------------------------------------------------
# Config shortcut
# ---------------------------------------------------------------------------

def scene_config() -> DetectorConfig:
    """Default gate, clustering tuned for the 0.2 m lattice boxes."""
    cfg = DetectorConfig()
    cfg.clustering.eps = 0.5
    cfg.clustering.min_points = 5
    return cfg


def relaxed_config() -> DetectorConfig:
    """No admission gate, so synthetic data near the origin survives."""
    cfg = DetectorConfig()
    cfg.admission.enabled = False
    cfg.clustering.eps = 1.5
    cfg.clustering.min_points = 3
    return cfg


# ---------------------------------------------------------------------------
# Pipeline shortcut fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def pipeline():
    """A pipeline with the scene config."""
    return DetectionPipeline(config=scene_config())
