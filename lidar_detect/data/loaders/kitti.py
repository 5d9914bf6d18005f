"""KITTI Velodyne point cloud loader.

KITTI raw and odometry sequences store each sweep as a flat little-endian
float32 ``.bin`` file of ``[x, y, z, reflectance]`` records.  Besides that
layout this module reads ``.npy`` arrays and plain-text ``.txt``/``.csv``
dumps, so recorded frames from other tools can be replayed through the
same pipeline.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Tuple, Union

import numpy as np

from lidar_detect.data.schema import PointSet

logger = logging.getLogger(__name__)

VELODYNE_FIELDS = 4  # x, y, z, reflectance
_RECORD_BYTES = VELODYNE_FIELDS * np.dtype(np.float32).itemsize


def load_velodyne_bin(path: Union[str, Path]) -> np.ndarray:
    """Load one KITTI Velodyne sweep.

    Args:
        path: Path to a ``.bin`` file.

    Returns:
        Array of shape (N, 4) float32 with [x, y, z, reflectance].
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Velodyne file not found: {path}")
    size = path.stat().st_size
    if size % _RECORD_BYTES != 0:
        raise ValueError(
            f"{path}: size {size} bytes is not a multiple of {_RECORD_BYTES}-byte records"
        )
    return np.fromfile(str(path), dtype="<f4").reshape(-1, VELODYNE_FIELDS)


def _load_text(path: Path) -> np.ndarray:
    delimiter = "," if path.suffix.lower() == ".csv" else None
    data = np.loadtxt(str(path), dtype=np.float64, delimiter=delimiter, ndmin=2)
    if data.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    return data


def load_point_file(path: Union[str, Path]) -> PointSet:
    """Load a point file (``.bin``, ``.npy``, ``.txt``, ``.csv``) as a PointSet.

    Columns beyond x, y, z (reflectance, ring, ...) are dropped.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Point file not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".bin":
        data = load_velodyne_bin(path)
    elif suffix == ".npy":
        data = np.load(str(path))
    elif suffix in (".txt", ".csv"):
        data = _load_text(path)
    else:
        raise ValueError(f"Unsupported point file format: {path.suffix!r}")
    return PointSet(data)


class KittiVelodyneSequence:
    """Sorted iteration over the sweeps of one sequence directory.

    Accepts either the sequence root (containing ``velodyne/``) or the
    ``velodyne`` directory itself.
    """

    def __init__(self, root: Union[str, Path]):
        root = Path(root)
        if (root / "velodyne").is_dir():
            root = root / "velodyne"
        if not root.is_dir():
            raise FileNotFoundError(f"Velodyne directory not found: {root}")
        self.root = root
        self.files: List[Path] = sorted(root.glob("*.bin"))
        logger.info("Found %d Velodyne sweeps in %s", len(self.files), root)

    def __len__(self) -> int:
        return len(self.files)

    def __getitem__(self, frame_idx: int) -> PointSet:
        return load_point_file(self.files[frame_idx])

    def __iter__(self) -> Iterator[Tuple[int, PointSet]]:
        for frame_idx, path in enumerate(self.files):
            yield frame_idx, load_point_file(path)
