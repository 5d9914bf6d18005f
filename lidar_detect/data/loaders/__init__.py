"""Data loaders for LiDAR frames."""

from lidar_detect.data.loaders.kitti import (
    KittiVelodyneSequence,
    VELODYNE_FIELDS,
    load_point_file,
    load_velodyne_bin,
)

__all__ = [
    "KittiVelodyneSequence",
    "VELODYNE_FIELDS",
    "load_point_file",
    "load_velodyne_bin",
]
