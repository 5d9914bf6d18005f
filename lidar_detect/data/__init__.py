"""Data module: frame schema and point cloud loaders."""

from lidar_detect.data.schema import (
    NOISE,
    UNASSIGNED,
    ClusterDescriptor,
    Point3D,
    PointSet,
)
from lidar_detect.data.loaders import (
    KittiVelodyneSequence,
    load_point_file,
    load_velodyne_bin,
)

__all__ = [
    "NOISE",
    "UNASSIGNED",
    "ClusterDescriptor",
    "Point3D",
    "PointSet",
    "KittiVelodyneSequence",
    "load_point_file",
    "load_velodyne_bin",
]
