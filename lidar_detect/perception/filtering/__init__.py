"""Point admission and downsampling stages."""

from lidar_detect.perception.filtering.admission import (
    AdmissionFilter,
    admission_mask,
    admit_points,
)
from lidar_detect.perception.filtering.voxel_grid import (
    VoxelDownsampler,
    voxel_downsample,
    voxel_keys,
)

__all__ = [
    "AdmissionFilter",
    "admission_mask",
    "admit_points",
    "VoxelDownsampler",
    "voxel_downsample",
    "voxel_keys",
]
