"""Perception stages: admission filtering, voxel downsampling, clustering."""

from lidar_detect.perception.filtering import (
    AdmissionFilter,
    VoxelDownsampler,
    admit_points,
    voxel_downsample,
)
from lidar_detect.perception.clustering import (
    ClusterSummarizer,
    DBSCANResult,
    DensityClusterer,
    SpatialIndex,
    dbscan,
    summarize_clusters,
)

__all__ = [
    # Filtering
    "AdmissionFilter",
    "VoxelDownsampler",
    "admit_points",
    "voxel_downsample",
    # Clustering
    "ClusterSummarizer",
    "DBSCANResult",
    "DensityClusterer",
    "SpatialIndex",
    "dbscan",
    "summarize_clusters",
]
