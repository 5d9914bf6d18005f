"""Clustering module for LiDAR point clouds.

DBSCAN over a fixed-radius spatial index, plus per-cluster summaries.
"""

from lidar_detect.perception.clustering.spatial_index import (
    BRUTE_FORCE_MAX_POINTS,
    SpatialIndex,
)
from lidar_detect.perception.clustering.dbscan import (
    DBSCANResult,
    DensityClusterer,
    dbscan,
    expand_clusters,
)
from lidar_detect.perception.clustering.summarize import (
    ClusterSummarizer,
    describe_cluster,
    group_members,
    summarize_clusters,
)

__all__ = [
    "BRUTE_FORCE_MAX_POINTS",
    "SpatialIndex",
    "DBSCANResult",
    "DensityClusterer",
    "dbscan",
    "expand_clusters",
    "ClusterSummarizer",
    "describe_cluster",
    "group_members",
    "summarize_clusters",
]
