"""Detector configuration system.

Configuration can be loaded from YAML files or created programmatically.

Usage:
    from lidar_detect.engine.config import load_detector_config

    config = load_detector_config("configs/default.yaml")
    print(config.clustering.eps)
"""

from lidar_detect.engine.config.detector_config import (
    AdmissionConfig,
    ClusteringConfig,
    ConfigurationError,
    DetectorConfig,
    VoxelConfig,
    load_detector_config,
    save_detector_config,
)

__all__ = [
    "AdmissionConfig",
    "ClusteringConfig",
    "ConfigurationError",
    "DetectorConfig",
    "VoxelConfig",
    "load_detector_config",
    "save_detector_config",
]
