"""Detection pipeline module."""

from lidar_detect.engine.pipeline.detection_pipeline import (
    DetectionPipeline,
    FrameCancelled,
    FrameResult,
    serialize_frame_result,
)
from lidar_detect.engine.pipeline.frame_worker import LatestFrameWorker

__all__ = [
    "DetectionPipeline",
    "FrameCancelled",
    "FrameResult",
    "serialize_frame_result",
    "LatestFrameWorker",
]
