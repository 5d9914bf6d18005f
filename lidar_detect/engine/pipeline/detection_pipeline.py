"""LiDAR object detection pipeline.

One frame in, one list of cluster descriptors out:

- Stage 1: admission filter (sector / range / height gate)
- Stage 2: voxel-grid downsampling (optional)
- Stage 3: DBSCAN clustering
- Stage 4: per-cluster centroid + axis-aligned box

The pipeline holds no per-frame state between calls.  Its configuration is
copied and validated at construction, so callers may edit their own config
object for later pipelines without affecting this one.

Cancellation is cooperative: the caller's ``threading.Event`` is checked
between stages and a cancelled frame returns ``FrameResult(cancelled=True)``
with no descriptors, never a partial list.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import numpy as np

from lidar_detect.data.schema import ClusterDescriptor, PointSet
from lidar_detect.engine.config.detector_config import DetectorConfig
from lidar_detect.perception.clustering.dbscan import DensityClusterer
from lidar_detect.perception.clustering.summarize import ClusterSummarizer
from lidar_detect.perception.filtering.admission import AdmissionFilter
from lidar_detect.perception.filtering.voxel_grid import VoxelDownsampler

logger = logging.getLogger(__name__)

PointsLike = Union[PointSet, np.ndarray, Iterable[Iterable[float]]]


class FrameCancelled(Exception):
    """Raised between stages when the frame's cancel event is set."""

    def __init__(self, frame_idx: int, stage: str):
        super().__init__(f"frame {frame_idx} cancelled before {stage}")
        self.frame_idx = frame_idx
        self.stage = stage


@dataclass
class FrameResult:
    """Outcome of one frame.

    ``descriptors`` is None exactly when ``cancelled`` is True, so callers
    can tell "nothing detected" (empty list) from "frame skipped".

    Attributes:
        frame_idx: Caller-supplied or sequential frame index.
        descriptors: One descriptor per cluster, by ascending cluster id.
        cancelled: True when the frame was abandoned.
        num_input: Points handed in.
        num_admitted: Points surviving the admission filter.
        num_clustered_input: Points fed to DBSCAN (after downsampling).
        num_noise: Points DBSCAN labelled as noise.
        admitted_points: The PointSet fed to DBSCAN.
        labels: (num_clustered_input,) DBSCAN labels for ``admitted_points``.
    """
    frame_idx: int
    descriptors: Optional[List[ClusterDescriptor]]
    cancelled: bool = False
    num_input: int = 0
    num_admitted: int = 0
    num_clustered_input: int = 0
    num_noise: int = 0
    admitted_points: Optional[PointSet] = None
    labels: Optional[np.ndarray] = None

    @classmethod
    def cancelled_frame(cls, frame_idx: int, num_input: int = 0) -> "FrameResult":
        return cls(frame_idx=frame_idx, descriptors=None, cancelled=True, num_input=num_input)

    @property
    def num_clusters(self) -> int:
        return len(self.descriptors) if self.descriptors is not None else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_idx": self.frame_idx,
            "cancelled": self.cancelled,
            "num_input": self.num_input,
            "num_admitted": self.num_admitted,
            "num_clustered_input": self.num_clustered_input,
            "num_noise": self.num_noise,
            "clusters": (
                None if self.descriptors is None
                else [d.to_dict() for d in self.descriptors]
            ),
        }


def serialize_frame_result(result: FrameResult, indent: Optional[int] = 2) -> str:
    """Serialize a frame result to JSON."""
    return json.dumps(result.to_dict(), indent=indent, sort_keys=False)


class DetectionPipeline:
    """Filter -> downsample -> cluster -> summarize, one frame at a time."""

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = copy.deepcopy(config or DetectorConfig()).validate()
        cfg = self.config

        self._admission = AdmissionFilter(cfg.admission) if cfg.admission.enabled else None
        self._downsampler = VoxelDownsampler(cfg.voxel.voxel_size) if cfg.voxel.enabled else None
        self._clusterer = DensityClusterer(cfg.clustering)
        self._summarizer = ClusterSummarizer()
        self._next_frame_idx = 0

        logger.info(
            "DetectionPipeline ready: admission=%s voxel=%s eps=%.3f min_points=%d",
            "on" if self._admission else "off",
            f"{cfg.voxel.voxel_size:.3f}" if self._downsampler else "off",
            cfg.clustering.eps,
            cfg.clustering.min_points,
        )

    def _log(self, msg: str, *args: Any) -> None:
        if self.config.verbose:
            logger.info(msg, *args)
        else:
            logger.debug(msg, *args)

    @staticmethod
    def _check_cancel(cancel_event: Optional[threading.Event], frame_idx: int, stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise FrameCancelled(frame_idx, stage)

    def process_frames(self, frames: Iterable[PointsLike]) -> Iterator[FrameResult]:
        """Process a sequence of frames in order."""
        for points in frames:
            yield self.process_frame(points)

    def process_frame(
        self,
        points: PointsLike,
        frame_idx: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> FrameResult:
        """Run all stages on one frame.

        Args:
            points: PointSet or anything convertible to an (N, 3) array.
            frame_idx: Index reported in the result; sequential when None.
            cancel_event: Checked between stages; when set, the frame is
                abandoned and reported as cancelled.

        Returns:
            :class:`FrameResult`.
        """
        if frame_idx is None:
            frame_idx = self._next_frame_idx
        self._next_frame_idx = frame_idx + 1

        if not isinstance(points, PointSet):
            points = PointSet(points)
        num_input = len(points)

        try:
            return self._run_stages(points, frame_idx, cancel_event)
        except FrameCancelled as exc:
            logger.info("Frame %d cancelled before %s", frame_idx, exc.stage)
            return FrameResult.cancelled_frame(frame_idx, num_input=num_input)

    def _run_stages(
        self,
        points: PointSet,
        frame_idx: int,
        cancel_event: Optional[threading.Event],
    ) -> FrameResult:
        num_input = len(points)

        self._check_cancel(cancel_event, frame_idx, "admission")
        admitted = self._admission(points) if self._admission else points
        num_admitted = len(admitted)

        self._check_cancel(cancel_event, frame_idx, "downsampling")
        if self._downsampler is not None:
            admitted = self._downsampler(admitted)

        self._check_cancel(cancel_event, frame_idx, "clustering")
        clustering = self._clusterer(admitted)

        self._check_cancel(cancel_event, frame_idx, "summarizing")
        descriptors = self._summarizer(admitted, clustering.labels, clustering.clusters)

        self._log(
            "Frame %d: %d in, %d admitted, %d clustered, %d clusters, %d noise",
            frame_idx, num_input, num_admitted, len(admitted),
            len(descriptors), clustering.num_noise,
        )
        return FrameResult(
            frame_idx=frame_idx,
            descriptors=descriptors,
            num_input=num_input,
            num_admitted=num_admitted,
            num_clustered_input=len(admitted),
            num_noise=clustering.num_noise,
            admitted_points=admitted,
            labels=clustering.labels,
        )
