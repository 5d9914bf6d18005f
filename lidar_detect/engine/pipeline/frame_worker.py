"""Background worker that always processes the newest frame.

A LiDAR driver produces frames faster than a slow clustering pass may
finish.  ``LatestFrameWorker`` keeps at most one frame waiting: submitting a
new frame replaces the waiting one and cancels the frame in flight.  Every
submitted frame still gets exactly one :class:`FrameResult`; replaced and
cancelled frames are reported with ``cancelled=True``.

Usage:
    with LatestFrameWorker(DetectionPipeline(cfg), on_result=publish) as worker:
        for scan in driver:
            worker.submit(scan)

``on_result`` runs on the worker thread.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Tuple

from lidar_detect.data.schema import PointSet
from lidar_detect.engine.pipeline.detection_pipeline import (
    DetectionPipeline,
    FrameResult,
    PointsLike,
)

logger = logging.getLogger(__name__)


class LatestFrameWorker:
    """Runs a :class:`DetectionPipeline` on a daemon thread, newest frame wins."""

    def __init__(
        self,
        pipeline: DetectionPipeline,
        on_result: Callable[[FrameResult], None],
    ):
        self._pipeline = pipeline
        self._on_result = on_result
        self._cond = threading.Condition()
        self._pending: Optional[Tuple[int, PointSet]] = None
        self._skipped: List[int] = []
        self._in_flight: Optional[threading.Event] = None
        self._stopping = False
        self._error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None
        self._next_frame_idx = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> "LatestFrameWorker":
        if self._thread is not None:
            raise RuntimeError("LatestFrameWorker already started")
        self._thread = threading.Thread(
            target=self._run, name="lidar-detect-worker", daemon=True
        )
        self._thread.start()
        return self

    def stop(self) -> None:
        """Finish the waiting frame, join the thread, re-raise a worker error."""
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._error is not None:
            error, self._error = self._error, None
            raise error

    def __enter__(self) -> "LatestFrameWorker":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def submit(self, points: PointsLike, frame_idx: Optional[int] = None) -> int:
        """Queue a frame, superseding any older one.  Returns its frame index."""
        if not isinstance(points, PointSet):
            points = PointSet(points)
        with self._cond:
            if self._stopping:
                raise RuntimeError("LatestFrameWorker is stopping; frame rejected")
            if self._error is not None:
                raise RuntimeError("LatestFrameWorker failed") from self._error
            if frame_idx is None:
                frame_idx = self._next_frame_idx
            self._next_frame_idx = frame_idx + 1

            if self._pending is not None:
                self._skipped.append(self._pending[0])
            if self._in_flight is not None:
                self._in_flight.set()
            self._pending = (frame_idx, points)
            self._cond.notify()
        return frame_idx

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _run(self) -> None:
        try:
            while True:
                with self._cond:
                    while self._pending is None and not self._skipped and not self._stopping:
                        self._cond.wait()
                    skipped, self._skipped = self._skipped, []
                    job, self._pending = self._pending, None
                    if job is None and not skipped:
                        return  # stopping and drained
                    cancel = threading.Event() if job is not None else None
                    self._in_flight = cancel

                for idx in skipped:
                    logger.info("Frame %d superseded before processing", idx)
                    self._on_result(FrameResult.cancelled_frame(idx))

                if job is None:
                    continue
                frame_idx, points = job
                try:
                    result = self._pipeline.process_frame(
                        points, frame_idx=frame_idx, cancel_event=cancel
                    )
                finally:
                    with self._cond:
                        self._in_flight = None
                self._on_result(result)
        except Exception as exc:
            logger.error("LatestFrameWorker stopped on error: %s", exc)
            self._error = exc
