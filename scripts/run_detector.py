#!/usr/bin/env python3
"""Run the LiDAR cluster detector on recorded frames.

Usage:
    # Single frames
    python scripts/run_detector.py 000000.bin 000001.bin

    # A whole KITTI sequence, custom config, JSON lines to a file
    python scripts/run_detector.py --sequence data/2011_09_26_drive_0005_sync \
        --config configs/default.yaml --output detections.jsonl

    # Override clustering parameters on the command line
    python scripts/run_detector.py 000000.bin --eps 0.4 --min-points 8 --voxel-size 0.2
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterator, Optional, Tuple

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from lidar_detect.data.loaders.kitti import KittiVelodyneSequence, load_point_file
from lidar_detect.data.schema import PointSet
from lidar_detect.engine.config.detector_config import (
    ConfigurationError,
    DetectorConfig,
    load_detector_config,
)
from lidar_detect.engine.pipeline.detection_pipeline import (
    DetectionPipeline,
    serialize_frame_result,
)

logger = logging.getLogger("run_detector")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cluster LiDAR frames into object boxes")
    parser.add_argument("files", nargs="*", type=Path, help="Point files (.bin/.npy/.txt/.csv)")
    parser.add_argument("--sequence", type=Path, default=None, help="KITTI sequence directory")
    parser.add_argument("--config", type=Path, default=None, help="YAML detector config")
    parser.add_argument("--eps", type=float, default=None, help="DBSCAN radius (m)")
    parser.add_argument("--min-points", type=int, default=None, help="DBSCAN core threshold")
    parser.add_argument(
        "--voxel-size", type=float, default=None,
        help="Enable voxel downsampling with this cell size (m)",
    )
    parser.add_argument("--no-filter", action="store_true", help="Disable the admission filter")
    parser.add_argument("--workers", type=int, default=None, help="Neighborhood scan threads")
    parser.add_argument("--output", type=Path, default=None, help="Write JSON lines here")
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING, ERROR")
    return parser


def resolve_config(args: argparse.Namespace) -> DetectorConfig:
    config = load_detector_config(args.config) if args.config else DetectorConfig()
    if args.eps is not None:
        config.clustering.eps = args.eps
    if args.min_points is not None:
        config.clustering.min_points = args.min_points
    if args.workers is not None:
        config.clustering.workers = args.workers
    if args.voxel_size is not None:
        config.voxel.enabled = True
        config.voxel.voxel_size = args.voxel_size
    if args.no_filter:
        config.admission.enabled = False
    return config.validate()


def iter_clouds(args: argparse.Namespace) -> Iterator[PointSet]:
    if args.sequence is not None:
        for _, points in KittiVelodyneSequence(args.sequence):
            yield points
    for path in args.files:
        yield load_point_file(path)


def iter_frames(args: argparse.Namespace) -> Iterator[Tuple[int, PointSet]]:
    """Sequence sweeps first, then point files, numbered by one counter."""
    return enumerate(iter_clouds(args))


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.sequence is None and not args.files:
        logger.error("Nothing to do: pass point files or --sequence")
        return 2

    try:
        config = resolve_config(args)
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    pipeline = DetectionPipeline(config)
    out = open(args.output, "w", encoding="utf-8") if args.output else None
    try:
        for frame_idx, points in iter_frames(args):
            result = pipeline.process_frame(points, frame_idx=frame_idx)
            logger.info(
                "Frame %d: %d points -> %d admitted -> %d clusters",
                frame_idx, result.num_input, result.num_admitted, result.num_clusters,
            )
            line = serialize_frame_result(result, indent=None)
            if out is not None:
                out.write(line + "\n")
            else:
                print(line)
    finally:
        if out is not None:
            out.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
