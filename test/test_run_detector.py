"""Tests for the run_detector command line entry point."""

from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import numpy as np
import pytest
import yaml

from conftest import make_scene

_SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "run_detector.py"


@pytest.fixture(scope="module")
def run_detector():
    spec = importlib.util.spec_from_file_location("run_detector", _SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def scene_file(tmp_path):
    path = tmp_path / "scene.npy"
    np.save(str(path), make_scene())
    return path


class TestRunDetector:

    def test_writes_json_lines(self, run_detector, scene_file, tmp_path):
        out = tmp_path / "detections.jsonl"
        code = run_detector.main(
            [str(scene_file), str(scene_file), "--eps", "0.5", "--min-points", "5",
             "--output", str(out)]
        )
        assert code == 0
        lines = out.read_text().splitlines()
        assert len(lines) == 2
        records = [json.loads(line) for line in lines]
        assert [r["frame_idx"] for r in records] == [0, 1]
        assert all(len(r["clusters"]) == 2 for r in records)

    def test_prints_to_stdout(self, run_detector, scene_file, capsys):
        assert run_detector.main([str(scene_file), "--eps", "0.5", "--min-points", "5"]) == 0
        record = json.loads(capsys.readouterr().out.strip())
        assert record["num_admitted"] == 254

    def test_config_file(self, run_detector, scene_file, tmp_path, capsys):
        cfg = tmp_path / "cfg.yaml"
        cfg.write_text(yaml.dump({"clustering": {"eps": 0.5, "min_points": 5}}))
        assert run_detector.main([str(scene_file), "--config", str(cfg)]) == 0
        record = json.loads(capsys.readouterr().out.strip())
        assert len(record["clusters"]) == 2

    def test_no_filter_flag(self, run_detector, scene_file, capsys):
        assert run_detector.main([str(scene_file), "--no-filter"]) == 0
        record = json.loads(capsys.readouterr().out.strip())
        assert record["num_admitted"] == record["num_input"]

    def test_sequence_and_files_share_frame_counter(self, run_detector, scene_file, tmp_path):
        velodyne = tmp_path / "drive" / "velodyne"
        velodyne.mkdir(parents=True)
        sweep = np.hstack([make_scene(), np.zeros((len(make_scene()), 1))]).astype("<f4")
        for name in ("000000.bin", "000001.bin"):
            sweep.tofile(str(velodyne / name))
        out = tmp_path / "detections.jsonl"
        code = run_detector.main(
            [str(scene_file), "--sequence", str(tmp_path / "drive"), "--output", str(out)]
        )
        assert code == 0
        records = [json.loads(line) for line in out.read_text().splitlines()]
        assert [r["frame_idx"] for r in records] == [0, 1, 2]

    def test_unquoted_exponent_in_config(self, run_detector, scene_file, tmp_path):
        cfg = tmp_path / "cfg.yaml"
        cfg.write_text("clustering:\n  eps: 5e-1\n")
        assert run_detector.main([str(scene_file), "--config", str(cfg)]) == 2

    def test_no_inputs(self, run_detector):
        assert run_detector.main([]) == 2

    def test_invalid_override(self, run_detector, scene_file):
        assert run_detector.main([str(scene_file), "--eps", "0"]) == 2

    def test_resolve_config_voxel(self, run_detector):
        args = run_detector.build_parser().parse_args(["x.bin", "--voxel-size", "0.3"])
        cfg = run_detector.resolve_config(args)
        assert cfg.voxel.enabled is True
        assert cfg.voxel.voxel_size == 0.3
