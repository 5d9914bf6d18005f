"""Tests for the KITTI Velodyne and point-file loaders."""

from __future__ import annotations

import numpy as np
import pytest

from lidar_detect.data.loaders.kitti import (
    KittiVelodyneSequence,
    load_point_file,
    load_velodyne_bin,
)
from lidar_detect.data.schema import PointSet


def _sweep(n=6, offset=0.0):
    rng = np.random.default_rng(int(offset))
    xyz = rng.uniform(-10.0, 10.0, size=(n, 3)) + offset
    refl = rng.uniform(0.0, 1.0, size=(n, 1))
    return np.hstack([xyz, refl]).astype("<f4")


def _write_bin(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    data.astype("<f4").tofile(str(path))
    return path


class TestVelodyneBin:

    def test_roundtrip(self, tmp_path):
        data = _sweep()
        loaded = load_velodyne_bin(_write_bin(tmp_path / "000000.bin", data))
        assert loaded.shape == (6, 4)
        assert loaded.dtype == np.float32
        np.testing.assert_array_equal(loaded, data)

    def test_truncated_file(self, tmp_path):
        path = tmp_path / "bad.bin"
        path.write_bytes(b"\x00" * 10)
        with pytest.raises(ValueError, match="multiple"):
            load_velodyne_bin(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_velodyne_bin(tmp_path / "nope.bin")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.bin"
        path.write_bytes(b"")
        assert load_velodyne_bin(path).shape == (0, 4)


class TestLoadPointFile:

    def test_bin_drops_reflectance(self, tmp_path):
        data = _sweep()
        ps = load_point_file(_write_bin(tmp_path / "f.bin", data))
        assert isinstance(ps, PointSet)
        np.testing.assert_allclose(ps.points, data[:, :3].astype(np.float64))

    def test_npy(self, tmp_path):
        data = np.arange(12, dtype=float).reshape(4, 3)
        path = tmp_path / "f.npy"
        np.save(str(path), data)
        np.testing.assert_array_equal(load_point_file(path).points, data)

    def test_txt(self, tmp_path):
        path = tmp_path / "f.txt"
        path.write_text("1 2 3\n4 5 6\n")
        assert load_point_file(path).points.tolist() == [[1, 2, 3], [4, 5, 6]]

    def test_csv_with_extra_column(self, tmp_path):
        path = tmp_path / "f.csv"
        path.write_text("1,2,3,0.5\n")
        assert load_point_file(path).points.tolist() == [[1, 2, 3]]

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "f.pcd"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported"):
            load_point_file(path)

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_point_file(tmp_path / "missing.npy")


class TestKittiVelodyneSequence:

    def _make_sequence(self, root):
        for i in (2, 0, 1):
            _write_bin(root / "velodyne" / f"{i:06d}.bin", _sweep(n=3 + i, offset=float(i)))
        return root

    def test_sorted_iteration(self, tmp_path):
        seq = KittiVelodyneSequence(self._make_sequence(tmp_path / "drive"))
        assert len(seq) == 3
        assert [p.name for p in seq.files] == ["000000.bin", "000001.bin", "000002.bin"]
        assert [(idx, len(ps)) for idx, ps in seq] == [(0, 3), (1, 4), (2, 5)]

    def test_accepts_velodyne_dir(self, tmp_path):
        root = self._make_sequence(tmp_path / "drive")
        assert len(KittiVelodyneSequence(root / "velodyne")) == 3

    def test_getitem(self, tmp_path):
        seq = KittiVelodyneSequence(self._make_sequence(tmp_path / "drive"))
        assert len(seq[2]) == 5

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            KittiVelodyneSequence(tmp_path / "nothing")
