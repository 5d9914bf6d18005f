"""Detector configuration dataclasses.

Defaults reproduce the constants of the KITTI Velodyne node this pipeline
serves (45 degree half-angle, 3-20 m range, ground cut at -1.3 m, 0.2 m
voxels).  Configuration is validated once, when a pipeline is built; an
invalid configuration refuses to start instead of failing per frame.
"""

from __future__ import annotations

import math
import numbers
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Union

import yaml


class ConfigurationError(ValueError):
    """Raised when detector settings cannot produce a meaningful result."""


# =============================================================================
# Stage Configs
# =============================================================================

@dataclass
class AdmissionConfig:
    """Field-of-view / range / height gate (all bounds are strict)."""
    enabled: bool = True
    opening_angle: float = math.pi / 4  # radians, half-angle around +x
    min_range: float = 3.0   # meters, planar sqrt(x^2 + y^2)
    max_range: float = 20.0  # meters
    min_height: float = -1.3  # meters, drops ground returns


@dataclass
class VoxelConfig:
    """Voxel-grid downsampling (off by default, as on the vehicle)."""
    enabled: bool = False
    voxel_size: float = 0.2  # meters, cubic cell edge


@dataclass
class ClusteringConfig:
    """DBSCAN parameters.

    min_points counts the query point itself.
    """
    eps: float = 0.5
    min_points: int = 10
    workers: int = 1  # threads for the neighborhood scan; -1 = all cores
    brute_force_max_points: int = 64  # below this, pairwise distances beat a tree


# =============================================================================
# Main Config
# =============================================================================

# Expected value kind per field, checked before any comparison.
_FIELD_KINDS = {
    "admission": {
        "enabled": "bool",
        "opening_angle": "real",
        "min_range": "real",
        "max_range": "real",
        "min_height": "real",
    },
    "voxel": {"enabled": "bool", "voxel_size": "real"},
    "clustering": {
        "eps": "real",
        "min_points": "int",
        "workers": "int",
        "brute_force_max_points": "int",
    },
}


_KIND_NAMES = {"bool": "a boolean", "real": "a number", "int": "an integer"}


def _check_kind(name: str, value: Any, kind: str) -> None:
    if kind == "bool":
        ok = isinstance(value, bool)
    elif isinstance(value, bool) or not isinstance(value, numbers.Real):
        ok = False
    elif kind == "int":
        ok = isinstance(value, numbers.Integral) or float(value).is_integer()
    else:
        ok = True
    if not ok:
        raise ConfigurationError(f"{name} must be {_KIND_NAMES[kind]}, got {value!r}")


# flat option names -> (section, field)
_FLAT_KEYS = {
    "opening_angle": ("admission", "opening_angle"),
    "min_range": ("admission", "min_range"),
    "max_range": ("admission", "max_range"),
    "min_height": ("admission", "min_height"),
    "enable_admission_filter": ("admission", "enabled"),
    "enable_voxel_downsample": ("voxel", "enabled"),
    "voxel_size": ("voxel", "voxel_size"),
    "cluster_radius": ("clustering", "eps"),
    "cluster_min_points": ("clustering", "min_points"),
    "cluster_workers": ("clustering", "workers"),
}


@dataclass
class DetectorConfig:
    """Complete detector configuration."""
    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    voxel: VoxelConfig = field(default_factory=VoxelConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)

    verbose: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    def to_flat_dict(self) -> Dict[str, Any]:
        """Flat option bundle (``opening_angle``, ``cluster_radius``, ...)."""
        nested = self.to_dict()
        return {key: nested[sec][name] for key, (sec, name) in _FLAT_KEYS.items()}

    @classmethod
    def from_flat_dict(cls, options: Dict[str, Any]) -> "DetectorConfig":
        """Build from the flat option bundle; unknown keys are rejected."""
        unknown = sorted(set(options) - set(_FLAT_KEYS))
        if unknown:
            raise ConfigurationError(f"Unknown detector options: {', '.join(unknown)}")
        cfg = cls()
        for key, value in options.items():
            section, name = _FLAT_KEYS[key]
            setattr(getattr(cfg, section), name, value)
        return cfg

    def _check_types(self) -> None:
        for section in ("admission", "voxel", "clustering"):
            sub = getattr(self, section)
            for name, kind in _FIELD_KINDS[section].items():
                _check_kind(f"{section}.{name}", getattr(sub, name), kind)
        _check_kind("verbose", self.verbose, "bool")

    def validate(self) -> "DetectorConfig":
        """Check every threshold; return self so calls can be chained."""
        self._check_types()
        a, v, c = self.admission, self.voxel, self.clustering
        if not a.opening_angle > 0:
            raise ConfigurationError(f"opening_angle must be > 0, got {a.opening_angle}")
        if not a.max_range > a.min_range:
            raise ConfigurationError(
                f"max_range ({a.max_range}) must exceed min_range ({a.min_range})"
            )
        if not v.voxel_size > 0:
            raise ConfigurationError(f"voxel_size must be > 0, got {v.voxel_size}")
        if not c.eps > 0:
            raise ConfigurationError(f"cluster eps must be > 0, got {c.eps}")
        if c.min_points < 1:
            raise ConfigurationError(f"min_points must be >= 1, got {c.min_points}")
        if c.workers == 0 or c.workers < -1:
            raise ConfigurationError(f"workers must be >= 1 or -1, got {c.workers}")
        if c.brute_force_max_points < 0:
            raise ConfigurationError(
                f"brute_force_max_points must be >= 0, got {c.brute_force_max_points}"
            )
        return self


# =============================================================================
# YAML Loading / Saving
# =============================================================================

def _build_from_dict(cls, raw: Dict[str, Any]):
    """Recursively construct dataclass from a dict."""
    if not isinstance(raw, dict):
        return cls()
    kwargs = {}
    for name, field_info in cls.__dataclass_fields__.items():
        if name not in raw:
            continue
        val = raw[name]
        ft = field_info.type
        # Resolve string annotations
        if isinstance(ft, str):
            module = sys.modules.get(cls.__module__)
            ft = getattr(module, ft, ft) if module else ft
        if hasattr(ft, "__dataclass_fields__") and isinstance(val, dict):
            kwargs[name] = _build_from_dict(ft, val)
        else:
            kwargs[name] = val
    return cls(**kwargs)


def load_detector_config(path: Union[str, Path]) -> DetectorConfig:
    """Load and validate a DetectorConfig from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return _build_from_dict(DetectorConfig, data).validate()


def save_detector_config(config: DetectorConfig, path: Union[str, Path]) -> None:
    """Save DetectorConfig to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
