from __future__ import annotations

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def _build(cls, section: Optional[Dict[str, Any]], name: str):
    section = dict(section or {})
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown keys in '{name}' config: {', '.join(unknown)}")
    return cls(**section)


@dataclass
class FilterConfig:
    """
    Correspondence filter constants. Tuned for ORB Hamming distances; a
    different descriptor needs its own values.
    """
    distance_cap: float = 50.0
    median_ratio: float = 0.8
    outlier_sigma: float = 2.0

    def __post_init__(self):
        if self.distance_cap <= 0 or self.median_ratio <= 0 or self.outlier_sigma < 0:
            raise ValueError("distance_cap and median_ratio must be > 0, outlier_sigma must be >= 0")


@dataclass
class RotationConfig:
    angle_min: float = -30.0
    angle_max: float = 30.0
    step_deg: float = 0.5
    min_correspondences: int = 3

    def __post_init__(self):
        if self.step_deg <= 0:
            raise ValueError("step_deg must be > 0")
        if self.angle_min > self.angle_max:
            raise ValueError("angle_min must be <= angle_max")
        if self.min_correspondences < 1:
            raise ValueError("min_correspondences must be >= 1")


@dataclass
class OrbConfig:
    nfeatures: int = 1000
    scale_factor: float = 1.2
    nlevels: int = 8
    edge_threshold: int = 31
    first_level: int = 0
    wta_k: int = 2
    patch_size: int = 31
    fast_threshold: int = 20
    cross_check: bool = True


@dataclass
class AlignmentConfig:
    filter: FilterConfig = field(default_factory=FilterConfig)
    rotation: RotationConfig = field(default_factory=RotationConfig)
    orb: OrbConfig = field(default_factory=OrbConfig)

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "AlignmentConfig":
        d = d or {}
        return cls(
            filter=_build(FilterConfig, d.get("filter"), "filter"),
            rotation=_build(RotationConfig, d.get("rotation"), "rotation"),
            orb=_build(OrbConfig, d.get("orb"), "orb"),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "AlignmentConfig":
        return cls.from_dict(load_yaml(path))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with p.open("r") as f:
        data = yaml.safe_load(f)
    return data or {}
