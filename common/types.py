from __future__ import annotations

from dataclasses import dataclass, field, asdict, replace
from typing import Optional, Tuple, Any, Dict
import math
import numpy as np


Point = Tuple[float, float]


def _as_float_pair(x) -> Point:
    return (float(x[0]), float(x[1]))


@dataclass(slots=True)
class Transform:
    """
    Placement of one image on the shared canvas.

    Applied as translate -> rotate -> scale to an image drawn centred on its
    own pixel midpoint.

    Attributes:
        scale: uniform scale (> 0). Solvers always leave it at 1.0.
        rotation: degrees, positive = clockwise on screen (y axis points down).
        translate_x, translate_y: canvas offset in pixels.
    """
    scale: float = 1.0
    rotation: float = 0.0
    translate_x: float = 0.0
    translate_y: float = 0.0

    def __post_init__(self) -> None:
        self.scale = float(self.scale)
        self.rotation = float(self.rotation)
        self.translate_x = float(self.translate_x)
        self.translate_y = float(self.translate_y)
        if not math.isfinite(self.scale) or self.scale <= 0:
            raise ValueError("scale must be a finite value > 0")

    @property
    def translate(self) -> Point:
        return (self.translate_x, self.translate_y)

    def with_rotation(self, rotation: float) -> "Transform":
        return replace(self, rotation=float(rotation))

    def to_dict(self) -> Dict[str, float]:
        return {
            "scale": self.scale,
            "rotation": self.rotation,
            "translateX": self.translate_x,
            "translateY": self.translate_y,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Transform":
        return cls(
            scale=d.get("scale", 1.0),
            rotation=d.get("rotation", 0.0),
            translate_x=d.get("translateX", d.get("translate_x", 0.0)),
            translate_y=d.get("translateY", d.get("translate_y", 0.0)),
        )


@dataclass(slots=True)
class SelectedRegion:
    """
    Axis-aligned rectangle in the image's own (unrotated, unscaled) pixel space.
    """
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        self.x = float(self.x)
        self.y = float(self.y)
        self.width = float(self.width)
        self.height = float(self.height)
        if self.width < 0 or self.height < 0:
            raise ValueError("region width/height must be >= 0")

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def to_list(self) -> list:
        return [self.x, self.y, self.width, self.height]

    @classmethod
    def from_seq(cls, seq) -> "SelectedRegion":
        if len(seq) != 4:
            raise ValueError("region must be [x, y, width, height]")
        return cls(*seq)


@dataclass(slots=True)
class ImageRecord:
    """
    One photograph in the sequence.

    Attributes:
        id: caller-chosen identity.
        width, height: intrinsic pixel dimensions.
        region: alignment anchor, or None when the user has not picked one.
        transform: current placement; the only field the aligner replaces.
        source: optional file path used to rasterize the image on demand.
        pixels: optional decoded image (H,W) or (H,W,3) uint8.
    """
    id: str
    width: int
    height: int
    region: Optional[SelectedRegion] = None
    transform: Transform = field(default_factory=Transform)
    source: Optional[str] = None
    pixels: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("width/height must be > 0")
        if self.pixels is not None:
            if not isinstance(self.pixels, np.ndarray):
                raise TypeError("pixels must be a numpy ndarray")
            if self.pixels.shape[0] != self.height or self.pixels.shape[1] != self.width:
                raise ValueError("width/height do not match pixels shape")

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def copy(self) -> "ImageRecord":
        # pixels are shared read-only
        return replace(
            self,
            transform=replace(self.transform),
            region=None if self.region is None else replace(self.region),
        )

    def to_meta(self) -> Dict[str, Any]:
        """Metadata without image bytes (safe to log/serialize)."""
        return {
            "id": self.id,
            "width": self.width,
            "height": self.height,
            "region": None if self.region is None else self.region.to_list(),
            "transform": self.transform.to_dict(),
        }


@dataclass(slots=True)
class KeyPoint:
    """Detected feature position in an image's own pixel space."""
    x: float
    y: float

    @property
    def pt(self) -> Point:
        return (self.x, self.y)


@dataclass(slots=True)
class Correspondence:
    """
    Matched feature pair between two images.

    Attributes:
        pt1: position in the reference (earlier) image.
        pt2: position in the image being aligned.
        distance: descriptor distance, lower = stronger match.
    """
    pt1: Point
    pt2: Point
    distance: float

    def __post_init__(self) -> None:
        self.pt1 = _as_float_pair(self.pt1)
        self.pt2 = _as_float_pair(self.pt2)
        self.distance = float(self.distance)
        if self.distance < 0 or math.isnan(self.distance):
            raise ValueError("distance must be >= 0")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
