from __future__ import annotations

from typing import List
import math
import numpy as np

from common.types import Point, SelectedRegion


# -------------------------
# Rotation helpers
# -------------------------
def rotate_vector(v: Point, angle_deg: float) -> Point:
    """Rotate a 2D vector by angle_deg (image axes: y down, positive = clockwise on screen)."""
    rad = math.radians(angle_deg)
    c, s = math.cos(rad), math.sin(rad)
    return (v[0] * c - v[1] * s, v[0] * s + v[1] * c)


def rotate_about(p: Point, center: Point, angle_deg: float) -> Point:
    """Rotate point p around center by angle_deg."""
    rx, ry = rotate_vector((p[0] - center[0], p[1] - center[1]), angle_deg)
    return (rx + center[0], ry + center[1])


def rotate_points_about(
    pts: np.ndarray,
    center: Point,
    angle_deg: float,
) -> np.ndarray:
    """
    Vectorised rotate_about for an (N,2) array. Returns a new float64 array.
    """
    a = np.asarray(pts, dtype=float).reshape(-1, 2)
    rad = math.radians(angle_deg)
    c, s = math.cos(rad), math.sin(rad)
    rel = a - np.asarray(center, dtype=float)
    out = np.empty_like(rel)
    out[:, 0] = rel[:, 0] * c - rel[:, 1] * s
    out[:, 1] = rel[:, 0] * s + rel[:, 1] * c
    return out + np.asarray(center, dtype=float)


# -------------------------
# Regions
# -------------------------
def region_center(region: SelectedRegion) -> Point:
    return (region.x + region.width / 2.0, region.y + region.height / 2.0)


def region_corners(region: SelectedRegion) -> List[Point]:
    """Corners in order: top-left, top-right, bottom-right, bottom-left."""
    x0, y0 = region.x, region.y
    x1, y1 = region.x + region.width, region.y + region.height
    return [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]


def image_center(width: float, height: float) -> Point:
    return (width / 2.0, height / 2.0)


# -------------------------
# Display <-> image pixel space
# -------------------------
def fit_scale(
    image_width: float,
    image_height: float,
    canvas_width: float = 800.0,
    canvas_height: float = 600.0,
) -> float:
    """
    Largest display scale (never above 1.0) at which the whole image fits the canvas.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError("image size must be > 0")
    return float(min(canvas_width / image_width, canvas_height / image_height, 1.0))


def region_to_image(region: SelectedRegion, display_scale: float) -> SelectedRegion:
    """
    Convert a rectangle drawn on a scaled preview back into image pixel space.
    """
    if display_scale <= 0:
        raise ValueError("display_scale must be > 0")
    k = 1.0 / display_scale
    return SelectedRegion(region.x * k, region.y * k, region.width * k, region.height * k)


def region_to_display(region: SelectedRegion, display_scale: float) -> SelectedRegion:
    if display_scale <= 0:
        raise ValueError("display_scale must be > 0")
    k = display_scale
    return SelectedRegion(region.x * k, region.y * k, region.width * k, region.height * k)

