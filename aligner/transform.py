from __future__ import annotations
"""
Transform algebra.

A Transform places an image on the canvas: the image is drawn centred on its
own pixel midpoint, scaled, rotated, then translated. Everything here works in
image pixel units; display scaling is the caller's business.
"""

from typing import Sequence
import math

import numpy as np

from common.geometry import rotate_vector
from common.types import Point, Transform


IDENTITY = Transform(scale=1.0, rotation=0.0, translate_x=0.0, translate_y=0.0)


# -----------------------------
# Composition
# -----------------------------

def compose(a: Transform, b: Transform) -> Transform:
    """
    Apply b after a, where b is expressed in a's already-placed frame.

    rotation and scale add/multiply; b's translation is rotated into a's frame.
    """
    rx, ry = rotate_vector(b.translate, a.rotation)
    return Transform(
        scale=a.scale * b.scale,
        rotation=a.rotation + b.rotation,
        translate_x=a.translate_x + rx,
        translate_y=a.translate_y + ry,
    )


def compose_all(*transforms: Transform) -> Transform:
    """Left fold of compose() starting from IDENTITY."""
    out = IDENTITY
    for t in transforms:
        out = compose(out, t)
    return out


def invert_rotation(t: Transform, v: Point) -> Point:
    """Rotate a canvas-space vector back into the image's axes."""
    return rotate_vector(v, -t.rotation)


# -----------------------------
# Output contract (image pixel <-> canvas)
# -----------------------------

def image_to_canvas(
    p: Point,
    t: Transform,
    width: float,
    height: float,
    origin: Point = (0.0, 0.0),
) -> Point:
    """
    Where image pixel p lands on the canvas once t is applied.
    """
    rel = ((p[0] - width / 2.0) * t.scale, (p[1] - height / 2.0) * t.scale)
    rx, ry = rotate_vector(rel, t.rotation)
    return (origin[0] + t.translate_x + rx, origin[1] + t.translate_y + ry)


def canvas_to_image(
    q: Point,
    t: Transform,
    width: float,
    height: float,
    origin: Point = (0.0, 0.0),
) -> Point:
    """Exact inverse of image_to_canvas()."""
    v = (q[0] - origin[0] - t.translate_x, q[1] - origin[1] - t.translate_y)
    ux, uy = invert_rotation(t, v)
    return (ux / t.scale + width / 2.0, uy / t.scale + height / 2.0)


def to_affine_matrix(
    t: Transform,
    width: float,
    height: float,
    origin: Point = (0.0, 0.0),
) -> np.ndarray:
    """
    2x3 float64 matrix M with canvas = M @ [x, y, 1]; usable with cv2.warpAffine.
    """
    rad = math.radians(t.rotation)
    c = t.scale * math.cos(rad)
    s = t.scale * math.sin(rad)
    cx, cy = width / 2.0, height / 2.0
    tx = origin[0] + t.translate_x - (c * cx - s * cy)
    ty = origin[1] + t.translate_y - (s * cx + c * cy)
    return np.array([[c, -s, tx], [s, c, ty]], dtype=np.float64)


# -----------------------------
# General affine fit
# -----------------------------

def fit_affine(src: Sequence[Point], dst: Sequence[Point]) -> np.ndarray:
    """
    Least-squares 2x3 affine mapping src -> dst.

    Raises:
        ValueError: fewer than 3 pairs, mismatched lengths, or collinear points.
    """
    a = np.asarray(src, dtype=float).reshape(-1, 2)
    b = np.asarray(dst, dtype=float).reshape(-1, 2)
    if len(a) != len(b):
        raise ValueError("src and dst must have the same length")
    if len(a) < 3:
        raise ValueError("at least 3 point pairs are required")
    A = np.hstack([a, np.ones((len(a), 1))])
    if np.linalg.matrix_rank(A) < 3:
        raise ValueError("degenerate point configuration (collinear points)")
    X, *_ = np.linalg.lstsq(A, b, rcond=None)
    return X.T.copy()


def apply_affine(p: Point, m: np.ndarray) -> Point:
    x = m[0, 0] * p[0] + m[0, 1] * p[1] + m[0, 2]
    y = m[1, 0] * p[0] + m[1, 1] * p[1] + m[1, 2]
    return (float(x), float(y))

