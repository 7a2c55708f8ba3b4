from __future__ import annotations
"""
Brute-force rotation search.

Rotates the second image's points about a pivot for every candidate angle in
a bounded range and keeps the angle with the smallest summed distance to the
first image's points. The translation pass has already removed most of the
offset, so only a small residual rotation is searched for.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
import math

import numpy as np

from common.types import Correspondence, Point


@dataclass(slots=True)
class RotationEstimate:
    angle: float
    ok: bool
    count: int
    total_distance: float = float("inf")
    mean_distance: float = float("inf")


def candidate_angles(angle_min: float, angle_max: float, step_deg: float) -> np.ndarray:
    """
    angle_min, angle_min + step, ... up to and including angle_max (within 1e-9).
    """
    if step_deg <= 0:
        raise ValueError("step_deg must be > 0")
    if angle_min > angle_max:
        raise ValueError("angle_min must be <= angle_max")
    n = int(math.floor((angle_max - angle_min) / step_deg + 1e-9))
    return angle_min + step_deg * np.arange(n + 1, dtype=np.float64)


def total_distances(
    pts1: np.ndarray,
    pts2: np.ndarray,
    center: Point,
    angles_deg: np.ndarray,
) -> np.ndarray:
    """
    For each angle, sum of |pts1[i] - rotate(pts2[i], angle, center)|.
    Sums run sequentially in input order.
    """
    rad = np.radians(np.asarray(angles_deg, dtype=np.float64))[:, None]
    c, s = np.cos(rad), np.sin(rad)
    rel_x = pts2[:, 0] - center[0]
    rel_y = pts2[:, 1] - center[1]
    fx = rel_x * c - rel_y * s + center[0]
    fy = rel_x * s + rel_y * c + center[1]
    d = np.sqrt((pts1[:, 0] - fx) ** 2 + (pts1[:, 1] - fy) ** 2)
    return np.cumsum(d, axis=1)[:, -1]


def solve_rotation(
    points1: Sequence[Point],
    points2: Sequence[Point],
    step_deg: float,
    *,
    center: Optional[Point] = None,
    angle_range: Tuple[float, float] = (-30.0, 30.0),
    current_rotation: float = 0.0,
    min_points: int = 3,
) -> RotationEstimate:
    """
    Find the angle that best rotates points2 onto points1 about `center`.

    Args:
        points1: reference positions (image i).
        points2: positions in the image being aligned (image i+1).
        step_deg: scan step in degrees; no default on purpose.
        center: pivot in image i+1's pixel space; the origin when None.
        angle_range: inclusive (min, max) in degrees.
        current_rotation: returned unchanged when there is not enough data.
        min_points: minimum number of pairs required.

    Returns:
        RotationEstimate; ok=False means insufficient data.
    """
    if len(points1) != len(points2):
        raise ValueError("points1 and points2 must have the same length")
    count = len(points1)
    if count < max(1, min_points):
        return RotationEstimate(angle=float(current_rotation), ok=False, count=count)

    pivot = (0.0, 0.0) if center is None else (float(center[0]), float(center[1]))
    p1 = np.asarray(points1, dtype=np.float64).reshape(-1, 2)
    p2 = np.asarray(points2, dtype=np.float64).reshape(-1, 2)
    angles = candidate_angles(angle_range[0], angle_range[1], step_deg)
    totals = total_distances(p1, p2, pivot, angles)

    # argmin returns the first minimum, i.e. the lowest angle on ties
    best = int(np.argmin(totals))
    total = float(totals[best])
    return RotationEstimate(
        angle=float(angles[best]),
        ok=True,
        count=count,
        total_distance=total,
        mean_distance=total / count,
    )


def solve_rotation_from_matches(
    matches: Sequence[Correspondence],
    step_deg: float,
    **kwargs,
) -> RotationEstimate:
    """solve_rotation() over Correspondence objects (pt1 -> points1, pt2 -> points2)."""
    return solve_rotation(
        [m.pt1 for m in matches],
        [m.pt2 for m in matches],
        step_deg,
        **kwargs,
    )
