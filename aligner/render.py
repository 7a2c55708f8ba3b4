from __future__ import annotations
"""
Reference renderer: draws each image onto a shared canvas with its Transform.

The canvas origin for transforms is the canvas centre, so an image with the
identity transform is drawn centred.
"""

from typing import Dict, Sequence, Tuple

import cv2
import numpy as np

from aligner.transform import to_affine_matrix
from common.types import ImageRecord
from common.utils import clamp


def _as_bgr(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img


def warp_onto_canvas(
    record: ImageRecord,
    pixels: np.ndarray,
    canvas_size: Tuple[int, int],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Returns (warped BGR image, coverage mask) of shape canvas (H, W).
    """
    W, H = int(canvas_size[0]), int(canvas_size[1])
    M = to_affine_matrix(record.transform, record.width, record.height, origin=(W / 2.0, H / 2.0))
    bgr = _as_bgr(pixels)
    warped = cv2.warpAffine(bgr, M, (W, H), flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT, borderValue=0)
    ones = np.full(bgr.shape[:2], 255, dtype=np.uint8)
    mask = cv2.warpAffine(ones, M, (W, H), flags=cv2.INTER_NEAREST, borderMode=cv2.BORDER_CONSTANT, borderValue=0)
    return warped, mask


def render_composite(
    records: Sequence[ImageRecord],
    pixels_by_id: Dict[str, np.ndarray],
    canvas_size: Tuple[int, int],
    alpha: float = 0.5,
) -> np.ndarray:
    """
    Blend every image onto one canvas in list order; later images are drawn
    over earlier ones with the given opacity.
    """
    W, H = int(canvas_size[0]), int(canvas_size[1])
    if W <= 0 or H <= 0:
        raise ValueError("canvas size must be > 0")
    a = clamp(alpha, 0.0, 1.0)
    canvas = np.zeros((H, W, 3), dtype=np.float32)
    covered = np.zeros((H, W), dtype=bool)
    for rec in records:
        if rec.id not in pixels_by_id:
            raise KeyError(f"No pixels for image '{rec.id}'")
        warped, mask = warp_onto_canvas(rec, pixels_by_id[rec.id], (W, H))
        m = mask > 0
        first = m & ~covered
        over = m & covered
        canvas[first] = warped[first]
        canvas[over] = (1.0 - a) * canvas[over] + a * warped[over]
        covered |= m
    return np.clip(canvas, 0, 255).astype(np.uint8)
