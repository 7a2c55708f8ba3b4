from __future__ import annotations
"""
Feature detection & matching collaborator.

- DetectorMatcher: the narrow interface the aligner depends on
- OrbMatcher: ORB keypoints + brute-force Hamming matching (cross-checked)
- DetectorError: the single failure type raised by any adapter
"""

from typing import Awaitable, List, Protocol, Tuple, Union, runtime_checkable

import cv2
import numpy as np

from aligner.config import OrbConfig
from common.types import Correspondence, KeyPoint


class DetectorError(RuntimeError):
    """Detection or matching failed for an image pair."""


@runtime_checkable
class DetectorMatcher(Protocol):
    def detect_and_match(
        self, image_a: np.ndarray, image_b: np.ndarray
    ) -> Union[List[Correspondence], Awaitable[List[Correspondence]]]:
        ...


def to_gray(img: np.ndarray) -> np.ndarray:
    if img is None or not isinstance(img, np.ndarray) or img.size == 0:
        raise DetectorError("image is empty or not a numpy array")
    if img.ndim == 2:
        gray = img
    elif img.ndim == 3 and img.shape[2] == 4:
        gray = cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
    elif img.ndim == 3 and img.shape[2] == 3:
        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    else:
        raise DetectorError(f"unsupported image shape {img.shape}")
    if gray.dtype != np.uint8:
        gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    return gray


class OrbMatcher:
    """
    ORB detector + Hamming brute-force matcher.

    Built once from an OrbConfig; there is no fallback construction path.
    """

    def __init__(self, config: OrbConfig | None = None):
        self.config = config or OrbConfig()
        c = self.config
        self._det = cv2.ORB_create(
            nfeatures=int(c.nfeatures),
            scaleFactor=float(c.scale_factor),
            nlevels=int(c.nlevels),
            edgeThreshold=int(c.edge_threshold),
            firstLevel=int(c.first_level),
            WTA_K=int(c.wta_k),
            scoreType=cv2.ORB_HARRIS_SCORE,
            patchSize=int(c.patch_size),
            fastThreshold=int(c.fast_threshold),
        )
        norm = cv2.NORM_HAMMING if int(c.wta_k) == 2 else cv2.NORM_HAMMING2
        self._bf = cv2.BFMatcher(norm, crossCheck=bool(c.cross_check))

    def detect(self, img: np.ndarray) -> Tuple[List[KeyPoint], np.ndarray]:
        gray = to_gray(img)
        try:
            kps, des = self._det.detectAndCompute(gray, None)
        except cv2.error as e:
            raise DetectorError(f"ORB detection failed: {e}") from e
        if des is None:
            des = np.zeros((0, 32), dtype=np.uint8)
        return [KeyPoint(float(k.pt[0]), float(k.pt[1])) for k in kps], des

    def match(self, des_a: np.ndarray, des_b: np.ndarray) -> List[cv2.DMatch]:
        if des_a is None or des_b is None or len(des_a) == 0 or len(des_b) == 0:
            return []
        try:
            return list(self._bf.match(des_a, des_b))
        except cv2.error as e:
            raise DetectorError(f"Hamming matching failed: {e}") from e

    def detect_and_match(self, image_a: np.ndarray, image_b: np.ndarray) -> List[Correspondence]:
        kps_a, des_a = self.detect(image_a)
        kps_b, des_b = self.detect(image_b)
        out: List[Correspondence] = []
        for m in self.match(des_a, des_b):
            out.append(
                Correspondence(
                    pt1=kps_a[m.queryIdx].pt,
                    pt2=kps_b[m.trainIdx].pt,
                    distance=float(m.distance),
                )
            )
        return out
