"""
Unit tests for the ORB/Hamming detector-matcher adapter
"""

import pytest
import numpy as np
import cv2
import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from aligner.config import OrbConfig
from aligner.features import DetectorError, DetectorMatcher, OrbMatcher, to_gray
from common.types import Correspondence, KeyPoint


def _texture(h=240, w=320, seed=0):
    rng = np.random.default_rng(seed)
    img = rng.integers(0, 255, size=(h, w), dtype=np.uint8)
    # soften a little so corners are stable across octaves
    return cv2.GaussianBlur(img, (0, 0), 1.0)


class TestToGray:
    """Test cases for to_gray"""

    def test_bgr_converted(self):
        img = np.zeros((20, 30, 3), dtype=np.uint8)
        assert to_gray(img).shape == (20, 30)

    def test_gray_passthrough(self):
        img = np.zeros((20, 30), dtype=np.uint8)
        assert to_gray(img) is img

    def test_invalid_inputs(self):
        with pytest.raises(DetectorError):
            to_gray(None)
        with pytest.raises(DetectorError):
            to_gray(np.zeros((0, 0), dtype=np.uint8))
        with pytest.raises(DetectorError):
            to_gray(np.zeros((4, 4, 2), dtype=np.uint8))


class TestOrbMatcher:
    """Test cases for OrbMatcher"""

    def test_satisfies_protocol(self):
        assert isinstance(OrbMatcher(), DetectorMatcher)

    def test_detect_textured_image(self):
        m = OrbMatcher(OrbConfig(nfeatures=300))
        kps, des = m.detect(_texture())
        assert len(kps) > 0
        assert all(isinstance(k, KeyPoint) for k in kps)
        assert des.shape[0] == len(kps)

    def test_blank_image_yields_no_matches(self):
        blank = np.zeros((120, 160), dtype=np.uint8)
        assert OrbMatcher().detect_and_match(blank, blank) == []

    def test_self_match_is_exact(self):
        """Matching an image with itself gives zero-distance, same-position pairs"""
        img = _texture()
        out = OrbMatcher(OrbConfig(nfeatures=500)).detect_and_match(img, img)
        assert len(out) >= 3
        assert all(isinstance(c, Correspondence) for c in out)
        same = [c for c in out if c.pt1 == c.pt2]
        assert len(same) >= 0.9 * len(out)
        assert all(c.distance == 0.0 for c in same)

    def test_none_image_raises(self):
        with pytest.raises(DetectorError):
            OrbMatcher().detect_and_match(None, _texture())
