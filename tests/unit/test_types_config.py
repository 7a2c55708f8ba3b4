"""
Unit tests for shared types, geometry helpers, configuration and logging
"""

import io
import json
import logging
import pytest
import numpy as np
import os
import sys
from pathlib import Path

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from aligner.config import AlignmentConfig, RotationConfig
from aligner.events import PairOutcome
from common.geometry import fit_scale, region_corners, region_to_display, region_to_image, rotate_about
from common.logging_setup import JsonFormatter, TextFormatter, fields, setup_logging
from common.types import Correspondence, ImageRecord, SelectedRegion, Transform
from common.utils import RunningStats, clamp


class TestTypes:
    """Test cases for dataclasses in common.types"""

    def test_transform_defaults_and_validation(self):
        assert Transform() == Transform(scale=1.0, rotation=0.0, translate_x=0.0, translate_y=0.0)
        with pytest.raises(ValueError):
            Transform(scale=0.0)
        with pytest.raises(ValueError):
            Transform(scale=float("nan"))

    def test_transform_dict_keys(self):
        t = Transform(scale=1.0, rotation=2.0, translate_x=3.0, translate_y=4.0)
        assert t.to_dict() == {"scale": 1.0, "rotation": 2.0, "translateX": 3.0, "translateY": 4.0}
        assert Transform.from_dict(t.to_dict()) == t
        assert Transform.from_dict({}) == Transform()

    def test_region(self):
        r = SelectedRegion.from_seq([10, 20, 30, 40])
        assert r.center == (25.0, 40.0)
        assert r.to_list() == [10.0, 20.0, 30.0, 40.0]
        with pytest.raises(ValueError):
            SelectedRegion.from_seq([1, 2, 3])
        with pytest.raises(ValueError):
            SelectedRegion(0, 0, -1, 5)

    def test_image_record_validation(self):
        with pytest.raises(ValueError):
            ImageRecord(id="a", width=0, height=10)
        with pytest.raises(ValueError):
            ImageRecord(id="a", width=10, height=10, pixels=np.zeros((5, 10), dtype=np.uint8))
        with pytest.raises(TypeError):
            ImageRecord(id="a", width=2, height=2, pixels=[[0, 0], [0, 0]])

    def test_image_record_copy_is_independent(self):
        rec = ImageRecord(id="a", width=10, height=10, transform=Transform(rotation=1.0))
        cp = rec.copy()
        cp.transform = cp.transform.with_rotation(9.0)
        assert rec.transform.rotation == 1.0
        assert cp.to_meta()["transform"]["rotation"] == 9.0

    def test_image_record_copy_owns_its_region(self):
        rec = ImageRecord(id="a", width=10, height=10, region=SelectedRegion(1, 2, 3, 4))
        cp = rec.copy()
        assert cp.region == rec.region
        assert cp.region is not rec.region
        cp.region.x = 5.0
        assert rec.region.x == 1.0
        assert ImageRecord(id="b", width=10, height=10).copy().region is None

    def test_correspondence(self):
        c = Correspondence(pt1=(1, 2), pt2=np.array([3, 4]), distance=7)
        assert c.pt1 == (1.0, 2.0)
        assert c.pt2 == (3.0, 4.0)
        with pytest.raises(ValueError):
            Correspondence(pt1=(0, 0), pt2=(0, 0), distance=-1.0)

    def test_pair_outcome_dict(self):
        o = PairOutcome(pass_name="rotation", index=2, status="aligned", translate=(1.0, 2.0))
        d = o.to_dict()
        assert d["translate"] == [1.0, 2.0]
        assert not o.degraded
        assert json.loads(json.dumps(d))["index"] == 2


class TestGeometry:
    """Test cases for common.geometry"""

    def test_rotate_about(self):
        assert rotate_about((2.0, 1.0), (1.0, 1.0), 90.0) == pytest.approx((1.0, 2.0))

    def test_region_corners(self):
        assert region_corners(SelectedRegion(1, 2, 3, 4)) == [(1, 2), (4, 2), (4, 6), (1, 6)]

    def test_fit_scale(self):
        assert fit_scale(1600, 1200) == pytest.approx(0.5)
        assert fit_scale(400, 300) == 1.0
        with pytest.raises(ValueError):
            fit_scale(0, 10)

    def test_display_roundtrip(self):
        r = SelectedRegion(50, 60, 20, 10)
        shown = region_to_display(r, 0.5)
        assert shown.to_list() == [25.0, 30.0, 10.0, 5.0]
        assert region_to_image(shown, 0.5) == r


class TestUtils:
    """Test cases for common.utils"""

    def test_running_stats_population_std(self):
        rs = RunningStats().extend([2, 4, 4, 4, 5, 5, 7, 9])
        assert rs.mean == pytest.approx(5.0)
        assert rs.std == pytest.approx(2.0)

    def test_running_stats_constant(self):
        rs = RunningStats().extend([3.3] * 5)
        assert rs.std == 0.0

    def test_clamp(self):
        assert clamp(5, 0, 1) == 1.0
        assert clamp(-5, 0, 1) == 0.0


class TestConfig:
    """Test cases for AlignmentConfig"""

    def test_repository_defaults(self):
        cfg = AlignmentConfig.from_yaml(os.path.join(project_root, "config", "params.yaml"))
        assert cfg.filter.distance_cap == 50.0
        assert cfg.filter.median_ratio == 0.8
        assert cfg.rotation.step_deg == 0.5
        assert (cfg.rotation.angle_min, cfg.rotation.angle_max) == (-30.0, 30.0)
        assert cfg.orb.nfeatures == 1000

    def test_partial_yaml(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("rotation:\n  step_deg: 0.1\n")
        cfg = AlignmentConfig.from_yaml(p)
        assert cfg.rotation.step_deg == 0.1
        assert cfg.filter.distance_cap == 50.0

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown keys in 'filter'"):
            AlignmentConfig.from_dict({"filter": {"cap": 3}})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AlignmentConfig.from_yaml(tmp_path / "nope.yaml")

    def test_rotation_validation(self):
        with pytest.raises(ValueError):
            RotationConfig(step_deg=0.0)
        with pytest.raises(ValueError):
            RotationConfig(angle_min=5.0, angle_max=-5.0)


class TestLogging:
    """Test cases for the log formatters and root setup"""

    @staticmethod
    def _emit(formatter, level, msg, **kw):
        logger = logging.getLogger("test.aligner.logging")
        buf = io.StringIO()
        handler = logging.StreamHandler(buf)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False
        try:
            logger.log(level, msg, **kw)
        finally:
            logger.removeHandler(handler)
        return buf.getvalue()

    def test_json_formatter_includes_fields(self):
        out = self._emit(JsonFormatter(), logging.WARNING, "pair skipped", extra=fields(index=3))
        payload = json.loads(out)
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "test.aligner.logging"
        assert payload["msg"] == "pair skipped"
        assert payload["fields"] == {"index": 3}
        assert payload["ts"].endswith("Z")
        assert "T" in payload["ts"]

    def test_json_formatter_stringifies_unknown_values(self):
        out = self._emit(JsonFormatter(), logging.INFO, "done", extra=fields(path=Path("a/b")))
        assert json.loads(out)["fields"] == {"path": str(Path("a/b"))}

    def test_json_formatter_without_fields(self):
        payload = json.loads(self._emit(JsonFormatter(), logging.INFO, "plain"))
        assert "fields" not in payload

    def test_text_formatter(self):
        out = self._emit(TextFormatter(), logging.INFO, "Alignment finished", extra=fields(ok=True, degraded=0))
        assert out.rstrip("\n").endswith("INFO test.aligner.logging: Alignment finished ok=True degraded=0")

    def test_setup_logging_switches_format_and_level(self):
        root = logging.getLogger()
        saved_level = root.level
        buf = io.StringIO()
        try:
            setup_logging("DEBUG", fmt="text", stream=buf)
            assert root.level == logging.DEBUG
            logging.getLogger("test.aligner.setup").debug("hello", extra=fields(n=1))
            assert "DEBUG test.aligner.setup: hello n=1" in buf.getvalue()
        finally:
            setup_logging("INFO", fmt="json", stream=sys.stdout)
            root.setLevel(saved_level)

    def test_setup_logging_rejects_unknown_format(self):
        with pytest.raises(ValueError):
            setup_logging(fmt="xml")
