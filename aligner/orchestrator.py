from __future__ import annotations
"""
Alignment orchestrator.

Pass 1 (translation) walks the image list chain-wise: image 0 has its region
centred, every following image has its region placed on top of the previous
image's placed region. Pass 2 (rotation) asks the detector/matcher for
correspondences between each adjacent pair, filters them, and searches for
the rotation of image i+1 about its region centre. Steps run strictly in index
order; a failed pair leaves the affected field untouched and the run goes on.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

import cv2
import numpy as np

from aligner import events as ev
from aligner.config import AlignmentConfig
from aligner.events import EventCallback, PairOutcome
from aligner.features import DetectorError, DetectorMatcher
from aligner.filtering import filter_correspondences
from aligner.region import align_to_reference, center_region
from aligner.rotation import solve_rotation_from_matches
from common.logging_setup import fields, get_logger
from common.types import ImageRecord


log = get_logger("aligner.orchestrator")

MODES = ("all", "translation", "rotation")


def load_pixels(record: ImageRecord) -> np.ndarray:
    """
    Default rasterizer: in-memory pixels if present, else decode record.source.
    """
    if record.pixels is not None:
        return record.pixels
    if not record.source:
        raise DetectorError(f"image '{record.id}' has neither pixels nor a source path")
    img = cv2.imread(str(record.source), cv2.IMREAD_COLOR)
    if img is None:
        raise DetectorError(f"failed to decode image '{record.id}' from {record.source}")
    return img


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class AlignmentReport:
    images: List[ImageRecord]
    events: List[PairOutcome] = field(default_factory=list)
    ok: bool = True

    def by_status(self, status: str) -> List[PairOutcome]:
        return [e for e in self.events if e.status == status]


class AlignmentOrchestrator:
    """
    Sequences translation and rotation solving over an ordered image list.

    Args:
        matcher: object with detect_and_match(image_a, image_b) (sync or async).
        config: filter / rotation constants.
        rasterize: record -> pixels (sync or async); defaults to load_pixels.
        on_event: called with every PairOutcome as it happens.
    """

    def __init__(
        self,
        matcher: Optional[DetectorMatcher],
        *,
        config: Optional[AlignmentConfig] = None,
        rasterize: Callable[[ImageRecord], Any] = load_pixels,
        on_event: Optional[EventCallback] = None,
    ):
        self.matcher = matcher
        self.config = config or AlignmentConfig()
        self.rasterize = rasterize
        self.on_event = on_event

    # -----------------------------
    # Entry points
    # -----------------------------

    async def align_all(self, images: Sequence[ImageRecord]) -> AlignmentReport:
        report = self._start(images, "all")
        if report.ok:
            self._translation_pass(report)
            await self._rotation_pass(report)
        return report

    async def align_translation(self, images: Sequence[ImageRecord]) -> AlignmentReport:
        report = self._start(images, "translation")
        if report.ok:
            self._translation_pass(report)
        return report

    async def align_rotation(self, images: Sequence[ImageRecord]) -> AlignmentReport:
        report = self._start(images, "rotation")
        if report.ok:
            await self._rotation_pass(report)
        return report

    async def run(self, images: Sequence[ImageRecord], mode: str = "all") -> AlignmentReport:
        if mode == "all":
            return await self.align_all(images)
        if mode == "translation":
            return await self.align_translation(images)
        if mode == "rotation":
            return await self.align_rotation(images)
        raise ValueError(f"Unsupported mode: {mode} (expected one of {', '.join(MODES)})")

    # -----------------------------
    # Passes
    # -----------------------------

    def _start(self, images: Sequence[ImageRecord], mode: str) -> AlignmentReport:
        report = AlignmentReport(images=[img.copy() for img in images])
        log.info("Alignment started", extra=fields(mode=mode, images=len(images)))
        if len(images) < 2:
            report.ok = False
            self._emit(report, PairOutcome(
                pass_name=mode,
                index=0,
                status=ev.INSUFFICIENT_IMAGES,
                detail=f"need at least 2 images, got {len(images)}",
            ))
        return report

    def _translation_pass(self, report: AlignmentReport) -> None:
        imgs = report.images
        first = imgs[0]
        if first.region is not None:
            first.transform = center_region(first.width, first.height, first.transform, first.region)
            self._emit(report, self._outcome(ev.TRANSLATION, 0, ev.CENTERED, first))
        else:
            self._emit(report, self._outcome(ev.TRANSLATION, 0, ev.SKIPPED_MISSING_REGION, first,
                                             detail="first image has no region"))

        for i in range(len(imgs) - 1):
            ref, cur = imgs[i], imgs[i + 1]
            if ref.region is None or cur.region is None:
                self._emit(report, self._outcome(ev.TRANSLATION, i + 1, ev.SKIPPED_MISSING_REGION, cur, ref,
                                                 detail=_missing(ref, cur)))
                continue
            cur.transform = align_to_reference(
                ref.width, ref.height, ref.transform, ref.region,
                cur.width, cur.height, cur.transform, cur.region,
            )
            self._emit(report, self._outcome(ev.TRANSLATION, i + 1, ev.ALIGNED, cur, ref))

    async def _rotation_pass(self, report: AlignmentReport) -> None:
        imgs = report.images
        for i in range(len(imgs) - 1):
            outcome = await self._rotation_step(imgs[i], imgs[i + 1], i + 1)
            self._emit(report, outcome)

    async def _rotation_step(self, ref: ImageRecord, cur: ImageRecord, index: int) -> PairOutcome:
        if ref.region is None or cur.region is None:
            return self._outcome(ev.ROTATION, index, ev.SKIPPED_MISSING_REGION, cur, ref, detail=_missing(ref, cur))
        if self.matcher is None:
            return self._outcome(ev.ROTATION, index, ev.DETECTOR_FAILURE, cur, ref, detail="no matcher configured")

        try:
            pixels_ref = await _resolve(self.rasterize(ref))
            pixels_cur = await _resolve(self.rasterize(cur))
            raw = await _resolve(self.matcher.detect_and_match(pixels_ref, pixels_cur))
        except DetectorError as e:
            return self._outcome(ev.ROTATION, index, ev.DETECTOR_FAILURE, cur, ref, detail=str(e))
        except Exception as e:
            # any collaborator failure degrades this pair only
            log.exception("Detector/matcher raised", extra=fields(index=index, image=cur.id))
            return self._outcome(ev.ROTATION, index, ev.DETECTOR_FAILURE, cur, ref,
                                 detail=f"{type(e).__name__}: {e}")

        raw = list(raw or [])
        rot_cfg = self.config.rotation
        kept = filter_correspondences(raw, self.config.filter)
        if len(kept) < rot_cfg.min_correspondences:
            return self._outcome(ev.ROTATION, index, ev.INSUFFICIENT_CORRESPONDENCES, cur, ref,
                                 raw_matches=len(raw), kept_matches=len(kept),
                                 detail=f"{len(kept)} correspondences after filtering, need {rot_cfg.min_correspondences}")

        est = solve_rotation_from_matches(
            kept,
            rot_cfg.step_deg,
            center=cur.region.center,
            angle_range=(rot_cfg.angle_min, rot_cfg.angle_max),
            current_rotation=cur.transform.rotation,
            min_points=rot_cfg.min_correspondences,
        )
        cur.transform = cur.transform.with_rotation(est.angle)
        return self._outcome(ev.ROTATION, index, ev.ALIGNED, cur, ref,
                             raw_matches=len(raw), kept_matches=len(kept),
                             detail=f"mean residual {est.mean_distance:.3f}px")

    # -----------------------------
    # Events
    # -----------------------------

    @staticmethod
    def _outcome(
        pass_name: str,
        index: int,
        status: str,
        image: ImageRecord,
        reference: Optional[ImageRecord] = None,
        **kwargs,
    ) -> PairOutcome:
        return PairOutcome(
            pass_name=pass_name,
            index=index,
            status=status,
            image_id=image.id,
            reference_id=None if reference is None else reference.id,
            rotation=image.transform.rotation,
            translate=image.transform.translate,
            **kwargs,
        )

    def _emit(self, report: AlignmentReport, outcome: PairOutcome) -> None:
        report.events.append(outcome)
        if outcome.degraded:
            log.warning("Alignment step degraded", extra=fields(**outcome.to_dict()))
        else:
            log.info("Alignment step done", extra=fields(**outcome.to_dict()))
        if self.on_event is not None:
            self.on_event(outcome)


def _missing(ref: ImageRecord, cur: ImageRecord) -> str:
    ids = [img.id for img in (ref, cur) if img.region is None]
    return "no region on " + ", ".join(ids)


def run_alignment(
    images: Sequence[ImageRecord],
    matcher: Optional[DetectorMatcher],
    mode: str = "all",
    config: Optional[AlignmentConfig] = None,
    on_event: Optional[EventCallback] = None,
) -> AlignmentReport:
    """Blocking convenience wrapper around AlignmentOrchestrator.run()."""
    orch = AlignmentOrchestrator(matcher, config=config, on_event=on_event)
    return asyncio.run(orch.run(images, mode))
