from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, Optional, Tuple

from common.utils import iso_now_ms


TRANSLATION = "translation"
ROTATION = "rotation"

# statuses
CENTERED = "centered"
ALIGNED = "aligned"
SKIPPED_MISSING_REGION = "skipped_missing_region"
INSUFFICIENT_CORRESPONDENCES = "insufficient_correspondences"
DETECTOR_FAILURE = "detector_failure"
INSUFFICIENT_IMAGES = "insufficient_images"

DEGRADED = frozenset({SKIPPED_MISSING_REGION, INSUFFICIENT_CORRESPONDENCES, DETECTOR_FAILURE, INSUFFICIENT_IMAGES})


@dataclass(slots=True)
class PairOutcome:
    """
    Result of one step of a pass.

    Attributes:
        pass_name: "translation" or "rotation".
        index: index of the image whose transform this step touched (or would have).
        status: one of the status constants above.
        image_id: id of that image.
        reference_id: id of the image it was aligned to (None for the first image).
        rotation: rotation after the step.
        translate: (tx, ty) after the step.
        raw_matches / kept_matches: correspondence counts (rotation pass only).
        detail: free-form reason for degraded outcomes.
    """
    pass_name: str
    index: int
    status: str
    image_id: Optional[str] = None
    reference_id: Optional[str] = None
    rotation: Optional[float] = None
    translate: Optional[Tuple[float, float]] = None
    raw_matches: Optional[int] = None
    kept_matches: Optional[int] = None
    detail: Optional[str] = None
    ts: str = field(default_factory=iso_now_ms)

    @property
    def degraded(self) -> bool:
        return self.status in DEGRADED

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        if self.translate is not None:
            d["translate"] = list(self.translate)
        return d


EventCallback = Callable[[PairOutcome], None]
