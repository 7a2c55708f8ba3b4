from __future__ import annotations
"""
Two-stage robust filter over raw correspondences.

1. Distance gate: keep matches strictly below min(cap, ratio * median).
   When all distances are equal the ratio gate is skipped and only the cap
   applies.
2. Outlier gate: over the survivors, drop matches with
   distance >= mean + sigma * std (population std).

Not RANSAC: it assumes most matches are inliers and only trims the globally
weak ones and the statistically extreme survivors.
"""

from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Sequence, Tuple, Union

from aligner.config import FilterConfig
from common.types import Correspondence
from common.utils import RunningStats


@dataclass(slots=True)
class FilterStats:
    total: int
    median: Optional[float] = None
    threshold: Optional[float] = None
    after_distance: int = 0
    mean: Optional[float] = None
    std: Optional[float] = None
    outlier_threshold: Optional[float] = None
    kept: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


def upper_median(values: Sequence[float]) -> float:
    """sorted(values)[n // 2]; for even n this is the upper of the two middle values."""
    s = sorted(values)
    return float(s[len(s) // 2])


def filter_correspondences(
    matches: Sequence[Correspondence],
    config: Optional[FilterConfig] = None,
    *,
    with_stats: bool = False,
) -> Union[List[Correspondence], Tuple[List[Correspondence], FilterStats]]:
    """
    Remove weak and outlying correspondences. Output order follows input order
    and is never longer than the input.
    """
    cfg = config or FilterConfig()
    stats = FilterStats(total=len(matches))
    if not matches:
        return ([], stats) if with_stats else []

    distances = [m.distance for m in matches]

    # Zero spread: nothing to rank, only the absolute cap applies
    if max(distances) == min(distances):
        kept = list(matches) if distances[0] < cfg.distance_cap else []
        stats.threshold = cfg.distance_cap
        stats.after_distance = stats.kept = len(kept)
        return (kept, stats) if with_stats else kept

    m = upper_median(distances)
    threshold = min(cfg.distance_cap, cfg.median_ratio * m)
    good = [c for c in matches if c.distance < threshold]
    stats.median = m
    stats.threshold = threshold
    stats.after_distance = len(good)

    if good:
        rs = RunningStats().extend(c.distance for c in good)
        stats.mean = rs.mean
        stats.std = rs.std
        if rs.std > 0:
            cutoff = rs.mean + cfg.outlier_sigma * rs.std
            stats.outlier_threshold = cutoff
            good = [c for c in good if c.distance < cutoff]

    stats.kept = len(good)
    return (good, stats) if with_stats else good
