from __future__ import annotations

from typing import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone


def iso_now_ms() -> str:
    """UTC ISO-8601 timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True)
class RunningStats:
    """
    Online mean/std using Welford's algorithm.

    `std` is the population standard deviation (divides by n), matching how
    descriptor-distance spreads are judged in the correspondence filter.
    """
    n: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def add(self, x: float) -> None:
        self.n += 1
        d = x - self.mean
        self.mean += d / self.n
        d2 = x - self.mean
        self.m2 += d * d2

    def extend(self, xs: Iterable[float]) -> "RunningStats":
        for x in xs:
            self.add(float(x))
        return self

    @property
    def variance(self) -> float:
        # Welford can leave a tiny negative residue on constant input
        return max(0.0, self.m2 / self.n) if self.n > 0 else 0.0

    @property
    def std(self) -> float:
        return self.variance ** 0.5


def clamp(v: float, lo: float, hi: float) -> float:
    return float(min(hi, max(lo, v)))

