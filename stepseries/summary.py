from __future__ import annotations
from typing import Optional, TypedDict

from . import canon
from .types import Series


class SeriesSummary(TypedDict):
    n_buckets: int
    total_steps: float
    mean_steps: float
    max_steps: float
    max_bucket_start: Optional[str]


def y_domain(
    points: Series,
    *,
    headroom: float = canon.Y_HEADROOM,
    default_max: float = canon.Y_DEFAULT_MAX,
) -> tuple[float, float]:
    """Y-axis range for a bar chart: tallest bar plus headroom, fixed when empty."""
    top = max((p.value for p in points), default=0.0)
    if top <= 0:
        return (0.0, default_max)
    return (0.0, top * headroom)


def summarise(points: Series) -> SeriesSummary:
    """
    Simple stats for one series. Buckets the provider skipped are not counted.
    """
    if not points:
        return {
            "n_buckets": 0,
            "total_steps": 0.0,
            "mean_steps": 0.0,
            "max_steps": 0.0,
            "max_bucket_start": None,
        }
    total = float(sum(p.value for p in points))
    peak = max(points, key=lambda p: p.value)
    return {
        "n_buckets": len(points),
        "total_steps": total,
        "mean_steps": total / len(points),
        "max_steps": float(peak.value),
        "max_bucket_start": peak.bucket_start.isoformat(),
    }
