from __future__ import annotations
import pandas as pd
from typing import Sequence, cast

from . import canon, exceptions
from .types import DataPoint


def assert_samples(df: pd.DataFrame) -> None:
    if df.index.name != canon.INDEX_NAME:
        raise exceptions.IngestError(f"Index must be '{canon.INDEX_NAME}'.")
    tz_index = cast(pd.DatetimeIndex, df.index)
    if tz_index.tz is None:
        raise exceptions.IngestError("Index must be tz-aware.")
    for col in canon.REQUIRED_COLS:
        if col not in df.columns:
            raise exceptions.IngestError(f"Missing required column '{col}'.")
    if not df.index.is_monotonic_increasing:
        raise exceptions.IngestError("Index must be sorted ascending.")
    if (df[canon.VALUE_COL] < 0).any():
        raise exceptions.IngestError(
            "Negative step counts detected; samples should be non-negative."
        )


def assert_series(points: Sequence[DataPoint]) -> None:
    """A series is strictly ascending by bucket start with non-negative values."""
    for prev, cur in zip(points, points[1:]):
        if cur.bucket_start == prev.bucket_start:
            raise exceptions.SeriesError(
                f"Duplicate bucket {cur.bucket_start.isoformat()} in series."
            )
        if cur.bucket_start < prev.bucket_start:
            raise exceptions.SeriesError("Series must be sorted ascending by bucket start.")
    for p in points:
        if p.value < 0:
            raise exceptions.SeriesError(
                f"Negative value {p.value} at {p.bucket_start.isoformat()}."
            )
        if p.bucket_end <= p.bucket_start:
            raise exceptions.SeriesError("Bucket end must be after bucket start.")
