from __future__ import annotations
import numpy as np
import pandas as pd
from typing import Iterable, List, Optional, cast

from . import canon, utils, validate
from .types import BucketSummary, DataPoint, Frequency, Series, SeriesFrame, TimeWindow
from .windows import bucket_starts


def points_from_buckets(
    buckets: Iterable[BucketSummary], tz: Optional[str] = None
) -> Series:
    """
    Turn one delivery's bucket summaries into an ordered series.

    - Buckets are stably sorted by start; in-order input keeps its order.
    - A bucket without a sum contributes no point.
    - Repeated bucket starts keep the last summary.
    - Negative sums are floored at zero.
    """
    rows = [
        {"bucket_start": b.bucket_start, "bucket_end": b.bucket_end, "sum": b.sum}
        for b in buckets
    ]
    if not rows:
        return ()

    d = pd.DataFrame(rows)
    d["bucket_start"] = [utils.as_timestamp(t, tz) for t in d["bucket_start"]]
    d["bucket_end"] = [utils.as_timestamp(t, tz) for t in d["bucket_end"]]
    d["sum"] = pd.to_numeric(d["sum"], errors="coerce")

    # Keep the last by default to match a provider re-reporting a bucket
    d = d.sort_values("bucket_start", kind="stable")
    d = d.drop_duplicates(subset="bucket_start", keep="last")
    d = d.dropna(subset=["sum"]).assign(sum=lambda x: x["sum"].clip(lower=0.0))

    return tuple(
        DataPoint(bucket_start=s, bucket_end=e, value=float(v))
        for s, e, v in zip(d["bucket_start"], d["bucket_end"], d["sum"])
    )


def bucketize(samples: pd.DataFrame, window: TimeWindow) -> List[BucketSummary]:
    """
    Sum raw step samples into the window's buckets.

    Samples are assigned by their start time to [edge_k, edge_k+1); only
    samples inside [window.start, window.end) count. A bucket with no
    samples reports sum=None, as a health store does.
    """
    edges = bucket_starts(window)
    idx = pd.DatetimeIndex(samples.index)
    if idx.tz is not None and edges.tz is not None:
        idx = idx.tz_convert(edges.tz)

    inside = (idx >= window.start) & (idx < window.end)
    values = samples.loc[inside, canon.VALUE_COL].to_numpy(dtype=float)
    pos = edges.searchsorted(idx[inside], side="right") - 1

    n = len(edges) - 1
    totals = np.bincount(pos, weights=values, minlength=n)[:n]
    counts = np.bincount(pos, minlength=n)[:n]

    return [
        BucketSummary(
            bucket_start=edges[k],
            bucket_end=edges[k + 1],
            sum=float(totals[k]) if counts[k] else None,
        )
        for k in range(n)
    ]


def to_frame(points: Series, frequency: Optional[Frequency] = None) -> SeriesFrame:
    """
    Series as a chart-ready frame indexed by 'bucket_start'.

    With a frequency, a 'label' column carries the axis label for each bucket.
    """
    validate.assert_series(points)
    idx = pd.DatetimeIndex([p.bucket_start for p in points], name=canon.SERIES_INDEX_NAME)
    out = pd.DataFrame(
        {
            "bucket_end": [p.bucket_end for p in points],
            "steps": np.asarray([p.value for p in points], dtype=float),
            "id": [p.id for p in points],
        },
        index=idx,
    )
    if frequency is not None:
        fmt = canon.LABEL_FORMATS[Frequency(frequency).value]
        out["label"] = utils.bucket_label(idx, fmt).to_numpy()
    out.__class__ = SeriesFrame
    return cast(SeriesFrame, out)
