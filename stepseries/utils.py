# stepseries/utils.py
from __future__ import annotations
import pandas as pd
from zoneinfo import ZoneInfo

from . import canon


def ensure_tz_aware_index(df: pd.DataFrame, tz: str) -> pd.DataFrame:
    if df.index.name != canon.INDEX_NAME:
        raise ValueError(f"Index must be '{canon.INDEX_NAME}', got {df.index.name}")
    idx = pd.DatetimeIndex(df.index)
    if idx.tz is None:
        df = df.tz_localize(ZoneInfo(tz))
    else:
        df = df.tz_convert(ZoneInfo(tz))
    return df


def empty_sample_frame(tz: str = canon.DEFAULT_TZ) -> pd.DataFrame:
    """
    Return an empty sample frame with the correct tz-aware index and required columns.
    """
    idx = pd.DatetimeIndex([], tz=ZoneInfo(tz), name=canon.INDEX_NAME)
    return pd.DataFrame({canon.VALUE_COL: pd.Series([], dtype=float, index=idx)})


def as_timestamp(value, tz: str | None = None) -> pd.Timestamp:
    """Coerce a datetime-like to Timestamp, converting aware values to `tz`."""
    ts = pd.Timestamp(value)
    if tz is None:
        return ts
    if ts.tz is None:
        return ts.tz_localize(ZoneInfo(tz))
    return ts.tz_convert(ZoneInfo(tz))


def bucket_label(idx: pd.DatetimeIndex, fmt: str) -> pd.Series:
    """Axis labels for bucket starts, e.g. '%H:%M', '%m-%d' or '%Y-%m'."""
    return pd.Series(idx.strftime(fmt), index=idx)
