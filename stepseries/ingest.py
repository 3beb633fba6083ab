from __future__ import annotations
import pandas as pd
from typing import Iterable, Mapping, Any

from . import canon, utils, validate
from .exceptions import IngestError


def _auto_rename(df: pd.DataFrame) -> pd.DataFrame:
    new = df.copy()

    # 1) If index is already datetime-like, just name it t_start
    if isinstance(new.index, pd.DatetimeIndex):
        new.index.name = canon.INDEX_NAME
    else:
        # 2) Otherwise try to find a timestamp column and set as index
        cols = {c.lower(): c for c in new.columns}
        tcol = next((cols[k] for k in canon.COMMON_TIMESTAMP_NAMES if k in cols), None)
        if tcol is None:
            raise IngestError(
                "No timestamp column found and index is not datetime. "
                f"Expected one of: {', '.join(canon.COMMON_TIMESTAMP_NAMES)}."
            )
        new = new.rename(columns={tcol: canon.INDEX_NAME}).set_index(canon.INDEX_NAME)

    # 3) Standardize the step column name if needed
    if canon.VALUE_COL not in new.columns:
        cols = {c.lower(): c for c in new.columns}
        vcol = next((cols[k] for k in canon.COMMON_VALUE_NAMES if k in cols), None)
        if vcol is not None:
            new = new.rename(columns={vcol: canon.VALUE_COL})

    return new


def from_dataframe(df: pd.DataFrame, *, tz: str = canon.DEFAULT_TZ) -> pd.DataFrame:
    """
    Normalise a table of raw step samples to the canonical sample frame:
      - index: tz-aware 't_start', sorted ascending
      - columns: steps (float, non-negative)
    Rows without a step value are dropped.
    """
    df = _auto_rename(df)
    if canon.VALUE_COL not in df.columns:
        raise IngestError(f"Missing required column: {canon.VALUE_COL}")

    steps = pd.to_numeric(df[canon.VALUE_COL], errors="coerce")
    df = df.assign(steps=steps.astype(float)).dropna(subset=[canon.VALUE_COL])
    if (df[canon.VALUE_COL] < 0).any():
        raise IngestError("Negative step counts detected; samples must be non-negative.")

    df.index = pd.DatetimeIndex(pd.to_datetime(df.index), name=canon.INDEX_NAME)
    df = utils.ensure_tz_aware_index(df.sort_index(), tz)

    out = df[canon.REQUIRED_COLS].copy()
    validate.assert_samples(out)
    return out


def from_records(
    records: Iterable[Mapping[str, Any]], *, tz: str = canon.DEFAULT_TZ
) -> pd.DataFrame:
    """
    Build the canonical sample frame from dict-like records, e.g.
    {"start_date": "2025-01-01T08:00", "value": 120}.
    """
    rows = list(records)
    if not rows:
        return utils.empty_sample_frame(tz)
    return from_dataframe(pd.DataFrame.from_records(rows), tz=tz)
