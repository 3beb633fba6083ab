from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional
import uuid

import pandas as pd
from pydantic import BaseModel

from . import canon


class Frequency(str, Enum):
    """Bucketing scheme selected in the chart picker."""

    HOURLY = "hourly"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SEMI_ANNUAL = "semi_annual"
    YEARLY = "yearly"

    @property
    def label(self) -> str:
        return canon.FREQUENCY_LABELS[self.value]


SeriesPhase = Literal["idle", "subscribed", "loaded", "errored"]


@dataclass(frozen=True)
class TimeWindow:
    """
    Query window for one frequency.

    - start/end: tz-aware Timestamps, start < end
    - bucket_interval: calendar offset applied from `start` as anchor
    """

    start: pd.Timestamp
    end: pd.Timestamp
    bucket_interval: pd.DateOffset

    def bucket_start(self, k: int) -> pd.Timestamp:
        # Scale the offset itself; `offset * k` re-applies it k times and
        # month-end anchors would drift (Jan 31 -> Feb 28 -> Mar 28).
        kwds = {key: value * k for key, value in self.bucket_interval.kwds.items()}
        return self.start + pd.DateOffset(**kwds)


class BucketSummary(BaseModel):
    """One per-bucket statistic as reported by a data source.

    `sum` is None when the provider has no total for that bucket.
    """

    bucket_start: datetime
    bucket_end: datetime
    sum: Optional[float] = None
    model_config = {"frozen": True}


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class DataPoint:
    bucket_start: pd.Timestamp
    bucket_end: pd.Timestamp
    value: float
    id: str = field(default_factory=_new_id, compare=False)


Series = tuple[DataPoint, ...]


@dataclass(frozen=True)
class Delivery:
    """Payload of one result callback: either buckets or an error."""

    buckets: Optional[List[BucketSummary]] = None
    error: Optional[BaseException] = None
    initial: bool = False


@dataclass(frozen=True)
class ErrorSignal:
    is_active: bool = False
    message: str = ""
    kind: Optional[str] = None  # exception class name of the last failure


@dataclass
class LoadState:
    has_completed_initial_load: bool = False
    deliveries: int = 0


class SeriesFrame(pd.DataFrame):
    """
    Chart-facing frame for one series.

    Expected:
      - DatetimeIndex named 'bucket_start', tz-aware, ascending, unique
      - Columns: ['bucket_end', 'steps', 'id']
    """

    @property
    def _constructor(self):
        return SeriesFrame

    @property
    def bucket_end(self) -> pd.Series:
        return self["bucket_end"]

    @property
    def steps(self) -> pd.Series:
        return self["steps"]
