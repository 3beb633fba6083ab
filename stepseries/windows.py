from __future__ import annotations
from datetime import datetime
from typing import Dict, Optional
from zoneinfo import ZoneInfo

import pandas as pd

from . import canon
from .types import Frequency, TimeWindow

# Hourly is bound to today's calendar day; the rest are rolling windows ending now.
_LOOKBACK_DAYS: Dict[Frequency, int] = {
    Frequency.WEEKLY: 7,
    Frequency.MONTHLY: 30,
    Frequency.SEMI_ANNUAL: 180,
    Frequency.YEARLY: 360,
}

_BUCKETS: Dict[Frequency, pd.DateOffset] = {
    Frequency.HOURLY: pd.DateOffset(hours=1),
    Frequency.WEEKLY: pd.DateOffset(days=1),
    Frequency.MONTHLY: pd.DateOffset(days=1),
    Frequency.SEMI_ANNUAL: pd.DateOffset(months=1),
    Frequency.YEARLY: pd.DateOffset(months=1),
}

ONE_TICK = pd.Timedelta(1, unit="ns")


def localize_now(
    now: Optional[datetime | pd.Timestamp] = None, tz: str = canon.DEFAULT_TZ
) -> pd.Timestamp:
    """Current (or given) instant as a tz-aware Timestamp in `tz`."""
    zone = ZoneInfo(tz)
    if now is None:
        return pd.Timestamp.now(tz=zone)
    ts = pd.Timestamp(now)
    if ts.tz is None:
        return ts.tz_localize(zone)
    return ts.tz_convert(zone)


def compute_window(
    frequency: Frequency,
    now: Optional[datetime | pd.Timestamp] = None,
    tz: str = canon.DEFAULT_TZ,
) -> TimeWindow:
    """
    Map a frequency to its query window relative to `now`.

      - hourly: [local midnight, midnight + 1 day - 1 tick], 1 hour buckets
      - weekly / monthly: last 7 / 30 days, 1 day buckets
      - semi-annual / yearly: last 180 / 360 days, 1 month buckets
    """
    ts = localize_now(now, tz)
    interval = _BUCKETS[Frequency(frequency)]

    if frequency == Frequency.HOURLY:
        start = ts.normalize()
        end = start + pd.DateOffset(days=1) - ONE_TICK
    else:
        start = ts - pd.DateOffset(days=_LOOKBACK_DAYS[Frequency(frequency)])
        end = ts

    return TimeWindow(start=start, end=end, bucket_interval=interval)


def compute_windows(
    now: Optional[datetime | pd.Timestamp] = None, tz: str = canon.DEFAULT_TZ
) -> Dict[Frequency, TimeWindow]:
    """Windows for every frequency, all computed from the same instant."""
    ts = localize_now(now, tz)
    return {f: compute_window(f, ts, tz) for f in Frequency}


def bucket_starts(window: TimeWindow) -> pd.DatetimeIndex:
    """
    Bucket edges for a window: every `start + k * interval` inside
    [start, end), followed by the closing edge of the last bucket.
    The closing edge may lie past `end` for rolling windows.
    """
    edges = []
    k = 0
    while True:
        edge = window.bucket_start(k)
        edges.append(edge)
        if edge >= window.end:
            break
        k += 1
    return pd.DatetimeIndex(edges)
