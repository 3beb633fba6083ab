import asyncio

import pandas as pd
import pytest

from stepseries.sources import SubscriptionHandle
from stepseries.types import BucketSummary, Delivery

TZ = "Australia/Brisbane"
NOW = pd.Timestamp("2025-01-15 10:30", tz=TZ)


async def settle(rounds: int = 3):
    """Let callbacks posted to the running loop execute."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ScriptedSource:
    """Data source double: records calls, deliveries are fired by the test."""

    def __init__(self, *, available=True, auth_error=None, open_errors=None):
        self.available = available
        self.auth_error = auth_error
        self.open_errors = open_errors or {}
        self.auth_requests = []
        self.handles = []
        self.closed = []

    def is_available(self):
        return self.available

    async def request_read_authorization(self, metric):
        self.auth_requests.append(metric)
        if self.auth_error is not None:
            raise self.auth_error

    def open_aggregation_subscription(self, metric, window, callback):
        if window in self.open_errors:
            raise self.open_errors[window]
        handle = SubscriptionHandle(metric=metric, window=window, callback=callback)
        self.handles.append(handle)
        return handle

    def close_subscription(self, handle):
        handle.closed = True
        self.closed.append(handle)

    @property
    def open_handles(self):
        return [h for h in self.handles if not h.closed]

    def handle_for(self, window):
        """Most recent handle opened for `window` (open or closed)."""
        return [h for h in self.handles if h.window == window][-1]

    def fire(self, window, buckets=None, error=None, initial=False):
        # Fires even on closed handles, like a callback racing a cancel
        self.handle_for(window).callback(
            Delivery(buckets=buckets, error=error, initial=initial)
        )


def buckets_for(window, sums):
    """BucketSummary list over the window's first len(sums) buckets."""
    return [
        BucketSummary(
            bucket_start=window.bucket_start(k),
            bucket_end=window.bucket_start(k + 1),
            sum=s,
        )
        for k, s in enumerate(sums)
    ]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def scripted():
    return ScriptedSource()


@pytest.fixture
def hourly_samples():
    # One sample every 15 minutes from midnight to 10:15 on NOW's day, 25 steps each
    idx = pd.date_range("2025-01-15 00:00", "2025-01-15 10:15", freq="15min", tz=TZ)
    return pd.DataFrame({"t_start": idx, "steps": 25.0}).set_index("t_start")


@pytest.fixture
def messy_samples():
    # naive timestamps, alternate column names, out of order
    return pd.DataFrame(
        {
            "start_date": ["2025-01-15 09:00", "2025-01-15 08:00", "2025-01-15 08:30"],
            "value": [300, 100, "200"],
        }
    )


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def make_source():
    return ScriptedSource


@pytest.fixture
def settled():
    return settle


@pytest.fixture
def make_buckets():
    return buckets_for
