"""FrameHealthDataSource contract and end-to-end runs through the aggregator."""

from concurrent.futures import ThreadPoolExecutor

import pandas as pd
import pytest

from stepseries import FrameHealthDataSource, StepSeriesAggregator, windows
from stepseries.exceptions import AuthorizationDenied, MetricUnsupported
from stepseries.types import Frequency

TZ = "Australia/Brisbane"


def _collect():
    got = []
    return got, got.append


def test_initial_snapshot_fires_once_on_open(hourly_samples, now):
    source = FrameHealthDataSource(hourly_samples, tz=TZ)
    got, cb = _collect()
    w = windows.compute_window(Frequency.HOURLY, now, TZ)
    handle = source.open_aggregation_subscription("step_count", w, cb)

    assert len(got) == 1
    assert got[0].initial
    assert len(got[0].buckets) == 24
    assert source.open_handles == [handle]


def test_push_samples_redelivers_whole_window(hourly_samples, now):
    source = FrameHealthDataSource(hourly_samples, tz=TZ)
    got, cb = _collect()
    w = windows.compute_window(Frequency.HOURLY, now, TZ)
    source.open_aggregation_subscription("step_count", w, cb)

    source.push_samples(
        pd.DataFrame({"t_start": [pd.Timestamp("2025-01-15 10:40", tz=TZ)], "steps": [30.0]})
    )
    assert len(got) == 2
    assert not got[1].initial
    assert got[1].buckets[10].sum == 80.0
    assert got[1].buckets[0].sum == 100.0


def test_close_stops_updates_and_is_idempotent(hourly_samples, now):
    source = FrameHealthDataSource(hourly_samples, tz=TZ)
    got, cb = _collect()
    w = windows.compute_window(Frequency.WEEKLY, now, TZ)
    handle = source.open_aggregation_subscription("step_count", w, cb)

    source.close_subscription(handle)
    source.close_subscription(handle)
    source.push_samples(hourly_samples)
    assert handle.closed
    assert len(got) == 1
    assert source.open_handles == []


def test_fail_targets_window(now):
    source = FrameHealthDataSource(tz=TZ)
    got_w, cb_w = _collect()
    got_m, cb_m = _collect()
    weekly = windows.compute_window(Frequency.WEEKLY, now, TZ)
    monthly = windows.compute_window(Frequency.MONTHLY, now, TZ)
    source.open_aggregation_subscription("step_count", weekly, cb_w)
    source.open_aggregation_subscription("step_count", monthly, cb_m)

    source.fail("disk I/O", window=monthly)
    assert len(got_w) == 1
    assert got_m[-1].error is not None
    assert str(got_m[-1].error) == "disk I/O"


def test_unsupported_metric_rejected(now):
    source = FrameHealthDataSource(tz=TZ)
    w = windows.compute_window(Frequency.WEEKLY, now, TZ)
    with pytest.raises(MetricUnsupported):
        source.open_aggregation_subscription("heart_rate", w, lambda d: None)


@pytest.mark.asyncio
async def test_authorization_outcomes():
    await FrameHealthDataSource(tz=TZ).request_read_authorization("step_count")
    with pytest.raises(AuthorizationDenied):
        await FrameHealthDataSource(tz=TZ, authorized=False).request_read_authorization(
            "step_count"
        )
    with pytest.raises(MetricUnsupported):
        await FrameHealthDataSource(tz=TZ).request_read_authorization("heart_rate")


@pytest.mark.asyncio
async def test_end_to_end_background_update_resyncs(hourly_samples, now, settled):
    source = FrameHealthDataSource(hourly_samples, tz=TZ)
    agg = StepSeriesAggregator(source, clock=lambda: now)
    await agg.activate()
    await settled()

    hourly = agg.series(Frequency.HOURLY)
    # 10 full hours plus the 10:00 hour; empty hours are skipped
    assert len(hourly) == 11
    assert hourly[-1].value == 50.0
    assert [p.value for p in agg.series(Frequency.WEEKLY)] == [sum(p.value for p in hourly)]

    source.push_samples(
        pd.DataFrame({"t_start": [pd.Timestamp("2025-01-15 10:40", tz=TZ)], "steps": [30.0]})
    )
    await settled()

    hourly = agg.series(Frequency.HOURLY)
    assert len(hourly) == 11
    assert hourly[-1].value == 80.0
    assert all(agg.load_state(f).deliveries == 2 for f in Frequency)

    agg.deactivate()
    assert source.open_handles == []


@pytest.mark.asyncio
async def test_end_to_end_with_worker_threads(hourly_samples, now, settled):
    with ThreadPoolExecutor(max_workers=4) as pool:
        source = FrameHealthDataSource(hourly_samples, tz=TZ, executor=pool)
        agg = StepSeriesAggregator(source, clock=lambda: now)
        await agg.activate()
        # drain the worker queue, then let the loop apply what was posted
        pool.shutdown(wait=True)
        await settled()

    assert len(agg.series(Frequency.HOURLY)) == 11
    assert all(agg.phase(f) == "loaded" for f in Frequency)
    assert not agg.error_signal.is_active


@pytest.mark.asyncio
async def test_end_to_end_unavailable(now):
    source = FrameHealthDataSource(tz=TZ, available=False)
    agg = StepSeriesAggregator(source, clock=lambda: now)
    await agg.activate()
    assert source.open_handles == []
    assert agg.error_signal.kind == "DataSourceUnavailable"
