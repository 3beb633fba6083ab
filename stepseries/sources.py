"""
Health data source boundary.

A source answers one aggregation query per subscription and calls the
registered callback with a `Delivery`: once with the initial snapshot,
then again with the whole window whenever the underlying samples change.
Callbacks may fire on any thread.
"""
from __future__ import annotations

import threading
import uuid
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol

import pandas as pd
from loguru import logger

from . import canon, ingest, transform, utils
from .exceptions import AuthorizationDenied, MetricUnsupported, QueryFailed
from .types import Delivery, TimeWindow

DeliveryCallback = Callable[[Delivery], None]


@dataclass(eq=False)
class SubscriptionHandle:
    metric: str
    window: TimeWindow
    callback: DeliveryCallback
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    closed: bool = False


class HealthDataSource(Protocol):
    def is_available(self) -> bool: ...

    async def request_read_authorization(self, metric: str) -> None:
        """Resolve once read access is granted; raise AuthorizationDenied or MetricUnsupported."""
        ...

    def open_aggregation_subscription(
        self, metric: str, window: TimeWindow, callback: DeliveryCallback
    ) -> SubscriptionHandle: ...

    def close_subscription(self, handle: SubscriptionHandle) -> None: ...


class FrameHealthDataSource:
    """
    In-process source backed by a table of raw step samples.

    Each subscription bucketises the table over its window. `push_samples`
    plays the part of a background sync: new samples are merged and every
    open subscription receives its full window again. With an executor,
    callbacks run on its worker threads instead of the caller's.
    """

    def __init__(
        self,
        samples: Optional[pd.DataFrame] = None,
        *,
        tz: str = canon.DEFAULT_TZ,
        available: bool = True,
        authorized: bool = True,
        supported_metrics: Iterable[str] = (canon.STEP_COUNT,),
        executor: Optional[Executor] = None,
    ):
        self.tz = tz
        self.available = available
        self.authorized = authorized
        self.supported_metrics = frozenset(supported_metrics)
        self._executor = executor
        self._lock = threading.Lock()
        self._handles: Dict[str, SubscriptionHandle] = {}
        self._samples = (
            ingest.from_dataframe(samples, tz=tz)
            if samples is not None
            else utils.empty_sample_frame(tz)
        )

    def is_available(self) -> bool:
        return self.available

    async def request_read_authorization(self, metric: str) -> None:
        self._check_metric(metric)
        if not self.authorized:
            raise AuthorizationDenied()

    def open_aggregation_subscription(
        self, metric: str, window: TimeWindow, callback: DeliveryCallback
    ) -> SubscriptionHandle:
        self._check_metric(metric)
        handle = SubscriptionHandle(metric=metric, window=window, callback=callback)
        with self._lock:
            self._handles[handle.id] = handle
        logger.debug(f"Opened subscription {handle.id} for {metric} from {window.start}")
        self._deliver(handle, initial=True)
        return handle

    def close_subscription(self, handle: SubscriptionHandle) -> None:
        with self._lock:
            self._handles.pop(handle.id, None)
        handle.closed = True
        logger.debug(f"Closed subscription {handle.id}")

    @property
    def open_handles(self) -> List[SubscriptionHandle]:
        with self._lock:
            return list(self._handles.values())

    @property
    def samples(self) -> pd.DataFrame:
        with self._lock:
            return self._samples.copy()

    def push_samples(self, df: pd.DataFrame) -> None:
        """Merge new samples and redeliver every open subscription's window."""
        new = ingest.from_dataframe(df, tz=self.tz)
        with self._lock:
            self._samples = pd.concat([self._samples, new]).sort_index()
            handles = list(self._handles.values())
        logger.debug(f"Pushed {len(new)} samples to {len(handles)} subscriptions")
        for handle in handles:
            self._deliver(handle, initial=False)

    def fail(self, message: str, window: Optional[TimeWindow] = None) -> None:
        """Deliver a query failure to open subscriptions (all, or those on `window`)."""
        for handle in self.open_handles:
            if window is None or handle.window == window:
                self._dispatch(handle, Delivery(error=QueryFailed(message)))

    def _check_metric(self, metric: str) -> None:
        if metric not in self.supported_metrics:
            raise MetricUnsupported(f"Metric '{metric}' is not supported by this source.")

    def _deliver(self, handle: SubscriptionHandle, *, initial: bool) -> None:
        with self._lock:
            samples = self._samples
        buckets = transform.bucketize(samples, handle.window)
        self._dispatch(handle, Delivery(buckets=buckets, initial=initial))

    def _dispatch(self, handle: SubscriptionHandle, delivery: Delivery) -> None:
        if self._executor is None:
            handle.callback(delivery)
            return
        future = self._executor.submit(handle.callback, delivery)
        future.add_done_callback(_log_callback_failure)


def _log_callback_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.opt(exception=exc).error("Delivery callback raised")
