"""
Per-frequency step series maintained from live aggregation queries.

All state lives on the event loop that ran `activate()`. Deliveries may
arrive on any thread; they are posted to that loop before touching state.
Every delivery is a full resync of its window: the series is replaced,
never appended to.
"""
from __future__ import annotations

import asyncio
import weakref
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional

from loguru import logger

from . import summary, transform
from .config import AggregatorConfig, default_config
from .exceptions import (
    AuthorizationDenied,
    DataSourceUnavailable,
    EmptyResult,
    QueryFailed,
    StepSeriesError,
)
from .sources import HealthDataSource, SubscriptionHandle
from .types import (
    Delivery,
    ErrorSignal,
    Frequency,
    LoadState,
    Series,
    SeriesFrame,
    SeriesPhase,
    TimeWindow,
)
from .windows import compute_window, localize_now

Listener = Callable[[Optional[Frequency]], None]
Clock = Callable[[], datetime]


class _Subscription:
    """Callback registered with the source for one frequency.

    Holds only a weak reference to its aggregator, so a source that
    outlives the aggregator cannot keep it alive or reach it.
    """

    def __init__(self, owner: "StepSeriesAggregator", frequency: Frequency, window: TimeWindow):
        self._owner = weakref.ref(owner)
        self.frequency = frequency
        self.window = window
        self.handle: Optional[SubscriptionHandle] = None

    def __call__(self, delivery: Delivery) -> None:
        owner = self._owner()
        if owner is None:
            return
        owner._post(self, delivery)


class StepSeriesAggregator:
    def __init__(
        self,
        source: HealthDataSource,
        *,
        config: Optional[AggregatorConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self._source = source
        self.config = config or default_config()
        self._clock = clock
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._series: Dict[Frequency, Series] = {}
        self._load: Dict[Frequency, LoadState] = {}
        self._phase: Dict[Frequency, SeriesPhase] = {}
        self._reset()
        self._error = ErrorSignal()
        self._subscriptions: Dict[Frequency, _Subscription] = {}
        self._listeners: List[Listener] = []
        self._selected = Frequency(self.config.initial_frequency)

    async def __aenter__(self) -> "StepSeriesAggregator":
        await self.activate()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.deactivate()

    # lifecycle

    async def activate(self) -> None:
        """
        Request read access, then open one subscription per frequency.

        Calling again replaces the previous subscriptions and clears all series.
        """
        self._loop = asyncio.get_running_loop()

        if not self._source.is_available():
            self._fail(None, DataSourceUnavailable(self.config.unavailable_message))
            return

        try:
            await self._source.request_read_authorization(self.config.metric)
        except Exception as exc:
            self._fail(None, self._as_error(exc, AuthorizationDenied))
            return

        self._close_all()
        self._reset()
        self._error = ErrorSignal()
        self._notify(None)

        now = localize_now(self._clock() if self._clock else None, self.config.tz)
        for frequency in self.config.frequencies:
            self._open(Frequency(frequency), compute_window(frequency, now, self.config.tz))
        logger.info(
            f"Activated {len(self._subscriptions)} of {len(self.config.frequencies)} subscriptions"
        )

    def deactivate(self) -> None:
        """Close every subscription this aggregator opened. No-op when none are open."""
        closed = self._close_all()
        for frequency in Frequency:
            self._phase[frequency] = "idle"
        if closed:
            logger.info(f"Deactivated {closed} subscriptions")

    # readers

    @property
    def error_signal(self) -> ErrorSignal:
        return self._error

    @property
    def is_active(self) -> bool:
        return bool(self._subscriptions)

    def series(self, frequency: Frequency) -> Series:
        return self._series[Frequency(frequency)]

    def frame(self, frequency: Frequency) -> SeriesFrame:
        return transform.to_frame(self.series(frequency), frequency)

    def load_state(self, frequency: Frequency) -> LoadState:
        return replace(self._load[Frequency(frequency)])

    def phase(self, frequency: Frequency) -> SeriesPhase:
        return self._phase[Frequency(frequency)]

    def window(self, frequency: Frequency) -> Optional[TimeWindow]:
        sub = self._subscriptions.get(Frequency(frequency))
        return sub.window if sub else None

    def y_domain(self, frequency: Frequency) -> tuple[float, float]:
        return summary.y_domain(
            self.series(frequency),
            headroom=self.config.y_headroom,
            default_max=self.config.y_default_max,
        )

    @property
    def selected_frequency(self) -> Frequency:
        return self._selected

    @selected_frequency.setter
    def selected_frequency(self, frequency: Frequency) -> None:
        # Display only: every series is already being maintained
        self._selected = Frequency(frequency)

    def selected_series(self) -> Series:
        return self.series(self._selected)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback run on the owner loop after each state change.
        It receives the affected frequency, or None for activation-wide changes.
        Returns a function that unregisters it.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # subscriptions

    def _open(self, frequency: Frequency, window: TimeWindow) -> None:
        sub = _Subscription(self, frequency, window)
        self._subscriptions[frequency] = sub
        self._phase[frequency] = "subscribed"
        try:
            sub.handle = self._source.open_aggregation_subscription(
                self.config.metric, window, sub
            )
        except Exception as exc:
            del self._subscriptions[frequency]
            error = self._as_error(exc, QueryFailed, self.config.generic_error_message)
            self._fail(frequency, error)
            return
        logger.debug(f"Subscribed {frequency.value}: {window.start} -> {window.end}")

    def _close_all(self) -> int:
        subs = list(self._subscriptions.values())
        self._subscriptions.clear()
        for sub in subs:
            self._release(sub)
        return len(subs)

    def _halt(self, sub: _Subscription) -> None:
        if self._subscriptions.get(sub.frequency) is sub:
            del self._subscriptions[sub.frequency]
        self._release(sub)

    def _release(self, sub: _Subscription) -> None:
        handle, sub.handle = sub.handle, None
        if handle is not None:
            self._source.close_subscription(handle)

    # deliveries

    def _post(self, sub: _Subscription, delivery: Delivery) -> None:
        """Called from any thread; hands the delivery to the owner loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning(f"Dropping {sub.frequency.value} delivery: no owner loop")
            return
        try:
            loop.call_soon_threadsafe(self._apply, sub, delivery)
        except RuntimeError:
            # loop closed between the check and the call
            logger.warning(f"Dropping {sub.frequency.value} delivery: owner loop closed")

    def _apply(self, sub: _Subscription, delivery: Delivery) -> None:
        frequency = sub.frequency
        if self._subscriptions.get(frequency) is not sub or sub.handle is None:
            logger.debug(f"Discarding delivery for released {frequency.value} subscription")
            return

        error = self._delivery_error(delivery)
        if error is not None:
            self._halt(sub)
            self._fail(frequency, error)
            return

        points = transform.points_from_buckets(delivery.buckets or [], self.config.tz)
        self._series[frequency] = points
        state = self._load[frequency]
        state.has_completed_initial_load = True
        state.deliveries += 1
        self._phase[frequency] = "loaded"
        logger.debug(
            f"{frequency.value}: {len(points)} points from "
            f"{'initial' if delivery.initial else 'update'} delivery #{state.deliveries}"
        )
        self._notify(frequency)

    def _delivery_error(self, delivery: Delivery) -> Optional[StepSeriesError]:
        if delivery.error is not None:
            return self._as_error(
                delivery.error, QueryFailed, self.config.generic_error_message
            )
        # No result set at all; an empty one is a loaded, empty series
        if delivery.buckets is None:
            return EmptyResult(self.config.generic_error_message)
        return None

    def _as_error(
        self, exc: BaseException, kind: type[StepSeriesError], fallback: Optional[str] = None
    ) -> StepSeriesError:
        """Source failures outside the library's own errors are reported as `kind`."""
        if isinstance(exc, StepSeriesError):
            return exc
        logger.opt(exception=exc).debug(f"Wrapping {type(exc).__name__} as {kind.__name__}")
        return kind(str(exc) or fallback)

    # state

    def _reset(self) -> None:
        for frequency in Frequency:
            self._series[frequency] = ()
            self._load[frequency] = LoadState()
            self._phase[frequency] = "idle"

    def _fail(self, frequency: Optional[Frequency], exc: StepSeriesError) -> None:
        self._error = ErrorSignal(
            is_active=True,
            message=exc.message or self.config.generic_error_message,
            kind=type(exc).__name__,
        )
        if frequency is not None:
            self._phase[frequency] = "errored"
        scope = frequency.value if frequency is not None else "activation"
        logger.warning(f"{scope} failed: {type(exc).__name__}: {self._error.message}")
        self._notify(frequency)

    def _notify(self, frequency: Optional[Frequency]) -> None:
        for listener in list(self._listeners):
            try:
                listener(frequency)
            except Exception:
                logger.exception("Series listener raised")

