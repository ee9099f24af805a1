# Copyright 2026-present Kensho Technologies, LLC.
"""Leading-edge plus trailing-edge throttling of value deliveries.

With a minimum interval of one second, values pushed at t=0.0, 0.1, 0.25 and 0.4 are
delivered as follows: the value from t=0.0 immediately, since nothing was delivered in the
preceding second; the value from t=0.4 at t=1.0, since it superseded the values from t=0.1
and t=0.25 while they waited for the interval to elapse.
"""
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    """A scheduled callback, e.g. asyncio.TimerHandle."""

    def cancel(self) -> None:
        """Prevent the callback from running, if it has not yet run."""


class Scheduler(Protocol):
    """The subset of the asyncio event loop interface that a Throttle needs."""

    def time(self) -> float:
        """Return the current time in seconds, according to the scheduler's clock."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run the callback after the given number of seconds."""


class Throttle:
    """Deliver values at most once per interval, without ever losing the latest value.

    A value pushed when at least min_interval seconds passed since the last delivery is
    delivered right away. Otherwise it is kept until the interval elapses, replacing any value
    already kept, and delivered then. At most one delayed delivery is scheduled at a time.
    """

    def __init__(
        self, min_interval: float, deliver: Callable[[Any], None], scheduler: Scheduler
    ) -> None:
        """Create a throttle delivering values through the given callback.

        Args:
            min_interval: the minimum time between two deliveries, in seconds
            deliver: called with each value that is delivered
            scheduler: the source of time and timers, normally the running asyncio event loop
        """
        if min_interval < 0:
            raise AssertionError("Expected a non-negative interval, got: {}".format(min_interval))
        self._min_interval = min_interval
        self._deliver = deliver
        self._scheduler = scheduler

        self._last_delivery_time: Optional[float] = None
        self._pending_value: Any = None
        self._has_pending_value = False
        self._timer: Optional[TimerHandle] = None
        self._drain_callback: Optional[Callable[[], None]] = None
        self._cancelled = False

    @property
    def has_pending_delivery(self) -> bool:
        """Return True if a value is waiting for its delayed delivery."""
        return self._has_pending_value

    @property
    def cancelled(self) -> bool:
        """Return True if the throttle was cancelled."""
        return self._cancelled

    def push(self, value: Any) -> None:
        """Deliver the value now, or as soon as the minimum interval allows."""
        if self._cancelled:
            return

        now = self._scheduler.time()
        if self._timer is None and (
            self._last_delivery_time is None
            or now - self._last_delivery_time >= self._min_interval
        ):
            self._last_delivery_time = now
            self._deliver(value)
            return

        self._pending_value = value
        self._has_pending_value = True
        if self._timer is None:
            remaining = max(0.0, self._last_delivery_time + self._min_interval - now)
            self._timer = self._scheduler.call_later(remaining, self._deliver_pending_value)

    def drain(self, callback: Callable[[], None]) -> None:
        """Call the callback once the pending value, if any, has been delivered."""
        if self._cancelled:
            return
        if self._timer is None:
            callback()
        else:
            self._drain_callback = callback

    def cancel(self) -> None:
        """Drop the pending value and its scheduled delivery. No delivery happens afterwards."""
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending_value = None
        self._has_pending_value = False
        self._drain_callback = None

    def _deliver_pending_value(self) -> None:
        self._timer = None
        if self._cancelled:
            return

        if self._has_pending_value:
            value = self._pending_value
            self._pending_value = None
            self._has_pending_value = False
            self._last_delivery_time = self._scheduler.time()
            self._deliver(value)

        drain_callback = self._drain_callback
        self._drain_callback = None
        if drain_callback is not None and not self._cancelled:
            drain_callback()
