# Copyright 2026-present Kensho Technologies, LLC.
from .config import DispatcherConfig  # noqa
from .dispatcher import (  # noqa
    DeliveryMode,
    DispatcherState,
    SubscriptionDispatcher,
    subscribe,
)
from .throttle import Scheduler, Throttle  # noqa
from .transport import QueryTransport  # noqa
