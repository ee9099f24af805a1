# Copyright 2026-present Kensho Technologies, LLC.
"""Deliver the results of a subscription request over time, by push or by polling.

A dispatcher compiles the subscription variant of a request and runs it through the host's
transport, when the transport supports live delivery and push is enabled. Otherwise it
compiles the query variant and re-runs it on an interval, delivering only results that differ
from the last one delivered. Pushed results are throttled so that the consumer sees at most
one delivery per min_delivery_interval_ms, and never a stale value when a newer one exists.

Errors (from compilation of the document aside) are terminal: they are forwarded to the
consumer once and the dispatcher stops. Retrying is up to the host application.
"""
import asyncio
import copy
from enum import Enum, unique
import logging
from typing import Any, Callable, Optional

from ..compiler import CompiledQuery, generate_query
from ..request import Request, RequestInput, as_request
from ..results import check_execution_result, extract_operation_data
from ..schema import SchemaIndex
from .config import DispatcherConfig
from .throttle import Throttle
from .transport import QueryTransport


logger = logging.getLogger(__name__)

DataCallback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]
CompleteCallback = Callable[[], None]

# Marks that poll mode has not delivered anything yet, since None is a valid result.
_NOTHING_DELIVERED = object()


@unique
class DispatcherState(Enum):
    """The lifecycle of a dispatcher. Every state after ACTIVE is terminal."""

    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset(
    {DispatcherState.COMPLETED, DispatcherState.ERRORED, DispatcherState.CANCELLED}
)


@unique
class DeliveryMode(Enum):
    """How results reach the dispatcher."""

    PUSH = "push"
    POLL = "poll"


class SubscriptionDispatcher:
    """Manage the delivery of one subscription request to one consumer."""

    def __init__(
        self,
        schema_index: SchemaIndex,
        request: RequestInput,
        transport: QueryTransport,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        config: Optional[DispatcherConfig] = None,
    ) -> None:
        """Create an idle dispatcher. Call start() to begin delivering.

        Args:
            schema_index: the schema to compile the request against
            request: the request to subscribe to; its operation is replaced by "subscription"
                     in push mode and by "query" in poll mode
            transport: the host's GraphQL client
            on_data: called with each delivered value
            on_error: called once with the error that ended the subscription, if any
            on_complete: called once when the transport ends the subscription normally
            config: delivery settings; defaults to DispatcherConfig()
        """
        self._schema_index = schema_index
        self._request: Request = as_request(request)
        self._transport = transport
        self._on_data = on_data
        self._on_error = on_error
        self._on_complete = on_complete
        self._config = config if config is not None else DispatcherConfig()

        self._state = DispatcherState.IDLE
        self._mode: Optional[DeliveryMode] = None
        self._compiled_query: Optional[CompiledQuery] = None
        self._throttle: Optional[Throttle] = None
        self._task: Optional["asyncio.Task[None]"] = None
        # Created by start(), so that it belongs to the loop that drives delivery.
        self._closed: Optional[asyncio.Event] = None

    @property
    def state(self) -> DispatcherState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def mode(self) -> Optional[DeliveryMode]:
        """Return the delivery mode chosen by start(), or None if not started."""
        return self._mode

    @property
    def compiled_query(self) -> Optional[CompiledQuery]:
        """Return the document that start() compiled, or None if not started."""
        return self._compiled_query

    def start(self) -> None:
        """Choose the delivery mode, compile the document and begin delivering.

        Must be called from a coroutine running on the event loop that will drive delivery.

        Raises:
            GraphQLQueryGeneratorError: if the request cannot be compiled; the dispatcher
                                        then stays idle
        """
        if self._state != DispatcherState.IDLE:
            raise AssertionError(
                "Cannot start a dispatcher in state {}. Dispatchers are single-use.".format(
                    self._state
                )
            )
        loop = asyncio.get_running_loop()

        use_push = self._config.push_enabled and self._transport.supports_push
        if self._config.push_enabled and not self._transport.supports_push:
            logger.warning(
                'Push delivery is enabled, but the transport for "%s" does not support it. '
                "Falling back to polling every %sms.",
                self._request.collection,
                self._config.poll_interval_ms,
            )

        if use_push:
            compiled_query = generate_query(
                self._schema_index, self._request.with_operation("subscription")
            )
            self._throttle = Throttle(
                self._config.min_delivery_interval, self._deliver, scheduler=loop
            )
            self._mode = DeliveryMode.PUSH
            coroutine = self._run_push(compiled_query)
        else:
            compiled_query = generate_query(
                self._schema_index, self._request.with_operation("query")
            )
            self._mode = DeliveryMode.POLL
            coroutine = self._run_poll(compiled_query)

        logger.debug(
            "Starting %s delivery of %s.", self._mode.value, compiled_query.operation_name
        )
        self._compiled_query = compiled_query
        self._closed = asyncio.Event()
        self._state = DispatcherState.ACTIVE
        self._task = loop.create_task(coroutine)

    def cancel(self) -> None:
        """Stop delivering. Idempotent; no callback fires after this returns."""
        if self._state in TERMINAL_STATES:
            return

        self._state = DispatcherState.CANCELLED
        self._shutdown(cancel_task=True)
        logger.debug("Cancelled delivery of %s.", self._request.collection)

    async def wait_closed(self) -> DispatcherState:
        """Wait until the dispatcher reaches a terminal state, and return that state."""
        if self._closed is None:
            if self._state in TERMINAL_STATES:
                # Cancelled before it was started.
                return self._state
            raise AssertionError("Cannot wait for a dispatcher that was never started.")
        await self._closed.wait()
        return self._state

    def _extract(self, compiled_query: CompiledQuery, result: Any) -> Any:
        data = check_execution_result(result)
        return extract_operation_data(
            compiled_query.resolved_field_name,
            data,
            self._request.collection,
            self._request.is_aggregate,
        )

    async def _run_push(self, compiled_query: CompiledQuery) -> None:
        stream = None
        try:
            stream = self._transport.open(compiled_query.document, compiled_query.variables)
            async for result in stream:
                if self._state != DispatcherState.ACTIVE:
                    return
                self._throttle.push(self._extract(compiled_query, result))
        except asyncio.CancelledError:
            raise
        except Exception as e:  # Can't be more specific: the transport is host-supplied.
            self._fail(e)
            return
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if self._state == DispatcherState.ACTIVE:
            self._throttle.drain(self._complete)

    async def _run_poll(self, compiled_query: CompiledQuery) -> None:
        last_delivered = _NOTHING_DELIVERED
        while self._state == DispatcherState.ACTIVE:
            try:
                result = await self._transport.execute(
                    compiled_query.document, compiled_query.variables
                )
                value = self._extract(compiled_query, result)
            except asyncio.CancelledError:
                raise
            except Exception as e:  # Can't be more specific: the transport is host-supplied.
                self._fail(e)
                return

            if last_delivered is _NOTHING_DELIVERED or value != last_delivered:
                last_delivered = copy.deepcopy(value)
                self._deliver(value)

            await asyncio.sleep(self._config.poll_interval)

    def _deliver(self, value: Any) -> None:
        if self._state == DispatcherState.ACTIVE:
            self._on_data(value)

    def _fail(self, error: BaseException) -> None:
        if self._state != DispatcherState.ACTIVE:
            return

        self._state = DispatcherState.ERRORED
        self._shutdown()
        logger.debug("Delivery of %s failed: %s", self._request.collection, error)
        if self._on_error is not None:
            self._on_error(error)
        else:
            logger.error(
                "Unhandled error in subscription to %s: %s", self._request.collection, error
            )

    def _complete(self) -> None:
        if self._state != DispatcherState.ACTIVE:
            return

        self._state = DispatcherState.COMPLETED
        self._shutdown()
        if self._on_complete is not None:
            self._on_complete()

    def _shutdown(self, cancel_task: bool = False) -> None:
        if self._throttle is not None:
            self._throttle.cancel()
        if cancel_task and self._task is not None and not self._task.done():
            # Also closes the transport's stream, from the finally clause of _run_push().
            self._task.cancel()
        if self._closed is not None:
            self._closed.set()


def subscribe(
    schema_index: SchemaIndex,
    request: RequestInput,
    transport: QueryTransport,
    on_data: DataCallback,
    on_error: Optional[ErrorCallback] = None,
    on_complete: Optional[CompleteCallback] = None,
    config: Optional[DispatcherConfig] = None,
) -> SubscriptionDispatcher:
    """Create and start a dispatcher. See SubscriptionDispatcher for the arguments."""
    dispatcher = SubscriptionDispatcher(
        schema_index,
        request,
        transport,
        on_data,
        on_error=on_error,
        on_complete=on_complete,
        config=config,
    )
    dispatcher.start()
    return dispatcher
