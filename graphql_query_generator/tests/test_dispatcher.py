# Copyright 2026-present Kensho Technologies, LLC.
import asyncio
import unittest

from graphql import ExecutionResult, GraphQLError

from ..exceptions import QueryExecutionError, UnresolvedFieldError
from ..request import Request
from ..subscriptions import (
    DeliveryMode,
    DispatcherConfig,
    DispatcherState,
    SubscriptionDispatcher,
    subscribe,
)
from .test_helpers import QUERY_ONLY_SCHEMA_TEXT, get_schema_index


# Marks the end of a fake subscription stream.
END_OF_STREAM = object()


class FakeTransport:
    """An in-memory transport. Pushed items are fed to open() streams through a queue."""

    def __init__(self, supports_push=True, poll_results=()) -> None:
        self.supports_push = supports_push
        self.poll_results = list(poll_results)
        self.stream_items = asyncio.Queue()
        self.executed = []
        self.opened = []
        self.stream_closed = False

    async def execute(self, document, variables):
        self.executed.append((document, variables))
        result = self.poll_results[min(len(self.executed), len(self.poll_results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result

    def open(self, document, variables):
        self.opened.append((document, variables))
        return self._stream()

    async def _stream(self):
        try:
            while True:
                item = await self.stream_items.get()
                if item is END_OF_STREAM:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.stream_closed = True


def _users_result(*user_ids):
    return ExecutionResult(data={"users": [{"id": user_id} for user_id in user_ids]})


async def _let_tasks_run() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


class DispatcherTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.schema_index = get_schema_index()
        self.request = Request("subscription", "users", returning="id", limit=10)
        self.received = []
        self.errors = []
        self.completions = []

    def _subscribe(self, transport, **config_kwargs) -> SubscriptionDispatcher:
        return subscribe(
            self.schema_index,
            self.request,
            transport,
            self.received.append,
            on_error=self.errors.append,
            on_complete=lambda: self.completions.append(True),
            config=DispatcherConfig(**config_kwargs),
        )


class PushModeTests(DispatcherTestCase):
    async def test_delivery_and_completion(self) -> None:
        transport = FakeTransport()
        dispatcher = self._subscribe(transport, min_delivery_interval_ms=0)
        self.assertEqual(DeliveryMode.PUSH, dispatcher.mode)
        self.assertEqual(DispatcherState.ACTIVE, dispatcher.state)
        self.assertEqual("subscription", dispatcher.compiled_query.operation_type)

        await _let_tasks_run()
        self.assertEqual(1, len(transport.opened))
        self.assertEqual({"v1": 10}, transport.opened[0][1])

        transport.stream_items.put_nowait(_users_result("u1"))
        transport.stream_items.put_nowait(_users_result("u1", "u2"))
        await _let_tasks_run()
        self.assertEqual([[{"id": "u1"}], [{"id": "u1"}, {"id": "u2"}]], self.received)

        transport.stream_items.put_nowait(END_OF_STREAM)
        state = await asyncio.wait_for(dispatcher.wait_closed(), timeout=1)
        self.assertEqual(DispatcherState.COMPLETED, state)
        self.assertEqual([True], self.completions)
        self.assertEqual([], self.errors)
        self.assertTrue(transport.stream_closed)

    async def test_throttled_delivery_completes_after_trailing_value(self) -> None:
        transport = FakeTransport()
        dispatcher = self._subscribe(transport, min_delivery_interval_ms=50)
        await _let_tasks_run()

        for user_id in ("u1", "u2", "u3"):
            transport.stream_items.put_nowait(_users_result(user_id))
        transport.stream_items.put_nowait(END_OF_STREAM)
        await _let_tasks_run()

        # The first value is delivered at once; the others are still waiting for the interval.
        self.assertEqual([[{"id": "u1"}]], self.received)
        self.assertEqual(DispatcherState.ACTIVE, dispatcher.state)

        state = await asyncio.wait_for(dispatcher.wait_closed(), timeout=1)
        self.assertEqual(DispatcherState.COMPLETED, state)
        self.assertEqual([[{"id": "u1"}], [{"id": "u3"}]], self.received)
        self.assertEqual([True], self.completions)

    async def test_result_errors_are_terminal(self) -> None:
        transport = FakeTransport()
        dispatcher = self._subscribe(transport, min_delivery_interval_ms=0)
        await _let_tasks_run()

        transport.stream_items.put_nowait(
            ExecutionResult(data=None, errors=[GraphQLError("permission denied")])
        )
        transport.stream_items.put_nowait(_users_result("u1"))
        state = await asyncio.wait_for(dispatcher.wait_closed(), timeout=1)

        self.assertEqual(DispatcherState.ERRORED, state)
        self.assertEqual(1, len(self.errors))
        self.assertIsInstance(self.errors[0], QueryExecutionError)
        await _let_tasks_run()
        self.assertEqual([], self.received)
        self.assertEqual([], self.completions)
        self.assertTrue(transport.stream_closed)

    async def test_transport_errors_are_forwarded(self) -> None:
        transport = FakeTransport()
        dispatcher = self._subscribe(transport, min_delivery_interval_ms=0)
        await _let_tasks_run()

        error = ConnectionError("connection lost")
        transport.stream_items.put_nowait(error)
        state = await asyncio.wait_for(dispatcher.wait_closed(), timeout=1)
        self.assertEqual(DispatcherState.ERRORED, state)
        self.assertEqual([error], self.errors)

    async def test_cancellation_is_final(self) -> None:
        transport = FakeTransport()
        dispatcher = self._subscribe(transport, min_delivery_interval_ms=1000)
        await _let_tasks_run()

        transport.stream_items.put_nowait(_users_result("u1"))
        transport.stream_items.put_nowait(_users_result("u2"))
        await _let_tasks_run()
        self.assertEqual([[{"id": "u1"}]], self.received)

        dispatcher.cancel()
        self.assertEqual(DispatcherState.CANCELLED, dispatcher.state)

        transport.stream_items.put_nowait(_users_result("u3"))
        transport.stream_items.put_nowait(END_OF_STREAM)
        await _let_tasks_run()

        # Neither the pending throttled value nor anything pushed later is delivered.
        self.assertEqual([[{"id": "u1"}]], self.received)
        self.assertEqual([], self.completions)
        self.assertEqual([], self.errors)
        self.assertTrue(transport.stream_closed)

        # Cancelling again is a no-op.
        dispatcher.cancel()
        self.assertEqual(DispatcherState.CANCELLED, await dispatcher.wait_closed())

    async def test_cancellation_from_consumer_callback(self) -> None:
        transport = FakeTransport()
        dispatchers = []

        def on_data(value):
            self.received.append(value)
            dispatchers[0].cancel()

        dispatchers.append(
            subscribe(
                self.schema_index,
                self.request,
                transport,
                on_data,
                config=DispatcherConfig(min_delivery_interval_ms=0),
            )
        )
        await _let_tasks_run()
        transport.stream_items.put_nowait(_users_result("u1"))
        transport.stream_items.put_nowait(_users_result("u2"))
        await _let_tasks_run()

        self.assertEqual([[{"id": "u1"}]], self.received)
        self.assertEqual(DispatcherState.CANCELLED, dispatchers[0].state)

    async def test_compilation_errors_are_raised_from_start(self) -> None:
        transport = FakeTransport()
        dispatcher = SubscriptionDispatcher(
            get_schema_index(QUERY_ONLY_SCHEMA_TEXT), self.request, transport, self.received.append
        )
        with self.assertRaises(UnresolvedFieldError):
            dispatcher.start()
        self.assertEqual(DispatcherState.IDLE, dispatcher.state)
        self.assertEqual([], transport.opened)

    async def test_dispatchers_are_single_use(self) -> None:
        dispatcher = self._subscribe(FakeTransport())
        with self.assertRaises(AssertionError):
            dispatcher.start()
        dispatcher.cancel()


class PollModeTests(DispatcherTestCase):
    async def _wait_for_fetches(self, transport: FakeTransport, count: int) -> None:
        async def wait():
            while len(transport.executed) < count:
                await asyncio.sleep(0.005)

        await asyncio.wait_for(wait(), timeout=1)

    async def test_fallback_to_polling(self) -> None:
        transport = FakeTransport(supports_push=False, poll_results=[_users_result("u1")])
        with self.assertLogs("graphql_query_generator.subscriptions.dispatcher", "WARNING"):
            dispatcher = self._subscribe(transport, poll_interval_ms=10)
        self.assertEqual(DeliveryMode.POLL, dispatcher.mode)
        self.assertEqual("query", dispatcher.compiled_query.operation_type)
        self.assertEqual("QueryUsers", dispatcher.compiled_query.operation_name)
        dispatcher.cancel()

    async def test_push_disabled(self) -> None:
        transport = FakeTransport(supports_push=True, poll_results=[_users_result("u1")])
        dispatcher = self._subscribe(transport, push_enabled=False, poll_interval_ms=10)
        self.assertEqual(DeliveryMode.POLL, dispatcher.mode)

        await self._wait_for_fetches(transport, 1)
        dispatcher.cancel()
        self.assertEqual([], transport.opened)
        self.assertEqual([[{"id": "u1"}]], self.received)

    async def test_delivers_only_changes(self) -> None:
        transport = FakeTransport(
            supports_push=False,
            poll_results=[
                _users_result("u1"),
                _users_result("u1"),
                _users_result("u1", "u2"),
                _users_result("u1", "u2"),
            ],
        )
        dispatcher = self._subscribe(transport, push_enabled=False, poll_interval_ms=10)

        await self._wait_for_fetches(transport, 5)
        dispatcher.cancel()
        self.assertEqual([[{"id": "u1"}], [{"id": "u1"}, {"id": "u2"}]], self.received)

        # No fetch happens after cancellation.
        fetch_count = len(transport.executed)
        await asyncio.sleep(0.05)
        self.assertEqual(fetch_count, len(transport.executed))

    async def test_first_result_is_always_delivered(self) -> None:
        self.request = Request("subscription", "users", pk_columns={"id": "u1"})
        transport = FakeTransport(
            supports_push=False, poll_results=[ExecutionResult(data={"users_by_pk": None})]
        )
        dispatcher = self._subscribe(transport, push_enabled=False, poll_interval_ms=10)

        await self._wait_for_fetches(transport, 3)
        dispatcher.cancel()
        self.assertEqual([None], self.received)
        self.assertEqual({"v1": "u1"}, dispatcher.compiled_query.variables)

    async def test_fetch_errors_are_terminal(self) -> None:
        error = ConnectionError("connection lost")
        transport = FakeTransport(
            supports_push=False, poll_results=[_users_result("u1"), error, _users_result("u2")]
        )
        dispatcher = self._subscribe(transport, push_enabled=False, poll_interval_ms=10)

        state = await asyncio.wait_for(dispatcher.wait_closed(), timeout=1)
        self.assertEqual(DispatcherState.ERRORED, state)
        self.assertEqual([[{"id": "u1"}]], self.received)
        self.assertEqual([error], self.errors)

        # Errors are never retried.
        await asyncio.sleep(0.05)
        self.assertEqual(2, len(transport.executed))


class RefusingTransport(FakeTransport):
    """A transport that fails to open a live stream."""

    def open(self, document, variables):
        self.opened.append((document, variables))
        raise ConnectionError("connection refused")


class StreamOpeningTests(DispatcherTestCase):
    async def test_open_failure_is_terminal(self) -> None:
        transport = RefusingTransport()
        dispatcher = self._subscribe(transport, min_delivery_interval_ms=0)

        state = await asyncio.wait_for(dispatcher.wait_closed(), timeout=1)
        self.assertEqual(DispatcherState.ERRORED, state)
        self.assertEqual(1, len(transport.opened))
        self.assertEqual(1, len(self.errors))
        self.assertIsInstance(self.errors[0], ConnectionError)
        self.assertEqual([], self.received)
        self.assertEqual([], self.completions)


class DispatcherLifecycleTests(unittest.TestCase):
    def test_created_outside_the_running_loop(self) -> None:
        received = []
        transport = FakeTransport()
        dispatcher = SubscriptionDispatcher(
            get_schema_index(),
            Request("subscription", "users", returning="id"),
            transport,
            received.append,
            config=DispatcherConfig(min_delivery_interval_ms=0),
        )

        async def run():
            # The queue must belong to the running loop on older interpreters.
            transport.stream_items = asyncio.Queue()
            dispatcher.start()
            await _let_tasks_run()
            transport.stream_items.put_nowait(_users_result("u1"))
            transport.stream_items.put_nowait(END_OF_STREAM)
            return await asyncio.wait_for(dispatcher.wait_closed(), timeout=1)

        self.assertEqual(DispatcherState.COMPLETED, asyncio.run(run()))
        self.assertEqual([[{"id": "u1"}]], received)

    def test_wait_closed_without_start(self) -> None:
        dispatcher = SubscriptionDispatcher(
            get_schema_index(), Request("subscription", "users"), FakeTransport(), [].append
        )
        with self.assertRaises(AssertionError):
            asyncio.run(dispatcher.wait_closed())

        dispatcher.cancel()
        self.assertEqual(DispatcherState.CANCELLED, asyncio.run(dispatcher.wait_closed()))
