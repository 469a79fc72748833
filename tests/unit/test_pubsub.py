"""
Unit tests for publish/subscribe forwarding.
"""

from __future__ import annotations

import queue
import unittest
from collections.abc import Iterator
from typing import Any

from entity_repository import (
    EntityRepository,
    InMemoryDocumentStore,
    MessageStream,
    OperationFailedError,
    RepositoryConfig,
    StoreError,
)


class _FailingSubscription:
    """Delivers one payload, then loses its connection."""

    channel = "app:channel:broken"

    def __init__(self) -> None:
        self.closed = False

    def listen(self) -> Iterator[Any]:
        yield "first"
        raise StoreError("connection reset")

    def close(self) -> None:
        self.closed = True


class PublishSubscribeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryDocumentStore()
        self.repo = EntityRepository(self.store)

    def tearDown(self) -> None:
        self.repo.close()

    def test_messages_arrive_in_publish_order(self) -> None:
        stream = self.repo.subscribe("orders")
        self.addCleanup(stream.close)
        self.assertEqual(stream.channel, "app:channel:orders")
        for index in range(5):
            self.assertEqual(self.repo.publish("orders", f"m{index}"), 1)
        received = [stream.get(timeout_seconds=2) for _ in range(5)]
        self.assertEqual(received, ["m0", "m1", "m2", "m3", "m4"])

    def test_channel_uses_configured_keyspace(self) -> None:
        repo = EntityRepository(InMemoryDocumentStore(), RepositoryConfig("svc", "."))
        with repo.subscribe("events") as stream:
            self.assertEqual(stream.channel, "svc.channel.events")
            repo.publish("events", {"kind": "ping"})
            self.assertEqual(stream.get(timeout_seconds=2), {"kind": "ping"})
        repo.close()

    def test_publish_without_subscribers(self) -> None:
        self.assertEqual(self.repo.publish("nobody", "hello"), 0)

    def test_channels_are_isolated(self) -> None:
        orders = self.repo.subscribe("orders")
        users = self.repo.subscribe("users")
        self.addCleanup(orders.close)
        self.addCleanup(users.close)
        self.repo.publish("users", "u1")
        self.repo.publish("orders", "o1")
        self.assertEqual(orders.get(timeout_seconds=2), "o1")
        self.assertEqual(users.get(timeout_seconds=2), "u1")

    def test_every_subscriber_receives(self) -> None:
        first = self.repo.subscribe("orders")
        second = self.repo.subscribe("orders")
        self.addCleanup(first.close)
        self.addCleanup(second.close)
        self.assertEqual(self.repo.publish("orders", "x"), 2)
        self.assertEqual(first.get(timeout_seconds=2), "x")
        self.assertEqual(second.get(timeout_seconds=2), "x")

    def test_close_ends_iteration_after_buffered_messages(self) -> None:
        stream = self.repo.subscribe("orders")
        self.repo.publish("orders", "a")
        self.repo.publish("orders", "b")
        stream.close()
        self.assertEqual(list(stream), ["a", "b"])
        self.assertTrue(stream.finished)
        self.assertIsNone(stream.error)
        self.assertEqual(self.repo.publish("orders", "late"), 0)

    def test_store_close_ends_streams(self) -> None:
        stream = self.repo.subscribe("orders")
        self.repo.close()
        self.assertEqual(list(stream), [])
        with self.assertRaises(StopIteration):
            stream.get(timeout_seconds=0.1)

    def test_get_times_out_when_idle(self) -> None:
        stream = self.repo.subscribe("idle")
        self.addCleanup(stream.close)
        with self.assertRaises(queue.Empty):
            stream.get(timeout_seconds=0.05)

    def test_subscribe_on_closed_store_fails(self) -> None:
        self.store.close()
        with self.assertRaises(OperationFailedError):
            self.repo.subscribe("orders")

    def test_source_failure_closes_stream_and_keeps_error(self) -> None:
        subscription = _FailingSubscription()
        with self.assertLogs("entity_repository.subscriptions", level="WARNING"):
            stream = MessageStream(subscription, subscription.channel).start()
            self.assertEqual(list(stream), ["first"])
        self.assertIsInstance(stream.error, StoreError)
        stream.close()
        self.assertTrue(subscription.closed)


if __name__ == "__main__":
    unittest.main()
