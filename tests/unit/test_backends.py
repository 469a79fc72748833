"""
Unit tests for backend factory helpers.
"""

from __future__ import annotations

import unittest
from unittest import mock

from entity_repository import (
    BackendConfigurationError,
    CompositeIdentifier,
    EntityRepository,
    InMemoryDocumentStore,
    RepositoryConfig,
    StoreBackend,
    available_backends,
    create_repository,
    create_store,
)
from entity_repository_redis import RedisDocumentStore, RedisStoreConfig

from helpers import FakeClock


class CreateStoreTests(unittest.TestCase):
    def test_memory_backend_names(self) -> None:
        for name in ("memory", " MEMORY ", StoreBackend.MEMORY):
            with self.subTest(name=name):
                self.assertIsInstance(create_store(name), InMemoryDocumentStore)

    def test_memory_backend_accepts_clock(self) -> None:
        clock = FakeClock()
        store = create_store("memory", clock=clock)
        store.set_if_absent("app:x:lock", "1", 1)
        clock.advance(2)
        self.assertEqual(store.exists("app:x:lock"), 0)

    def test_unknown_backend(self) -> None:
        with self.assertRaises(BackendConfigurationError):
            create_store("sqlite")

    def test_unknown_options(self) -> None:
        with self.assertRaises(BackendConfigurationError):
            create_store("memory", redis_url="redis://localhost")
        with self.assertRaises(BackendConfigurationError):
            create_store("redis", redis_client=mock.MagicMock(), namespace="x")

    def test_redis_backend_with_injected_client(self) -> None:
        client = mock.MagicMock()
        store = create_store("redis", redis_client=client)
        self.assertIsInstance(store, RedisDocumentStore)
        self.assertIs(store.client, client)

    def test_redis_backend_with_plugin_config(self) -> None:
        config = RedisStoreConfig(url="redis://cache:6379/3")
        store = create_store("redis", config=config, redis_client=mock.MagicMock())
        self.assertIs(store.config, config)

    def test_available_backends(self) -> None:
        self.assertEqual(available_backends(), ("memory", "redis"))


class CreateRepositoryTests(unittest.TestCase):
    def test_builds_repository(self) -> None:
        repo = create_repository(RepositoryConfig(key_prefix="shop"))
        self.assertIsInstance(repo, EntityRepository)
        self.assertIsInstance(repo.store, InMemoryDocumentStore)
        self.assertEqual(repo.config.key_prefix, "shop")
        repo.close()

    def test_memory_store_follows_repository_separator(self) -> None:
        with create_repository(RepositoryConfig(key_prefix="svc", key_separator=".")) as repo:
            repo.create(CompositeIdentifier("user", "1"), {"name": "alice"})
            repo.store.set_document("svcx.user.2", {"name": "alice"})
            self.assertEqual(repo.search("alice"), [CompositeIdentifier("user", "1")])

    def test_default_config(self) -> None:
        with create_repository() as repo:
            self.assertEqual(repo.config.as_dict(), {"key_prefix": "app", "key_separator": ":"})


if __name__ == "__main__":
    unittest.main()
