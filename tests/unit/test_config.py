"""
Unit tests for keyspace and Redis connection configuration.
"""

from __future__ import annotations

import unittest

from entity_repository.config import RepositoryConfig
from entity_repository_redis.config import DeploymentMode, RedisStoreConfig, parse_address


class RepositoryConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = RepositoryConfig()
        self.assertEqual(config.as_dict(), {"key_prefix": "app", "key_separator": ":"})

    def test_empty_values_fall_back_to_defaults(self) -> None:
        config = RepositoryConfig(key_prefix="", key_separator="")
        self.assertEqual((config.key_prefix, config.key_separator), ("app", ":"))

    def test_rejects_unusable_keyspace(self) -> None:
        with self.assertRaises(ValueError):
            RepositoryConfig(key_separator="|")
        with self.assertRaises(ValueError):
            RepositoryConfig(key_prefix="my app")
        with self.assertRaises(ValueError):
            RepositoryConfig(key_prefix="a:b")

    def test_from_dict_accepts_both_spellings(self) -> None:
        self.assertEqual(
            RepositoryConfig.from_dict({"keyPrefix": "svc", "keySeparator": "."}).as_dict(),
            {"key_prefix": "svc", "key_separator": "."},
        )
        self.assertEqual(
            RepositoryConfig.from_dict({"key_prefix": "shop"}).as_dict(),
            {"key_prefix": "shop", "key_separator": ":"},
        )
        self.assertEqual(RepositoryConfig.from_dict({}).key_prefix, "app")


class RedisStoreConfigTests(unittest.TestCase):
    def test_mode_inference(self) -> None:
        self.assertIs(RedisStoreConfig().resolved_mode, DeploymentMode.STANDALONE)
        self.assertIs(
            RedisStoreConfig(addrs=["a:26379"], master_name="main").resolved_mode,
            DeploymentMode.SENTINEL,
        )
        self.assertIs(
            RedisStoreConfig(addrs=["a:7000", "b:7001"]).resolved_mode,
            DeploymentMode.CLUSTER,
        )
        self.assertIs(
            RedisStoreConfig(addrs=["a:7000", "b:7001"], mode="standalone").resolved_mode,
            DeploymentMode.STANDALONE,
        )

    def test_validation(self) -> None:
        with self.assertRaises(ValueError):
            RedisStoreConfig(mode=DeploymentMode.SENTINEL)
        with self.assertRaises(ValueError):
            RedisStoreConfig(db=-1)
        with self.assertRaises(ValueError):
            RedisStoreConfig(addrs=[])
        with self.assertRaises(ValueError):
            RedisStoreConfig(mode="galaxy")

    def test_connection_string(self) -> None:
        config = RedisStoreConfig(
            addrs=["s1:26379", "s2:26379"],
            master_name="main",
            sentinel_username="sent",
            sentinel_password="s3cret",
            username="app",
            password="pw",
            db=2,
        )
        self.assertEqual(
            config.connection_string(),
            "sentinel;main;sent;s3cret;app;pw;2;s1:26379,s2:26379",
        )
        self.assertEqual(
            config.connection_string(redact_secrets=True),
            "sentinel;main;sent;***;app;***;2;s1:26379,s2:26379",
        )

    def test_from_dict(self) -> None:
        config = RedisStoreConfig.from_dict(
            {"addrs": "a:7000, b:7001", "mode": "Cluster", "password": "pw"}
        )
        self.assertEqual(config.addrs, ["a:7000", "b:7001"])
        self.assertIs(config.mode, DeploymentMode.CLUSTER)
        self.assertEqual(config.endpoints(), [("a", 7000), ("b", 7001)])

    def test_parse_address(self) -> None:
        self.assertEqual(parse_address("redis.local:6380"), ("redis.local", 6380))
        self.assertEqual(parse_address("redis.local"), ("redis.local", 6379))
        with self.assertRaises(ValueError):
            parse_address("redis.local:port")


if __name__ == "__main__":
    unittest.main()
