"""
Redis-backed document store implementation.

The store implements the core ``DocumentStore`` protocol and can be injected
into :class:`entity_repository.EntityRepository`. Documents are written with
the RedisJSON module and searched with RediSearch (``FT.SEARCH``); locks and
pub/sub use core Redis commands.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from entity_repository.exceptions import StoreError
from redis import Redis
from redis.client import PubSub
from redis.cluster import ClusterNode, RedisCluster
from redis.exceptions import RedisError
from redis.sentinel import Sentinel

from .config import DeploymentMode, RedisStoreConfig

_LOGGER = logging.getLogger(__name__)

_SCAN_COUNT = 500

_DELETE_IF_VALUE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""


@contextmanager
def _translate_errors(command: str, *extra: type[Exception]) -> Iterator[None]:
    try:
        yield
    except (RedisError, *extra) as exc:
        raise StoreError(f"Redis {command} failed: {exc}") from exc


def build_client(config: RedisStoreConfig) -> Redis | RedisCluster:
    """
    Create a redis-py client for the configured deployment mode.

    All clients decode responses to ``str``.
    """
    mode = config.resolved_mode
    if mode is DeploymentMode.CLUSTER:
        return RedisCluster(
            startup_nodes=[ClusterNode(host, port) for host, port in config.endpoints()],
            username=config.username,
            password=config.password,
            socket_timeout=config.socket_timeout_seconds,
            decode_responses=True,
        )
    if mode is DeploymentMode.SENTINEL:
        sentinel = Sentinel(
            config.endpoints(),
            socket_timeout=config.socket_timeout_seconds,
            sentinel_kwargs={
                "username": config.sentinel_username,
                "password": config.sentinel_password,
                "socket_timeout": config.socket_timeout_seconds,
            },
        )
        return sentinel.master_for(
            config.master_name,
            username=config.username,
            password=config.password,
            db=config.db,
            decode_responses=True,
        )
    if config.url:
        return Redis.from_url(
            config.url,
            socket_timeout=config.socket_timeout_seconds,
            decode_responses=True,
        )
    host, port = config.endpoints()[0]
    return Redis(
        host=host,
        port=port,
        db=config.db,
        username=config.username,
        password=config.password,
        socket_timeout=config.socket_timeout_seconds,
        decode_responses=True,
    )


class RedisSubscription:
    """
    Subscription to one Redis pub/sub channel.

    :meth:`listen` polls the connection so that :meth:`close` from another
    thread ends the iterator within ``poll_seconds``.
    """

    def __init__(self, pubsub: PubSub, channel: str, *, poll_seconds: float) -> None:
        self.channel = channel
        self._pubsub = pubsub
        self._poll_seconds = poll_seconds
        self._closed = threading.Event()
        self._listening = False
        self._state_lock = threading.Lock()

    def listen(self) -> Iterator[Any]:
        """Yield message payloads until closed or the connection fails."""
        with self._state_lock:
            if self._closed.is_set():
                return
            self._listening = True
        try:
            while not self._closed.is_set():
                try:
                    message = self._pubsub.get_message(
                        ignore_subscribe_messages=True,
                        timeout=self._poll_seconds,
                    )
                except RedisError as exc:
                    if self._closed.is_set():
                        return
                    raise StoreError(f"Redis subscription to {self.channel!r} failed: {exc}") from exc
                if message is None or message.get("type") != "message":
                    continue
                yield message["data"]
        finally:
            self._release()

    def _release(self) -> None:
        with self._state_lock:
            self._listening = False
        try:
            self._pubsub.close()
        except RedisError as exc:
            _LOGGER.debug("Ignoring error while closing pubsub: channel=%s error=%s", self.channel, exc)

    def close(self) -> None:
        """Stop listening and release the pub/sub connection. Idempotent."""
        with self._state_lock:
            if self._closed.is_set():
                return
            self._closed.set()
            listening = self._listening
        if not listening:
            self._release()


class RedisDocumentStore:
    """
    Redis implementation of the entity repository store primitives.

    Data model
    ----------
    * entity documents are RedisJSON values at the root path
    * locks are plain string keys written with ``SET NX PX``
    * lock handles release through a Lua compare-and-delete on their token
    * search runs ``FT.SEARCH`` against an index named after the key prefix,
      which must be created separately (``FT.CREATE ... ON JSON PREFIX``)

    Notes
    -----
    redis-py clients are thread-safe through their connection pools, so the
    store adds no locking of its own.
    """

    def __init__(
        self,
        *,
        config: RedisStoreConfig | None = None,
        redis_client: Redis | RedisCluster | None = None,
    ) -> None:
        self.config = config or RedisStoreConfig()
        self._redis = redis_client if redis_client is not None else build_client(self.config)
        self._delete_if_value_script = self._redis.register_script(_DELETE_IF_VALUE_LUA)
        _LOGGER.info(
            "Redis document store created: %s",
            self.config.connection_string(redact_secrets=True),
        )

    @property
    def client(self) -> Redis | RedisCluster:
        return self._redis

    # ------------------------------------------------------------------ #
    # Key/value primitives
    # ------------------------------------------------------------------ #

    def exists(self, key: str) -> int:
        with _translate_errors("EXISTS"):
            return int(self._redis.exists(key))

    def set_document(self, key: str, document: Any) -> None:
        with _translate_errors("JSON.SET", TypeError, ValueError):
            self._redis.json().set(key, "$", document)

    def set_document_if_absent(self, key: str, document: Any) -> bool:
        with _translate_errors("JSON.SET NX", TypeError, ValueError):
            return bool(self._redis.json().set(key, "$", document, nx=True))

    def get_document(self, key: str) -> Any | None:
        with _translate_errors("JSON.GET"):
            return self._redis.json().get(key)

    def delete(self, key: str) -> int:
        with _translate_errors("DEL"):
            return int(self._redis.delete(key))

    def delete_if_value(self, key: str, value: Any) -> int:
        with _translate_errors("DEL IF VALUE"):
            return int(self._delete_if_value_script(keys=[key], args=[value]))

    def enumerate_by_prefix(self, prefix: str) -> list[str]:
        with _translate_errors("SCAN"):
            keys = self._redis.scan_iter(match=f"{prefix}*", count=_SCAN_COUNT)
            # SCAN may report a key more than once.
            return list(dict.fromkeys(keys))

    def set_if_absent(self, key: str, value: Any, ttl_seconds: float) -> bool:
        expiry_ms = max(1, int(round(ttl_seconds * 1000)))
        with _translate_errors("SET NX"):
            return bool(self._redis.set(key, value, nx=True, px=expiry_ms))

    # ------------------------------------------------------------------ #
    # Search
    # ------------------------------------------------------------------ #

    def full_text_search(
        self,
        index_name: str,
        query: str,
        offset: int,
        limit: int,
        sort_field: str | None,
        sort_direction: str,
    ) -> list[Any]:
        args: list[Any] = [
            "FT.SEARCH",
            index_name,
            query,
            "NOCONTENT",
            "WITHSCORES",
            "LIMIT",
            offset,
            limit,
        ]
        if sort_field:
            args.extend(("SORTBY", sort_field, sort_direction))
        with _translate_errors("FT.SEARCH"):
            reply = self._redis.execute_command(*args)
        return list(reply) if isinstance(reply, (list, tuple)) else reply

    # ------------------------------------------------------------------ #
    # Pub/sub
    # ------------------------------------------------------------------ #

    def publish(self, channel: str, payload: Any) -> int:
        with _translate_errors("PUBLISH"):
            return int(self._redis.publish(channel, payload))

    def subscribe(self, channel: str) -> RedisSubscription:
        with _translate_errors("SUBSCRIBE"):
            pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
            pubsub.subscribe(channel)
        return RedisSubscription(pubsub, channel, poll_seconds=self.config.pubsub_poll_seconds)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def ping(self) -> bool:
        with _translate_errors("PING"):
            return bool(self._redis.ping())

    def close(self) -> None:
        """Close the client connection pool. Safe to call more than once."""
        with _translate_errors("close"):
            self._redis.close()
        _LOGGER.info("Redis document store closed: mode=%s", self.config.resolved_mode.value)
