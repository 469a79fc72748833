"""
Thread-safe in-memory document store.

The store implements :class:`entity_repository.store_protocol.DocumentStore`
entirely in process. It is used for tests, local development, and
single-process deployments where an external database is not required.

Documents are kept as compact JSON text, so every read returns a fresh copy
and values that cannot round-trip through JSON are rejected at write time.
"""

from __future__ import annotations

import json
import logging
import queue
import time
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from threading import Event, RLock
from typing import Any

from .exceptions import StoreError
from .keys import DEFAULT_KEY_SEPARATOR

_LOGGER = logging.getLogger(__name__)

_END_OF_STREAM = object()


@dataclass(slots=True)
class _Entry:
    encoded: str
    is_document: bool
    expires_at: float | None = None


class InMemorySubscription:
    """
    Subscription to one channel of an :class:`InMemoryDocumentStore`.

    Published payloads are buffered in an unbounded FIFO queue until
    :meth:`listen` consumes them.
    """

    def __init__(self, store: "InMemoryDocumentStore", channel: str) -> None:
        self.channel = channel
        self.subscription_id = uuid.uuid4().hex
        self._store = store
        self._messages: queue.Queue[Any] = queue.Queue()
        self._closed = Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _deliver(self, payload: Any) -> None:
        self._messages.put(payload)

    def listen(self) -> Iterator[Any]:
        """Yield payloads in publish order until the subscription is closed."""
        while True:
            payload = self._messages.get()
            if payload is _END_OF_STREAM:
                return
            yield payload

    def close(self) -> None:
        """Unsubscribe. Safe to call more than once."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._store._unsubscribe(self)
        self._messages.put(_END_OF_STREAM)


class InMemoryDocumentStore:
    """
    Concurrent in-process storage backing the repository primitives.

    Parameters
    ----------
    clock:
        Monotonic clock used for key expiry. Tests can inject a fake clock to
        control lock TTLs deterministically.
    key_separator:
        Separator that ends an index name inside a key. An index named
        ``app`` covers ``app:*`` keys but not ``apple:*`` keys, like
        ``FT.CREATE ... PREFIX 1 app:`` on Redis.

    Notes
    -----
    * Expired keys are removed lazily whenever they are touched.
    * Full-text search is a simplified, case-insensitive term match over the
      string values of stored documents whose key starts with the index name
      followed by the key separator.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        key_separator: str = DEFAULT_KEY_SEPARATOR,
    ) -> None:
        if not key_separator:
            raise ValueError("key_separator must not be empty.")
        self._entries: dict[str, _Entry] = {}
        self._subscribers: dict[str, dict[str, InMemorySubscription]] = {}
        self._clock = clock
        self._key_separator = key_separator
        self._lock = RLock()
        self._closed = False

    # ------------------------------------------------------------------ #
    # Serialization helpers
    # ------------------------------------------------------------------ #

    def _encode(self, value: Any) -> str:
        try:
            return json.dumps(value, separators=(",", ":"), sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise StoreError(f"Value is not JSON serializable: {exc}") from exc

    def _decode(self, value: str) -> Any:
        return json.loads(value)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreError("In-memory store is closed.")

    def _live_entry(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def _live_keys(self) -> list[str]:
        return [key for key in list(self._entries) if self._live_entry(key) is not None]

    # ------------------------------------------------------------------ #
    # Key/value primitives
    # ------------------------------------------------------------------ #

    def exists(self, key: str) -> int:
        with self._lock:
            self._ensure_open()
            return 1 if self._live_entry(key) is not None else 0

    def set_document(self, key: str, document: Any) -> None:
        encoded = self._encode(document)
        with self._lock:
            self._ensure_open()
            self._entries[key] = _Entry(encoded=encoded, is_document=True)

    def set_document_if_absent(self, key: str, document: Any) -> bool:
        encoded = self._encode(document)
        with self._lock:
            self._ensure_open()
            if self._live_entry(key) is not None:
                return False
            self._entries[key] = _Entry(encoded=encoded, is_document=True)
            return True

    def get_document(self, key: str) -> Any | None:
        with self._lock:
            self._ensure_open()
            entry = self._live_entry(key)
            if entry is None:
                return None
            if not entry.is_document:
                raise StoreError(f"Key {key!r} does not hold a document.")
            return self._decode(entry.encoded)

    def delete(self, key: str) -> int:
        with self._lock:
            self._ensure_open()
            if self._live_entry(key) is None:
                return 0
            del self._entries[key]
            return 1

    def delete_if_value(self, key: str, value: Any) -> int:
        encoded = self._encode(value)
        with self._lock:
            self._ensure_open()
            entry = self._live_entry(key)
            if entry is None or entry.encoded != encoded:
                return 0
            del self._entries[key]
            return 1

    def enumerate_by_prefix(self, prefix: str) -> list[str]:
        with self._lock:
            self._ensure_open()
            return [key for key in self._live_keys() if key.startswith(prefix)]

    def set_if_absent(self, key: str, value: Any, ttl_seconds: float) -> bool:
        if ttl_seconds <= 0:
            raise StoreError("Expiry must be > 0 seconds.")
        encoded = self._encode(value)
        with self._lock:
            self._ensure_open()
            if self._live_entry(key) is not None:
                return False
            self._entries[key] = _Entry(
                encoded=encoded,
                is_document=False,
                expires_at=self._clock() + float(ttl_seconds),
            )
            return True

    def ttl_seconds(self, key: str) -> float | None:
        """Return remaining expiry for ``key``, or ``None`` when absent/persistent."""
        with self._lock:
            self._ensure_open()
            entry = self._live_entry(key)
            if entry is None or entry.expires_at is None:
                return None
            return entry.expires_at - self._clock()

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
        terms = [term for term in query.lower().split() if term != "*"]
        index_prefix = index_name + self._key_separator
        with self._lock:
            self._ensure_open()
            matches: list[tuple[str, float, Any]] = []
            for key in self._live_keys():
                entry = self._entries[key]
                if not entry.is_document or not key.startswith(index_prefix):
                    continue
                document = self._decode(entry.encoded)
                score = _term_score(document, terms)
                if terms and score == 0:
                    continue
                matches.append((key, float(score), document))

        descending = sort_direction.upper() == "DESC"
        if sort_field:
            matches.sort(key=lambda item: _sort_value(item[2], sort_field), reverse=descending)
        else:
            matches.sort(key=lambda item: item[1], reverse=True)

        page = matches[offset : offset + limit] if limit > 0 else []
        reply: list[Any] = [len(matches)]
        for key, score, _document in page:
            reply.extend((key, score))
        return reply

    # ------------------------------------------------------------------ #
    # Pub/sub
    # ------------------------------------------------------------------ #

    def publish(self, channel: str, payload: Any) -> int:
        with self._lock:
            self._ensure_open()
            receivers = list(self._subscribers.get(channel, {}).values())
        for subscription in receivers:
            subscription._deliver(payload)
        return len(receivers)

    def subscribe(self, channel: str) -> InMemorySubscription:
        subscription = InMemorySubscription(self, channel)
        with self._lock:
            self._ensure_open()
            registry = self._subscribers.setdefault(channel, {})
            registry[subscription.subscription_id] = subscription
        return subscription

    def _unsubscribe(self, subscription: InMemorySubscription) -> None:
        with self._lock:
            registry = self._subscribers.get(subscription.channel)
            if not registry:
                return
            registry.pop(subscription.subscription_id, None)
            if not registry:
                self._subscribers.pop(subscription.channel, None)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def ping(self) -> bool:
        with self._lock:
            self._ensure_open()
        return True

    def close(self) -> None:
        """Close the store and end all live subscriptions. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions = [
                subscription
                for registry in self._subscribers.values()
                for subscription in registry.values()
            ]
        for subscription in subscriptions:
            subscription.close()
        _LOGGER.debug("In-memory store closed: subscriptions_ended=%d", len(subscriptions))


def _iter_text(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_text(item)
    elif isinstance(value, list):
        for item in value:
            yield from _iter_text(item)
    elif value is not None and not isinstance(value, bool):
        yield str(value)


def _term_score(document: Any, terms: list[str]) -> int:
    if not terms:
        return 1
    text = " ".join(_iter_text(document)).lower()
    score = 0
    for term in terms:
        occurrences = text.count(term)
        if occurrences == 0:
            return 0
        score += occurrences
    return score


def _sort_value(document: Any, field: str) -> tuple[int, int, Any]:
    if not isinstance(document, dict) or document.get(field) is None:
        return (1, 0, "")
    value = document[field]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, 0, value)
    return (0, 1, str(value))
