"""
Store protocol used by :class:`entity_repository.repository.EntityRepository`.

The repository depends on this primitive surface rather than a specific
client library, enabling the in-memory store and optional external backends
such as Redis without changing repository semantics.

Implementations raise :class:`entity_repository.exceptions.StoreError` when a
primitive fails.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Protocol


class StoreSubscription(Protocol):
    """
    Live subscription to one backend channel.

    ``listen`` blocks for messages and yields payloads in delivery order. The
    iterator ends after ``close`` is called or the connection is lost.
    """

    channel: str

    def listen(self) -> Iterator[Any]:
        """Yield message payloads until the subscription ends."""

    def close(self) -> None:
        """Unsubscribe and release the subscription connection."""


class DocumentStore(Protocol):
    """
    Behavioral contract for repository backends.

    Implementations are expected to be safe for concurrent access, because
    one repository handle is shared by many caller threads.
    """

    def exists(self, key: str) -> int:
        """Return the number of the given keys that exist (0 or 1)."""

    def set_document(self, key: str, document: Any) -> None:
        """Store ``document`` under ``key``, replacing any previous value."""

    def set_document_if_absent(self, key: str, document: Any) -> bool:
        """Store ``document`` only when ``key`` is absent; return ``True`` if written."""

    def get_document(self, key: str) -> Any | None:
        """Return the stored document, or ``None`` when ``key`` is absent."""

    def delete(self, key: str) -> int:
        """Delete ``key`` and return the number of removed keys."""

    def delete_if_value(self, key: str, value: Any) -> int:
        """Atomically delete ``key`` only while it holds ``value``; return removed count."""

    def enumerate_by_prefix(self, prefix: str) -> list[str]:
        """Return all keys starting with ``prefix`` in backend order."""

    def full_text_search(
        self,
        index_name: str,
        query: str,
        offset: int,
        limit: int,
        sort_field: str | None,
        sort_direction: str,
    ) -> list[Any]:
        """Return ``[total_count, key1, score1, key2, score2, ...]``."""

    def set_if_absent(self, key: str, value: Any, ttl_seconds: float) -> bool:
        """Atomically set ``key`` with an expiry when absent; return ``True`` if set."""

    def publish(self, channel: str, payload: Any) -> int:
        """Publish ``payload`` and return the number of receiving subscribers."""

    def subscribe(self, channel: str) -> StoreSubscription:
        """Open a subscription to ``channel``."""

    def ping(self) -> bool:
        """Return ``True`` when the backend is reachable."""

    def close(self) -> None:
        """Release backend connections."""
