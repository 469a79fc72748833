"""
Shared test doubles for repository unit tests.
"""

from __future__ import annotations

from typing import Any

from entity_repository.store import InMemoryDocumentStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedStore(InMemoryDocumentStore):
    """
    In-memory store with canned enumeration/search replies and a call log.
    """

    def __init__(
        self,
        *,
        enumerated: list[Any] | None = None,
        search_reply: Any = None,
    ) -> None:
        super().__init__()
        self.enumerated = enumerated
        self.search_reply = search_reply
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def enumerate_by_prefix(self, prefix: str) -> list[str]:
        self.calls.append(("enumerate_by_prefix", (prefix,)))
        if self.enumerated is None:
            return super().enumerate_by_prefix(prefix)
        return list(self.enumerated)

    def full_text_search(self, *args: Any) -> list[Any]:
        self.calls.append(("full_text_search", args))
        if self.search_reply is None:
            return super().full_text_search(*args)
        return self.search_reply
