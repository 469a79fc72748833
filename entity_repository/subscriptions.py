"""
Background forwarding of pub/sub messages.

Each call to :meth:`entity_repository.EntityRepository.subscribe` opens one
store subscription and starts one daemon thread that copies payloads from the
store onto an unbounded :class:`MessageStream`. When the store subscription
ends, because it was closed or its connection dropped, the thread marks the
stream finished so consumers stop instead of blocking forever.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterator
from typing import Any

from .store_protocol import StoreSubscription

_LOGGER = logging.getLogger(__name__)

_END_OF_STREAM = object()


class MessageStream:
    """
    Ordered, unbounded stream of payloads received on one channel.

    Iterate the stream (or call :meth:`get`) to consume messages. Iteration
    ends once the underlying subscription has closed and every buffered
    payload has been consumed.
    """

    def __init__(self, subscription: StoreSubscription, channel: str) -> None:
        self._subscription = subscription
        self._channel = channel
        self._messages: queue.Queue[Any] = queue.Queue()
        self._finished = threading.Event()
        self._drained = False
        self.error: BaseException | None = None
        self._worker = threading.Thread(
            target=self._forward,
            name=f"entity-repository-subscription-{channel}",
            daemon=True,
        )

    @property
    def channel(self) -> str:
        """Return the backend channel name this stream is subscribed to."""
        return self._channel

    @property
    def finished(self) -> bool:
        """Return ``True`` once the source subscription has ended."""
        return self._finished.is_set()

    def start(self) -> "MessageStream":
        self._worker.start()
        return self

    def _forward(self) -> None:
        try:
            for payload in self._subscription.listen():
                self._messages.put(payload)
        except Exception as exc:  # noqa: BLE001 - connection loss ends the stream
            self.error = exc
            _LOGGER.warning(
                "Subscription source failed: channel=%s error=%s",
                self._channel,
                exc,
                exc_info=True,
            )
        finally:
            self._finished.set()
            self._messages.put(_END_OF_STREAM)
            _LOGGER.debug("Subscription forwarding stopped: channel=%s", self._channel)

    def get(self, timeout_seconds: float | None = None) -> Any:
        """
        Return the next payload.

        Raises
        ------
        queue.Empty
            If no payload arrives within ``timeout_seconds``.
        StopIteration
            If the stream has ended.
        """
        if self._drained:
            raise StopIteration
        payload = self._messages.get(timeout=timeout_seconds)
        if payload is _END_OF_STREAM:
            self._drained = True
            raise StopIteration
        return payload

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.get()
            except StopIteration:
                return

    def close(self, timeout_seconds: float | None = 1.0) -> None:
        """
        Unsubscribe at the store and wait for the forwarding thread to stop.

        Payloads already buffered remain readable until the end marker.
        """
        self._subscription.close()
        if self._worker.is_alive() and threading.current_thread() is not self._worker:
            self._worker.join(timeout_seconds)

    def __enter__(self) -> "MessageStream":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        self.close()
        return False
