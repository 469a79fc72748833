"""
Entity repository operations over a document store.

:class:`EntityRepository` maps typed identifiers to validated keys and runs
CRUD, listing, search, locking, and pub/sub primitives against a
:class:`~entity_repository.store_protocol.DocumentStore`.

Error translation at this boundary:

* identifier/grammar errors become :class:`InvalidIdentifierError`
* store errors become :class:`OperationFailedError`
* precondition outcomes raise :class:`NotFoundError` / :class:`AlreadyExistsError`

The original exception is always chained as ``__cause__``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from .config import RepositoryConfig
from .context import OperationContext
from .exceptions import (
    AlreadyExistsError,
    EntityRepositoryError,
    InvalidIdentifierError,
    KeyValidationError,
    LockNotAcquiredError,
    NotFoundError,
    OperationFailedError,
    SearchResultFormatError,
    StoreError,
    UnsupportedIdentifierError,
)
from .identifiers import EntityIdentifier, IdentifierCodec
from .keys import KeyGrammar
from .store_protocol import DocumentStore
from .subscriptions import MessageStream

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

LOCK_SENTINEL = "1"
SORT_DIRECTIONS = ("ASC", "DESC")


class EntityRepository:
    """
    Generic entity storage keyed by :data:`EntityIdentifier` values.

    One handle is meant to be created at startup, shared by all caller
    threads, and closed at shutdown. The handle keeps no mutable state of its
    own; concurrency safety comes from the store.

    Parameters
    ----------
    store:
        Backend implementing the document store protocol.
    config:
        Keyspace prefix/separator settings. Defaults to ``app`` and ``:``.
    """

    def __init__(self, store: DocumentStore, config: RepositoryConfig | None = None) -> None:
        self.config = config or RepositoryConfig()
        self._store = store
        self._grammar = KeyGrammar(self.config.key_prefix, self.config.key_separator)
        self._codec = IdentifierCodec(self._grammar)

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def codec(self) -> IdentifierCodec:
        return self._codec

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _key_for(self, identifier: EntityIdentifier) -> str:
        try:
            return self._codec.to_key(identifier)
        except (KeyValidationError, UnsupportedIdentifierError) as exc:
            raise InvalidIdentifierError(f"Invalid identifier {identifier!r}: {exc}") from exc

    def _call(self, ctx: OperationContext | None, primitive: Callable[..., T], *args: Any) -> T:
        if ctx is not None:
            ctx.check()
        try:
            return primitive(*args)
        except StoreError as exc:
            raise OperationFailedError(f"Store operation failed: {exc}") from exc

    def _decode_keys(self, keys: list[Any]) -> list[EntityIdentifier]:
        identifiers: list[EntityIdentifier] = []
        for key in keys:
            if isinstance(key, bytes):
                key = key.decode("utf-8", errors="replace")
            if not isinstance(key, str):
                _LOGGER.debug("Skipping non-text key: %r", key)
                continue
            try:
                identifiers.append(self._codec.from_key(key))
            except EntityRepositoryError as exc:
                _LOGGER.debug("Skipping undecodable key: key=%s reason=%s", key, exc)
        return identifiers

    # ------------------------------------------------------------------ #
    # CRUD
    # ------------------------------------------------------------------ #

    def create(
        self,
        identifier: EntityIdentifier,
        value: Any,
        *,
        ctx: OperationContext | None = None,
    ) -> None:
        """
        Store a new entity.

        Raises
        ------
        AlreadyExistsError
            If the key already holds a value. The stored value is unchanged.
        """
        key = self._key_for(identifier)
        if self._call(ctx, self._store.exists, key):
            raise AlreadyExistsError(f"Entity {key!r} already exists.")
        if not self._call(ctx, self._store.set_document_if_absent, key, value):
            raise AlreadyExistsError(f"Entity {key!r} already exists.")

    def read(
        self,
        identifier: EntityIdentifier,
        factory: Callable[[Any], T] | None = None,
        *,
        ctx: OperationContext | None = None,
    ) -> Any:
        """
        Return the stored value for ``identifier``.

        Parameters
        ----------
        factory:
            Optional callable converting the decoded document into the
            caller's type, for example a dataclass ``from_dict`` method.

        Raises
        ------
        NotFoundError
            If nothing is stored under the identifier.
        """
        key = self._key_for(identifier)
        document = self._call(ctx, self._store.get_document, key)
        if document is None:
            raise NotFoundError(f"Entity {key!r} not found.")
        if factory is not None:
            return factory(document)
        return document

    def update(
        self,
        identifier: EntityIdentifier,
        value: Any,
        *,
        ctx: OperationContext | None = None,
    ) -> None:
        """
        Replace the stored value of an existing entity.

        Raises
        ------
        NotFoundError
            If the entity does not exist. Nothing is created.
        """
        key = self._key_for(identifier)
        if not self._call(ctx, self._store.exists, key):
            raise NotFoundError(f"Entity {key!r} not found.")
        self._call(ctx, self._store.set_document, key, value)

    def delete(self, identifier: EntityIdentifier, *, ctx: OperationContext | None = None) -> None:
        """
        Delete an entity.

        Raises
        ------
        NotFoundError
            If no key was removed.
        """
        key = self._key_for(identifier)
        if self._call(ctx, self._store.delete, key) == 0:
            raise NotFoundError(f"Entity {key!r} not found.")

    # ------------------------------------------------------------------ #
    # Enumeration
    # ------------------------------------------------------------------ #

    def list(
        self,
        pattern: EntityIdentifier,
        *,
        ctx: OperationContext | None = None,
    ) -> list[EntityIdentifier]:
        """
        Return identifiers of all keys starting with the key of ``pattern``.

        Keys that fail validation or decoding are skipped, so foreign keys in
        a shared database do not break enumeration. Order follows the store.
        """
        prefix = self._key_for(pattern)
        keys = self._call(ctx, self._store.enumerate_by_prefix, prefix)
        return self._decode_keys(list(keys))

    def search(
        self,
        query: str,
        offset: int = 0,
        limit: int = 10,
        sort_by: str | None = None,
        sort_dir: str = "ASC",
        *,
        ctx: OperationContext | None = None,
    ) -> list[EntityIdentifier]:
        """
        Run a full-text query against the index named after the key prefix.

        Returns an empty list when nothing matches. Result keys that fail
        validation or decoding are skipped.

        Raises
        ------
        ValueError
            If paging arguments are negative or ``sort_dir`` is not
            ``ASC``/``DESC``.
        SearchResultFormatError
            If the store reply is not ``[total, key, score, ...]``.
        """
        if offset < 0 or limit < 0:
            raise ValueError("Search offset and limit must be >= 0.")
        direction = sort_dir.upper()
        if direction not in SORT_DIRECTIONS:
            raise ValueError(f"Search sort direction must be one of {SORT_DIRECTIONS}.")

        reply = self._call(
            ctx,
            self._store.full_text_search,
            self.config.key_prefix,
            query,
            offset,
            limit,
            sort_by,
            direction,
        )
        if not isinstance(reply, (list, tuple)) or len(reply) < 1:
            raise SearchResultFormatError(f"Unexpected search result format: {reply!r}")
        total = reply[0]
        if isinstance(total, bool) or not isinstance(total, int):
            raise SearchResultFormatError(f"Unexpected total results format: {total!r}")
        if total == 0:
            return []
        return self._decode_keys(list(reply[1::2]))

    # ------------------------------------------------------------------ #
    # Locking
    # ------------------------------------------------------------------ #

    def acquire_lock(
        self,
        identifier: EntityIdentifier,
        ttl_seconds: float,
        *,
        token: str = LOCK_SENTINEL,
        ctx: OperationContext | None = None,
    ) -> bool:
        """
        Try once to take the distributed lock guarding ``identifier``.

        Returns ``True`` when acquired and ``False`` when already held. The
        lock expires after ``ttl_seconds`` even if never released. ``token``
        is the value stored under the lock key; pass the same token to
        :meth:`release_lock` to release only a lock this caller still owns.
        """
        if ttl_seconds <= 0:
            raise ValueError("Lock ttl_seconds must be > 0.")
        lock_key = self._grammar.derive_lock_key(self._key_for(identifier))
        acquired = bool(
            self._call(ctx, self._store.set_if_absent, lock_key, token, ttl_seconds)
        )
        _LOGGER.debug("Lock acquire: key=%s acquired=%s ttl=%s", lock_key, acquired, ttl_seconds)
        return acquired

    def release_lock(
        self,
        identifier: EntityIdentifier,
        *,
        token: str | None = None,
        ctx: OperationContext | None = None,
    ) -> None:
        """
        Release the lock guarding ``identifier``.

        Without ``token`` the lock is deleted whoever holds it. With
        ``token`` it is deleted only while it still stores that token, so a
        caller whose lock expired cannot remove a later holder's lock.

        Raises
        ------
        NotFoundError
            If the lock was not held (never taken, released, expired, or
            owned by another token).
        """
        lock_key = self._grammar.derive_lock_key(self._key_for(identifier))
        if token is None:
            removed = self._call(ctx, self._store.delete, lock_key)
        else:
            removed = self._call(ctx, self._store.delete_if_value, lock_key, token)
        if removed == 0:
            raise NotFoundError(f"Lock {lock_key!r} not held.")
        _LOGGER.debug("Lock released: key=%s", lock_key)

    def lock(self, identifier: EntityIdentifier, ttl_seconds: float) -> "EntityLock":
        """Return a lock handle usable as a context manager."""
        return EntityLock(self, identifier, ttl_seconds)

    # ------------------------------------------------------------------ #
    # Pub/sub
    # ------------------------------------------------------------------ #

    def publish(self, channel: str, message: Any, *, ctx: OperationContext | None = None) -> int:
        """Publish ``message`` on a logical channel and return the receiver count."""
        full_channel = self._grammar.derive_channel(channel)
        return int(self._call(ctx, self._store.publish, full_channel, message))

    def subscribe(self, channel: str, *, ctx: OperationContext | None = None) -> MessageStream:
        """
        Subscribe to a logical channel.

        Returns a started :class:`MessageStream`. Close the stream to
        unsubscribe; it also ends on its own when the store connection drops.
        """
        full_channel = self._grammar.derive_channel(channel)
        subscription = self._call(ctx, self._store.subscribe, full_channel)
        return MessageStream(subscription, full_channel).start()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def ping(self, *, ctx: OperationContext | None = None) -> None:
        """Raise :class:`OperationFailedError` when the store is unreachable."""
        if not self._call(ctx, self._store.ping):
            raise OperationFailedError("Store ping returned a negative reply.")

    def close(self) -> None:
        """Release the store connection."""
        try:
            self._store.close()
        except StoreError as exc:
            raise OperationFailedError(f"Store close failed: {exc}") from exc
        _LOGGER.info("Entity repository closed: prefix=%s", self.config.key_prefix)

    def __enter__(self) -> "EntityRepository":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        self.close()
        return False


class EntityLock:
    """
    Handle for the distributed lock guarding one entity.

    The handle performs a single acquisition attempt; it never waits or
    retries. Used as a context manager it raises
    :class:`LockNotAcquiredError` when the lock is already held.

    Each acquisition stores a fresh random token, and release deletes the
    lock only while it still holds that token. A handle whose lock expired
    never removes the lock of a later holder.
    """

    def __init__(self, repository: EntityRepository, identifier: EntityIdentifier, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Lock ttl_seconds must be > 0.")
        self._repository = repository
        self._identifier = identifier
        self._ttl_seconds = float(ttl_seconds)
        self._token: str | None = None

    @property
    def identifier(self) -> EntityIdentifier:
        return self._identifier

    @property
    def held(self) -> bool:
        """Return ``True`` when this handle acquired the lock and has not released it."""
        return self._token is not None

    def acquire(self, *, ctx: OperationContext | None = None) -> bool:
        token = uuid.uuid4().hex
        if self._repository.acquire_lock(self._identifier, self._ttl_seconds, token=token, ctx=ctx):
            self._token = token
            return True
        return False

    def release(self, *, ctx: OperationContext | None = None) -> bool:
        """
        Release the lock if this handle holds it.

        Returns ``False`` when the handle does not hold the lock, the lock
        already expired, or another holder took it after expiry.
        """
        token, self._token = self._token, None
        if token is None:
            return False
        try:
            self._repository.release_lock(self._identifier, token=token, ctx=ctx)
        except NotFoundError:
            return False
        return True

    def __enter__(self) -> "EntityLock":
        if not self.acquire():
            raise LockNotAcquiredError(f"Lock for {self._identifier} is already held.")
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        self.release()
        return False
