"""
entity_repository
=================

Generic entity storage over a schemaless key-value/document store.

Application code addresses stored values with typed identifiers instead of
raw keys:

* :class:`entity_repository.identifiers.CompositeIdentifier` - entity type
  tag plus instance id, stored under ``app:user:42``
* :class:`entity_repository.identifiers.SimpleIdentifier` - single opaque
  segment, stored under ``app:settings``

Every key is rendered through a validating keyspace grammar, so malformed
identifier fragments are rejected locally with a dedicated error type before
any backend call is made.

The repository offers:

* create/read/update/delete with existence preconditions
* prefix listing and full-text search that skip foreign keys
* TTL-backed distributed locks
* publish/subscribe on derived channel names

Redis-backed implementation is available through ``entity_repository_redis``
(Redis with the JSON and search modules). Store switching can be done with
one parameter:

    from entity_repository import create_repository

    repo = create_repository(backend="memory")
    repo = create_repository(backend="redis", redis_url="redis://127.0.0.1:6379/0")

Typical usage::

    from entity_repository import CompositeIdentifier, RepositoryConfig, create_repository

    repo = create_repository(RepositoryConfig(key_prefix="shop"))
    user = CompositeIdentifier("user", "42")
    repo.create(user, {"name": "Alice"})

    with repo.lock(user, ttl_seconds=5):
        profile = repo.read(user)
        repo.update(user, {**profile, "visits": 1})

    repo.close()
"""

from .backends import StoreBackend, available_backends, create_repository, create_store
from .config import RepositoryConfig
from .context import OperationContext
from .exceptions import (
    AlreadyExistsError,
    BackendConfigurationError,
    BackendNotAvailableError,
    DeadlineExceededError,
    EmptyKeyPartError,
    EntityRepositoryError,
    InvalidEntityPrefixError,
    InvalidIdentifierError,
    InvalidKeyCharsError,
    InvalidKeyLengthError,
    InvalidKeyPrefixError,
    InvalidKeySuffixError,
    KeyValidationError,
    LockNotAcquiredError,
    NotFoundError,
    OperationCancelledError,
    OperationFailedError,
    SearchResultFormatError,
    StoreError,
    UnsupportedIdentifierError,
)
from .identifiers import (
    CompositeIdentifier,
    EntityIdentifier,
    IdentifierCodec,
    IdentifierKind,
    SimpleIdentifier,
)
from .keys import KeyGrammar, validate_entity_prefix
from .repository import EntityLock, EntityRepository
from .store import InMemoryDocumentStore
from .store_protocol import DocumentStore, StoreSubscription
from .subscriptions import MessageStream

__all__ = [
    "AlreadyExistsError",
    "BackendConfigurationError",
    "BackendNotAvailableError",
    "CompositeIdentifier",
    "DeadlineExceededError",
    "DocumentStore",
    "EmptyKeyPartError",
    "EntityIdentifier",
    "EntityLock",
    "EntityRepository",
    "EntityRepositoryError",
    "IdentifierCodec",
    "IdentifierKind",
    "InMemoryDocumentStore",
    "InvalidEntityPrefixError",
    "InvalidIdentifierError",
    "InvalidKeyCharsError",
    "InvalidKeyLengthError",
    "InvalidKeyPrefixError",
    "InvalidKeySuffixError",
    "KeyGrammar",
    "KeyValidationError",
    "LockNotAcquiredError",
    "MessageStream",
    "NotFoundError",
    "OperationCancelledError",
    "OperationContext",
    "OperationFailedError",
    "RepositoryConfig",
    "SearchResultFormatError",
    "SimpleIdentifier",
    "StoreBackend",
    "StoreError",
    "StoreSubscription",
    "UnsupportedIdentifierError",
    "available_backends",
    "create_repository",
    "create_store",
    "validate_entity_prefix",
]
