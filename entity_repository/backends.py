"""
Backend factory helpers for easy store switching.

This module gives application developers a uniform way to pick a storage
backend by name without rewriting repository bootstrap logic.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from .config import RepositoryConfig
from .exceptions import BackendConfigurationError, BackendNotAvailableError
from .repository import EntityRepository
from .store import InMemoryDocumentStore
from .store_protocol import DocumentStore


class StoreBackend(str, Enum):
    """
    Built-in backend names supported by the factory helpers.

    MEMORY
        In-process in-memory store.
    REDIS
        Redis store (JSON + search modules) provided by ``entity_repository_redis``.
    """

    MEMORY = "memory"
    REDIS = "redis"


def _normalize_backend(backend: str | StoreBackend) -> StoreBackend:
    """
    Normalize backend name into :class:`StoreBackend` enum value.
    """
    if isinstance(backend, StoreBackend):
        return backend
    lowered = str(backend).strip().lower()
    try:
        return StoreBackend(lowered)
    except ValueError as exc:
        valid = ", ".join(item.value for item in StoreBackend)
        raise BackendConfigurationError(
            f"Unknown backend {backend!r}. Supported values: {valid}."
        ) from exc


def available_backends() -> tuple[str, ...]:
    """
    Return backend names available in the current environment.

    The Redis backend appears only when its client library can be imported.
    """
    backends = [StoreBackend.MEMORY.value]
    try:
        __import__("entity_repository_redis")
    except ImportError:
        pass
    else:
        backends.append(StoreBackend.REDIS.value)
    return tuple(backends)


def create_store(backend: str | StoreBackend = StoreBackend.MEMORY, **backend_options: Any) -> DocumentStore:
    """
    Create a store backend instance from a short backend name.

    Parameters
    ----------
    backend:
        Backend selector string (``"memory"`` or ``"redis"``).
    backend_options:
        Backend-specific options.

        Memory options:
            ``clock`` (callable returning monotonic seconds) and
            ``key_separator`` (separator ending an index name in keys).
        Redis options:
            ``redis_url`` (str), ``redis_client`` and optional plugin-native
            ``config`` object.
    """
    selected = _normalize_backend(backend)
    if selected is StoreBackend.MEMORY:
        memory_options = {
            name: backend_options.pop(name)
            for name in ("clock", "key_separator")
            if name in backend_options
        }
        if backend_options:
            unknown = ", ".join(sorted(str(key) for key in backend_options))
            raise BackendConfigurationError(
                f"Unknown memory backend options: {unknown}."
            )
        return InMemoryDocumentStore(**memory_options)
    if selected is StoreBackend.REDIS:
        try:
            from entity_repository_redis import RedisDocumentStore, RedisStoreConfig
        except ImportError as exc:
            raise BackendNotAvailableError(
                "Redis backend requires the 'redis' package."
            ) from exc

        config = backend_options.pop("config", None)
        redis_client = backend_options.pop("redis_client", None)
        if config is None:
            redis_url = backend_options.pop("redis_url", None)
            config = RedisStoreConfig(url=redis_url)
        if backend_options:
            unknown = ", ".join(sorted(str(key) for key in backend_options))
            raise BackendConfigurationError(
                f"Unknown Redis backend options: {unknown}."
            )
        return RedisDocumentStore(config=config, redis_client=redis_client)
    raise BackendConfigurationError(f"Unhandled backend: {selected!r}")


def create_repository(
    config: RepositoryConfig | None = None,
    *,
    backend: str | StoreBackend = StoreBackend.MEMORY,
    **backend_options: Any,
) -> EntityRepository:
    """
    Build :class:`EntityRepository` using named backend in one step.

    This helper avoids explicit store wiring code:

    ``repo = create_repository(config, backend="redis", redis_url="...")``
    """
    config = config or RepositoryConfig()
    if _normalize_backend(backend) is StoreBackend.MEMORY:
        backend_options.setdefault("key_separator", config.key_separator)
    store = create_store(backend=backend, **backend_options)
    return EntityRepository(store, config)
