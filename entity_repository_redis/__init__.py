"""
Redis backend for entity_repository.

Entities are stored as RedisJSON documents and searched through a RediSearch
index named after the key prefix:

    from entity_repository import RepositoryConfig
    from entity_repository_redis import RedisEntityRepository, RedisStoreConfig

    repo = RedisEntityRepository(
        RepositoryConfig(key_prefix="shop"),
        store_config=RedisStoreConfig(url="redis://127.0.0.1:6379/0"),
    )

Standalone, sentinel, and cluster deployments are selected through
:class:`RedisStoreConfig`. Users can either import this package directly or
use the core backend factory:

    from entity_repository import create_repository
    repo = create_repository(backend="redis", redis_url="redis://127.0.0.1:6379/0")
"""

from .config import DeploymentMode, RedisStoreConfig
from .repository import RedisEntityRepository
from .store import RedisDocumentStore, RedisSubscription, build_client

__all__ = [
    "DeploymentMode",
    "RedisDocumentStore",
    "RedisEntityRepository",
    "RedisStoreConfig",
    "RedisSubscription",
    "build_client",
]
