"""
Redis-backed entity repository convenience wrapper.
"""

from __future__ import annotations

from entity_repository.config import RepositoryConfig
from entity_repository.repository import EntityRepository
from redis import Redis
from redis.cluster import RedisCluster

from .config import RedisStoreConfig
from .store import RedisDocumentStore


class RedisEntityRepository(EntityRepository):
    """
    :class:`EntityRepository` variant that stores entities in Redis.

    Parameters
    ----------
    config:
        Keyspace prefix/separator settings.
    store_config:
        Redis connection settings used when ``redis_client`` is not supplied.
    redis_client:
        Optional preconfigured Redis client instance.
    """

    def __init__(
        self,
        config: RepositoryConfig | None = None,
        *,
        store_config: RedisStoreConfig | None = None,
        redis_client: Redis | RedisCluster | None = None,
    ) -> None:
        self.redis_store = RedisDocumentStore(
            config=store_config,
            redis_client=redis_client,
        )
        super().__init__(self.redis_store, config)
