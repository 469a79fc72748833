"""
Configuration models for entity repositories.

Backend connection settings live with each backend (see
``entity_repository_redis.RedisStoreConfig``); this module only holds the
keyspace layout shared by every backend:

* key prefix, the first part of every key and the search index name
* key separator, joining key parts and derived lock/channel names
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .keys import DEFAULT_KEY_PREFIX, DEFAULT_KEY_SEPARATOR, is_valid_key_text


@dataclass(slots=True)
class RepositoryConfig:
    """
    Keyspace settings used by :class:`entity_repository.EntityRepository`.

    Parameters
    ----------
    key_prefix:
        First part of every key. Empty values fall back to ``"app"``.
    key_separator:
        Separator between key parts. Empty values fall back to ``":"``.

    Both values are fixed for the lifetime of a repository handle.
    """

    key_prefix: str = DEFAULT_KEY_PREFIX
    key_separator: str = DEFAULT_KEY_SEPARATOR

    def __post_init__(self) -> None:
        """Apply defaults for unset values and validate the keyspace layout."""
        if not self.key_prefix:
            self.key_prefix = DEFAULT_KEY_PREFIX
        if not self.key_separator:
            self.key_separator = DEFAULT_KEY_SEPARATOR

        if not is_valid_key_text(self.key_separator):
            raise ValueError(
                "RepositoryConfig.key_separator must only use characters allowed in keys."
            )
        if not is_valid_key_text(self.key_prefix):
            raise ValueError(
                "RepositoryConfig.key_prefix must only use characters allowed in keys."
            )
        if self.key_separator in self.key_prefix:
            raise ValueError("RepositoryConfig.key_prefix cannot contain the key separator.")

    def as_dict(self) -> dict[str, object]:
        return {"key_prefix": self.key_prefix, "key_separator": self.key_separator}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "RepositoryConfig":
        """
        Create a configuration from a mapping.

        Accepts ``key_prefix``/``key_separator`` and the camel-case
        ``keyPrefix``/``keySeparator`` spellings. Missing keys use defaults.
        """
        prefix = payload.get("key_prefix", payload.get("keyPrefix")) or ""
        separator = payload.get("key_separator", payload.get("keySeparator")) or ""
        return cls(key_prefix=str(prefix), key_separator=str(separator))
