"""
Connection settings for the Redis document store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_REDIS_PORT = 6379


class DeploymentMode(str, Enum):
    """
    Supported Redis deployment topologies.

    STANDALONE
        Single server (or a URL).
    SENTINEL
        Master discovered through sentinels, requires ``master_name``.
    CLUSTER
        Redis Cluster, ``addrs`` are startup nodes.
    """

    STANDALONE = "standalone"
    SENTINEL = "sentinel"
    CLUSTER = "cluster"


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into a tuple, defaulting the port to 6379."""
    host, sep, port = address.strip().rpartition(":")
    if not sep:
        return address.strip(), DEFAULT_REDIS_PORT
    if not host or not port.isdigit():
        raise ValueError(f"Invalid Redis address {address!r}; expected host:port.")
    return host, int(port)


@dataclass(slots=True)
class RedisStoreConfig:
    """
    Configuration for :class:`entity_repository_redis.RedisDocumentStore`.

    Parameters
    ----------
    url:
        Redis connection URL. When set in standalone mode it takes
        precedence over ``addrs``/``db``/credentials.
    addrs:
        ``host:port`` endpoints: the server, the sentinels, or cluster
        startup nodes depending on ``mode``.
    master_name:
        Sentinel master name.
    sentinel_username, sentinel_password:
        Credentials for the sentinel processes themselves.
    username, password:
        Credentials for the data nodes.
    db:
        Logical database index (ignored in cluster mode).
    mode:
        Deployment topology. When ``None`` it is inferred: a master name
        selects sentinel, more than one address selects cluster, otherwise
        standalone.
    socket_timeout_seconds:
        Socket timeout for commands; ``None`` blocks indefinitely.
    pubsub_poll_seconds:
        How long a subscription waits for a message before re-checking
        whether it was closed.
    """

    url: str | None = None
    addrs: list[str] = field(default_factory=lambda: ["127.0.0.1:6379"])
    master_name: str | None = None
    sentinel_username: str | None = None
    sentinel_password: str | None = None
    username: str | None = None
    password: str | None = None
    db: int = 0
    mode: DeploymentMode | None = None
    socket_timeout_seconds: float | None = 5.0
    pubsub_poll_seconds: float = 0.5

    def __post_init__(self) -> None:
        """Normalize the deployment mode and validate values."""
        if self.mode is not None and not isinstance(self.mode, DeploymentMode):
            self.mode = DeploymentMode(str(self.mode).strip().lower())
        if self.db < 0:
            raise ValueError("RedisStoreConfig.db must be >= 0.")
        if self.socket_timeout_seconds is not None and self.socket_timeout_seconds <= 0:
            raise ValueError("RedisStoreConfig.socket_timeout_seconds must be > 0.")
        if self.pubsub_poll_seconds <= 0:
            raise ValueError("RedisStoreConfig.pubsub_poll_seconds must be > 0.")
        if not self.url and not self.addrs:
            raise ValueError("RedisStoreConfig needs a url or at least one address.")
        if self.resolved_mode is DeploymentMode.SENTINEL and not self.master_name:
            raise ValueError("RedisStoreConfig.master_name is required in sentinel mode.")

    @property
    def resolved_mode(self) -> DeploymentMode:
        """Return the explicit mode, or the topology implied by the settings."""
        if self.mode is not None:
            return self.mode
        if self.master_name:
            return DeploymentMode.SENTINEL
        if len(self.addrs) > 1:
            return DeploymentMode.CLUSTER
        return DeploymentMode.STANDALONE

    def endpoints(self) -> list[tuple[str, int]]:
        return [parse_address(address) for address in self.addrs]

    def connection_string(self, *, redact_secrets: bool = False) -> str:
        """
        Render a diagnostic connection summary.

        Format: ``mode;master;sentinel_user;sentinel_pass;user;pass;db;addrs``.
        """
        def secret(value: str | None) -> str:
            if redact_secrets and value:
                return "***"
            return value or ""

        return ";".join(
            [
                self.resolved_mode.value,
                self.master_name or "",
                self.sentinel_username or "",
                secret(self.sentinel_password),
                self.username or "",
                secret(self.password),
                str(self.db),
                ",".join(self.addrs),
            ]
        )

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "RedisStoreConfig":
        """
        Create a configuration from a mapping of option names.

        ``addrs`` may be a list or a comma-separated string.
        """
        options = dict(payload)
        addrs = options.pop("addrs", None)
        if isinstance(addrs, str):
            addrs = [item.strip() for item in addrs.split(",") if item.strip()]
        if addrs:
            options["addrs"] = list(addrs)
        options["mode"] = options.get("mode") or None
        return cls(**options)
