"""
Keyspace grammar for repository keys.

A key is the configured prefix followed by one or more identifier parts, all
joined by the configured separator::

    app:user:42
    ^^^ ^^^^ ^^
    prefix, entity prefix, id

Validation runs a fixed sequence of checks and raises a dedicated exception
type for the first rule that fails, so malformed input can be traced back to
the identifier fragment that produced it.
"""

from __future__ import annotations

import re

from .exceptions import (
    EmptyKeyPartError,
    InvalidEntityPrefixError,
    InvalidKeyCharsError,
    InvalidKeyLengthError,
    InvalidKeyPrefixError,
    InvalidKeySuffixError,
)

DEFAULT_KEY_PREFIX = "app"
DEFAULT_KEY_SEPARATOR = ":"
MIN_KEY_LENGTH = 5
MAX_KEY_LENGTH = 256
LOCK_KEY_PART = "lock"
CHANNEL_KEY_PART = "channel"

_VALID_KEY_RE = re.compile(r"[A-Za-z0-9_:.-]+")
_ENTITY_PREFIX_RE = re.compile(r"[A-Za-z][A-Za-z0-9_]*")


def is_valid_key_text(value: str) -> bool:
    """Return ``True`` when every character of ``value`` is allowed in a key."""
    return _VALID_KEY_RE.fullmatch(value) is not None


def validate_entity_prefix(entity_prefix: str) -> None:
    """
    Validate the entity prefix of a composite identifier.

    Raises
    ------
    InvalidEntityPrefixError
        If the value does not start with a letter followed by letters,
        digits, or underscores.
    """
    if not isinstance(entity_prefix, str) or _ENTITY_PREFIX_RE.fullmatch(entity_prefix) is None:
        raise InvalidEntityPrefixError(
            f"Invalid entity prefix {entity_prefix!r}: must start with a letter and "
            "contain only letters, numbers, and underscores."
        )


class KeyGrammar:
    """
    Builds, parses, and validates keys for one prefix/separator pair.

    Instances are immutable and safe to share between threads.
    """

    __slots__ = ("_prefix", "_separator")

    def __init__(
        self,
        prefix: str = DEFAULT_KEY_PREFIX,
        separator: str = DEFAULT_KEY_SEPARATOR,
    ) -> None:
        self._prefix = prefix
        self._separator = separator

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def separator(self) -> str:
        return self._separator

    def validate(self, key: str) -> None:
        """
        Validate ``key`` against the keyspace grammar.

        Checks run in order and the first failure wins: length, character
        set, prefix, non-empty suffix, and finally the empty-part scan.
        """
        if not isinstance(key, str):
            raise InvalidKeyCharsError(f"Key must be a string, got {type(key).__name__}.")
        if len(key) < MIN_KEY_LENGTH or len(key) > MAX_KEY_LENGTH:
            raise InvalidKeyLengthError(
                f"Key length must be between {MIN_KEY_LENGTH} and {MAX_KEY_LENGTH} "
                f"characters, got {len(key)}."
            )
        if not is_valid_key_text(key):
            raise InvalidKeyCharsError(
                f"Key {key!r} must contain only alphanumeric characters, underscores, "
                "colons, dots, and hyphens."
            )
        expected = self._prefix + self._separator
        if not key.startswith(expected):
            raise InvalidKeyPrefixError(f"Key {key!r} must start with {expected!r}.")

        parts = key.split(self._separator)
        if len(parts) < 2 or parts[1] == "":
            raise InvalidKeySuffixError(
                f"Key {key!r} must have at least one non-empty part after the prefix."
            )
        for part in parts:
            if part == "":
                raise EmptyKeyPartError(f"Key {key!r} contains an empty part.")

    def create_key(self, *parts: str) -> str:
        """Join ``parts`` under the prefix and return the validated key."""
        for part in parts:
            if not isinstance(part, str):
                raise InvalidKeyCharsError(
                    f"Key part {part!r} must be a string, got {type(part).__name__}."
                )
        key = self._separator.join((self._prefix, *parts))
        self.validate(key)
        return key

    def parse_key(self, key: str) -> list[str]:
        """Validate ``key`` and return its parts after the prefix."""
        self.validate(key)
        return key.split(self._separator)[1:]

    def derive_lock_key(self, key: str) -> str:
        """Return the lock key guarding the entity stored under ``key``."""
        return key + self._separator + LOCK_KEY_PART

    def derive_channel(self, channel: str) -> str:
        """Return the backend channel name for a logical pub/sub channel."""
        return self._separator.join((self._prefix, CHANNEL_KEY_PART, channel))

    def __repr__(self) -> str:
        return f"KeyGrammar(prefix={self._prefix!r}, separator={self._separator!r})"
