"""
Typed entity identifiers and their mapping to repository keys.

Two identifier shapes are supported:

* :class:`CompositeIdentifier` - an entity type tag plus an instance id,
  rendered as ``prefix:entity_prefix:id``
* :class:`SimpleIdentifier` - one opaque segment, rendered as ``prefix:value``

Each shape carries an explicit :class:`IdentifierKind` discriminator and the
codec dispatches on that tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from .exceptions import UnsupportedIdentifierError
from .keys import KeyGrammar, validate_entity_prefix


class IdentifierKind(str, Enum):
    """
    Discriminator for supported identifier shapes.

    COMPOSITE
        Entity prefix plus id, two key parts.
    SIMPLE
        Single opaque key part.
    """

    COMPOSITE = "composite"
    SIMPLE = "simple"


@dataclass(frozen=True, slots=True)
class CompositeIdentifier:
    """
    Identifier made of an entity type tag and an instance id.

    Parameters
    ----------
    entity_prefix:
        Entity type tag such as ``"user"``. Must start with a letter and
        contain only letters, digits, and underscores.
    id:
        Instance id within the entity type.
    """

    kind: ClassVar[IdentifierKind] = IdentifierKind.COMPOSITE

    entity_prefix: str
    id: str

    def parts(self) -> tuple[str, str]:
        return (self.entity_prefix, self.id)

    def __str__(self) -> str:
        return f"{self.entity_prefix}:{self.id}"


@dataclass(frozen=True, slots=True)
class SimpleIdentifier:
    """Identifier rendered as a single opaque key segment."""

    kind: ClassVar[IdentifierKind] = IdentifierKind.SIMPLE

    value: str

    def parts(self) -> tuple[str]:
        return (self.value,)

    def __str__(self) -> str:
        return self.value


EntityIdentifier = Union[CompositeIdentifier, SimpleIdentifier]


class IdentifierCodec:
    """
    Converts identifiers to validated keys and back.

    Rendering always runs full key validation, including for keys the library
    builds internally.
    """

    def __init__(self, grammar: KeyGrammar) -> None:
        self._grammar = grammar

    @property
    def grammar(self) -> KeyGrammar:
        return self._grammar

    def to_key(self, identifier: EntityIdentifier) -> str:
        """
        Render ``identifier`` as a key.

        Raises
        ------
        UnsupportedIdentifierError
            If the value is not a composite or simple identifier.
        InvalidEntityPrefixError
            If a composite identifier's entity prefix is malformed.
        KeyValidationError
            If the rendered key violates the keyspace grammar.
        """
        kind = getattr(identifier, "kind", None)
        if kind is IdentifierKind.COMPOSITE:
            validate_entity_prefix(identifier.entity_prefix)
            return self._grammar.create_key(identifier.entity_prefix, identifier.id)
        if kind is IdentifierKind.SIMPLE:
            return self._grammar.create_key(identifier.value)
        raise UnsupportedIdentifierError(
            f"Unsupported identifier type: {type(identifier).__name__}"
        )

    def from_key(self, key: str) -> EntityIdentifier:
        """
        Decode ``key`` into an identifier.

        Keys with two or more parts after the prefix decode to a
        :class:`CompositeIdentifier` built from the first two parts; any
        deeper parts are not represented. A single part decodes to a
        :class:`SimpleIdentifier`.
        """
        parts = self._grammar.parse_key(key)
        if len(parts) >= 2:
            return CompositeIdentifier(entity_prefix=parts[0], id=parts[1])
        return SimpleIdentifier(self._grammar.separator.join(parts))
