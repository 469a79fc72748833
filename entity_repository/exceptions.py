"""
Custom exceptions used by the entity repository.

Keeping library-specific errors in one module gives users a predictable
import surface for catching and handling operational edge cases.

Hierarchy overview::

    EntityRepositoryError
    +-- KeyValidationError (also a ValueError)
    |   +-- InvalidKeyLengthError
    |   +-- InvalidKeyCharsError
    |   +-- InvalidKeyPrefixError
    |   +-- EmptyKeyPartError
    |   |   +-- InvalidKeySuffixError
    |   +-- InvalidEntityPrefixError
    +-- UnsupportedIdentifierError
    +-- InvalidIdentifierError
    +-- NotFoundError
    +-- AlreadyExistsError
    +-- LockNotAcquiredError
    +-- StoreError
    +-- OperationFailedError
    |   +-- SearchResultFormatError
    +-- OperationCancelledError
    |   +-- DeadlineExceededError
    +-- BackendConfigurationError
    +-- BackendNotAvailableError
"""


class EntityRepositoryError(Exception):
    """Base error type for all library-level exceptions."""


class KeyValidationError(EntityRepositoryError, ValueError):
    """
    Raised when a key or key fragment violates the keyspace grammar.

    Grammar errors are always detected locally, before any backend call.
    Each check has its own subclass so callers can tell which rule failed.
    """


class InvalidKeyLengthError(KeyValidationError):
    """Raised when a key is shorter or longer than the allowed range."""


class InvalidKeyCharsError(KeyValidationError):
    """Raised when a key contains characters outside ``[A-Za-z0-9_:.-]``."""


class InvalidKeyPrefixError(KeyValidationError):
    """Raised when a key does not start with ``prefix + separator``."""


class EmptyKeyPartError(KeyValidationError):
    """
    Raised when splitting a key on the separator yields an empty part.

    This catches doubled separators anywhere in the key, for example
    ``app:user::42`` or a trailing separator.
    """


class InvalidKeySuffixError(EmptyKeyPartError):
    """
    Raised when no non-empty part follows the key prefix.

    This is the empty-part case for the part right after the prefix
    (``app::42``), reported by its own check.
    """


class InvalidEntityPrefixError(KeyValidationError):
    """
    Raised when a composite identifier's entity prefix is malformed.

    Entity prefixes must start with a letter and contain only letters,
    numbers, and underscores.
    """


class UnsupportedIdentifierError(EntityRepositoryError):
    """Raised when an identifier is neither composite nor simple."""


class InvalidIdentifierError(EntityRepositoryError):
    """
    Raised by repository operations when an identifier cannot be rendered.

    The underlying grammar or unsupported-identifier error is available as
    ``__cause__``.
    """


class NotFoundError(EntityRepositoryError):
    """Raised when the addressed entity or lock does not exist."""


class AlreadyExistsError(EntityRepositoryError):
    """Raised by ``create`` when the addressed entity is already stored."""


class LockNotAcquiredError(EntityRepositoryError):
    """Raised when a lock handle is entered while another holder owns it."""


class StoreError(EntityRepositoryError):
    """
    Raised by document store implementations when a primitive fails.

    Examples include network failures, timeouts, backend-internal errors, or
    use of a store after it has been closed.
    """


class OperationFailedError(EntityRepositoryError):
    """
    Raised by repository operations when the backing store reports an error.

    The original store error is preserved as ``__cause__`` for diagnostics.
    """


class SearchResultFormatError(OperationFailedError):
    """Raised when a full-text search reply does not have the expected shape."""


class OperationCancelledError(EntityRepositoryError):
    """Raised when an operation context was cancelled before a backend call."""


class DeadlineExceededError(OperationCancelledError):
    """Raised when an operation context deadline has passed."""


class BackendConfigurationError(EntityRepositoryError):
    """Raised when a backend name or backend options are not recognised."""


class BackendNotAvailableError(EntityRepositoryError):
    """Raised when a named backend requires a package that is not installed."""
