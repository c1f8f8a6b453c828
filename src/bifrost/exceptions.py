"""Exception hierarchy for bifrost.

Request failures (401, 5xx, timeouts, ...) are *not* exceptions: the
repository turns them into a ``None`` result and a
:class:`~bifrost.notifier.SystemNotifier` call. The exceptions below cover
the local failures that happen around a request.

All exceptions inherit from :class:`BifrostError`, which carries an
``exit_code`` used by the CLI entry point.

Subclass hierarchy::

    BifrostError            (exit 1)
    +-- ConfigError         (exit 1)
    +-- StorageError        (exit 1)
    |   +-- CacheWriteError (exit 1)
    +-- DeserializationError (exit 7)
"""

from bifrost.exit_codes import EXIT_DESERIALIZATION_ERROR, EXIT_GENERIC_FAILURE


class BifrostError(Exception):
    """Base exception for all bifrost errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(BifrostError):
    """Raised for configuration problems (missing profiles, invalid JSON)."""


class StorageError(BifrostError):
    """Raised by a key-value store backend when a read or write fails."""


class CacheWriteError(StorageError):
    """Raised when a cache entry could not be persisted.

    Never escapes :class:`~bifrost.cache.ResponseCache`: caching is an
    optimisation, so the error is logged and the enclosing fetch proceeds.
    """


class DeserializationError(BifrostError):
    """Raised when a payload cannot be decoded or converted to the target type.

    The original exception (``KeyError`` in a converter, ``JSONDecodeError``,
    a pydantic ``ValidationError`` ...) is chained as ``__cause__`` but
    never raised across the adapter boundary.
    """

    exit_code = EXIT_DESERIALIZATION_ERROR

    def __str__(self) -> str:
        return f"DeserializationError: {self.message}"
