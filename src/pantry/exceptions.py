"""
Exception hierarchy for the pantry cache.

All exceptions inherit from PantryError, which carries optional structured
context for logging. Apart from InvalidKeyError, none of these escape the
public Pantry API: they are caught at the component seams and turned into
a None / False result plus a log line.
"""

from __future__ import annotations

from typing import Any


class PantryError(Exception):
    """Base exception for all cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(PantryError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Namespace containing a path separator
        - Non-positive default TTL
    """

    pass


class InvalidKeyError(PantryError, ValueError):
    """Raised when a cache key cannot be mapped to a single file name.

    Context should include:
        - key: The rejected key
    """

    pass


class EncodeError(PantryError):
    """Raised when a value cannot be represented in the on-disk format.

    Context should include:
        - path: Location inside the value (e.g. "storage.items[2]")
        - type: Python type name of the offending value
    """

    pass


class DecodeError(PantryError):
    """Raised when a record file is corrupt or not an envelope.

    Context should include:
        - reason: What was wrong with the content
    """

    pass


class MissingValueError(PantryError):
    """Raised by Warehouse.require when a value is missing or has the wrong shape.

    Storable constructors raise this to signal a construction failure.

    Context should include:
        - value_key: The key that was looked up
        - expected: The requested type name
    """

    pass
