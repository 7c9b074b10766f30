"""
Core types for the pantry cache.

This module defines the data structures shared by every component:
- ValueKind: tagged classification of a decoded value
- Enums for storage roots and record state
- Expiry: when a record stops being valid
- Frozen dataclasses for the on-disk envelope and a loaded record
- to_epoch: datetime to epoch seconds
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any


def to_epoch(moment: datetime) -> float:
    """Convert a datetime to epoch seconds. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


class ValueKind(str, Enum):
    """Shape of a decoded JSON value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"

    @classmethod
    def of(cls, value: Any) -> ValueKind | None:
        """Classify a value, or return None if it is not JSON-shaped."""
        if value is None:
            return cls.NULL
        # bool is a subclass of int, check it first
        if isinstance(value, bool):
            return cls.BOOL
        if isinstance(value, (int, float)):
            return cls.NUMBER
        if isinstance(value, str):
            return cls.STRING
        if isinstance(value, (list, tuple)):
            return cls.SEQUENCE
        if isinstance(value, dict):
            return cls.MAPPING
        return None


class StorageRoot(str, Enum):
    """Where a record lives on disk."""

    PRIMARY = "primary"  # Durable, app-private; all writes go here
    LEGACY = "legacy"  # Older installations; read-only fallback


class RecordState(str, Enum):
    """Lifecycle state of a cached key."""

    ABSENT = "absent"
    VALID = "valid"
    EXPIRED = "expired"


class ExpiryKind(str, Enum):
    """How an expiry was specified by the caller."""

    NEVER = "never"
    SECONDS = "seconds"
    DATE = "date"


@dataclass(frozen=True)
class Expiry:
    """When a cached record stops being valid.

    Relative expiries are resolved into an absolute timestamp once, at write
    time, so validity never depends on when the file is read back.
    """

    kind: ExpiryKind = ExpiryKind.NEVER
    value: float | None = None

    @classmethod
    def never(cls) -> Expiry:
        """Record never expires."""
        return cls(ExpiryKind.NEVER)

    @classmethod
    def seconds(cls, seconds: float) -> Expiry:
        """Record expires `seconds` after it is written."""
        return cls(ExpiryKind.SECONDS, float(seconds))

    @classmethod
    def at(cls, moment: datetime | float) -> Expiry:
        """Record expires at an absolute datetime or epoch timestamp."""
        if isinstance(moment, datetime):
            return cls(ExpiryKind.DATE, to_epoch(moment))
        return cls(ExpiryKind.DATE, float(moment))

    @classmethod
    def coerce(cls, expires: Expiry | float | timedelta | datetime | None) -> Expiry:
        """Accept the shorthand forms callers pass to Pantry.pack.

        Args:
            expires: An Expiry, seconds from now, a timedelta, an absolute
                datetime, or None for never.

        Returns:
            The equivalent Expiry.
        """
        if expires is None:
            return cls.never()
        if isinstance(expires, Expiry):
            return expires
        if isinstance(expires, timedelta):
            return cls.seconds(expires.total_seconds())
        if isinstance(expires, datetime):
            return cls.at(expires)
        if isinstance(expires, bool) or not isinstance(expires, (int, float)):
            raise TypeError(f"Unsupported expiry: {expires!r}")
        return cls.seconds(expires)

    def resolve(self, now: float) -> float | None:
        """Absolute epoch timestamp for this expiry, or None if it never expires."""
        if self.kind is ExpiryKind.NEVER or self.value is None:
            return None
        if self.kind is ExpiryKind.SECONDS:
            return now + self.value
        return self.value


@dataclass(frozen=True)
class Envelope:
    """The on-disk unit: a stored value plus an optional absolute expiry."""

    storage: Any
    expires: float | None = None

    def is_valid_at(self, now: float) -> bool:
        """True if the envelope has not expired at `now`."""
        if self.expires is None:
            return True
        return self.expires > now

    def to_dict(self) -> dict[str, Any]:
        """Convert to the document written to disk."""
        document: dict[str, Any] = {}
        if self.expires is not None:
            document["expires"] = self.expires
        document["storage"] = self.storage
        return document

    @classmethod
    def from_dict(cls, document: dict[str, Any]) -> Envelope:
        """Build an envelope from a parsed document.

        A non-numeric `expires` is treated as absent: such files predate
        expiry metadata and never expire.
        """
        expires = document.get("expires")
        if isinstance(expires, bool) or not isinstance(expires, (int, float)):
            expires = None
        elif not math.isfinite(expires):
            expires = None
        return cls(storage=document["storage"], expires=expires)


@dataclass(frozen=True)
class StoredRecord:
    """An envelope together with the root it was loaded from."""

    key: str
    envelope: Envelope
    root: StorageRoot
