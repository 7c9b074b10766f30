"""
Pantry: the store handle.

Wires the locator, codec and expiry policy together and exposes the public
cache operations. Nothing here raises for cache conditions: reads return
None when a record is missing, expired, corrupt or of the wrong shape, and
writes/deletes report success as a bool.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta
from pathlib import PurePath
from typing import Any, Callable, TypeVar

from pantry import extractor
from pantry.codec import RecordCodec
from pantry.config import Settings, get_settings
from pantry.expiry import ExpiryPolicy
from pantry.filestore import FileStore
from pantry.locator import StoreLocator, validate_key
from pantry.logging import get_logger, log_context
from pantry.storable import is_storable_type
from pantry.types import Envelope, Expiry, RecordState, StorageRoot
from pantry.warehouse import Warehouse

logger = get_logger(__name__)

T = TypeVar("T")

ExpiresArg = Expiry | float | timedelta | datetime | None

_DEFAULT: Any = object()


class Pantry:
    """Persistent key-value cache with lazy expiry.

    Example:
        pantry = Pantry.from_settings()
        pantry.pack("user", {"name": "Ann", "age": 30}, expires=60)
        pantry.unpack("user")              # {"name": "Ann", "age": 30}
        pantry.unpack("user", Person)      # Person(name="Ann", age=30)
    """

    def __init__(
        self,
        primary_root: str | PurePath,
        legacy_root: str | PurePath,
        namespace: str = "pantry",
        file_store: FileStore | None = None,
        clock: Callable[[], float] = time.time,
        default_expiry: Expiry | None = None,
    ) -> None:
        """Initialize the store handle.

        Args:
            primary_root: Durable root; all writes land here.
            legacy_root: Older root, read for compatibility only.
            namespace: Directory name under each root.
            file_store: Backend for file access (local disk by default).
            clock: Returns the current epoch time in seconds.
            default_expiry: Used by pack() when no expiry is given.
        """
        self.locator = StoreLocator(primary_root, legacy_root, namespace, file_store)
        self.codec = RecordCodec(self.locator, clock)
        self.policy = ExpiryPolicy(self.codec)
        self.default_expiry = default_expiry or Expiry.never()

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> Pantry:
        """Build a store handle from configuration.

        Args:
            settings: Settings to use; defaults to get_settings().
            **kwargs: Passed through to the constructor (file_store, clock).
        """
        settings = settings or get_settings()
        default_expiry = (
            Expiry.seconds(settings.PANTRY_DEFAULT_TTL)
            if settings.PANTRY_DEFAULT_TTL
            else None
        )
        return cls(
            primary_root=settings.PANTRY_DATA_DIR,
            legacy_root=settings.PANTRY_LEGACY_DIR,
            namespace=settings.PANTRY_NAMESPACE,
            default_expiry=default_expiry,
            **kwargs,
        )

    def path_for(self, key: str, root: StorageRoot = StorageRoot.PRIMARY) -> PurePath:
        """File path of `key` in a root."""
        return self.locator.resolve(key, root)

    # Writing

    def pack(self, key: str, value: Any, expires: ExpiresArg = _DEFAULT) -> bool:
        """Store a value under a key.

        Args:
            key: The cache key.
            value: A JSON value or Storable, possibly nested in lists/dicts.
            expires: Expiry, seconds from now, timedelta, absolute datetime,
                or None for never. Defaults to the configured default.

        Returns:
            True if written. On False any previous record is untouched.
        """
        validate_key(key)
        with log_context(key=key):
            try:
                expiry = (
                    self.default_expiry if expires is _DEFAULT else Expiry.coerce(expires)
                )
            except TypeError as e:
                logger.warning("Unsupported expiry, record not written", key=key, error=str(e))
                return False
            return self.codec.write(key, value, expiry)

    # Reading

    def read_envelope(self, key: str) -> Envelope | None:
        """Load the valid envelope for a key, evicting it if expired."""
        with log_context(key=key):
            record = self.codec.load(key)
            if record is None:
                logger.debug("Cache miss", key=key)
                return None
            return self.policy.check_and_evict(key, record.envelope)

    def read_storage(self, key: str) -> Any:
        """Stored value for a key, or None if absent or expired."""
        envelope = self.read_envelope(key)
        return envelope.storage if envelope is not None else None

    def unpack(self, key: str, as_type: type[T] | None = None) -> T | Any | None:
        """Retrieve a value.

        Args:
            key: The cache key.
            as_type: None for the raw stored value, a primitive type (or
                list/dict) to shape-check it, or a Storable type to build.

        Returns:
            The value, or None if absent, expired or not of the requested type.
        """
        envelope = self.read_envelope(key)
        if envelope is None:
            return None
        if as_type is None:
            return envelope.storage
        if is_storable_type(as_type):
            warehouse = Warehouse(key=key, context=envelope.storage, pantry=self)
            return extractor.build(as_type, warehouse)
        try:
            return extractor.match_shape(envelope.storage, as_type)
        except extractor.ShapeMismatchError as e:
            logger.debug("Stored value has the wrong shape", key=key, error=str(e))
            return None

    def unpack_list(self, key: str, item_type: type[T]) -> list[T] | None:
        """Retrieve a stored list, keeping only elements of `item_type`.

        Returns:
            The surviving elements, or None if the key is absent, expired or
            not a list.
        """
        storage = self.read_storage(key)
        if not isinstance(storage, list):
            return None
        return extractor.collect(storage, item_type)

    def warehouse(self, key: str) -> Warehouse:
        """Typed accessor over the record stored under `key`."""
        return Warehouse.for_key(key, self)

    def exists(self, key: str) -> bool:
        """True if a valid record exists. Expired records are evicted."""
        return self.read_envelope(key) is not None

    def state(self, key: str) -> RecordState:
        """Lifecycle state of a key, without evicting it."""
        record = self.codec.load(key)
        envelope = record.envelope if record is not None else None
        return self.policy.state(envelope, self.policy.now())

    # Removing

    def expire(self, key: str) -> bool:
        """Delete a key from both roots. True if no copy remains."""
        with log_context(key=key):
            return self.codec.remove(key)

    def remove_all(self) -> bool:
        """Delete every record in both roots. True if both are gone."""
        return self.locator.clear_all()
