"""
Record codec: envelope <-> bytes, plus the record-level read/write/remove.

Records are pretty-printed UTF-8 JSON documents:

    {"expires": 1767225600.0, "storage": {...}}

`expires` is omitted for records that never expire.
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable

import orjson

from pantry.exceptions import DecodeError, EncodeError
from pantry.filestore import FileStore
from pantry.locator import StoreLocator, validate_key
from pantry.logging import get_logger, log_context
from pantry.storable import to_storage
from pantry.types import Envelope, Expiry, StorageRoot, StoredRecord

logger = get_logger(__name__)

_INT_MIN = -(2**63)
_INT_MAX = 2**64 - 1


def check_representable(value: Any, path: str = "storage") -> None:
    """Verify that a value can be written as JSON and read back unchanged.

    Args:
        value: The value to check.
        path: Location of `value` inside the envelope, for error context.

    Raises:
        EncodeError: On the first value that isn't representable.
    """
    if value is None or isinstance(value, (bool, str)):
        return
    if isinstance(value, int):
        if not _INT_MIN <= value <= _INT_MAX:
            raise EncodeError(
                "Integer out of range", {"path": path, "type": "int"}
            )
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise EncodeError("Non-finite number", {"path": path, "type": "float"})
        return
    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            check_representable(item, f"{path}[{i}]")
        return
    if isinstance(value, dict):
        for k, item in value.items():
            if not isinstance(k, str):
                raise EncodeError(
                    "Mapping key is not a string",
                    {"path": path, "type": type(k).__name__},
                )
            check_representable(item, f"{path}.{k}")
        return
    raise EncodeError(
        "Value is not JSON-representable", {"path": path, "type": type(value).__name__}
    )


class RecordCodec:
    """Reads and writes envelopes through a StoreLocator.

    Writes go to the primary root only. Reads try the primary root, then the
    legacy root; a root whose file is missing, unreadable or corrupt simply
    doesn't match.
    """

    def __init__(
        self,
        locator: StoreLocator,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the codec.

        Args:
            locator: Resolves keys to paths.
            clock: Returns the current epoch time in seconds.
        """
        self.locator = locator
        self.clock = clock

    @property
    def file_store(self) -> FileStore:
        return self.locator.file_store

    def encode(self, envelope: Envelope) -> bytes:
        """Serialize an envelope.

        Raises:
            EncodeError: If the envelope isn't representable.
        """
        document = envelope.to_dict()
        check_representable(document.get("expires"), "expires")
        check_representable(document["storage"])
        try:
            return orjson.dumps(document, option=orjson.OPT_INDENT_2)
        except orjson.JSONEncodeError as e:
            raise EncodeError("Serialization failed", {"reason": str(e)}) from e

    def serialize(self, value: Any, expiry: Expiry) -> bytes:
        """Build the envelope for a value and encode it.

        The expiry is resolved against the clock here.

        Raises:
            EncodeError: If the value can't be converted to storage form, is
                cyclic or nested past the recursion limit, or isn't
                representable.
        """
        try:
            envelope = Envelope(
                storage=to_storage(value),
                expires=expiry.resolve(self.clock()),
            )
            return self.encode(envelope)
        except RecursionError as e:
            raise EncodeError(
                "Value is cyclic or nested too deeply", {"reason": "recursion limit"}
            ) from e

    def decode(self, data: bytes) -> Envelope:
        """Parse an envelope.

        Raises:
            DecodeError: If the data isn't a JSON object with a `storage` field.
        """
        try:
            document = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            raise DecodeError("Malformed record", {"reason": str(e)}) from e

        if not isinstance(document, dict):
            raise DecodeError(
                "Record is not a mapping", {"reason": type(document).__name__}
            )
        if "storage" not in document:
            raise DecodeError("Record has no storage field", {"reason": "missing storage"})

        return Envelope.from_dict(document)

    def write(self, key: str, value: Any, expiry: Expiry | None = None) -> bool:
        """Write a value under a key in the primary root.

        The expiry is resolved against the clock once, here. Nothing is
        written unless the whole envelope is representable, so a bad value
        never disturbs the record already stored for the key.

        Args:
            key: The cache key.
            value: Value to store (JSON value or Storable, possibly nested).
            expiry: When the record stops being valid. None means never.

        Returns:
            True if the record was written.
        """
        validate_key(key)
        try:
            data = self.serialize(value, expiry or Expiry.never())
        except EncodeError as e:
            logger.warning("Not a valid JSON object, record not written", key=key, error=str(e))
            return False

        path = self.locator.resolve(key, self.locator.write_root)
        try:
            self.file_store.write_bytes(path, data)
        except OSError as e:
            logger.warning("Error writing record", key=key, path=str(path), error=str(e))
            return False

        logger.debug("Wrote record", key=key, size=len(data))
        return True

    def load(self, key: str) -> StoredRecord | None:
        """Load the first parseable envelope for a key.

        Each root is read at most once, in locator read order.

        Args:
            key: The cache key.

        Returns:
            The record and the root it was found in, or None.
        """
        validate_key(key)
        for root in self.locator.read_order():
            envelope = self._load_from(key, root)
            if envelope is not None:
                return StoredRecord(key=key, envelope=envelope, root=root)
        return None

    def _load_from(self, key: str, root: StorageRoot) -> Envelope | None:
        with log_context(key=key, root=root.value):
            path = self.locator.resolve(key, root)
            try:
                data = self.file_store.read_bytes(path)
            except FileNotFoundError:
                return None
            except OSError as e:
                logger.debug("Error reading record", error=str(e))
                return None

            try:
                return self.decode(data)
            except DecodeError as e:
                logger.debug("Ignoring corrupt record", error=str(e))
                return None

    def remove(self, key: str) -> bool:
        """Delete a key from every root.

        Each root is attempted independently; a missing file is not an error.

        Returns:
            True if no root still holds the key.
        """
        validate_key(key)
        removed = True
        for root in self.locator.read_order():
            with log_context(key=key, root=root.value):
                path = self.locator.resolve(key, root)
                try:
                    self.file_store.delete(path)
                except FileNotFoundError:
                    continue
                except OSError as e:
                    removed = False
                    logger.warning("Error removing record", error=str(e))
                else:
                    logger.debug("Removed record")
        return removed
