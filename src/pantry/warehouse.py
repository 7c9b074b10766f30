"""
Warehouse: the decode context handed to Storable constructors.

A warehouse wraps either a cache key (the payload is loaded from disk on
first use) or an in-memory value (used when recursing into nested objects,
so no file is read twice).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from pantry import extractor
from pantry.exceptions import MissingValueError

if TYPE_CHECKING:
    from pantry.pantry import Pantry

T = TypeVar("T")

_UNSET: Any = object()


class Warehouse:
    """Typed access to a cached payload.

    Example:
        warehouse = pantry.warehouse("user")
        name = warehouse.get("name", str)
        tags = warehouse.get_list("tags", str)
        address = warehouse.get("address", Address)
    """

    def __init__(
        self,
        key: str | None = None,
        context: Any = _UNSET,
        pantry: Pantry | None = None,
    ) -> None:
        """Initialize a warehouse. Prefer for_key() / from_context().

        Args:
            key: Cache key to load the payload from.
            context: In-memory payload; takes precedence over `key`.
            pantry: Store handle used to load `key`.
        """
        if context is _UNSET and (key is None or pantry is None):
            raise ValueError("Warehouse needs either a context or a key and a pantry")
        self.key = key
        self._pantry = pantry
        self._payload = context
        self._in_memory = context is not _UNSET
        self._loaded = self._in_memory

    @classmethod
    def for_key(cls, key: str, pantry: Pantry) -> Warehouse:
        """Warehouse that loads its payload from the record stored under `key`."""
        return cls(key=key, pantry=pantry)

    @classmethod
    def from_context(cls, context: Any) -> Warehouse:
        """Warehouse over an already-decoded value."""
        return cls(context=context)

    @property
    def in_memory(self) -> bool:
        """True if this warehouse wraps a value rather than a key."""
        return self._in_memory

    def load(self) -> Any:
        """The payload: the in-memory value, or the storage of the valid record.

        Key-backed warehouses read the record once and reuse it afterwards.
        Returns None when the record is absent or expired.
        """
        if not self._loaded:
            if self._pantry is None or self.key is None:
                raise ValueError("Warehouse has no key and pantry to load from")
            self._payload = self._pantry.read_storage(self.key)
            self._loaded = True
        return self._payload

    def get(self, value_key: str, tp: type[T]) -> T | None:
        """Get `value_key` as a scalar or Storable of type `tp`."""
        return extractor.extract(self.load(), value_key, tp)

    def get_list(self, value_key: str, tp: type[T]) -> list[T] | None:
        """Get `value_key` as a list of `tp`, dropping elements that don't fit."""
        return extractor.extract_list(self.load(), value_key, tp)

    def require(self, value_key: str, tp: type[T]) -> T:
        """Like get(), but raise MissingValueError instead of returning None.

        Raises:
            MissingValueError: If the value is missing or has the wrong shape.
        """
        value = self.get(value_key, tp)
        if value is None:
            raise MissingValueError(
                "Missing or mismatched value",
                {"value_key": value_key, "expected": getattr(tp, "__name__", repr(tp))},
            )
        return value

    def require_list(self, value_key: str, tp: type[T]) -> list[T]:
        """Like get_list(), but raise MissingValueError instead of returning None."""
        values = self.get_list(value_key, tp)
        if values is None:
            raise MissingValueError(
                "Missing list value",
                {"value_key": value_key, "expected": getattr(tp, "__name__", repr(tp))},
            )
        return values

    def __repr__(self) -> str:
        if self.in_memory:
            return f"Warehouse(context={self._payload!r})"
        return f"Warehouse(key={self.key!r})"
