"""
Capabilities a type implements to be cached.

- Storable: a domain object that can be rebuilt from a Warehouse and
  exposed as a plain JSON value
- Primitive types: leaf values stored as they are (bool, int, float, str)

The cache engine only ever talks to these; it has no knowledge of concrete
domain classes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pantry.exceptions import EncodeError

if TYPE_CHECKING:
    from pantry.warehouse import Warehouse

PRIMITIVE_TYPES: tuple[type, ...] = (bool, int, float, str)


@runtime_checkable
class Storable(Protocol):
    """Protocol for cacheable domain objects.

    Example:
        @dataclass
        class Person:
            name: str
            age: int

            @classmethod
            def from_warehouse(cls, warehouse: Warehouse) -> Person | None:
                return cls(
                    name=warehouse.require("name", str),
                    age=warehouse.require("age", int),
                )

            def to_storage(self) -> dict[str, Any]:
                return {"name": self.name, "age": self.age}
    """

    @classmethod
    def from_warehouse(cls, warehouse: Warehouse) -> Any:
        """Build an instance from a warehouse.

        Returns None, or raises PantryError / LookupError / AttributeError /
        TypeError / ValueError, when the stored value can't be turned into an
        instance.
        """
        ...

    def to_storage(self) -> Any:
        """Expose the instance as a JSON value (usually a dict)."""
        ...


def is_primitive(tp: Any) -> bool:
    """True if `tp` is stored directly, without recursive decoding."""
    return isinstance(tp, type) and issubclass(tp, PRIMITIVE_TYPES)


def is_storable_type(tp: Any) -> bool:
    """True if `tp` can be constructed from a warehouse."""
    return isinstance(tp, type) and callable(getattr(tp, "from_warehouse", None))


def to_storage(value: Any) -> Any:
    """Convert a value into its storage form.

    Storable objects become their to_storage() value; lists and tuples become
    lists; dict values are converted in place of the originals. Anything
    else is returned untouched and left for the codec to accept or reject.

    Raises:
        EncodeError: If a Storable's to_storage() raises.
    """
    if value is None or isinstance(value, PRIMITIVE_TYPES):
        return value
    to_storage_method = getattr(value, "to_storage", None)
    if callable(to_storage_method) and not isinstance(value, type):
        try:
            storage = to_storage_method()
        except EncodeError:
            raise
        except Exception as e:
            raise EncodeError(
                "to_storage() failed",
                {"type": type(value).__name__, "reason": repr(e)},
            ) from e
        return to_storage(storage)
    if isinstance(value, (list, tuple)):
        return [to_storage(item) for item in value]
    if isinstance(value, dict):
        return {k: to_storage(v) for k, v in value.items()}
    return value
