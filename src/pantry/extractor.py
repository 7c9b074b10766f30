"""
Value extractor: typed retrieval over a decoded payload.

Four shapes can be requested for a `value_key` in a mapping payload:

- scalar T: the value must match T, otherwise the lookup fails
- list of scalar T: elements that don't match T are dropped
- Storable T: the value is wrapped in an in-memory Warehouse and handed
  to T.from_warehouse
- list of Storable T: every mapping element is constructed; elements that
  aren't mappings or fail to construct are dropped

Scalars fail fast; collections degrade element by element so that stored
lists survive fields being added to or removed from their element types.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from pantry.exceptions import DecodeError, PantryError
from pantry.logging import get_logger
from pantry.storable import is_primitive, is_storable_type
from pantry.types import ValueKind

if TYPE_CHECKING:
    from pantry.warehouse import Warehouse

logger = get_logger(__name__)

T = TypeVar("T")

# Construction failures a from_warehouse implementation may raise. LookupError
# and AttributeError cover indexing or dereferencing a value that get() or
# get_list() returned as None or empty.
CONSTRUCTION_ERRORS: tuple[type[Exception], ...] = (
    PantryError,
    LookupError,
    AttributeError,
    TypeError,
    ValueError,
)

_SCALAR_KINDS: dict[type, ValueKind] = {
    bool: ValueKind.BOOL,
    int: ValueKind.NUMBER,
    float: ValueKind.NUMBER,
    str: ValueKind.STRING,
}

_CONTAINER_KINDS: dict[type, ValueKind] = {
    list: ValueKind.SEQUENCE,
    dict: ValueKind.MAPPING,
}


class ShapeMismatchError(DecodeError):
    """Raised when a decoded value doesn't have the requested shape."""

    pass


def match_shape(value: Any, tp: type[T]) -> T:
    """Match a decoded value against a requested type.

    Only primitive types, list, dict and `object` can be requested. bool
    only matches JSON booleans and int only matches integral numbers (never
    booleans). float accepts any number; ints are widened. `object` matches
    anything.

    Args:
        value: A decoded JSON value.
        tp: The requested type.

    Returns:
        The value, typed as `tp`.

    Raises:
        ShapeMismatchError: If the value doesn't match.
    """
    if tp is object:
        return value

    kind = ValueKind.of(value)
    if tp in _CONTAINER_KINDS:
        if kind is _CONTAINER_KINDS[tp]:
            return list(value) if tp is list else value  # type: ignore[return-value]
    elif is_primitive(tp):
        expected = _SCALAR_KINDS.get(tp)
        if expected is None:
            # Subclasses of the primitives (enums and the like) must match exactly
            if isinstance(value, tp):
                return value
        elif kind is expected:
            if tp is float:
                return float(value)  # type: ignore[return-value]
            if tp is not int or isinstance(value, int):
                return value
    else:
        raise ShapeMismatchError(
            "Type can't be matched against stored values",
            {"expected": getattr(tp, "__name__", repr(tp)), "actual": "unsupported type"},
        )

    raise ShapeMismatchError(
        "Value has the wrong shape",
        {
            "expected": getattr(tp, "__name__", repr(tp)),
            "actual": kind.value if kind else type(value).__name__,
        },
    )


def lookup(payload: Any, value_key: str) -> Any:
    """Get `value_key` from a mapping payload.

    Raises:
        KeyError: If the payload isn't a mapping or lacks the key.
    """
    if not isinstance(payload, dict):
        raise KeyError(value_key)
    return payload[value_key]


def build(tp: type[T], warehouse: Warehouse) -> T | None:
    """Call tp.from_warehouse, turning construction failures into None."""
    try:
        return tp.from_warehouse(warehouse)  # type: ignore[attr-defined]
    except CONSTRUCTION_ERRORS as e:
        logger.debug(
            "Construction failed", type=getattr(tp, "__name__", repr(tp)), error=str(e)
        )
        return None


def construct(tp: type[T], raw: Any) -> T | None:
    """Build a Storable from an in-memory value, or None if construction fails."""
    from pantry.warehouse import Warehouse

    return build(tp, Warehouse.from_context(raw))


def collect_scalars(items: list[Any], tp: type[T]) -> list[T]:
    """Keep the elements of `items` that match `tp`."""
    result: list[T] = []
    for item in items:
        try:
            result.append(match_shape(item, tp))
        except ShapeMismatchError:
            continue
    return result


def collect_objects(items: list[Any], tp: type[T]) -> list[T]:
    """Construct every mapping element of `items`, skipping failures."""
    result: list[T] = []
    for item in items:
        if ValueKind.of(item) is not ValueKind.MAPPING:
            continue
        instance = construct(tp, item)
        if instance is not None:
            result.append(instance)
    return result


def collect(items: list[Any], tp: type[T]) -> list[T]:
    """collect_objects for Storable types, collect_scalars otherwise."""
    if is_storable_type(tp):
        return collect_objects(items, tp)
    return collect_scalars(items, tp)


def extract_scalar(payload: Any, value_key: str, tp: type[T]) -> T | None:
    """Get a scalar; None if missing or of the wrong shape."""
    try:
        return match_shape(lookup(payload, value_key), tp)
    except KeyError:
        return None
    except ShapeMismatchError as e:
        logger.debug("Scalar shape mismatch", value_key=value_key, error=str(e))
        return None


def extract_scalars(payload: Any, value_key: str, tp: type[T]) -> list[T] | None:
    """Get a list of scalars, dropping elements of the wrong shape.

    Returns:
        The matching elements, or None if the key is missing or not a list.
    """
    items = _lookup_sequence(payload, value_key)
    if items is None:
        return None
    result = collect_scalars(items, tp)
    if len(result) != len(items):
        logger.debug(
            "Dropped list elements of the wrong shape",
            value_key=value_key,
            dropped=len(items) - len(result),
        )
    return result


def extract_object(payload: Any, value_key: str, tp: type[T]) -> T | None:
    """Get a nested Storable; None if missing or construction fails."""
    try:
        raw = lookup(payload, value_key)
    except KeyError:
        return None
    return construct(tp, raw)


def extract_objects(payload: Any, value_key: str, tp: type[T]) -> list[T] | None:
    """Get a list of nested Storables, skipping elements that can't be built.

    Returns:
        The constructed elements, or None if the key is missing or not a list.
    """
    items = _lookup_sequence(payload, value_key)
    if items is None:
        return None
    result = collect_objects(items, tp)
    if len(result) != len(items):
        logger.debug(
            "Skipped list elements that couldn't be constructed",
            value_key=value_key,
            skipped=len(items) - len(result),
        )
    return result


def extract(payload: Any, value_key: str, tp: type[T]) -> T | None:
    """Get a single value, dispatching on the capability of `tp`."""
    if is_storable_type(tp):
        return extract_object(payload, value_key, tp)
    return extract_scalar(payload, value_key, tp)


def extract_list(payload: Any, value_key: str, tp: type[T]) -> list[T] | None:
    """Get a list of values, dispatching on the capability of `tp`."""
    if is_storable_type(tp):
        return extract_objects(payload, value_key, tp)
    return extract_scalars(payload, value_key, tp)


def _lookup_sequence(payload: Any, value_key: str) -> list[Any] | None:
    try:
        items = lookup(payload, value_key)
    except KeyError:
        return None
    if ValueKind.of(items) is not ValueKind.SEQUENCE:
        return None
    return list(items)
