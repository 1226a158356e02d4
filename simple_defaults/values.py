"""Value conversion for the namespaces.

Values are stored in their JSON form (`to_stored`), so memory and the backing
store always hold the same thing. Typed reads (`cast_value`) rebuild the
expected type with strict pydantic validation in JSON mode: a list can come
back as a tuple, an ISO string as a datetime, a dict as a model, but "3" never
becomes 3 and true never becomes 1. Anything that does not validate is
reported as no match, never raised.
"""

from __future__ import annotations

import copy
import functools
from typing import Any

from pydantic import PydanticUserError, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json, to_jsonable_python

MISSING = object()


class UnstorableValueError(TypeError):
    """A value has no JSON form and cannot be kept in a namespace."""


def to_stored(value: Any) -> Any:
    """JSON form of value (tuples -> lists, datetimes -> ISO strings, models -> dicts)."""
    try:
        stored = to_jsonable_python(value)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise UnstorableValueError(f"{type(value).__name__} value has no JSON form: {e}") from e
    # Containers passed through unchanged must not stay shared with the caller.
    return copy.deepcopy(stored) if stored is value else stored


@functools.lru_cache(maxsize=256)
def _adapter_for(expected: Any) -> TypeAdapter[Any] | None:
    try:
        return TypeAdapter(expected)
    except (PydanticUserError, TypeError):
        # includes PydanticSchemaGenerationError: plain classes are never storable
        return None


def cast_value(value: Any, expected: Any) -> Any:
    """
    Rebuild a stored value as `expected`, or return MISSING.

    The result is always a fresh object, never the stored one.
    """
    if expected is None or expected is Any:
        return copy.deepcopy(value)
    try:
        hash(expected)
    except TypeError:
        return MISSING
    adapter = _adapter_for(expected)
    if adapter is None:
        return MISSING
    try:
        raw = to_json(value)
    except (PydanticSerializationError, TypeError, ValueError):
        return MISSING
    try:
        return adapter.validate_json(raw, strict=True)
    except ValidationError:
        return MISSING


def matches(value: Any, expected: Any) -> bool:
    return cast_value(value, expected) is not MISSING


def expected_type_for(fallback: Any, expected: Any = None) -> Any:
    """An explicit expected type wins; otherwise the fallback's own type, or no constraint."""
    if expected is not None:
        return expected
    if fallback is None:
        return None
    return type(fallback)
