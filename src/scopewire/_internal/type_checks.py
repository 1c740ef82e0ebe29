from __future__ import annotations

import types
from typing import Annotated, Any, TypeGuard, Union, get_args, get_origin


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def matches_type(value: object, expected: Any) -> bool:
    """Return whether ``value`` satisfies ``expected`` as far as it can be checked at runtime.

    ``Annotated`` metadata is stripped, unions match when any member matches and
    subscripted generics are checked against their origin class. Annotations
    that cannot be checked with ``isinstance`` (type variables, literals,
    non-runtime protocols) are accepted.

    Args:
        value: Object produced or supplied at runtime.
        expected: Annotation or dependency key the value should satisfy.

    """
    if expected is None or expected is Any or expected is object:
        return True
    if expected is type(None):
        return value is None

    origin = get_origin(expected)
    if origin is Annotated:
        return matches_type(value, get_args(expected)[0])
    if origin is Union or origin is types.UnionType:
        return any(matches_type(value, member) for member in get_args(expected))

    candidate = origin if origin is not None else expected
    if not is_runtime_class(candidate):
        return True
    if getattr(candidate, "_is_protocol", False) and not getattr(
        candidate,
        "_is_runtime_protocol",
        False,
    ):
        return True
    return isinstance(value, candidate)


def describe_type(value: Any) -> str:
    """Return a short human readable name for a dependency key."""
    if is_runtime_class(value):
        return value.__qualname__
    return repr(value)


__all__ = ["describe_type", "is_runtime_class", "matches_type"]
