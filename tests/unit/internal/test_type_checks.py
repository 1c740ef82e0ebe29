from __future__ import annotations

from collections.abc import Sequence
from typing import Annotated, Any, Optional, Protocol, TypeVar, Union, runtime_checkable

import pytest

from scopewire._internal.type_checks import describe_type, is_runtime_class, matches_type

T = TypeVar("T")


class _Base:
    pass


class _Child(_Base):
    pass


class _Greeter(Protocol):
    def greet(self) -> str: ...


@runtime_checkable
class _Closeable(Protocol):
    def close(self) -> None: ...


class _File:
    def close(self) -> None:
        pass


def test_is_runtime_class_rejects_generic_aliases() -> None:
    assert is_runtime_class(_Base)
    assert not is_runtime_class(list[int])
    assert not is_runtime_class("_Base")


@pytest.mark.parametrize(
    ("value", "expected", "matches"),
    [
        (_Child(), _Base, True),
        (_Base(), _Child, False),
        (None, None, True),
        ("anything", Any, True),
        (3, object, True),
        (None, type(None), True),
        (0, type(None), False),
        (None, int | None, True),
        (None, Optional[int], True),  # noqa: UP007
        (4, Union[str, int], True),  # noqa: UP007
        (4.0, int | str, False),
        (5, Annotated[int, "positive"], True),
        ([1, 2], Sequence[int], True),
        ((1, 2), list[int], False),
        (object(), T, True),
        (object(), _Greeter, True),
        (_File(), _Closeable, True),
        (_Base(), _Closeable, False),
    ],
)
def test_matches_type(value: object, expected: Any, matches: bool) -> None:
    assert matches_type(value, expected) is matches


def test_describe_type_uses_qualname_for_classes() -> None:
    assert describe_type(_Child) == "_Child"
    assert describe_type("database") == "'database'"
    assert describe_type(list[int]) == "list[int]"
