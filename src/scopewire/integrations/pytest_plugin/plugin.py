from __future__ import annotations

from collections.abc import Iterator

import pytest

from scopewire._internal.registry import Registry
from scopewire._internal.registry_context import registry_context


@pytest.fixture()
def scopewire_registry() -> Iterator[Registry]:
    """Create a per-test registry.

    The fixture is function-scoped, so registrations are isolated between
    tests. After the test every scope is dropped without running dispose
    hooks; await ``scopewire_registry.areset()`` inside the test when their
    teardown is part of what is being tested.

    Yields:
        A new ``Registry`` instance.

    """
    registry = Registry()
    yield registry
    registry.reset(dispose=False)


@pytest.fixture()
def scopewire_context(scopewire_registry: Registry) -> Iterator[Registry]:
    """Bind the per-test registry to ``registry_context`` for code using the process-wide handle.

    The previous binding, if any, is restored after the test.

    Yields:
        The registry bound to ``registry_context``.

    """
    previous = registry_context.get_current() if registry_context.is_set else None
    registry_context.set_current(scopewire_registry)
    try:
        yield scopewire_registry
    finally:
        if previous is None:
            registry_context.reset_current()
        else:
            registry_context.set_current(previous)
