from __future__ import annotations

import inspect
from collections.abc import Generator
from typing import Any, TypeAlias, TypeVar

from scopewire.exceptions import ScopeWireAsyncDisposeInSyncContextError

R = TypeVar("R")

DisposalSteps: TypeAlias = Generator[Any, None, R]
"""A generator yielding the result of each dispose hook in order, returning the operation result.

Hooks are only invoked when the generator is advanced, so a driver that
awaits each yielded awaitable keeps the hooks strictly sequential.
"""


def run_sync(steps: DisposalSteps[R]) -> R:
    """Drive disposal steps without an event loop.

    Raises:
        ScopeWireAsyncDisposeInSyncContextError: If a hook returns an awaitable.

    """
    while True:
        try:
            result = next(steps)
        except StopIteration as stop:
            return stop.value
        if inspect.isawaitable(result):
            _discard(result)
            steps.close()
            msg = (
                f"A dispose hook returned {type(result).__qualname__}; "
                "use the async variant of this operation to await it"
            )
            raise ScopeWireAsyncDisposeInSyncContextError(msg)


async def run_async(steps: DisposalSteps[R]) -> R:
    """Drive disposal steps, awaiting every awaitable hook result before the next hook runs."""
    while True:
        try:
            result = next(steps)
        except StopIteration as stop:
            return stop.value
        if inspect.isawaitable(result):
            await result


def _discard(awaitable: Any) -> None:
    close = getattr(awaitable, "close", None)
    if inspect.iscoroutine(awaitable) and close is not None:
        close()


__all__ = ["DisposalSteps", "run_async", "run_sync"]
