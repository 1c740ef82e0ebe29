from __future__ import annotations

from collections.abc import Awaitable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Disposable(Protocol):
    """Release resources held by a registered instance.

    ``on_dispose`` runs when the instance is unregistered, when its scope is
    popped or reset, or when the lazy singleton holding it is reset. It may be
    a coroutine function; asynchronous teardown is awaited by the
    ``a``-prefixed registry operations.

    Instances implementing this protocol must not be registered together with
    an explicit ``dispose=`` function.
    """

    def on_dispose(self) -> Awaitable[Any] | None: ...


@runtime_checkable
class ShadowAware(Protocol):
    """Observe being hidden by a registration in a higher scope.

    ``on_get_shadowed`` fires while an instance with the same key is
    registered in a scope above this one. ``on_leave_shadow`` fires right
    before that shadowing instance is disposed, so this instance becomes
    visible again.
    """

    def on_get_shadowed(self, shadowing: Any) -> None: ...

    def on_leave_shadow(self, shadowing: Any) -> None: ...


class WillSignalReady:
    """Mark instances that announce readiness through ``Registry.signal_ready``.

    Registering an instance of a subclass behaves like passing
    ``signals_ready=True``: the registration stays pending until
    ``signal_ready(instance)`` is called.
    """


__all__ = ["Disposable", "ShadowAware", "WillSignalReady"]
