from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


class ScopeWireError(Exception):
    """Represent a base class for all ScopeWire-specific failures.

    Catch this type when you want to handle any ScopeWire error path without
    matching each concrete exception class individually.
    """


class ScopeWireInvalidRegistrationError(ScopeWireError):
    """Signal an invalid registration payload.

    Raised by the ``Registry.register_*`` methods when the registration cannot
    describe exactly one construction strategy, when ``None`` is used as a key
    or instance, or when a dispose function is supplied for an instance that
    already implements ``Disposable``.

    Typical fixes include passing a single factory or instance per call and
    dropping the explicit ``dispose=`` argument for ``Disposable`` instances.
    """


class ScopeWireDuplicateRegistrationError(ScopeWireError):
    """Signal that a key is already bound in the current scope.

    Raised by the ``Registry.register_*`` methods while ``allow_reassignment``
    is disabled and the current scope already holds a registration for the
    same ``(provides, name)`` key.

    Typical fixes include registering the replacement in a new scope
    (``push_new_scope``), unregistering the previous binding first, or enabling
    ``allow_reassignment``.
    """

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"{key} is already registered in the current scope")


class ScopeWireNotRegisteredError(ScopeWireError):
    """Signal that a lookup target has no registration.

    Raised by ``resolve``/``aresolve``, ``unregister``, ``is_ready`` and
    ``reset_lazy_singleton`` when no scope on the stack holds a matching key or
    instance.

    Typical fixes include registering the dependency before resolving it or
    checking that the scope which held it has not been popped.
    """

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"{key} is not registered")


class ScopeWireTypeMismatchError(ScopeWireError):
    """Signal a value that disagrees with the declared type.

    Raised by ``resolve`` when a factory parameter does not match the
    ``param_type`` declared at registration, or when the produced instance is
    not an instance of the requested key.
    """

    def __init__(self, key: Any, *, expected: Any, actual: Any, role: str) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{key}: {role} of type {type(actual).__qualname__} does not match {expected!r}",
        )


class ScopeWireInvalidScopeNameError(ScopeWireError):
    """Signal a reserved or duplicate scope name.

    Raised by ``push_new_scope`` when the name is already used by a scope on
    the stack or equals the reserved base scope name, and by
    ``pop_scopes_till`` when asked to pop the base scope.
    """


class ScopeWireIllegalStateError(ScopeWireError):
    """Signal an operation that is invalid for the current registry state.

    Raised by ``pop_scope`` when only the base scope is left, by
    ``signal_ready`` for registrations that do not expect a signal, and by
    ``reset_lazy_singleton`` for registrations that are not lazy singletons.
    """


class ScopeWireAsyncDependencyInSyncContextError(ScopeWireError):
    """Signal sync resolution of an async singleton that is not built yet.

    Typical fix is switching to ``await registry.aresolve(...)`` or awaiting
    ``registry.is_ready(...)`` before the synchronous call.
    """

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(
            f"{key} is built by an async factory that has not completed; use aresolve()",
        )


class ScopeWireAsyncDisposeInSyncContextError(ScopeWireError):
    """Signal that a synchronous disposal path produced an awaitable.

    Raised by ``pop_scope``, ``pop_scopes_till``, ``reset``, ``reset_scope``,
    ``unregister`` and ``reset_lazy_singleton`` when a dispose hook returns an
    awaitable. The awaitable is closed and the operation stops at that hook.

    Typical fix is calling the ``a``-prefixed coroutine twin, for example
    ``await registry.apop_scope()``.
    """


class ScopeWireReadinessTimeoutError(ScopeWireError):
    """Signal that a readiness wait exceeded its deadline.

    Raised by ``is_ready`` and ``all_ready``. The error carries a snapshot of
    the readiness state taken when the deadline elapsed: registrations still
    ``pending``, registrations already ``ready`` and the ``waiting`` map of
    waiter descriptions to the registrations they wait for.

    The underlying async construction is never cancelled by a timeout.
    """

    def __init__(
        self,
        message: str,
        *,
        pending: Sequence[str],
        ready: Sequence[str],
        waiting: Mapping[str, Sequence[str]],
    ) -> None:
        self.pending = list(pending)
        self.ready = list(ready)
        self.waiting = {waiter: list(keys) for waiter, keys in waiting.items()}
        super().__init__(
            f"{message}\n"
            f"pending: {', '.join(self.pending) or '-'}\n"
            f"ready: {', '.join(self.ready) or '-'}\n"
            f"waiting: {_format_waiting(self.waiting)}",
        )


def _format_waiting(waiting: Mapping[str, Sequence[str]]) -> str:
    if not waiting:
        return "-"
    return "; ".join(f"{waiter} -> {', '.join(keys)}" for waiter, keys in waiting.items())
