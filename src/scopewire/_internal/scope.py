from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from typing import Any, TypeAlias

from scopewire._internal.records import Registration, RegistrationKey, UserDependency
from scopewire.exceptions import ScopeWireIllegalStateError, ScopeWireInvalidScopeNameError

ScopeDisposeFunction: TypeAlias = Callable[[], Awaitable[Any] | None]
"""A zero-argument callback run when its scope is popped. May return an awaitable."""

DEFAULT_BASE_SCOPE_NAME = "baseScope"


class Scope:
    """Hold the registrations of one layer of the scope stack.

    Registrations are bucketed by instance name first, then by dependency key,
    so a key is unique within a name bucket. Iteration follows registration
    order.
    """

    def __init__(
        self,
        name: str | None = None,
        dispose: ScopeDisposeFunction | None = None,
    ) -> None:
        self.name = name
        self.dispose = dispose
        self._registrations: dict[str | None, dict[UserDependency, Registration]] = {}

    def find(self, key: RegistrationKey) -> Registration | None:
        by_type = self._registrations.get(key.name)
        if by_type is None:
            return None
        return by_type.get(key.provides)

    def add(self, registration: Registration) -> None:
        """Store ``registration``, replacing any registration with the same key."""
        key = registration.key
        self._registrations.setdefault(key.name, {})[key.provides] = registration

    def remove(self, registration: Registration) -> None:
        key = registration.key
        by_type = self._registrations.get(key.name)
        if by_type is None or by_type.get(key.provides) is not registration:
            return
        del by_type[key.provides]
        if not by_type:
            del self._registrations[key.name]

    def find_by_instance(self, instance: object) -> Registration | None:
        for registration in self:
            if registration.instance is instance:
                return registration
        return None

    def clear(self) -> None:
        self._registrations.clear()

    def __iter__(self) -> Iterator[Registration]:
        for by_type in list(self._registrations.values()):
            yield from list(by_type.values())

    def __len__(self) -> int:
        return sum(len(by_type) for by_type in self._registrations.values())

    def __repr__(self) -> str:
        return f"Scope(name={self.name!r}, registrations={len(self)})"


class ScopeStack:
    """Order scopes from the base scope (index 0) to the current scope (top).

    The base scope is created with the stack and can never be popped, so the
    stack always holds at least one scope. Scope names, where given, are
    unique within the stack.
    """

    def __init__(self, base_scope_name: str = DEFAULT_BASE_SCOPE_NAME) -> None:
        self.base_scope_name = base_scope_name
        self._scopes: list[Scope] = [Scope(name=base_scope_name)]

    @property
    def current(self) -> Scope:
        return self._scopes[-1]

    @property
    def base(self) -> Scope:
        return self._scopes[0]

    def push(
        self,
        name: str | None = None,
        dispose: ScopeDisposeFunction | None = None,
    ) -> Scope:
        """Append a new empty scope and make it current.

        Raises:
            ScopeWireInvalidScopeNameError: If ``name`` is reserved for the base
                scope or already used by a scope on the stack.

        """
        if name == self.base_scope_name:
            msg = f"Scope name {name!r} is reserved for the base scope"
            raise ScopeWireInvalidScopeNameError(msg)
        if name is not None and self.has_scope(name):
            msg = f"Scope name {name!r} is already used by a scope on the stack"
            raise ScopeWireInvalidScopeNameError(msg)
        scope = Scope(name=name, dispose=dispose)
        self._scopes.append(scope)
        return scope

    def poppable(self) -> Scope:
        """Return the current scope after checking that it may be popped.

        Raises:
            ScopeWireIllegalStateError: If only the base scope is left.

        """
        if len(self._scopes) == 1:
            msg = "Only the base scope is left; it cannot be popped"
            raise ScopeWireIllegalStateError(msg)
        return self.current

    def remove(self, scope: Scope) -> None:
        if scope is self.base:
            msg = "The base scope cannot be removed"
            raise ScopeWireIllegalStateError(msg)
        self._scopes.remove(scope)

    def has_scope(self, name: str) -> bool:
        return any(scope.name == name for scope in self._scopes)

    def above_base(self) -> list[Scope]:
        """Return every scope except the base one, top scope first."""
        return self._scopes[:0:-1]

    def find(
        self,
        key: RegistrationKey,
        *,
        look_in_scope_below: bool = False,
    ) -> Registration | None:
        """Return the first registration for ``key`` walking from the top scope down.

        Args:
            key: Registration key to look up.
            look_in_scope_below: Start one scope below the current one.

        """
        start = len(self._scopes) - (2 if look_in_scope_below else 1)
        for level in range(start, -1, -1):
            registration = self._scopes[level].find(key)
            if registration is not None:
                return registration
        return None

    def find_below(self, registration: Registration) -> Registration | None:
        """Return the registration that ``registration`` hides in the scopes under its own."""
        level = self._level_of(registration.scope)
        for lower in range(level - 1, -1, -1):
            candidate = self._scopes[lower].find(registration.key)
            if candidate is not None:
                return candidate
        return None

    def is_visible(self, registration: Registration) -> bool:
        return self.find(registration.key) is registration

    def find_by_instance(self, instance: object) -> Registration | None:
        for scope in reversed(self._scopes):
            registration = scope.find_by_instance(instance)
            if registration is not None:
                return registration
        return None

    def registrations(self) -> list[Registration]:
        return [registration for scope in self._scopes for registration in scope]

    def _level_of(self, scope: Scope) -> int:
        for level, candidate in enumerate(self._scopes):
            if candidate is scope:
                return level
        msg = f"{scope!r} is not on the scope stack"
        raise ScopeWireIllegalStateError(msg)

    def __iter__(self) -> Iterator[Scope]:
        return iter(list(self._scopes))

    def __len__(self) -> int:
        return len(self._scopes)


__all__ = [
    "DEFAULT_BASE_SCOPE_NAME",
    "Scope",
    "ScopeDisposeFunction",
    "ScopeStack",
]
