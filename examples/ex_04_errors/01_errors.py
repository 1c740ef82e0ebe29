"""Errors: the failures each registry operation reports.

Every error derives from ``ScopeWireError``.
"""

from __future__ import annotations

from scopewire import (
    Registry,
    ScopeWireAsyncDisposeInSyncContextError,
    ScopeWireDuplicateRegistrationError,
    ScopeWireError,
    ScopeWireIllegalStateError,
    ScopeWireInvalidScopeNameError,
    ScopeWireNotRegisteredError,
    ScopeWireTypeMismatchError,
)


class Service:
    pass


class AsyncResource:
    async def on_dispose(self) -> None:
        pass


def main() -> None:
    registry = Registry()

    try:
        registry.resolve(Service)
    except ScopeWireNotRegisteredError as error:
        print(error)  # => Service is not registered

    registry.register_factory(Service, Service)
    try:
        registry.register_factory(Service, Service)
    except ScopeWireDuplicateRegistrationError as error:
        print(error)  # => Service is already registered in the current scope

    registry.register_factory_param(Service, lambda _: Service(), name="sized", param_type=int)
    try:
        registry.resolve(Service, name="sized", param="big")
    except ScopeWireTypeMismatchError as error:
        print(type(error).__name__)  # => ScopeWireTypeMismatchError

    try:
        registry.push_new_scope(name="baseScope")
    except ScopeWireInvalidScopeNameError as error:
        print(error)  # => Scope name 'baseScope' is reserved for the base scope

    try:
        registry.pop_scope()
    except ScopeWireIllegalStateError as error:
        print(error)  # => Only the base scope is left; it cannot be popped

    registry.push_new_scope()
    registry.register_instance(AsyncResource, AsyncResource())
    try:
        registry.pop_scope()
    except ScopeWireAsyncDisposeInSyncContextError as error:
        print(isinstance(error, ScopeWireError))  # => True


if __name__ == "__main__":
    main()
