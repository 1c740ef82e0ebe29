from __future__ import annotations

import threading
from collections.abc import Awaitable, Callable
from typing import Any, Literal, TypeVar, overload

from scopewire._internal.records import MISSING, DisposeFunction, UserDependency
from scopewire._internal.registry import Registry, ScopeBlock, ScopeInit
from scopewire._internal.scope import ScopeDisposeFunction

T = TypeVar("T")


class RegistryContext:
    """Proxy registrations and resolution through a process-wide registry.

    The bound registry is created lazily on first use with ``factory`` unless
    the host application binds one explicitly with ``set_current``. The
    binding is process-global for this instance (not task-local or
    thread-local), which suits application composition; tests should create
    their own ``Registry`` instead of sharing this one.
    """

    def __init__(self, factory: Callable[[], Registry] = Registry) -> None:
        self._factory = factory
        self._registry: Registry | None = None
        self._lock = threading.Lock()

    @property
    def is_set(self) -> bool:
        """Whether a registry is currently bound."""
        return self._registry is not None

    def get_current(self) -> Registry:
        """Return the bound registry, constructing the default one on first use.

        Returns:
            The currently bound registry.

        """
        registry = self._registry
        if registry is None:
            with self._lock:
                if self._registry is None:
                    self._registry = self._factory()
                registry = self._registry
        return registry

    def set_current(self, registry: Registry) -> None:
        """Bind ``registry`` as the process-wide registry.

        Args:
            registry: Registry to hand out from ``get_current``.

        """
        with self._lock:
            self._registry = registry

    def reset_current(self) -> None:
        """Drop the binding; the next ``get_current`` constructs a fresh registry.

        Registrations of the dropped registry are not disposed. Await
        ``get_current().areset()`` first when their teardown matters.
        """
        with self._lock:
            self._registry = None

    def register_factory(
        self,
        provides: UserDependency,
        factory: Callable[[], Any],
        *,
        name: str | None = None,
    ) -> None:
        """Register a zero-argument factory on the bound registry."""
        self.get_current().register_factory(provides, factory, name=name)

    def register_factory_param(
        self,
        provides: UserDependency,
        factory: Callable[[Any], Any],
        *,
        name: str | None = None,
        param_type: Any = None,
    ) -> None:
        """Register a one-parameter factory on the bound registry."""
        self.get_current().register_factory_param(
            provides,
            factory,
            name=name,
            param_type=param_type,
        )

    def register_instance(
        self,
        provides: UserDependency,
        instance: Any,
        *,
        name: str | None = None,
        dispose: DisposeFunction | None = None,
        signals_ready: bool = False,
    ) -> None:
        """Register an instance on the bound registry."""
        self.get_current().register_instance(
            provides,
            instance,
            name=name,
            dispose=dispose,
            signals_ready=signals_ready,
        )

    def register_lazy_singleton(
        self,
        provides: UserDependency,
        factory: Callable[[], Any],
        *,
        name: str | None = None,
        dispose: DisposeFunction | None = None,
    ) -> None:
        """Register a lazy singleton on the bound registry."""
        self.get_current().register_lazy_singleton(provides, factory, name=name, dispose=dispose)

    def register_singleton_async(
        self,
        provides: UserDependency,
        factory: Callable[[], Awaitable[Any]],
        *,
        name: str | None = None,
        dispose: DisposeFunction | None = None,
        signals_ready: bool = False,
    ) -> None:
        """Register an async singleton on the bound registry."""
        self.get_current().register_singleton_async(
            provides,
            factory,
            name=name,
            dispose=dispose,
            signals_ready=signals_ready,
        )

    @overload
    def resolve(self, provides: type[T], *, name: str | None = None, param: Any = MISSING) -> T: ...

    @overload
    def resolve(self, provides: Any, *, name: str | None = None, param: Any = MISSING) -> Any: ...

    def resolve(self, provides: Any, *, name: str | None = None, param: Any = MISSING) -> Any:
        """Resolve a dependency via the bound registry.

        Raises:
            ScopeWireNotRegisteredError: If no scope registers the key.
            ScopeWireTypeMismatchError: If ``param`` or the produced instance
                does not match the declared types.

        """
        return self.get_current().resolve(provides, name=name, param=param)

    def get(self, provides: Any, *, name: str | None = None, param: Any = MISSING) -> Any:
        """Alias of ``resolve``."""
        return self.get_current().resolve(provides, name=name, param=param)

    def __call__(self, provides: Any, *, name: str | None = None, param: Any = MISSING) -> Any:
        return self.get_current().resolve(provides, name=name, param=param)

    async def aresolve(
        self,
        provides: Any,
        *,
        name: str | None = None,
        param: Any = MISSING,
    ) -> Any:
        """Resolve a dependency via the bound registry, awaiting async singletons."""
        return await self.get_current().aresolve(provides, name=name, param=param)

    def is_registered(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
    ) -> bool:
        return self.get_current().is_registered(provides, name=name, instance=instance)

    def unregister(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        disposing_function: DisposeFunction | None = None,
    ) -> None:
        self.get_current().unregister(
            provides,
            name=name,
            instance=instance,
            disposing_function=disposing_function,
        )

    async def aunregister(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        disposing_function: DisposeFunction | None = None,
    ) -> None:
        """Remove one registration of the bound registry and dispose its instance."""
        await self.get_current().aunregister(
            provides,
            name=name,
            instance=instance,
            disposing_function=disposing_function,
        )

    def reset_lazy_singleton(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        disposing_function: DisposeFunction | None = None,
    ) -> None:
        self.get_current().reset_lazy_singleton(
            provides,
            name=name,
            instance=instance,
            disposing_function=disposing_function,
        )

    async def areset_lazy_singleton(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        disposing_function: DisposeFunction | None = None,
    ) -> None:
        await self.get_current().areset_lazy_singleton(
            provides,
            name=name,
            instance=instance,
            disposing_function=disposing_function,
        )

    @property
    def current_scope_name(self) -> str | None:
        return self.get_current().current_scope_name

    @property
    def scope_depth(self) -> int:
        return self.get_current().scope_depth

    def has_scope(self, name: str) -> bool:
        return self.get_current().has_scope(name)

    def push_new_scope(
        self,
        *,
        name: str | None = None,
        dispose: ScopeDisposeFunction | None = None,
        init: ScopeInit | None = None,
    ) -> None:
        """Push a new scope on the bound registry."""
        self.get_current().push_new_scope(name=name, dispose=dispose, init=init)

    async def apush_new_scope(
        self,
        *,
        name: str | None = None,
        dispose: ScopeDisposeFunction | None = None,
        init: ScopeInit | None = None,
    ) -> None:
        """Push a new scope on the bound registry, awaiting an asynchronous ``init``."""
        await self.get_current().apush_new_scope(name=name, dispose=dispose, init=init)

    def enter_scope(
        self,
        *,
        name: str | None = None,
        dispose: ScopeDisposeFunction | None = None,
        init: ScopeInit | None = None,
    ) -> ScopeBlock:
        """Return a scope block on the bound registry."""
        return self.get_current().enter_scope(name=name, dispose=dispose, init=init)

    def pop_scope(self) -> None:
        self.get_current().pop_scope()

    async def apop_scope(self) -> None:
        """Dispose and pop the current scope of the bound registry."""
        await self.get_current().apop_scope()

    def pop_scopes_till(self, name: str, *, inclusive: bool = True) -> bool:
        return self.get_current().pop_scopes_till(name, inclusive=inclusive)

    async def apop_scopes_till(self, name: str, *, inclusive: bool = True) -> bool:
        return await self.get_current().apop_scopes_till(name, inclusive=inclusive)

    def reset_scope(self, *, dispose: bool = True) -> None:
        self.get_current().reset_scope(dispose=dispose)

    async def areset_scope(self, *, dispose: bool = True) -> None:
        await self.get_current().areset_scope(dispose=dispose)

    def reset(self, *, dispose: bool = True) -> None:
        self.get_current().reset(dispose=dispose)

    async def areset(self, *, dispose: bool = True) -> None:
        await self.get_current().areset(dispose=dispose)

    async def is_ready(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        timeout: float | None | Literal["from_settings"] = "from_settings",
        waiter: object = None,
    ) -> None:
        """Wait until a registration of the bound registry is ready."""
        await self.get_current().is_ready(
            provides,
            name=name,
            instance=instance,
            timeout=timeout,
            waiter=waiter,
        )

    def is_ready_sync(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
    ) -> bool:
        return self.get_current().is_ready_sync(provides, name=name, instance=instance)

    def signal_ready(self, instance: Any = None) -> None:
        self.get_current().signal_ready(instance)

    async def all_ready(
        self,
        *,
        timeout: float | None | Literal["from_settings"] = "from_settings",
        ignore_pending_async_creation: bool = False,
    ) -> None:
        await self.get_current().all_ready(
            timeout=timeout,
            ignore_pending_async_creation=ignore_pending_async_creation,
        )

    def all_ready_sync(self, *, ignore_pending_async_creation: bool = False) -> bool:
        return self.get_current().all_ready_sync(
            ignore_pending_async_creation=ignore_pending_async_creation,
        )


registry_context = RegistryContext()
"""Process-wide registry handle, constructed lazily on first use."""


__all__ = ["RegistryContext", "registry_context"]
