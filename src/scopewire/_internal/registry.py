from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Awaitable, Callable
from contextlib import AbstractContextManager, nullcontext
from types import TracebackType
from typing import Any, Literal, TypeVar, overload

from scopewire._internal.disposal import DisposalSteps, run_async, run_sync
from scopewire._internal.lock_mode import LockMode
from scopewire._internal.protocols import ShadowAware, WillSignalReady
from scopewire._internal.readiness import ReadinessCoordinator, ReadinessState
from scopewire._internal.records import (
    MISSING,
    DisposeFunction,
    Registration,
    RegistrationKey,
    RegistrationKind,
    UserDependency,
)
from scopewire._internal.scope import Scope, ScopeDisposeFunction, ScopeStack
from scopewire._internal.settings import RegistrySettings
from scopewire._internal.type_checks import describe_type, matches_type
from scopewire.exceptions import (
    ScopeWireDuplicateRegistrationError,
    ScopeWireIllegalStateError,
    ScopeWireInvalidRegistrationError,
    ScopeWireInvalidScopeNameError,
    ScopeWireNotRegisteredError,
    ScopeWireTypeMismatchError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

ScopeInit = Callable[["Registry"], Any]
"""Callback registering entities into a freshly pushed scope. May return an awaitable."""


class Registry:
    """Register construction recipes by key and hand out instances across stacked scopes.

    Registrations go into the current (topmost) scope. Resolution walks the
    scope stack from the top down and uses the first registration matching
    the ``(provides, name)`` key, so a registration in a pushed scope shadows
    one with the same key below it until the scope is popped.

    Operations that run dispose hooks come in pairs: ``apop_scope``,
    ``areset``, ``aunregister`` and friends await asynchronous hooks, while
    ``pop_scope``, ``reset``, ``unregister`` and friends run synchronously and
    raise ``ScopeWireAsyncDisposeInSyncContextError`` when a hook returns an
    awaitable. A registration is only removed once its hooks completed, so
    the ``a``-prefixed twin can be called afterwards to finish the job.

    Examples:
        .. code-block:: python

            registry = Registry()
            registry.register_factory(Session, Session)
            registry.push_new_scope(name="login")
            registry.register_instance(User, User("ada"))
            user = registry.resolve(User)
            await registry.apop_scope()

    """

    def __init__(
        self,
        settings: RegistrySettings | None = None,
        *,
        allow_reassignment: bool | Literal["from_settings"] = "from_settings",
        lock_mode: LockMode | Literal["from_settings"] = "from_settings",
        ready_timeout: float | None | Literal["from_settings"] = "from_settings",
    ) -> None:
        """Initialize a registry holding only the empty base scope.

        Args:
            settings: Default configuration. ``RegistrySettings()`` (which reads
                ``SCOPEWIRE_*`` environment variables) is used when omitted.
            allow_reassignment: Allow replacing a registration of the same key
                in the current scope instead of raising.
            lock_mode: Locking discipline for scope stack mutations.
            ready_timeout: Default deadline in seconds for readiness waits.

        """
        self.settings = settings if settings is not None else RegistrySettings()
        self.allow_reassignment: bool = (
            self.settings.allow_reassignment
            if allow_reassignment == "from_settings"
            else allow_reassignment
        )
        self.lock_mode: LockMode = (
            self.settings.lock_mode if lock_mode == "from_settings" else lock_mode
        )
        self.ready_timeout: float | None = (
            self.settings.ready_timeout if ready_timeout == "from_settings" else ready_timeout
        )
        self.on_scope_changed: Callable[[bool], None] | None = None
        """Called with ``True`` after a scope push and ``False`` after a pop."""

        self._lock: AbstractContextManager[Any] = (
            threading.RLock() if self.lock_mode is LockMode.THREAD else nullcontext()
        )
        self._stack = ScopeStack(self.settings.base_scope_name)
        self._readiness = ReadinessCoordinator(self._stack.registrations)

    # Registration

    def register_factory(
        self,
        provides: UserDependency,
        factory: Callable[[], Any],
        *,
        name: str | None = None,
    ) -> None:
        """Register a zero-argument factory called on every resolution.

        Args:
            provides: Dependency key to bind.
            factory: Callable producing a new instance.
            name: Optional instance name distinguishing several registrations
                of the same key.

        Raises:
            ScopeWireDuplicateRegistrationError: If the key is already bound in
                the current scope and reassignment is disabled.

        """
        self._register(
            RegistrationKey(provides, name),
            RegistrationKind.FACTORY,
            factory=self._callable("factory", factory),
        )

    def register_factory_param(
        self,
        provides: UserDependency,
        factory: Callable[[Any], Any],
        *,
        name: str | None = None,
        param_type: Any = None,
    ) -> None:
        """Register a one-parameter factory called on every resolution.

        The caller passes the argument through ``resolve(..., param=...)``.

        Args:
            provides: Dependency key to bind.
            factory: Callable receiving the construction parameter.
            name: Optional instance name.
            param_type: Type the parameter must satisfy. ``None`` disables the
                check; use ``X | None`` to accept a missing parameter.

        """
        self._register(
            RegistrationKey(provides, name),
            RegistrationKind.PARAM_FACTORY,
            param_factory=self._callable("factory", factory),
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
        """Register an already built instance returned by every resolution.

        If the instance shadows a ``ShadowAware`` instance registered with the
        same key in a lower scope, that instance's ``on_get_shadowed`` hook runs
        before this call returns.

        Args:
            provides: Dependency key to bind.
            instance: The instance to hand out.
            name: Optional instance name.
            dispose: Teardown called with the instance when it is removed.
                Must be omitted for ``Disposable`` instances.
            signals_ready: Keep the registration pending until
                ``signal_ready(instance)`` is called. Implied for
                ``WillSignalReady`` instances.

        """
        self._register(
            RegistrationKey(provides, name),
            RegistrationKind.INSTANCE,
            instance=instance,
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
        """Register a factory called once, on first resolution, whose result is kept.

        Args:
            provides: Dependency key to bind.
            factory: Callable producing the singleton.
            name: Optional instance name.
            dispose: Teardown called with the built instance when it is removed.

        """
        self._register(
            RegistrationKey(provides, name),
            RegistrationKind.LAZY_SINGLETON,
            factory=self._callable("factory", factory),
            dispose=dispose,
        )

    def register_singleton_async(
        self,
        provides: UserDependency,
        factory: Callable[[], Awaitable[Any]],
        *,
        name: str | None = None,
        dispose: DisposeFunction | None = None,
        signals_ready: bool = False,
    ) -> None:
        """Register an async factory awaited once; the registration is pending until it completes.

        Construction starts on the first ``aresolve``, ``is_ready`` or
        ``all_ready`` call that needs the instance and is shared by every
        concurrent caller.

        Args:
            provides: Dependency key to bind.
            factory: Coroutine function producing the singleton.
            name: Optional instance name.
            dispose: Teardown called with the built instance when it is removed.
            signals_ready: Additionally keep the registration pending until
                ``signal_ready(instance)`` is called.

        """
        self._register(
            RegistrationKey(provides, name),
            RegistrationKind.ASYNC_SINGLETON,
            async_factory=self._callable("factory", factory),
            dispose=dispose,
            signals_ready=signals_ready,
        )

    def is_registered(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
    ) -> bool:
        """Return whether a key is visible from the current scope, or an instance is registered.

        Args:
            provides: Dependency key to look up.
            name: Optional instance name.
            instance: Registered instance to look up by identity, in any scope.

        """
        if instance is not None:
            return self._stack.find_by_instance(instance) is not None
        return self._stack.find(RegistrationKey(provides, name)) is not None

    # Resolution

    @overload
    def resolve(self, provides: type[T], *, name: str | None = None, param: Any = MISSING) -> T: ...

    @overload
    def resolve(self, provides: Any, *, name: str | None = None, param: Any = MISSING) -> Any: ...

    def resolve(self, provides: Any, *, name: str | None = None, param: Any = MISSING) -> Any:
        """Return an instance for ``provides`` from the topmost scope that registers it.

        Instances and singletons return the same object on every call; plain
        factories build a new object on every call.

        Args:
            provides: Dependency key to resolve.
            name: Optional instance name.
            param: Construction parameter for one-parameter factories; ignored
                by every other registration kind.

        Raises:
            ScopeWireNotRegisteredError: If no scope registers the key.
            ScopeWireTypeMismatchError: If ``param`` or the produced instance
                does not match the declared types.
            ScopeWireAsyncDependencyInSyncContextError: If the key is an async
                singleton that has not finished construction.

        """
        registration = self._get_registration(RegistrationKey(provides, name))
        if registration.kind is RegistrationKind.LAZY_SINGLETON:
            with self._lock:
                instance = registration.build(param)
        else:
            instance = registration.build(param)
        return self._checked(registration, instance)

    def get(self, provides: Any, *, name: str | None = None, param: Any = MISSING) -> Any:
        """Alias of ``resolve``."""
        return self.resolve(provides, name=name, param=param)

    def __call__(self, provides: Any, *, name: str | None = None, param: Any = MISSING) -> Any:
        return self.resolve(provides, name=name, param=param)

    async def aresolve(
        self,
        provides: Any,
        *,
        name: str | None = None,
        param: Any = MISSING,
    ) -> Any:
        """Return an instance for ``provides``, awaiting async singleton construction.

        Behaves like ``resolve`` for every other registration kind.
        """
        registration = self._get_registration(RegistrationKey(provides, name))
        if registration.kind is RegistrationKind.ASYNC_SINGLETON:
            return self._checked(registration, await registration.abuild())
        return self.resolve(provides, name=name, param=param)

    # Scopes

    @property
    def current_scope_name(self) -> str | None:
        """Name of the current scope; the base scope name when no scope was pushed."""
        return self._stack.current.name

    @property
    def scope_depth(self) -> int:
        """Number of scopes on the stack, base scope included."""
        return len(self._stack)

    def has_scope(self, name: str) -> bool:
        return self._stack.has_scope(name)

    def push_new_scope(
        self,
        *,
        name: str | None = None,
        dispose: ScopeDisposeFunction | None = None,
        init: ScopeInit | None = None,
    ) -> None:
        """Push a new empty scope and make it the target of new registrations.

        Args:
            name: Optional scope name, unique on the stack, usable with
                ``pop_scopes_till``.
            dispose: Callback run when the scope is popped, while it is still
                the current scope.
            init: Callback receiving this registry to populate the new scope.
                ``on_scope_changed`` fires after it returns.

        Raises:
            ScopeWireInvalidScopeNameError: If ``name`` is reserved or in use.

        """
        with self._lock:
            self._stack.push(name, dispose)
            if init is not None:
                init(self)
        logger.debug("Pushed scope %r (depth %d)", name, len(self._stack))
        self._notify_scope_changed(pushed=True)

    async def apush_new_scope(
        self,
        *,
        name: str | None = None,
        dispose: ScopeDisposeFunction | None = None,
        init: ScopeInit | None = None,
    ) -> None:
        """Push a new scope like ``push_new_scope``, awaiting an asynchronous ``init``."""
        with self._lock:
            self._stack.push(name, dispose)
        if init is not None:
            result = init(self)
            if inspect.isawaitable(result):
                await result
        logger.debug("Pushed scope %r (depth %d)", name, len(self._stack))
        self._notify_scope_changed(pushed=True)

    def enter_scope(
        self,
        *,
        name: str | None = None,
        dispose: ScopeDisposeFunction | None = None,
        init: ScopeInit | None = None,
    ) -> ScopeBlock:
        """Return a context manager pushing a scope on enter and popping it on exit.

        Use ``with`` for synchronous dispose hooks and ``async with`` otherwise.

        Examples:
            .. code-block:: python

                async with registry.enter_scope(name="request"):
                    registry.register_instance(Request, request)
                    await handle()

        """
        return ScopeBlock(self, name=name, dispose=dispose, init=init)

    def pop_scope(self) -> None:
        """Dispose the current scope and its registrations, then remove it from the stack.

        Raises:
            ScopeWireIllegalStateError: If only the base scope is left.
            ScopeWireAsyncDisposeInSyncContextError: If a hook returns an awaitable.

        """
        run_sync(self._pop_scope_steps())

    async def apop_scope(self) -> None:
        """Dispose and remove the current scope, awaiting asynchronous hooks.

        The scope's own ``dispose`` callback runs first, while the scope is
        still current. Each registration holding an instance is then torn
        down: a ``ShadowAware`` instance it uncovers gets ``on_leave_shadow``
        before the instance's own dispose hook runs.

        Raises:
            ScopeWireIllegalStateError: If only the base scope is left.

        """
        await run_async(self._pop_scope_steps())

    def pop_scopes_till(self, name: str, *, inclusive: bool = True) -> bool:
        """Pop scopes from the top until the scope called ``name`` is removed.

        Returns:
            ``False`` without popping anything when no scope has that name.

        """
        return run_sync(self._pop_scopes_till_steps(name, inclusive=inclusive))

    async def apop_scopes_till(self, name: str, *, inclusive: bool = True) -> bool:
        """Pop scopes from the top until the scope called ``name`` is removed.

        Args:
            name: Name of the target scope.
            inclusive: Pop the named scope as well; otherwise stop with it as
                the current scope.

        Returns:
            ``False`` without popping anything when no scope has that name.

        Raises:
            ScopeWireInvalidScopeNameError: If ``name`` is the base scope name.

        """
        return await run_async(self._pop_scopes_till_steps(name, inclusive=inclusive))

    def reset_scope(self, *, dispose: bool = True) -> None:
        """Dispose the current scope and clear its registrations, keeping the scope."""
        run_sync(self._reset_scope_steps(dispose=dispose))

    async def areset_scope(self, *, dispose: bool = True) -> None:
        """Dispose the current scope and clear its registrations, awaiting asynchronous hooks.

        The scope's own ``dispose`` callback runs once, here or on a later
        pop, whichever comes first.

        Args:
            dispose: Run the scope callback and the dispose hooks of the
                removed registrations.

        """
        await run_async(self._reset_scope_steps(dispose=dispose))

    def reset(self, *, dispose: bool = True) -> None:
        """Remove every scope above the base one and clear the base scope."""
        run_sync(self._reset_steps(dispose=dispose))

    async def areset(self, *, dispose: bool = True) -> None:
        """Remove every scope above the base one and clear the base scope.

        Scopes are disposed top-down following the ``apop_scope`` rules. The
        global readiness token is reset as well.

        Args:
            dispose: Run scope and registration dispose hooks.

        """
        await run_async(self._reset_steps(dispose=dispose))

    # Unregistration

    def unregister(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        disposing_function: DisposeFunction | None = None,
    ) -> None:
        """Remove one registration and dispose its instance synchronously."""
        run_sync(
            self._unregister_steps(
                provides,
                name=name,
                instance=instance,
                disposing_function=disposing_function,
            ),
        )

    async def aunregister(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        disposing_function: DisposeFunction | None = None,
    ) -> None:
        """Remove one registration and dispose its instance.

        Args:
            provides: Dependency key of the registration, looked up from the
                current scope down.
            name: Optional instance name.
            instance: Registered instance, matched by identity in any scope.
                Takes precedence over ``provides``.
            disposing_function: Teardown overriding the registration's own
                dispose path for this call.

        Raises:
            ScopeWireNotRegisteredError: If nothing matches.

        """
        await run_async(
            self._unregister_steps(
                provides,
                name=name,
                instance=instance,
                disposing_function=disposing_function,
            ),
        )

    def reset_lazy_singleton(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        disposing_function: DisposeFunction | None = None,
    ) -> None:
        """Dispose and forget the cached instance of a lazy singleton synchronously."""
        run_sync(
            self._reset_lazy_singleton_steps(
                provides,
                name=name,
                instance=instance,
                disposing_function=disposing_function,
            ),
        )

    async def areset_lazy_singleton(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        disposing_function: DisposeFunction | None = None,
    ) -> None:
        """Dispose and forget the cached instance of a lazy singleton.

        The registration stays in place; the next resolution builds a new
        instance.

        Raises:
            ScopeWireNotRegisteredError: If nothing matches.
            ScopeWireIllegalStateError: If the registration is not a lazy singleton.

        """
        await run_async(
            self._reset_lazy_singleton_steps(
                provides,
                name=name,
                instance=instance,
                disposing_function=disposing_function,
            ),
        )

    # Readiness

    async def is_ready(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
        timeout: float | None | Literal["from_settings"] = "from_settings",
        waiter: object = None,
    ) -> None:
        """Wait until a registration is ready.

        Async singletons are ready once constructed; registrations that signal
        readiness are ready once ``signal_ready`` was called for them; every
        other registration is ready immediately.

        Args:
            provides: Dependency key of the registration.
            name: Optional instance name.
            instance: Registered instance, matched by identity.
            timeout: Deadline in seconds; ``None`` waits forever.
            waiter: Object reported as the waiting party in timeout diagnostics.

        Raises:
            ScopeWireNotRegisteredError: If nothing matches.
            ScopeWireReadinessTimeoutError: If the deadline elapses first.

        """
        registration = self._lookup(provides, name=name, instance=instance)
        await self._readiness.wait_for(
            registration,
            timeout=self._timeout(timeout),
            waiter=_describe_waiter(waiter, default=f"is_ready({registration.key})"),
        )

    def is_ready_sync(
        self,
        provides: UserDependency = None,
        *,
        name: str | None = None,
        instance: Any = None,
    ) -> bool:
        """Return whether a registration is ready, without waiting."""
        return self._lookup(provides, name=name, instance=instance).is_ready

    async def all_ready(
        self,
        *,
        timeout: float | None | Literal["from_settings"] = "from_settings",
        ignore_pending_async_creation: bool = False,
    ) -> None:
        """Wait until every registration that tracks readiness is ready.

        Also completes when ``signal_ready()`` marks the global readiness token.

        Args:
            timeout: Deadline in seconds; ``None`` waits forever.
            ignore_pending_async_creation: Only wait for registrations that
                signal readiness explicitly.

        Raises:
            ScopeWireReadinessTimeoutError: If the deadline elapses first.

        """
        await self._readiness.wait_all(
            timeout=self._timeout(timeout),
            ignore_pending_async_creation=ignore_pending_async_creation,
        )

    def all_ready_sync(self, *, ignore_pending_async_creation: bool = False) -> bool:
        """Return whether every registration that tracks readiness is ready, without waiting."""
        return self._readiness.all_ready_sync(
            ignore_pending_async_creation=ignore_pending_async_creation,
        )

    def signal_ready(self, instance: Any = None) -> None:
        """Mark a registration, or the registry as a whole, as ready.

        With an instance registered with ``signals_ready`` its registration
        becomes ready. Without an instance, or with one that is not
        registered, the global readiness token completes, releasing
        ``all_ready`` waiters.

        Raises:
            ScopeWireIllegalStateError: If the instance's registration does not
                expect a signal or was already signalled, or if the global token
                is signalled while registrations still wait for their signal.

        """
        with self._lock:
            registration = self._stack.find_by_instance(instance) if instance is not None else None
            if registration is not None:
                state = registration.readiness
                if state is None or not state.signals_ready:
                    msg = f"{registration.key} was not registered with signals_ready=True"
                    raise ScopeWireIllegalStateError(msg)
                if state.signalled:
                    msg = f"{registration.key} already signalled readiness"
                    raise ScopeWireIllegalStateError(msg)
                state.mark_signalled()
                logger.debug("%s signalled readiness", registration.key)
                return

            pending = self._readiness.pending_signals()
            if pending:
                keys = ", ".join(str(r.key) for r in pending)
                msg = (
                    "signal_ready() without a registered instance while registrations "
                    f"still wait for their own signal: {keys}"
                )
                raise ScopeWireIllegalStateError(msg)
            self._readiness.complete_global()

    # Internals

    def _register(
        self,
        key: RegistrationKey,
        kind: RegistrationKind,
        *,
        signals_ready: bool = False,
        **sources: Any,
    ) -> None:
        if key.provides is None:
            msg = "Registration key must not be None"
            raise ScopeWireInvalidRegistrationError(msg)

        with self._lock:
            scope = self._stack.current
            replaced = scope.find(key)
            if replaced is not None and not self.allow_reassignment:
                raise ScopeWireDuplicateRegistrationError(key)

            registration = Registration(
                key=key,
                kind=kind,
                scope=scope,
                readiness=_readiness_for(
                    kind,
                    sources.get("instance"),
                    signals_ready=signals_ready,
                ),
                **sources,
            )
            if registration.instance is not None:
                shadowed = self._stack.find(key, look_in_scope_below=True)
                if shadowed is not None and isinstance(shadowed.instance, ShadowAware):
                    shadowed.instance.on_get_shadowed(registration.instance)
            scope.add(registration)
            if replaced is not None:
                replaced.detach(dispose=False)

        logger.debug("Registered %s as %s in scope %r", key, kind.name, scope.name)

    @staticmethod
    def _callable(argument: str, value: Any) -> Any:
        if not callable(value):
            msg = f"{argument} must be callable, got {type(value).__qualname__}"
            raise ScopeWireInvalidRegistrationError(msg)
        return value

    def _get_registration(self, key: RegistrationKey) -> Registration:
        registration = self._stack.find(key)
        if registration is None:
            raise ScopeWireNotRegisteredError(key)
        return registration

    def _lookup(
        self,
        provides: UserDependency,
        *,
        name: str | None,
        instance: Any,
    ) -> Registration:
        if instance is not None:
            registration = self._stack.find_by_instance(instance)
            if registration is None:
                raise ScopeWireNotRegisteredError(
                    f"instance of {describe_type(type(instance))} at {id(instance):#x}",
                )
            return registration
        if provides is None:
            msg = "Pass either a dependency key or an instance"
            raise ScopeWireInvalidRegistrationError(msg)
        return self._get_registration(RegistrationKey(provides, name))

    def _checked(self, registration: Registration, instance: Any) -> Any:
        if not matches_type(instance, registration.key.provides):
            raise ScopeWireTypeMismatchError(
                registration.key,
                expected=registration.key.provides,
                actual=instance,
                role="instance",
            )
        return instance

    def _timeout(self, timeout: float | None | Literal["from_settings"]) -> float | None:
        if timeout == "from_settings":
            return self.ready_timeout
        return timeout  # type: ignore[return-value]

    def _notify_scope_changed(self, *, pushed: bool) -> None:
        callback = self.on_scope_changed
        if callback is not None:
            callback(pushed)

    def _uncovered_by(self, registration: Registration) -> Registration | None:
        """Return the ``ShadowAware`` registration uncovered once ``registration`` leaves."""
        if registration.instance is None or not self._stack.is_visible(registration):
            return None
        below = self._stack.find_below(registration)
        if below is not None and isinstance(below.instance, ShadowAware):
            return below
        return None

    def _teardown_steps(
        self,
        registration: Registration,
        uncovered: Registration | None,
        disposing_function: DisposeFunction | None = None,
    ) -> DisposalSteps[None]:
        instance = registration.instance
        if instance is None:
            return
        if uncovered is not None and not registration.shadow_released:
            yield uncovered.instance.on_leave_shadow(instance)
            registration.shadow_released = True
        yield registration.dispose_instance(instance, disposing_function)

    def _release_steps(
        self,
        registration: Registration,
        disposing_function: DisposeFunction | None = None,
    ) -> DisposalSteps[None]:
        """Tear ``registration`` down, then remove it from its scope.

        The registration stays in place until its hooks completed, so an
        operation interrupted by a failing or asynchronous hook can be retried
        and resumes with the hooks that did not run.
        """
        with self._lock:
            uncovered = self._uncovered_by(registration)
        yield from self._teardown_steps(registration, uncovered, disposing_function)
        with self._lock:
            registration.scope.remove(registration)
            registration.detach(dispose=True)

    def _drop(self, scope: Scope) -> None:
        """Remove every registration of ``scope`` without running any hook."""
        with self._lock:
            for registration in scope:
                registration.detach(dispose=False)
            scope.clear()

    def _dispose_scope_steps(self, scope: Scope) -> DisposalSteps[None]:
        if scope.dispose is not None:
            yield scope.dispose()
            scope.dispose = None
        for registration in scope:
            yield from self._release_steps(registration)

    def _pop_scope_steps(self) -> DisposalSteps[None]:
        with self._lock:
            scope = self._stack.poppable()
        logger.debug("Popping scope %r", scope.name)
        yield from self._dispose_scope_steps(scope)
        with self._lock:
            self._stack.remove(scope)
        self._notify_scope_changed(pushed=False)

    def _pop_scopes_till_steps(self, name: str, *, inclusive: bool) -> DisposalSteps[bool]:
        if name == self._stack.base_scope_name:
            msg = f"Scope {name!r} is the base scope and cannot be popped"
            raise ScopeWireInvalidScopeNameError(msg)
        if not self._stack.has_scope(name):
            logger.debug("No scope named %r on the stack; nothing popped", name)
            return False
        if inclusive:
            while True:
                popped_name = self._stack.current.name
                yield from self._pop_scope_steps()
                if popped_name == name:
                    break
        else:
            while self._stack.current.name != name:
                yield from self._pop_scope_steps()
        return True

    def _pop_until_removed_steps(self, scope: Scope) -> DisposalSteps[None]:
        while scope in self._stack:
            yield from self._pop_scope_steps()

    def _reset_scope_steps(self, *, dispose: bool) -> DisposalSteps[None]:
        scope = self._stack.current
        if dispose:
            yield from self._dispose_scope_steps(scope)
        else:
            self._drop(scope)
        logger.debug("Reset scope %r", scope.name)

    def _reset_steps(self, *, dispose: bool) -> DisposalSteps[None]:
        with self._lock:
            scopes = self._stack.above_base()
        for scope in scopes:
            if dispose:
                yield from self._dispose_scope_steps(scope)
            else:
                self._drop(scope)
            with self._lock:
                self._stack.remove(scope)
        yield from self._reset_scope_steps(dispose=dispose)
        self._readiness.reset_global()
        logger.debug("Reset registry (%d scopes removed)", len(scopes))
        if scopes:
            self._notify_scope_changed(pushed=False)

    def _unregister_steps(
        self,
        provides: UserDependency,
        *,
        name: str | None,
        instance: Any,
        disposing_function: DisposeFunction | None,
    ) -> DisposalSteps[None]:
        with self._lock:
            registration = self._lookup(provides, name=name, instance=instance)
        yield from self._release_steps(registration, disposing_function)
        logger.debug("Unregistered %s from scope %r", registration.key, registration.scope.name)

    def _reset_lazy_singleton_steps(
        self,
        provides: UserDependency,
        *,
        name: str | None,
        instance: Any,
        disposing_function: DisposeFunction | None,
    ) -> DisposalSteps[None]:
        with self._lock:
            registration = self._lookup(provides, name=name, instance=instance)
            if registration.kind is not RegistrationKind.LAZY_SINGLETON:
                msg = f"{registration.key} is not a lazy singleton"
                raise ScopeWireIllegalStateError(msg)
            built = registration.instance
        if built is None:
            return
        yield registration.dispose_instance(built, disposing_function)
        with self._lock:
            if registration.instance is built:
                registration.instance = None
        logger.debug("Reset lazy singleton %s", registration.key)

    def __repr__(self) -> str:
        scopes = ", ".join(repr(scope.name) for scope in self._stack)
        return f"Registry(scopes=[{scopes}])"


class ScopeBlock:
    """Push a scope on enter and pop it, with everything above it, on exit."""

    def __init__(
        self,
        registry: Registry,
        *,
        name: str | None,
        dispose: ScopeDisposeFunction | None,
        init: ScopeInit | None,
    ) -> None:
        self._registry = registry
        self._name = name
        self._dispose = dispose
        self._init = init
        self._scope: Scope | None = None

    def __enter__(self) -> Registry:
        self._registry.push_new_scope(name=self._name, dispose=self._dispose, init=self._init)
        self._scope = self._registry._stack.current
        return self._registry

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        run_sync(self._registry._pop_until_removed_steps(self._entered_scope()))

    async def __aenter__(self) -> Registry:
        await self._registry.apush_new_scope(
            name=self._name,
            dispose=self._dispose,
            init=self._init,
        )
        self._scope = self._registry._stack.current
        return self._registry

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await run_async(self._registry._pop_until_removed_steps(self._entered_scope()))

    def _entered_scope(self) -> Scope:
        if self._scope is None:
            msg = "Scope block exited without being entered"
            raise ScopeWireIllegalStateError(msg)
        scope, self._scope = self._scope, None
        return scope


def _readiness_for(
    kind: RegistrationKind,
    instance: Any,
    *,
    signals_ready: bool,
) -> ReadinessState | None:
    signals_ready = signals_ready or isinstance(instance, WillSignalReady)
    if kind is RegistrationKind.ASYNC_SINGLETON:
        return ReadinessState(signals_ready=signals_ready, awaits_construction=True)
    if signals_ready:
        return ReadinessState(signals_ready=True, awaits_construction=False)
    return None


def _describe_waiter(waiter: object, *, default: str) -> str:
    if waiter is None:
        return default
    if isinstance(waiter, str):
        return waiter
    return f"{type(waiter).__qualname__}@{id(waiter):#x}"


__all__ = ["Registry", "ScopeBlock", "ScopeInit"]
