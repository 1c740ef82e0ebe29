from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, TypeAlias

from scopewire._internal.protocols import Disposable
from scopewire._internal.readiness import ReadinessState
from scopewire._internal.type_checks import describe_type, matches_type
from scopewire.exceptions import (
    ScopeWireAsyncDependencyInSyncContextError,
    ScopeWireIllegalStateError,
    ScopeWireInvalidRegistrationError,
    ScopeWireTypeMismatchError,
)

if TYPE_CHECKING:
    from scopewire._internal.scope import Scope

logger = logging.getLogger(__name__)

UserDependency: TypeAlias = Any
"""A key that has been registered or is being resolved from the user's code."""

DisposeFunction: TypeAlias = Callable[[Any], Awaitable[Any] | None]
"""A callback receiving the instance being disposed. May return an awaitable."""


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
"""Sentinel for a construction parameter that was not supplied."""


@dataclass(frozen=True, slots=True)
class RegistrationKey:
    """Identify a registration by dependency key and optional instance name."""

    provides: UserDependency
    """The dependency key, usually a class."""
    name: str | None = None
    """Optional instance name; ``None`` means the key alone identifies the registration."""

    def __str__(self) -> str:
        if self.name is None:
            return describe_type(self.provides)
        return f"{describe_type(self.provides)}[{self.name!r}]"


class RegistrationKind(Enum):
    """Select how a registration produces its instance."""

    FACTORY = auto()
    """Call a zero-argument factory on every resolution."""

    PARAM_FACTORY = auto()
    """Call a one-parameter factory with the caller-supplied parameter on every resolution."""

    INSTANCE = auto()
    """Return the instance supplied at registration time."""

    LAZY_SINGLETON = auto()
    """Call a zero-argument factory once, on first resolution, and keep the result."""

    ASYNC_SINGLETON = auto()
    """Await an async factory once and keep the result."""


@dataclass(kw_only=True, eq=False)
class Registration:
    """Describe one registered key, its construction strategy and its teardown.

    Exactly one construction source is set: ``factory`` (for ``FACTORY`` and
    ``LAZY_SINGLETON``), ``param_factory``, ``async_factory`` or ``instance``
    (for ``INSTANCE``). Registrations compare by identity.
    """

    key: RegistrationKey
    kind: RegistrationKind
    scope: Scope
    """The scope holding this registration."""

    factory: Callable[[], Any] | None = None
    param_factory: Callable[[Any], Any] | None = None
    param_type: Any = None
    """Declared parameter type for ``PARAM_FACTORY``; ``None`` disables the check."""
    async_factory: Callable[[], Awaitable[Any]] | None = None

    instance: Any = None
    """The registered instance, or the cached result of a singleton factory."""
    dispose: DisposeFunction | None = None
    """Per-registration dispose function, used when ``instance`` is not ``Disposable``."""

    readiness: ReadinessState | None = None
    """Readiness tracking; ``None`` for registrations that are ready as soon as they exist."""

    detached: bool = field(default=False, init=False)
    """Set once the registration has been removed from its scope."""
    shadow_released: bool = field(default=False, init=False)
    """Set once the registration it shadowed was told about its removal."""

    _construction: asyncio.Future[Any] | None = field(default=None, init=False, repr=False)
    _dispose_late_instance: bool = field(default=True, init=False, repr=False)

    def __post_init__(self) -> None:
        sources = [
            source
            for source in (self.factory, self.param_factory, self.async_factory)
            if source is not None
        ]
        if self.kind is RegistrationKind.INSTANCE:
            if self.instance is None or sources:
                msg = f"{self.key}: an instance registration needs exactly one non-None instance"
                raise ScopeWireInvalidRegistrationError(msg)
        elif len(sources) != 1 or self.instance is not None:
            msg = f"{self.key}: exactly one construction strategy must be supplied"
            raise ScopeWireInvalidRegistrationError(msg)

        if self.dispose is not None and isinstance(self.instance, Disposable):
            msg = (
                f"{self.key}: {type(self.instance).__qualname__} implements Disposable, "
                "do not pass an explicit dispose function as well"
            )
            raise ScopeWireInvalidRegistrationError(msg)

    @property
    def is_ready(self) -> bool:
        return self.readiness is None or self.readiness.is_ready

    def build(self, param: Any = MISSING) -> Any:
        """Return an instance according to the registration kind.

        Lazy singletons are built on the first call and cached. Async
        singletons are only returned once their construction has completed.

        Args:
            param: Construction parameter for ``PARAM_FACTORY`` registrations.
                Ignored by every other kind.

        Raises:
            ScopeWireTypeMismatchError: If ``param`` does not match ``param_type``.
            ScopeWireAsyncDependencyInSyncContextError: If an async singleton is
                still under construction or not started.

        """
        if self.kind is RegistrationKind.FACTORY:
            return self.factory()  # type: ignore[misc]
        if self.kind is RegistrationKind.PARAM_FACTORY:
            value = None if param is MISSING else param
            if not matches_type(value, self.param_type):
                raise ScopeWireTypeMismatchError(
                    self.key,
                    expected=self.param_type,
                    actual=value,
                    role="parameter",
                )
            return self.param_factory(value)  # type: ignore[misc]
        if self.kind is RegistrationKind.LAZY_SINGLETON and self.instance is None:
            self.instance = self._typed(self.factory())  # type: ignore[misc]
            logger.debug("Built lazy singleton %s", self.key)
        if self.kind is RegistrationKind.ASYNC_SINGLETON and self.instance is None:
            raise ScopeWireAsyncDependencyInSyncContextError(self.key)
        return self.instance

    def start_construction(self) -> asyncio.Future[Any]:
        """Start the async factory once and return the shared construction future.

        Must be called from a running event loop.
        """
        if self._construction is None:
            self._construction = asyncio.ensure_future(self._construct())
        return self._construction

    async def abuild(self) -> Any:
        """Return the async singleton instance, awaiting its construction when needed."""
        if self.instance is not None:
            return self.instance
        # Shielded so a cancelled caller leaves the shared construction running.
        return await asyncio.shield(self.start_construction())

    def detach(self, *, dispose: bool) -> None:
        """Mark the registration as removed from its scope.

        Args:
            dispose: Dispose an instance whose async construction completes
                after the removal.

        """
        self.detached = True
        self._dispose_late_instance = dispose

    async def _construct(self) -> Any:
        try:
            instance = self._typed(await self.async_factory())  # type: ignore[misc]
        except BaseException:
            # Let the next caller start a fresh construction.
            self._construction = None
            raise

        if self.detached:
            logger.debug("%s was removed during construction; disposing the result", self.key)
            if self._dispose_late_instance:
                result = self.dispose_instance(instance)
                if inspect.isawaitable(result):
                    await result
            msg = f"{self.key} was removed before its async construction completed"
            raise ScopeWireIllegalStateError(msg)

        self.instance = instance
        logger.debug("Async singleton %s finished construction", self.key)
        if self.readiness is not None:
            self.readiness.mark_constructed()
        return instance

    def _typed(self, instance: Any) -> Any:
        if not matches_type(instance, self.key.provides):
            raise ScopeWireTypeMismatchError(
                self.key,
                expected=self.key.provides,
                actual=instance,
                role="instance",
            )
        return instance

    def dispose_instance(
        self,
        instance: Any,
        disposing_function: DisposeFunction | None = None,
    ) -> Awaitable[Any] | None:
        """Run the teardown for ``instance`` and return its result.

        ``disposing_function`` overrides the registration's own dispose path,
        which is the ``dispose`` function if set, else ``on_dispose`` when the
        instance is ``Disposable``.
        """
        if disposing_function is not None:
            return disposing_function(instance)
        if self.dispose is not None:
            return self.dispose(instance)
        if isinstance(instance, Disposable):
            return instance.on_dispose()
        return None

    def __repr__(self) -> str:
        return f"Registration({self.key}, kind={self.kind.name}, scope={self.scope.name!r})"


__all__ = [
    "MISSING",
    "DisposeFunction",
    "Registration",
    "RegistrationKey",
    "RegistrationKind",
    "UserDependency",
]
