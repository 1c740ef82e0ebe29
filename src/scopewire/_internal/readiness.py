from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from scopewire.exceptions import ScopeWireReadinessTimeoutError

if TYPE_CHECKING:
    from scopewire._internal.records import Registration

logger = logging.getLogger(__name__)


class ReadinessState:
    """Track the ``pending -> ready`` transition of one registration.

    A registration is ready once its async construction (if any) has
    completed and, when it signals readiness itself, ``signal_ready`` has
    been called for its instance. The transition is terminal.
    """

    def __init__(self, *, signals_ready: bool, awaits_construction: bool) -> None:
        self.signals_ready = signals_ready
        self.signalled = False
        self.constructed = not awaits_construction
        self._ready = False
        # Futures are created per wait so the state is not tied to one event loop.
        self._waiters: list[asyncio.Future[None]] = []
        self._refresh()

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_constructing(self) -> bool:
        return not self.constructed

    def mark_constructed(self) -> None:
        self.constructed = True
        self._refresh()

    def mark_signalled(self) -> None:
        self.signalled = True
        self._refresh()

    async def wait(self) -> None:
        if self._ready:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        finally:
            self._waiters.remove(waiter)

    def _refresh(self) -> None:
        if self._ready or not self.constructed or (self.signals_ready and not self.signalled):
            return
        self._ready = True
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)


class ReadinessCoordinator:
    """Answer readiness queries over the registrations of a registry.

    The coordinator does not own registrations; ``registrations`` returns
    every registration currently on the scope stack. Besides per-registration
    readiness it keeps a global token that ``complete_global`` marks done,
    which releases every ``wait_all`` caller at once.
    """

    def __init__(self, registrations: Callable[[], Iterable[Registration]]) -> None:
        self._registrations = registrations
        self._global_ready = _global_token()
        self._waiting: dict[str, list[Registration]] = {}

    @property
    def global_ready(self) -> bool:
        return self._global_ready.is_ready

    def complete_global(self) -> None:
        logger.info("Global readiness signalled")
        self._global_ready.mark_signalled()

    def reset_global(self) -> None:
        self._global_ready = _global_token()

    def tracked(self, *, ignore_pending_async_creation: bool = False) -> list[Registration]:
        """Return registrations whose readiness has to be awaited.

        Args:
            ignore_pending_async_creation: Only include registrations that
                signal readiness explicitly, skipping those that are merely
                waiting for their async factory.

        """
        return [
            registration
            for registration in self._registrations()
            if registration.readiness is not None
            and (not ignore_pending_async_creation or registration.readiness.signals_ready)
        ]

    def pending_signals(self) -> list[Registration]:
        return [
            registration
            for registration in self.tracked(ignore_pending_async_creation=True)
            if not registration.is_ready
        ]

    def all_ready_sync(self, *, ignore_pending_async_creation: bool = False) -> bool:
        if self.global_ready:
            return True
        return all(
            registration.is_ready
            for registration in self.tracked(
                ignore_pending_async_creation=ignore_pending_async_creation,
            )
        )

    async def wait_for(
        self,
        registration: Registration,
        *,
        timeout: float | None,
        waiter: str,
    ) -> None:
        """Wait until ``registration`` is ready or ``timeout`` seconds elapse.

        Raises:
            ScopeWireReadinessTimeoutError: If the deadline elapses first.

        """
        if registration.is_ready:
            return
        self._waiting.setdefault(waiter, []).append(registration)
        try:
            await self._with_deadline(
                self._wait_one(registration),
                timeout=timeout,
                message=f"{registration.key} did not become ready within {timeout}s",
            )
        finally:
            self._forget_waiter(waiter, registration)

    async def wait_all(
        self,
        *,
        timeout: float | None,
        ignore_pending_async_creation: bool,
    ) -> None:
        """Wait until every tracked registration is ready or the global token completes.

        Raises:
            ScopeWireReadinessTimeoutError: If the deadline elapses first.

        """
        if self.all_ready_sync(ignore_pending_async_creation=ignore_pending_async_creation):
            return
        required = [
            registration
            for registration in self.tracked(
                ignore_pending_async_creation=ignore_pending_async_creation,
            )
            if not registration.is_ready
        ]
        waiter = "all_ready()"
        self._waiting.setdefault(waiter, []).extend(required)
        try:
            await self._with_deadline(
                self._wait_all(required),
                timeout=timeout,
                message=f"Not all registrations became ready within {timeout}s",
            )
        finally:
            for registration in required:
                self._forget_waiter(waiter, registration)

    def timeout_error(self, message: str) -> ScopeWireReadinessTimeoutError:
        tracked = self.tracked()
        return ScopeWireReadinessTimeoutError(
            message,
            pending=[str(r.key) for r in tracked if not r.is_ready],
            ready=[str(r.key) for r in tracked if r.is_ready],
            waiting={
                waiter: [str(r.key) for r in registrations]
                for waiter, registrations in self._waiting.items()
            },
        )

    async def _with_deadline(
        self,
        awaitable: object,
        *,
        timeout: float | None,
        message: str,
    ) -> None:
        if timeout is not None and timeout <= 0:
            # Close the coroutine that will never be awaited.
            awaitable.close()  # type: ignore[attr-defined]
            raise self.timeout_error(message)
        try:
            await asyncio.wait_for(awaitable, timeout)  # type: ignore[arg-type]
        except asyncio.TimeoutError:
            raise self.timeout_error(message) from None

    async def _wait_one(self, registration: Registration) -> None:
        if registration.is_ready:
            return
        if registration.readiness is not None and registration.readiness.is_constructing:
            await registration.abuild()
        if registration.readiness is not None:
            await registration.readiness.wait()

    async def _wait_all(self, required: list[Registration]) -> None:
        global_task = asyncio.ensure_future(self._global_ready.wait())
        all_task = asyncio.ensure_future(
            asyncio.gather(*(self._wait_one(registration) for registration in required)),
        )
        try:
            done, _ = await asyncio.wait(
                {global_task, all_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (global_task, all_task):
                if not task.done():
                    task.cancel()
        if all_task in done:
            all_task.result()

    def _forget_waiter(self, waiter: str, registration: Registration) -> None:
        registrations = self._waiting.get(waiter)
        if registrations is None:
            return
        for index, candidate in enumerate(registrations):
            if candidate is registration:
                del registrations[index]
                break
        if not registrations:
            del self._waiting[waiter]


def _global_token() -> ReadinessState:
    return ReadinessState(signals_ready=True, awaits_construction=False)


__all__ = ["ReadinessCoordinator", "ReadinessState"]
