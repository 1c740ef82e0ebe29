"""Readiness: wait for async singletons and explicitly signalled services.

An async singleton is pending until its factory completes. An instance
registered with ``signals_ready=True`` is pending until
``signal_ready(instance)`` is called for it.
"""

from __future__ import annotations

import asyncio

from scopewire import Registry, ScopeWireReadinessTimeoutError


class Database:
    def __init__(self, url: str) -> None:
        self.url = url


class Worker:
    async def start(self, registry: Registry) -> None:
        await asyncio.sleep(0)
        registry.signal_ready(self)


async def main() -> None:
    registry = Registry()

    async def connect() -> Database:
        await asyncio.sleep(0)
        return Database("postgresql://prod/app")

    registry.register_singleton_async(Database, connect)
    worker = Worker()
    registry.register_instance(Worker, worker, signals_ready=True)

    print(f"database_ready={registry.is_ready_sync(Database)}")  # => database_ready=False

    try:
        await registry.all_ready(timeout=0)
    except ScopeWireReadinessTimeoutError as error:
        print(f"pending={','.join(error.pending)}")  # => pending=Database,Worker

    await registry.is_ready(Database, timeout=1)
    print(f"database_url={registry.resolve(Database).url}")  # => database_url=postgresql://prod/app

    await worker.start(registry)
    await registry.all_ready(timeout=1)
    print(f"all_ready={registry.all_ready_sync()}")  # => all_ready=True


if __name__ == "__main__":
    asyncio.run(main())
