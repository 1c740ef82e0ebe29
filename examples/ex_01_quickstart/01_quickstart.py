"""Quickstart: register recipes by type and resolve them.

Factories build a new object on every resolution, instances and lazy
singletons hand out the same object, and one-parameter factories receive
the value passed as ``param=``.
"""

from __future__ import annotations

from scopewire import Registry


class Database:
    def __init__(self, url: str = "sqlite://") -> None:
        self.url = url


class RequestId:
    pass


class Greeter:
    def __init__(self, name: str) -> None:
        self.name = name


def main() -> None:
    registry = Registry()

    registry.register_instance(Database, Database("postgresql://prod/app"))
    registry.register_factory(RequestId, RequestId)
    registry.register_factory_param(Greeter, Greeter, param_type=str)
    registry.register_lazy_singleton(Database, lambda: Database(), name="cache")

    print(f"db_url={registry.resolve(Database).url}")  # => db_url=postgresql://prod/app

    same_instance = registry.resolve(Database) is registry.get(Database)
    print(f"instance_is_shared={same_instance}")  # => instance_is_shared=True

    fresh = registry.resolve(RequestId) is not registry(RequestId)
    print(f"factory_builds_new={fresh}")  # => factory_builds_new=True

    greeter = registry.resolve(Greeter, param="ada")
    print(f"greeter_name={greeter.name}")  # => greeter_name=ada

    cache = registry.resolve(Database, name="cache")
    print(f"named_cache_url={cache.url}")  # => named_cache_url=sqlite://
    print(
        f"lazy_singleton_cached={cache is registry.resolve(Database, name='cache')}",
    )  # => lazy_singleton_cached=True


if __name__ == "__main__":
    main()
