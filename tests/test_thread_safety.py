"""Tests for thread safety of Registry."""

import threading
from concurrent.futures import ThreadPoolExecutor

from scopewire import Registry


class ServiceA:
    pass


class TestConcurrentResolution:
    def test_concurrent_lazy_singleton_is_built_once(self, registry: Registry) -> None:
        """Concurrent first resolutions of a lazy singleton share one instance."""
        built: list[ServiceA] = []
        start = threading.Barrier(10)

        def create() -> ServiceA:
            instance = ServiceA()
            built.append(instance)
            return instance

        registry.register_lazy_singleton(ServiceA, create)

        def resolve_service() -> ServiceA:
            start.wait()
            return registry.resolve(ServiceA)

        with ThreadPoolExecutor(max_workers=10) as executor:
            results = list(executor.map(lambda _: resolve_service(), range(10)))

        assert len(built) == 1
        assert all(result is built[0] for result in results)

    def test_concurrent_factory_resolution_builds_new_instances(
        self,
        registry: Registry,
    ) -> None:
        registry.register_factory(ServiceA, ServiceA)

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: registry.resolve(ServiceA), range(50)))

        assert len({id(result) for result in results}) == 50


class TestConcurrentRegistration:
    def test_named_registrations_from_many_threads(self, registry: Registry) -> None:
        errors: list[Exception] = []

        def register(index: int) -> None:
            try:
                registry.register_instance(ServiceA, ServiceA(), name=f"service-{index}")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=register, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert all(registry.is_registered(ServiceA, name=f"service-{i}") for i in range(20))

    def test_duplicate_registration_race_has_one_winner(self, registry: Registry) -> None:
        successes: list[int] = []
        start = threading.Barrier(8)

        def register(index: int) -> None:
            start.wait()
            try:
                registry.register_instance(ServiceA, ServiceA())
            except Exception:
                return
            successes.append(index)

        threads = [threading.Thread(target=register, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(successes) == 1
