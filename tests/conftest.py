"""Shared pytest fixtures for scopewire tests."""

import pytest

from scopewire import LockMode, Registry

pytest_plugins = ["scopewire.integrations.pytest_plugin"]


@pytest.fixture()
def registry() -> Registry:
    """Fresh registry with default settings."""
    return Registry()


@pytest.fixture()
def reassigning_registry() -> Registry:
    """Registry that lets a key be registered twice in the same scope."""
    return Registry(allow_reassignment=True)


@pytest.fixture()
def unlocked_registry() -> Registry:
    """Registry confined to a single owner, without locking."""
    return Registry(lock_mode=LockMode.NONE)
