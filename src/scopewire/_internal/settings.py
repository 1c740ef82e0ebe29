from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from scopewire._internal.lock_mode import LockMode
from scopewire._internal.scope import DEFAULT_BASE_SCOPE_NAME


class RegistrySettings(BaseSettings):
    """Default configuration for ``Registry`` instances.

    Values are read from ``SCOPEWIRE_*`` environment variables, for example
    ``SCOPEWIRE_ALLOW_REASSIGNMENT=1`` or ``SCOPEWIRE_LOCK_MODE=none``.
    Keyword arguments passed to ``Registry`` take precedence over these values.
    """

    model_config = SettingsConfigDict(env_prefix="SCOPEWIRE_", frozen=True)

    allow_reassignment: bool = False
    """Allow replacing a registration of the same key in the current scope."""

    lock_mode: LockMode = LockMode.THREAD
    """Locking discipline for scope stack mutations."""

    ready_timeout: float | None = Field(default=None, ge=0)
    """Default deadline in seconds for ``is_ready``/``all_ready``; ``None`` waits forever."""

    base_scope_name: str = Field(default=DEFAULT_BASE_SCOPE_NAME, min_length=1)
    """Name reserved for the base scope."""


__all__ = ["RegistrySettings"]
