from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select the mutual-exclusion discipline for registry mutations.

    Registration, scope push/pop, reset and unregister all mutate the scope
    stack. Use ``THREAD`` when several threads may touch the registry, and
    ``NONE`` when the registry is confined to one thread or event loop.
    Locks are never held across an ``await``.
    """

    THREAD = "thread"
    """Guard scope stack mutations with a re-entrant ``threading.RLock``."""

    NONE = "none"
    """Disable locking; the caller confines the registry to one owner."""
