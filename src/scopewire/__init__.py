from scopewire._internal.lock_mode import LockMode
from scopewire._internal.protocols import Disposable, ShadowAware, WillSignalReady
from scopewire._internal.records import MISSING, RegistrationKey, RegistrationKind
from scopewire._internal.registry import Registry, ScopeBlock
from scopewire._internal.registry_context import RegistryContext, registry_context
from scopewire._internal.settings import RegistrySettings
from scopewire.exceptions import (
    ScopeWireAsyncDependencyInSyncContextError,
    ScopeWireAsyncDisposeInSyncContextError,
    ScopeWireDuplicateRegistrationError,
    ScopeWireError,
    ScopeWireIllegalStateError,
    ScopeWireInvalidRegistrationError,
    ScopeWireInvalidScopeNameError,
    ScopeWireNotRegisteredError,
    ScopeWireReadinessTimeoutError,
    ScopeWireTypeMismatchError,
)

__all__ = [
    "MISSING",
    "Disposable",
    "LockMode",
    "RegistrationKey",
    "RegistrationKind",
    "Registry",
    "RegistryContext",
    "RegistrySettings",
    "ScopeBlock",
    "ScopeWireAsyncDependencyInSyncContextError",
    "ScopeWireAsyncDisposeInSyncContextError",
    "ScopeWireDuplicateRegistrationError",
    "ScopeWireError",
    "ScopeWireIllegalStateError",
    "ScopeWireInvalidRegistrationError",
    "ScopeWireInvalidScopeNameError",
    "ScopeWireNotRegisteredError",
    "ScopeWireReadinessTimeoutError",
    "ScopeWireTypeMismatchError",
    "ShadowAware",
    "WillSignalReady",
    "registry_context",
]
