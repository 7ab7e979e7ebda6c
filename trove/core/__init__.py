"""Trove core: hooks, plugins, storage delegation and the event pipeline."""

from trove.core.errors import (
    AlreadyInitialized,
    ConfigurationError,
    DuplicatePlugin,
    EventValidationFailed,
    InvalidArgument,
    MissingEventStorageConfig,
    NotInitialized,
    PluginResolutionFailed,
    TroveError,
)
from trove.core.hooks import Hook, HookResult, HookSystem
from trove.core.storage import StorageManager
from trove.core.trove import CoreState, Trove
from trove.core.types import (
    CoreConfig,
    Event,
    EventCreationOptions,
    EventFile,
    EventId,
    EventLink,
    EventQuery,
    HookContext,
)
from trove.core.validator import ValidationIssue, ValidationResult, Validator

__all__ = [
    "AlreadyInitialized",
    "ConfigurationError",
    "CoreConfig",
    "CoreState",
    "DuplicatePlugin",
    "Event",
    "EventCreationOptions",
    "EventFile",
    "EventId",
    "EventLink",
    "EventQuery",
    "EventValidationFailed",
    "Hook",
    "HookContext",
    "HookResult",
    "HookSystem",
    "InvalidArgument",
    "MissingEventStorageConfig",
    "NotInitialized",
    "PluginResolutionFailed",
    "StorageManager",
    "Trove",
    "TroveError",
    "ValidationIssue",
    "ValidationResult",
    "Validator",
]
