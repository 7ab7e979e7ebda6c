"""Trove exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from trove.core.types import Event
    from trove.core.validator import ValidationIssue


class TroveError(Exception):
    """Base exception for all errors raised by the core"""


class ConfigurationError(TroveError):
    """Raised when required configuration is missing or invalid"""


class MissingEventStorageConfig(ConfigurationError):
    """Raised when the storage section has no event storage entry"""

    def __init__(self) -> None:
        super().__init__("Event storage configuration is required")


class PluginResolutionFailed(TroveError):
    """Raised when no loaded plugin satisfies a storage role"""

    def __init__(self, plugin_name: str, required_capabilities: list[str]):
        self.plugin_name = plugin_name
        self.required_capabilities = list(required_capabilities)
        caps = ", ".join(self.required_capabilities)
        super().__init__(
            f"Plugin with required capabilities [{caps}] not found: {plugin_name}"
        )


class DuplicatePlugin(TroveError):
    """Raised when a plugin name is already registered"""

    def __init__(self, plugin_name: str):
        self.plugin_name = plugin_name
        super().__init__(f"Plugin {plugin_name} is already registered")


class EventValidationFailed(TroveError):
    """Raised when an event payload does not satisfy its schema"""

    def __init__(self, event: Event, errors: list[ValidationIssue], details: str = ""):
        self.event = event
        self.errors = list(errors)
        message = "Event validation failed"
        super().__init__(f"{message}:\n{details}" if details else message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event.id.id,
            "errors": [issue.to_dict() for issue in self.errors],
        }


class NotInitialized(TroveError):
    """Raised when an operation needs a ready core"""

    def __init__(self) -> None:
        super().__init__("Trove is not initialized")


class AlreadyInitialized(TroveError):
    """Raised when initialize() is called on a running core"""

    def __init__(self) -> None:
        super().__init__("Trove is already initialized")


class InvalidArgument(TroveError, ValueError):
    """Raised when a required argument is missing"""
