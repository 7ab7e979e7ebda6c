"""The Trove core: lifecycle state and the event pipeline."""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from trove.core import hooks as hook_names
from trove.core.errors import (
    AlreadyInitialized,
    EventValidationFailed,
    InvalidArgument,
    NotInitialized,
)
from trove.core.hooks import HookResult, HookSystem
from trove.core.plugins.interface import Plugin
from trove.core.plugins.manager import PluginSystem
from trove.core.storage import StorageManager
from trove.core.types import (
    CoreConfig,
    Event,
    EventCreationOptions,
    EventFile,
    EventId,
    EventQuery,
    HookContext,
)
from trove.core.validator import Validator
from trove.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PRODUCER = "core"


class CoreState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    SHUTTING_DOWN = "shutting-down"
    STOPPED = "stopped"


class Trove:
    """Event-record store core.

    Owns the hook system, plugin registry, storage manager and validator, and
    runs the create/read/query pipeline on top of them.
    """

    def __init__(self, config: CoreConfig | None = None) -> None:
        self.config = config or CoreConfig()
        self.logger = logger
        self.validator = Validator()
        self.hooks = HookSystem()
        self.plugins = PluginSystem(self, self.hooks, self.config.plugins.config)
        self.storage = StorageManager(self.plugins)
        self._state = CoreState.UNINITIALIZED

    @property
    def state(self) -> CoreState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is CoreState.READY

    async def initialize(self) -> None:
        if self._state not in (CoreState.UNINITIALIZED, CoreState.STOPPED):
            logger.error("Initialize called twice", extra={"state": self._state.value})
            raise AlreadyInitialized()

        logger.info("Initializing Trove")
        self._state = CoreState.INITIALIZING
        try:
            await self.plugins.load_plugins(self.config.plugins.sources)
            await self.storage.initialize(self.config.storage)
        except Exception as e:
            self._state = CoreState.UNINITIALIZED
            logger.error(
                "Trove initialization failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise

        await self.hooks.execute_hook(hook_names.SYSTEM_INITIALIZED, self._context())
        self._state = CoreState.READY
        logger.info(
            "Trove initialized successfully",
            extra={"plugins": [p.name for p in self.plugins.get_all_plugins()]},
        )

    async def shutdown(self) -> None:
        if self._state is not CoreState.READY:
            return

        logger.info("Shutting down Trove")
        self._state = CoreState.SHUTTING_DOWN
        await self.hooks.execute_hook(hook_names.SYSTEM_SHUTTING_DOWN, self._context())

        for plugin in self.plugins.get_all_plugins():
            await self.plugins.unload_plugin(plugin.name)

        self._state = CoreState.STOPPED
        logger.info("Trove shut down successfully")

    async def create_event(
        self,
        schema: dict[str, Any] | None,
        payload: dict[str, Any] | None,
        options: EventCreationOptions | None = None,
    ) -> Event:
        """Validate, run through the hook pipeline, and persist a new event.

        Raises:
            NotInitialized: If the core is not ready
            InvalidArgument: If schema or payload is missing
            EventValidationFailed: If the payload does not match the schema
        """
        self._ensure_ready()

        if schema is None or payload is None:
            missing = "Schema" if schema is None else "Payload"
            logger.warning("Rejected event", extra={"reason": f"{missing} is required"})
            raise InvalidArgument(f"{missing} is required")

        options = options or EventCreationOptions()
        event = Event(
            id=EventId(id=str(uuid.uuid4())),
            created_at=datetime.now(UTC),
            producer=options.producer or DEFAULT_PRODUCER,
            event_schema=schema,
            payload=payload,
            files=options.files or [],
            links=options.links or [],
            metadata=options.metadata,
        )

        # One state map per invocation, shared by all of its hook dispatches
        state: dict[str, Any] = {}

        await self.hooks.execute_hook(
            hook_names.EVENT_VALIDATING,
            self._context(event=event, schema=event.event_schema, state=state),
        )

        result = self.validator.validate(event.event_schema, event.payload)
        if not result.is_valid:
            logger.warning(
                "Event validation failed",
                extra={
                    "event_id": event.id.id,
                    "errors": [issue.to_dict() for issue in result.errors],
                },
            )
            raise EventValidationFailed(
                event, result.errors, self.validator.format_errors(result.errors)
            )

        await self.hooks.execute_hook(
            hook_names.EVENT_VALIDATED,
            self._context(event=event, schema=event.event_schema, state=state),
        )
        await self.hooks.execute_hook(
            hook_names.EVENT_STORING,
            self._context(event=event, schema=event.event_schema, state=state),
        )

        saved = await self.storage.save_event(event)

        await self.hooks.execute_hook(
            hook_names.EVENT_STORED,
            self._context(event=saved, schema=saved.event_schema, state=state),
        )
        logger.debug(
            "Event stored",
            extra={"event_id": saved.id.id, "producer": saved.producer},
        )
        return saved

    async def get_event(self, event_id: EventId | str) -> Event | None:
        self._ensure_ready()
        if isinstance(event_id, str):
            event_id = EventId(id=event_id)
        return await self.storage.get_event(event_id)

    async def query_events(self, query: EventQuery | None = None) -> list[Event]:
        self._ensure_ready()
        return await self.storage.query_events(query or EventQuery())

    async def get_file(self, file_id: str) -> EventFile | None:
        self._ensure_ready()
        return await self.storage.get_file(file_id)

    async def get_file_data(self, file_id: str) -> bytes | str:
        self._ensure_ready()
        return await self.storage.get_file_data(file_id)

    async def register_plugin(self, plugin: Plugin) -> None:
        await self.plugins.load_plugin(plugin)

    def get_plugin(self, name: str) -> Plugin | None:
        return self.plugins.get_plugin(name)

    async def execute_hook(self, name: str, **context: Any) -> list[HookResult]:
        """Fire a hook with a fresh context; lets plugins define their own extension points."""
        return await self.hooks.execute_hook(name, self._context(**context))

    def _context(self, **kwargs: Any) -> HookContext:
        return HookContext(core=self, **kwargs)

    def _ensure_ready(self) -> None:
        if self._state is not CoreState.READY:
            raise NotInitialized()
