"""Hook dispatch for plugin extension points."""

import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from trove.core.types import HookContext
from trove.utils.logging_config import get_logger

logger = get_logger(__name__)

HookHandler = Callable[[HookContext], Awaitable[Any] | Any]

# Extension points fired by the core
SYSTEM_INITIALIZED = "system:initialized"
SYSTEM_SHUTTING_DOWN = "system:shutting-down"
EVENT_VALIDATING = "event:validating"
EVENT_VALIDATED = "event:validated"
EVENT_STORING = "event:storing"
EVENT_STORED = "event:stored"


@dataclass(frozen=True, eq=False)
class Hook:
    """A handler bound to a hook name.

    Plugins may also declare ``Hook(handler, priority)`` in their ``hooks``
    mapping to register with a priority other than 0.
    """

    handler: HookHandler
    priority: int = 0
    plugin_id: str = ""


@dataclass(frozen=True)
class HookResult:
    plugin_id: str
    result: Any


class HookSystem:
    """Named, priority-ordered, fault-isolated hook dispatcher."""

    def __init__(self) -> None:
        self._hooks: defaultdict[str, list[Hook]] = defaultdict(list)

    def register_hook(
        self,
        plugin_id: str,
        hook_name: str,
        handler: HookHandler | Hook,
        priority: int = 0,
    ) -> None:
        """Append a binding; identical registrations are kept as separate bindings."""
        if isinstance(handler, Hook):
            priority = handler.priority if handler.priority else priority
            handler = handler.handler

        self._hooks[hook_name].append(
            Hook(handler=handler, priority=priority, plugin_id=plugin_id)
        )
        logger.debug(
            "Registered hook",
            extra={"hook": hook_name, "plugin_id": plugin_id, "priority": priority},
        )

    async def execute_hook(self, name: str, context: HookContext) -> list[HookResult]:
        """Run every handler bound to ``name``, highest priority first.

        Handlers run one at a time. A failing handler is logged and left out of
        the results; the remaining handlers still run.
        """
        hooks = self._hooks.get(name)
        if not hooks:
            logger.debug("No handlers registered for hook", extra={"hook": name})
            return []

        # sorted() is stable, so ties keep registration order
        ordered = sorted(hooks, key=lambda hook: hook.priority, reverse=True)

        results: list[HookResult] = []
        for hook in ordered:
            try:
                logger.debug(
                    "Executing hook",
                    extra={"hook": name, "plugin_id": hook.plugin_id},
                )
                result = hook.handler(context)
                if inspect.isawaitable(result):
                    result = await result
                results.append(HookResult(plugin_id=hook.plugin_id, result=result))
            except Exception as e:
                logger.error(
                    "Error executing hook",
                    extra={
                        "hook": name,
                        "plugin_id": hook.plugin_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                    exc_info=True,
                )

        return results

    def unregister_plugin(self, plugin_id: str) -> None:
        """Drop all bindings of a plugin and prune hook names left empty."""
        for hook_name in list(self._hooks):
            remaining = [h for h in self._hooks[hook_name] if h.plugin_id != plugin_id]
            if remaining:
                self._hooks[hook_name] = remaining
            else:
                del self._hooks[hook_name]

    def hook_names(self) -> list[str]:
        return list(self._hooks)

    def handlers_for(self, hook_name: str) -> list[Hook]:
        return list(self._hooks.get(hook_name, []))
