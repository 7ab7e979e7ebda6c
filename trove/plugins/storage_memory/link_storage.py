from collections import defaultdict
from typing import Any

from trove.core.types import EventId, EventLink


class MemoryLinkStorage:
    def __init__(self) -> None:
        self._links: defaultdict[str, list[EventLink]] = defaultdict(list)

    async def initialize(self, options: dict[str, Any] | None = None) -> None:
        self._links.clear()

    async def save_link(self, event_id: EventId, link: EventLink) -> None:
        self._links[event_id.id].append(link)

    async def get_links(self, event_id: EventId, type: str | None = None) -> list[EventLink]:
        links = self._links.get(event_id.id, [])
        if type is not None:
            return [link for link in links if link.type == type]
        return list(links)
