import uuid
from typing import Any

from trove.core.types import EventFile


class MemoryFileStorage:
    def __init__(self) -> None:
        self._files: dict[str, EventFile] = {}

    async def initialize(self, options: dict[str, Any] | None = None) -> None:
        self._files.clear()

    async def save_file(self, file: EventFile) -> str:
        """Store a copy of the file and return its id, assigning one if needed."""
        file_id = file.id or str(uuid.uuid4())
        self._files[file_id] = file.model_copy(update={"id": file_id})
        return file_id

    async def get_file(self, file_id: str) -> EventFile | None:
        return self._files.get(file_id)

    async def get_file_data(self, file_id: str) -> bytes | str:
        file = self._files.get(file_id)
        if file is None:
            raise KeyError(f"File {file_id} not found")
        return file.data
