"""JSON file conversation store.

One pretty-printed JSON document per conversation, named `<id>.json`,
written atomically (temporary file + replace). File I/O runs in a worker
thread so the event loop never blocks on disk.
"""

import asyncio
import logging
import os
import re
from pathlib import Path

from pydantic import ValidationError

from .base import ConversationStore
from .models import ConversationSummary, SavedConversation

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9._-]+$")


class JsonConversationStore(ConversationStore):
    """Stores conversations as JSON files in a directory."""

    def __init__(self, directory: str | Path):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, conversation_id: str) -> Path:
        if not _SAFE_ID.match(conversation_id) or conversation_id.startswith("."):
            raise ValueError(f"Invalid conversation id: {conversation_id!r}")
        return self._directory / f"{conversation_id}.json"

    async def save(self, conversation: SavedConversation) -> None:
        await asyncio.to_thread(self._write, conversation)

    def _write(self, conversation: SavedConversation) -> None:
        path = self.path_for(conversation.id)
        self._directory.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(conversation.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, path)
        logger.debug("Saved conversation %s to %s", conversation.id, path)

    async def load(self, conversation_id: str) -> SavedConversation | None:
        path = self.path_for(conversation_id)
        return await asyncio.to_thread(self._read, path)

    def _read(self, path: Path) -> SavedConversation | None:
        try:
            return SavedConversation.model_validate_json(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValidationError) as e:
            logger.warning("Skipping unreadable conversation file %s: %s", path, e)
            return None

    def _read_all(self) -> list[SavedConversation]:
        if not self._directory.is_dir():
            return []
        records = []
        for path in self._directory.glob("*.json"):
            record = self._read(path)
            if record is not None:
                records.append(record)
        records.sort(key=lambda r: r.saved_at, reverse=True)
        return records

    async def load_recent(self, limit: int) -> list[SavedConversation]:
        if limit <= 0:
            return []
        records = await asyncio.to_thread(self._read_all)
        return records[:limit]

    async def list_saved(self) -> list[ConversationSummary]:
        records = await asyncio.to_thread(self._read_all)
        return [
            ConversationSummary(
                id=r.id,
                title=r.title,
                message_count=len(r.messages),
                saved_at=r.saved_at,
            )
            for r in records
        ]

    async def delete(self, conversation_id: str) -> bool:
        path = self.path_for(conversation_id)

        def _unlink() -> bool:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            return True

        return await asyncio.to_thread(_unlink)

    @property
    def backend_type(self) -> str:
        return "json"
