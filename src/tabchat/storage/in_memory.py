"""In-memory conversation store.

Simple dict-based storage. Data is lost when the application exits.
Suitable for --no-persist runs and testing.
"""

from .base import ConversationStore
from .models import ConversationSummary, SavedConversation


class InMemoryConversationStore(ConversationStore):
    """Session-only conversation store."""

    def __init__(self) -> None:
        self._records: dict[str, SavedConversation] = {}

    async def save(self, conversation: SavedConversation) -> None:
        self._records[conversation.id] = conversation.model_copy(deep=True)

    async def load(self, conversation_id: str) -> SavedConversation | None:
        record = self._records.get(conversation_id)
        return record.model_copy(deep=True) if record else None

    def _sorted(self) -> list[SavedConversation]:
        return sorted(self._records.values(), key=lambda r: r.saved_at, reverse=True)

    async def load_recent(self, limit: int) -> list[SavedConversation]:
        return [r.model_copy(deep=True) for r in self._sorted()[:max(limit, 0)]]

    async def list_saved(self) -> list[ConversationSummary]:
        return [
            ConversationSummary(
                id=r.id, title=r.title, message_count=len(r.messages), saved_at=r.saved_at
            )
            for r in self._sorted()
        ]

    async def delete(self, conversation_id: str) -> bool:
        return self._records.pop(conversation_id, None) is not None

    @property
    def backend_type(self) -> str:
        return "memory"
