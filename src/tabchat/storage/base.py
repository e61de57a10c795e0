"""Abstract base class for conversation stores.

The abstraction hides:
- Storage format (JSON files, in-memory)
- Where records live and how they are named
- Blocking I/O, which implementations keep off the event loop
"""

from abc import ABC, abstractmethod

from .models import ConversationSummary, SavedConversation


class ConversationStore(ABC):
    """Persistence for conversation records."""

    @abstractmethod
    async def save(self, conversation: SavedConversation) -> None:
        """Persist one conversation, replacing any earlier record."""

    @abstractmethod
    async def load(self, conversation_id: str) -> SavedConversation | None:
        """Load one conversation, or None if it does not exist."""

    @abstractmethod
    async def load_recent(self, limit: int) -> list[SavedConversation]:
        """Load up to `limit` conversations, most recently saved first."""

    @abstractmethod
    async def list_saved(self) -> list[ConversationSummary]:
        """List saved conversations, most recently saved first."""

    @abstractmethod
    async def delete(self, conversation_id: str) -> bool:
        """Delete a conversation. Returns False if it did not exist."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
