"""Conversation data model.

Hides the in-memory representation of tabs, messages and turn status.
All instances are owned by the state machine; nothing else mutates them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import uuid4

from ..config import TITLE_MAX_CHARS, UNTITLED
from ..llm.models import ChatMessage
from ..storage.models import SavedConversation, SavedMessage


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class SessionStatus(str, Enum):
    """Status of a conversation's current turn."""

    IDLE = "idle"
    AWAITING_FIRST_TOKEN = "awaiting_first_token"
    STREAMING = "streaming"
    TERMINATED = "terminated"


@dataclass
class Message:
    """A chat message in the conversation."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now().astimezone())

    def to_chat_message(self) -> ChatMessage:
        return ChatMessage(role=self.role.value, content=self.content)


def truncate_title(text: str, budget: int = TITLE_MAX_CHARS) -> str:
    """Cut text to the title budget, marking the cut with an ellipsis."""
    text = " ".join(text.split())
    if len(text) > budget:
        return text[:budget] + "..."
    return text


@dataclass
class Conversation:
    """One tab: an independent chat thread."""

    id: str = field(default_factory=lambda: str(uuid4()))
    title: str | None = None
    messages: list[Message] = field(default_factory=list)
    system_prompt: str | None = None
    scroll_offset: int = 0  # messages hidden below the view, 0 = pinned to latest
    status: SessionStatus = SessionStatus.IDLE
    session_id: int | None = None  # session whose increments are accepted
    model: str | None = None  # model used by the current/last turn
    error: str | None = None  # retained until the tab is shown

    @property
    def display_title(self) -> str:
        return self.title or UNTITLED

    @property
    def is_busy(self) -> bool:
        """True while a Session is outstanding for this conversation."""
        return self.status in (SessionStatus.AWAITING_FIRST_TOKEN, SessionStatus.STREAMING)

    @property
    def is_empty(self) -> bool:
        return not self.messages

    def add_message(self, message: Message, title_budget: int = TITLE_MAX_CHARS) -> None:
        self.messages.append(message)
        if self.title is None and message.role is Role.USER:
            self.title = truncate_title(message.content, title_budget)

    def history(self) -> tuple[ChatMessage, ...]:
        """Immutable snapshot of the messages as role/content pairs."""
        return tuple(m.to_chat_message() for m in self.messages)

    @property
    def trailing_assistant(self) -> Message | None:
        if self.messages and self.messages[-1].role is Role.ASSISTANT:
            return self.messages[-1]
        return None

    def scroll_by(self, delta: int) -> None:
        """Positive delta scrolls up (towards older messages)."""
        limit = max(len(self.messages) - 1, 0)
        self.scroll_offset = min(max(self.scroll_offset + delta, 0), limit)

    def scroll_to_top(self) -> None:
        self.scroll_offset = max(len(self.messages) - 1, 0)

    def scroll_to_bottom(self) -> None:
        self.scroll_offset = 0

    def visible_messages(self) -> list[Message]:
        return self.messages[:len(self.messages) - self.scroll_offset]

    def to_saved(self) -> SavedConversation:
        """Snapshot for persistence.

        A trailing empty assistant message (a reply still pending) is left out.
        """
        messages = [
            SavedMessage(role=m.role.value, content=m.content, timestamp=m.timestamp)
            for m in self.messages
        ]
        if messages and messages[-1].role == "assistant" and not messages[-1].content:
            messages.pop()
        return SavedConversation(
            id=self.id,
            title=self.title,
            system_prompt=self.system_prompt,
            messages=messages,
        )

    @classmethod
    def from_saved(cls, record: SavedConversation) -> "Conversation":
        """Rebuild an idle conversation from a saved record."""
        return cls(
            id=record.id,
            title=record.title,
            system_prompt=record.system_prompt,
            messages=[
                Message(role=Role(m.role), content=m.content, timestamp=m.timestamp)
                for m in record.messages
            ],
        )


@dataclass
class StatusMessage:
    """Transient line shown in the status slot."""

    text: str
    is_error: bool = False


@dataclass
class AppState:
    """Everything the state machine owns."""

    conversations: list[Conversation] = field(default_factory=lambda: [Conversation()])
    active_index: int = 0
    current_model: str | None = None
    pending_model: str | None = None  # applied to the next started Session
    status: StatusMessage | None = None
    show_help: bool = False
    should_quit: bool = False
    ticks: int = 0  # advanced on every idle wait, drives the thinking indicator

    def __post_init__(self) -> None:
        if not self.conversations:
            self.conversations = [Conversation()]
        self.active_index = min(max(self.active_index, 0), len(self.conversations) - 1)

    @property
    def active(self) -> Conversation:
        return self.conversations[self.active_index]

    def find(self, tab_id: str) -> Conversation | None:
        for conversation in self.conversations:
            if conversation.id == tab_id:
                return conversation
        return None

    def is_live(self, tab_id: str) -> bool:
        return self.find(tab_id) is not None

    @property
    def any_busy(self) -> bool:
        return any(c.is_busy for c in self.conversations)
