"""Data models for saved conversations.

These models define the persisted document, independent of the storage
backend used and of the in-memory conversation model.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class SavedMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class SavedConversation(BaseModel):
    """One conversation record as written to disk."""

    id: str
    title: str | None = None
    system_prompt: str | None = None
    messages: list[SavedMessage] = Field(default_factory=list)
    saved_at: datetime = Field(default_factory=lambda: datetime.now().astimezone())


class ConversationSummary(BaseModel):
    """Listing entry for a saved conversation."""

    id: str
    title: str | None
    message_count: int
    saved_at: datetime
