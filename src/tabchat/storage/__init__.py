"""Conversation persistence for tabchat.

Saves and restores conversations across runs.
"""

from .base import ConversationStore
from .factory import create_conversation_store
from .models import ConversationSummary, SavedConversation, SavedMessage

__all__ = [
    "ConversationStore",
    "ConversationSummary",
    "SavedConversation",
    "SavedMessage",
    "create_conversation_store",
]
