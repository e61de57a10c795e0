"""Factory for creating conversation stores."""

from pathlib import Path
from typing import Any

from .base import ConversationStore


def create_conversation_store(
    backend: str = "json",
    **kwargs: Any
) -> ConversationStore:
    """Create a conversation store.

    Args:
        backend: Backend type ("json" or "memory")
        **kwargs: Backend-specific configuration
            For json:
                - directory: str | Path (required)

    Returns:
        ConversationStore instance

    Raises:
        ValueError: If backend type is not supported
        TypeError: If required configuration is missing
    """
    if backend == "json":
        from .json_store import JsonConversationStore
        if "directory" not in kwargs:
            raise TypeError("JSON store requires 'directory' in config")
        return JsonConversationStore(Path(kwargs["directory"]))

    elif backend == "memory":
        from .in_memory import InMemoryConversationStore
        return InMemoryConversationStore()

    raise ValueError(
        f"Unsupported store backend: {backend}. "
        f"Supported backends: json, memory"
    )
