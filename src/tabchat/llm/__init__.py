from .client import AnthropicClient
from .models import (
    ChatMessage,
    DoneIncrement,
    ErrorIncrement,
    Increment,
    MessagesRequest,
    TextIncrement,
    is_terminal,
)
from .session import Session, SessionManager, SessionOutput, StreamingClient
from .stream_parser import StreamParser, parse_stream

__all__ = [
    "AnthropicClient",
    "ChatMessage",
    "DoneIncrement",
    "ErrorIncrement",
    "Increment",
    "MessagesRequest",
    "Session",
    "SessionManager",
    "SessionOutput",
    "StreamParser",
    "StreamingClient",
    "TextIncrement",
    "is_terminal",
    "parse_stream",
]
