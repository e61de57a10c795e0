"""Wire and increment models for the messages API.

Hides the request payload shape and the streamed event schema.
Increments are a closed set of variants: TextIncrement, DoneIncrement,
ErrorIncrement. Consumers dispatch with isinstance over exactly these three.
"""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One role/content pair sent to the remote service."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"] = Field(description="Role of the message sender")
    content: str = Field(description="Content of the message")


class MessagesRequest(BaseModel):
    """Outbound payload for one conversation turn.

    Built from an immutable snapshot of the history, so later mutation of
    the live conversation never affects a request in flight.
    """

    model_config = ConfigDict(frozen=True)

    model: str
    max_tokens: int = Field(ge=1)
    system: str | None = None
    messages: tuple[ChatMessage, ...]
    stream: bool = True

    def to_params(self) -> dict[str, Any]:
        """Keyword arguments for the SDK's messages.create()."""
        params: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [m.model_dump() for m in self.messages],
        }
        if self.system:
            params["system"] = self.system
        if self.stream:
            params["stream"] = True
        return params


class StreamDelta(BaseModel):
    """Delta payload of a content_block_delta event."""

    type: str | None = None
    text: str | None = None


class StreamErrorDetail(BaseModel):
    type: str | None = None
    message: str | None = None


class StreamEvent(BaseModel):
    """One decoded `data:` frame. Unknown fields are ignored."""

    type: str
    delta: StreamDelta | None = None
    error: StreamErrorDetail | None = None


@dataclass(frozen=True, slots=True)
class TextIncrement:
    """A fragment of generated text."""

    text: str


@dataclass(frozen=True, slots=True)
class DoneIncrement:
    """The reply completed normally."""


@dataclass(frozen=True, slots=True)
class ErrorIncrement:
    """The reply ended with an error."""

    message: str


Increment = TextIncrement | DoneIncrement | ErrorIncrement


def is_terminal(increment: Increment) -> bool:
    return isinstance(increment, (DoneIncrement, ErrorIncrement))
