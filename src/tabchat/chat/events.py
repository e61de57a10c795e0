"""User input events consumed by the state machine.

The UI never mutates conversation state; it posts one of these events to
the multiplexer's input queue instead.
"""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class Submit:
    """A line submitted from the input bar."""

    text: str


@dataclass(frozen=True, slots=True)
class NewTab:
    pass


@dataclass(frozen=True, slots=True)
class CloseTab:
    pass


@dataclass(frozen=True, slots=True)
class SwitchTab:
    """Move to the next/previous tab or select one by index."""

    target: Literal["next", "prev"] | int


@dataclass(frozen=True, slots=True)
class Scroll:
    """Scroll the active conversation.

    `delta` is in messages (positive = towards older); `to` jumps to an end.
    """

    delta: int = 0
    to: Literal["top", "bottom"] | None = None


@dataclass(frozen=True, slots=True)
class SaveConversation:
    pass


@dataclass(frozen=True, slots=True)
class ToggleHelp:
    pass


@dataclass(frozen=True, slots=True)
class Quit:
    pass


@dataclass(frozen=True, slots=True)
class SaveFinished:
    """Posted back by the controller when a background save completes."""

    tab_id: str
    explicit: bool
    error: str | None = None


InputEvent = (
    Submit | NewTab | CloseTab | SwitchTab | Scroll | SaveConversation | ToggleHelp | Quit | SaveFinished
)
