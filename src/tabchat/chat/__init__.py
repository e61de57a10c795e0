from .models import AppState, Conversation, Message, Role, SessionStatus, StatusMessage
from .commands import classify
from .events import (
    CloseTab,
    InputEvent,
    NewTab,
    Quit,
    SaveConversation,
    SaveFinished,
    Scroll,
    Submit,
    SwitchTab,
    ToggleHelp,
)
from .state import ChatStateMachine
from .multiplexer import EventMultiplexer
from .controller import ChatController

__all__ = [
    "AppState",
    "ChatController",
    "ChatStateMachine",
    "CloseTab",
    "Conversation",
    "EventMultiplexer",
    "InputEvent",
    "Message",
    "NewTab",
    "Quit",
    "Role",
    "SaveConversation",
    "SaveFinished",
    "Scroll",
    "SessionStatus",
    "StatusMessage",
    "Submit",
    "SwitchTab",
    "ToggleHelp",
    "classify",
]
