"""
Tabchat: a tabbed terminal chat client with concurrent streaming sessions.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision.
"""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .errors import (
    ConfigurationError,
    ProtocolError,
    RemoteStatusError,
    StateError,
    TabChatError,
    TransportError,
)

__all__ = [
    "ConfigurationError",
    "ProtocolError",
    "RemoteStatusError",
    "Settings",
    "StateError",
    "TabChatError",
    "TransportError",
    "load_settings",
]
