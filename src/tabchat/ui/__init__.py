"""Terminal UI module for tabchat.

Provides a Textual-based TUI over the chat controller.

Module structure (Parnas principle - each module hides a design decision):
- config.py: UI constants (log levels, spinner frames, widths)
- formatting.py: How state is drawn (tab bar, transcript, status line)
- widgets.py: Custom widgets (input history, log panel, views)
- styles.py: CSS styling (layout decisions)
- themes.py: Color palettes and theme configuration
- screens.py: Modal dialogs (help overlay)
- app.py: Application orchestration (key bindings, control loop worker)
"""

from .app import TabChatApp, build_initial_state, run_textual_tui
from .config import LogLevel
from .widgets import ConversationView, DebugPanel, HistoryInput, StatusLine, TabBar

__all__ = [
    "ConversationView",
    "DebugPanel",
    "HistoryInput",
    "LogLevel",
    "StatusLine",
    "TabBar",
    "TabChatApp",
    "build_initial_state",
    "run_textual_tui",
]
