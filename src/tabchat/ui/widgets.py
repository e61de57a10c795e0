"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Input history management
- Tab bar and transcript rendering
- Log rendering and level filtering
- Forwarding of logging records into the log panel
"""

import logging
import threading
from datetime import datetime

from rich.markup import escape
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.events import Paste
from textual.widgets import Input, RichLog, Static

from ..chat.models import AppState, Conversation
from .config import (
    INPUT_HISTORY_MAX_SIZE,
    LOG_MAX_MESSAGE_LENGTH,
    LOG_TIMESTAMP_FORMAT,
    LogLevel,
)
from .formatting import (
    conversation_subtitle,
    format_status,
    format_tab_bar,
    format_transcript,
)


class HistoryInput(Input):
    """Input widget with submission history.

    Use Up/Down arrow keys to navigate through history.
    Multi-line pastes are converted to single line (newlines become spaces).
    """

    BINDINGS = [
        Binding("up", "history_prev", "Previous", show=False),
        Binding("down", "history_next", "Next", show=False),
    ]

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1
        self._current_input: str = ""

    def _on_paste(self, event: Paste) -> None:
        if event.text:
            self.insert_text_at_cursor(" ".join(event.text.split()))
        event.prevent_default()
        event.stop()

    def action_history_prev(self) -> None:
        if not self._history:
            return
        if self._history_index == -1:
            self._current_input = self.value
            self._history_index = len(self._history) - 1
        elif self._history_index > 0:
            self._history_index -= 1
        self.value = self._history[self._history_index]
        self.cursor_position = len(self.value)

    def action_history_next(self) -> None:
        if self._history_index == -1:
            return
        if self._history_index < len(self._history) - 1:
            self._history_index += 1
            self.value = self._history[self._history_index]
        else:
            self._history_index = -1
            self.value = self._current_input
        self.cursor_position = len(self.value)

    def add_to_history(self, line: str) -> None:
        """Add a submitted line to history."""
        if line and (not self._history or self._history[-1] != line):
            self._history.append(line)
            del self._history[:-INPUT_HISTORY_MAX_SIZE]
        self._history_index = -1
        self._current_input = ""


class TabBar(Static):
    """Single-line strip listing the open tabs."""

    def show_state(self, state: AppState) -> None:
        self.update(format_tab_bar(state))


class ConversationView(VerticalScroll):
    """Transcript of the active tab.

    Message-level scrolling is owned by the conversation (its scroll
    offset); the view always shows the bottom of what is visible.
    """

    BORDER_TITLE = "Conversation"

    def compose(self):
        yield Static(id="transcript")

    def show_conversation(self, conversation: Conversation, ticks: int) -> None:
        self.border_title = conversation.display_title
        self.border_subtitle = conversation_subtitle(conversation)
        self.set_class(conversation.is_busy, "busy")
        self.query_one("#transcript", Static).update(format_transcript(conversation, ticks))
        self.call_after_refresh(self.scroll_end, animate=False)


class StatusLine(Static):
    """Latest status message, or a key hint, plus the model in use."""

    def show_state(self, state: AppState) -> None:
        self.set_class(state.status is not None and state.status.is_error, "error")
        self.update(format_status(state))


class DebugPanel(RichLog):
    """Log panel for real-time tracing with level filtering.

    Shows timestamped log messages from all components.
    Supports standard log levels: DEBUG < INFO < WARNING < ERROR.
    Hidden by default, shown with --log-level flag or toggled with Ctrl+D.
    """

    BORDER_TITLE = "Log"
    BORDER_SUBTITLE = "Hidden"

    def __init__(self, *args, log_level: int = LogLevel.DEBUG, **kwargs) -> None:
        super().__init__(
            *args,
            markup=True,
            highlight=False,
            auto_scroll=True,
            wrap=False,
            **kwargs
        )
        self._log_level = log_level

    @property
    def log_level(self) -> int:
        """Current log level threshold."""
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def on_mount(self) -> None:
        """Hide by default."""
        self.display = False

    def write_entry(self, component: str, message: str, level: int = LogLevel.DEBUG) -> None:
        """Add a log entry if it meets the current level threshold.

        Args:
            component: Logger name without the package prefix
            message: Formatted log message
            level: Numeric logging level
        """
        if level < self._log_level:
            return

        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "..."

        if level >= LogLevel.ERROR:
            level_color = "red"
        elif level >= LogLevel.WARNING:
            level_color = "yellow"
        elif level >= LogLevel.INFO:
            level_color = "cyan"
        else:
            level_color = "dim white"
        level_name = LogLevel.name(level)
        timestamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)

        self.write(
            f"[dim]{timestamp}[/] "
            f"[{level_color}]{level_name:<5}[/] "
            f"[green]\\[{component}][/] {escape(message)}"
        )

    def show(self) -> None:
        self.display = True
        self._update_subtitle()

    def hide(self) -> None:
        self.display = False
        self._update_subtitle()

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        if self.display:
            self.hide()
            return False
        self.show()
        return True


class DebugPanelHandler(logging.Handler):
    """Forwards logging records to a DebugPanel.

    Records emitted from worker threads (file saves run in a thread) are
    marshalled onto the app thread with call_from_thread.
    """

    def __init__(self, panel: DebugPanel, level: int = logging.DEBUG) -> None:
        super().__init__(level)
        self._panel = panel
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            component = record.name.removeprefix("tabchat.")
            app = self._panel.app
            if app._thread_id != threading.get_ident():
                app.call_from_thread(self._panel.write_entry, component, message, record.levelno)
            else:
                self._panel.write_entry(component, message, record.levelno)
        except Exception:
            self.handleError(record)
