"""Main Textual TUI application.

Orchestrates the UI components. Key presses and submitted lines become
input events posted to the ChatController; the controller's control loop
runs as a worker on the app's event loop and calls back after every
state change so the widgets can be redrawn.
"""

import asyncio
import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Input

from ..chat import (
    AppState,
    ChatController,
    CloseTab,
    Conversation,
    NewTab,
    Quit,
    SaveConversation,
    Scroll,
    StatusMessage,
    Submit,
    SwitchTab,
    ToggleHelp,
)
from ..chat.state import NO_CREDENTIAL
from ..config import Settings
from ..llm import AnthropicClient, SessionManager
from ..storage import ConversationStore
from .config import LogLevel
from .screens import HelpScreen
from .styles import APP_CSS
from .themes import GRUVBOX_DARK
from .widgets import (
    ConversationView,
    DebugPanel,
    DebugPanelHandler,
    HistoryInput,
    StatusLine,
    TabBar,
)

logger = logging.getLogger(__name__)

PAGE_MESSAGES = 3  # messages moved per PageUp/PageDown


class TabChatApp(App):
    """Textual TUI for tabbed, streaming chat."""

    CSS = APP_CSS
    TITLE = "TabChat"

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", priority=True),
        Binding("ctrl+n", "new_tab", "New Tab", priority=True),
        Binding("ctrl+w", "close_tab", "Close Tab", priority=True),
        Binding("ctrl+left", "switch_tab('prev')", "Prev", show=False, priority=True),
        Binding("ctrl+right", "switch_tab('next')", "Next", show=False, priority=True),
        Binding("pageup", "scroll_messages(1)", "Scroll Up", show=False, priority=True),
        Binding("pagedown", "scroll_messages(-1)", "Scroll Down", show=False, priority=True),
        Binding("ctrl+home", "scroll_to('top')", "Oldest", show=False, priority=True),
        Binding("ctrl+end", "scroll_to('bottom')", "Newest", show=False, priority=True),
        Binding("ctrl+s", "save", "Save", priority=True),
        Binding("ctrl+d", "toggle_debug", "Log", priority=True),
        Binding("f1", "toggle_help", "Help", priority=True),
        *[
            Binding(f"alt+{n}", f"select_tab({n - 1})", f"Tab {n}", show=False, priority=True)
            for n in range(1, 10)
        ],
    ]

    def __init__(
        self,
        controller: ChatController,
        log_level: str | None = None,
    ) -> None:
        super().__init__()
        self._controller = controller
        self._log_level = log_level
        self._log_handler: DebugPanelHandler | None = None
        self._help: HelpScreen | None = None
        self._help_closing = False
        controller.set_listener(self.refresh_view)

    @property
    def controller(self) -> ChatController:
        return self._controller

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield TabBar(id="tab-bar")
        yield ConversationView(id="conversation")
        yield DebugPanel(id="debug-panel")
        yield StatusLine(id="status-line")
        yield HistoryInput(id="chat-input", placeholder="Message Claude, or /help")
        yield Footer()

    def on_mount(self) -> None:
        self.register_theme(GRUVBOX_DARK)
        self.theme = "tabchat-gruvbox"
        self._install_log_handler()

        model = self._controller.state.current_model or "offline"
        self.sub_title = model
        self.query_one("#chat-input", HistoryInput).focus()
        self.run_worker(self._controller.run(), name="control-loop", exit_on_error=True)

    def on_unmount(self) -> None:
        self._controller.stop()
        if self._log_handler is not None:
            package_logger = logging.getLogger("tabchat")
            package_logger.removeHandler(self._log_handler)
            package_logger.propagate = True
            self._log_handler = None

    def _install_log_handler(self) -> None:
        """Route the package's log records into the log panel."""
        panel = self.query_one("#debug-panel", DebugPanel)
        level = LogLevel.from_string(self._log_level) if self._log_level else LogLevel.INFO
        panel.log_level = level
        if self._log_level is not None:
            panel.show()

        self._log_handler = DebugPanelHandler(panel)
        package_logger = logging.getLogger("tabchat")
        package_logger.addHandler(self._log_handler)
        package_logger.setLevel(level)
        # stderr belongs to the terminal UI while it runs
        package_logger.propagate = False
        logger.info("Log panel attached at level %s", LogLevel.name(level))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def refresh_view(self, state: AppState) -> None:
        """Redraw every widget from the state (called by the controller)."""
        if state.should_quit:
            self.exit()
            return
        self.query_one("#tab-bar", TabBar).show_state(state)
        self.query_one("#conversation", ConversationView).show_conversation(
            state.active, state.ticks
        )
        self.query_one("#status-line", StatusLine).show_state(state)
        self.sub_title = state.current_model or "offline"
        self._sync_help(state)

    def _sync_help(self, state: AppState) -> None:
        if not state.show_help:
            self._help_closing = False
            if self._help is not None:
                help_screen, self._help = self._help, None
                if self.screen is help_screen:
                    self.pop_screen()
        elif self._help is None and not self._help_closing:
            self._help = HelpScreen()
            self.push_screen(self._help, self._on_help_closed)

    def _on_help_closed(self, _result: None) -> None:
        # Closed with a key press rather than by a state change
        if self._help is not None:
            self._help = None
            self._help_closing = True
            self._controller.post(ToggleHelp())

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def on_input_submitted(self, event: Input.Submitted) -> None:
        line = event.value
        event.input.value = ""
        if not line.strip():
            return
        self.query_one("#chat-input", HistoryInput).add_to_history(line)
        self._controller.post(Submit(line))

    async def action_quit(self) -> None:
        if self._controller.running:
            self._controller.post(Quit())
        else:
            self.exit()

    def action_new_tab(self) -> None:
        self._controller.post(NewTab())

    def action_close_tab(self) -> None:
        self._controller.post(CloseTab())

    def action_switch_tab(self, direction: str) -> None:
        self._controller.post(SwitchTab(direction))

    def action_select_tab(self, index: int) -> None:
        self._controller.post(SwitchTab(index))

    def action_scroll_messages(self, pages: int) -> None:
        self._controller.post(Scroll(delta=pages * PAGE_MESSAGES))

    def action_scroll_to(self, end: str) -> None:
        self._controller.post(Scroll(to=end))

    def action_save(self) -> None:
        self._controller.post(SaveConversation())

    def action_toggle_help(self) -> None:
        self._controller.post(ToggleHelp())

    def action_toggle_debug(self) -> None:
        """Toggle the log panel visibility."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        is_visible = log_panel.toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=2)


async def build_initial_state(
    store: ConversationStore | None,
    restore_limit: int,
    has_credential: bool,
) -> AppState:
    """Initial tabs: recently saved conversations (oldest first) and a fresh tab."""
    conversations: list[Conversation] = []
    if store is not None and restore_limit > 0:
        try:
            records = await store.load_recent(restore_limit)
        except OSError as e:
            logger.warning("Could not restore conversations: %s", e)
            records = []
        conversations = [Conversation.from_saved(r) for r in reversed(records)]
    conversations.append(Conversation())

    state = AppState(conversations=conversations, active_index=len(conversations) - 1)
    if not has_credential:
        state.status = StatusMessage(NO_CREDENTIAL, is_error=True)
    return state


async def run_textual_tui(
    settings: Settings,
    client: AnthropicClient | None,
    store: ConversationStore | None = None,
    log_level: str | None = None,
    restore: bool = True,
) -> None:
    """Run the Textual TUI.

    Args:
        settings: Loaded settings
        client: API client, or None to run without a credential
        store: Conversation store, or None to disable persistence
        log_level: Log level for panel (debug/info/warning/error), None to hide
        restore: Reopen recently saved conversations as tabs
    """
    state = await build_initial_state(
        store,
        settings.restore_limit if restore else 0,
        has_credential=client is not None,
    )
    sessions = SessionManager(client, settings.channel_capacity) if client is not None else None
    controller = ChatController(
        sessions,
        store,
        state=state,
        poll_interval=settings.poll_interval,
        title_budget=settings.title_max_chars,
        autosave=settings.autosave,
    )
    app = TabChatApp(controller, log_level=log_level)
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        await controller.drain_saves()
        if client is not None:
            await client.close()
