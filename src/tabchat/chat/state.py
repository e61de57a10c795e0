"""Conversation/tab state machine.

The only writer of conversation state. It consumes one event at a time
(user input or a Session's increment) and mutates the owned AppState.

Per-conversation turn status:
    IDLE -> AWAITING_FIRST_TOKEN -> STREAMING -> TERMINATED
TERMINATED behaves like IDLE for the next submit.
"""

import logging
from collections.abc import Callable, Sequence

from ..config import TITLE_MAX_CHARS
from ..errors import StateError
from ..llm.models import (
    ChatMessage,
    DoneIncrement,
    ErrorIncrement,
    TextIncrement,
)
from ..llm.session import SessionOutput
from . import commands
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
from .models import (
    AppState,
    Conversation,
    Message,
    Role,
    SessionStatus,
    StatusMessage,
)

logger = logging.getLogger(__name__)

# (tab_id, history, system, model) -> session id
SessionStarter = Callable[[str, Sequence[ChatMessage], str | None, str | None], int]

NO_CREDENTIAL = "ANTHROPIC_API_KEY not set - sending is disabled"


class ChatStateMachine:
    """Applies events to the AppState, one at a time.

    Args:
        state: Initial state (a single empty tab if omitted)
        start_session: Starts a Session and returns its id; None means no
            credential is configured and sending is rejected
        title_budget: Character budget for derived tab titles
        autosave: Request a save after every completed turn
    """

    def __init__(
        self,
        state: AppState | None = None,
        start_session: SessionStarter | None = None,
        title_budget: int = TITLE_MAX_CHARS,
        autosave: bool = False,
    ) -> None:
        self.state = state or AppState()
        self._start_session = start_session
        self._title_budget = title_budget
        self._autosave = autosave
        self._save_requests: list[tuple[str, bool]] = []

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, event: InputEvent | SessionOutput) -> None:
        """Apply one event. State errors become a status message."""
        try:
            if isinstance(event, SessionOutput):
                self.apply_output(event)
            else:
                self.apply_input(event)
        except StateError as e:
            self._set_status(str(e), is_error=True)

    def apply_input(self, event: InputEvent) -> None:
        if isinstance(event, Submit):
            self.submit(event.text)
        elif isinstance(event, NewTab):
            self.new_tab()
        elif isinstance(event, CloseTab):
            self.close_tab()
        elif isinstance(event, SwitchTab):
            self.switch(event.target)
        elif isinstance(event, Scroll):
            self.scroll(event.delta, event.to)
        elif isinstance(event, SaveConversation):
            self.request_save(explicit=True)
        elif isinstance(event, ToggleHelp):
            self.toggle_help()
        elif isinstance(event, Quit):
            self.state.should_quit = True
        elif isinstance(event, SaveFinished):
            self._save_finished(event)
        else:
            raise TypeError(f"Unhandled input event: {event!r}")

    def apply_output(self, output: SessionOutput) -> None:
        """Apply one increment from a Session."""
        conversation = self.state.find(output.tab_id)
        if conversation is None:
            logger.debug("Dropping increment for closed tab %s", output.tab_id)
            return
        if conversation.session_id != output.session_id:
            logger.debug("Dropping stale increment from session %s", output.session_id)
            return

        increment = output.increment
        if isinstance(increment, TextIncrement):
            self._append_text(conversation, increment.text)
        elif isinstance(increment, DoneIncrement):
            self._finish_turn(conversation)
        elif isinstance(increment, ErrorIncrement):
            self._finish_turn(conversation)
            self._record_error(conversation, increment.message)
        else:
            raise TypeError(f"Unhandled increment: {increment!r}")

    def tick(self) -> None:
        """Advance the thinking indicator (called when a wait times out)."""
        self.state.ticks += 1

    def take_save_requests(self) -> list[tuple[str, bool]]:
        """Return and clear (tab_id, explicit) save requests."""
        requests, self._save_requests = self._save_requests, []
        return requests

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def submit(self, text: str) -> None:
        """Handle a submitted line: a directive or a chat message."""
        if not text.strip():
            return
        directive = commands.classify(text)
        if isinstance(directive, commands.ChatText):
            self._send(directive.text)
        else:
            self._run_directive(directive)

    def _send(self, text: str) -> None:
        conversation = self.state.active
        if conversation.is_busy:
            raise StateError("Still waiting for the reply in this tab")
        if self._start_session is None:
            raise StateError(NO_CREDENTIAL)

        if self.state.pending_model:
            self.state.current_model = self.state.pending_model
            self.state.pending_model = None

        conversation.add_message(Message(Role.USER, text), self._title_budget)
        conversation.add_message(Message(Role.ASSISTANT, ""), self._title_budget)
        conversation.status = SessionStatus.AWAITING_FIRST_TOKEN
        conversation.model = self.state.current_model
        conversation.error = None
        conversation.scroll_to_bottom()
        self.state.status = None

        history = conversation.history()[:-1]
        conversation.session_id = self._start_session(
            conversation.id, history, conversation.system_prompt, self.state.current_model
        )

    def _append_text(self, conversation: Conversation, text: str) -> None:
        if conversation.status is SessionStatus.AWAITING_FIRST_TOKEN:
            conversation.status = SessionStatus.STREAMING
        if conversation.status is not SessionStatus.STREAMING:
            return
        trailing = conversation.trailing_assistant
        if trailing is not None:
            trailing.content += text

    def _finish_turn(self, conversation: Conversation) -> None:
        conversation.status = SessionStatus.TERMINATED
        conversation.session_id = None
        trailing = conversation.trailing_assistant
        if trailing is not None and not trailing.content:
            conversation.messages.pop()
            conversation.scroll_by(0)
        if self._autosave and not conversation.is_empty:
            self._save_requests.append((conversation.id, False))

    def _record_error(self, conversation: Conversation, message: str) -> None:
        if conversation is self.state.active:
            self._set_status(message, is_error=True)
        else:
            conversation.error = message

    # ------------------------------------------------------------------
    # Directives
    # ------------------------------------------------------------------

    def _run_directive(self, directive: commands.Directive) -> None:
        conversation = self.state.active
        if isinstance(directive, commands.SetModel):
            self.state.pending_model = directive.model
            self._set_status(f"Model set to: {directive.model}")
        elif isinstance(directive, commands.ShowModel):
            if self.state.pending_model:
                self._set_status(f"Next model: {self.state.pending_model} (pending)")
            else:
                self._set_status(f"Current model: {self.state.current_model or 'unknown'}")
        elif isinstance(directive, commands.SetSystem):
            conversation.system_prompt = directive.text
            self._set_status("System prompt set" if directive.text else "System prompt cleared")
        elif isinstance(directive, commands.ShowSystem):
            self._set_status(f"System prompt: {conversation.system_prompt or '(none)'}")
        elif isinstance(directive, commands.Save):
            self.request_save(explicit=True)
        elif isinstance(directive, commands.Help):
            self.toggle_help()
        elif isinstance(directive, commands.UnknownDirective):
            raise StateError(f"Unknown command: {directive.name}")
        else:
            raise TypeError(f"Unhandled directive: {directive!r}")

    def toggle_help(self) -> None:
        self.state.show_help = not self.state.show_help

    def request_save(self, explicit: bool = False) -> None:
        conversation = self.state.active
        if conversation.is_empty:
            raise StateError("Nothing to save yet")
        self._save_requests.append((conversation.id, explicit))

    def _save_finished(self, event: SaveFinished) -> None:
        conversation = self.state.find(event.tab_id)
        if conversation is None:
            return
        if event.error:
            self._record_error(conversation, f"Failed to save: {event.error}")
        elif event.explicit and conversation is self.state.active:
            self._set_status("Conversation saved")

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------

    def new_tab(self) -> Conversation:
        conversation = Conversation()
        self.state.conversations.append(conversation)
        self._activate(len(self.state.conversations) - 1)
        return conversation

    def close_tab(self) -> None:
        """Close the active tab. Its Session, if any, is abandoned."""
        conversations = self.state.conversations
        if len(conversations) <= 1:
            raise StateError("Cannot close the last tab")
        closed = conversations.pop(self.state.active_index)
        if closed.is_busy:
            logger.info("Abandoning session %s of closed tab %s", closed.session_id, closed.id)
        self._activate(min(self.state.active_index, len(conversations) - 1))

    def switch(self, target: str | int) -> None:
        """Move to another tab. Next/prev clamp at the ends."""
        count = len(self.state.conversations)
        index = self.state.active_index
        if target == "next":
            index = min(index + 1, count - 1)
        elif target == "prev":
            index = max(index - 1, 0)
        elif isinstance(target, int) and not isinstance(target, bool):
            if not 0 <= target < count:
                raise StateError(f"No tab {target + 1}")
            index = target
        else:
            raise StateError(f"Invalid tab target: {target!r}")
        if index != self.state.active_index:
            self._activate(index)

    def scroll(self, delta: int = 0, to: str | None = None) -> None:
        conversation = self.state.active
        if to == "top":
            conversation.scroll_to_top()
        elif to == "bottom":
            conversation.scroll_to_bottom()
        else:
            conversation.scroll_by(delta)

    def _activate(self, index: int) -> None:
        self.state.active_index = index
        self.state.status = None
        conversation = self.state.active
        if conversation.error:
            self._set_status(conversation.error, is_error=True)
            conversation.error = None

    def _set_status(self, text: str, is_error: bool = False) -> None:
        self.state.status = StatusMessage(text, is_error)
