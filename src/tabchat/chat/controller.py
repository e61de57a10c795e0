"""Control loop wiring the multiplexer, state machine and Session Manager.

Runs on the UI's event loop. It is the only code that calls into the state
machine, so conversation data needs no locks. It never awaits network I/O:
Sessions run as their own tasks and saves run in background tasks that
report back through the input queue.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence

from ..config import TITLE_MAX_CHARS
from ..llm.models import ChatMessage
from ..llm.session import SessionManager
from ..storage import ConversationStore, SavedConversation
from .events import InputEvent, SaveFinished
from .models import AppState
from .multiplexer import EventMultiplexer
from .state import ChatStateMachine

logger = logging.getLogger(__name__)


class ChatController:
    """Owns the control loop.

    Usage:
        controller = ChatController(sessions, store, on_change=render)
        worker = asyncio.create_task(controller.run())
        controller.post(Submit("Hi"))
    """

    def __init__(
        self,
        sessions: SessionManager | None,
        store: ConversationStore | None = None,
        state: AppState | None = None,
        on_change: Callable[[AppState], None] | None = None,
        poll_interval: float = 0.05,
        title_budget: int = TITLE_MAX_CHARS,
        autosave: bool = True,
    ) -> None:
        self._sessions = sessions
        self._store = store
        self._on_change = on_change
        self._poll_interval = poll_interval
        self._background: set[asyncio.Task[None]] = set()

        state = state or AppState()
        if sessions is not None and state.current_model is None:
            state.current_model = sessions.default_model

        self.machine = ChatStateMachine(
            state=state,
            start_session=self._start_session if sessions is not None else None,
            title_budget=title_budget,
            autosave=autosave and store is not None,
        )
        self.mux = EventMultiplexer(is_live=self.machine.state.is_live)
        self._stopped = False
        self._running = False

    @property
    def state(self) -> AppState:
        return self.machine.state

    def post(self, event: InputEvent) -> None:
        """Queue a user input event (safe to call from UI handlers)."""
        self.mux.post(event)

    def stop(self) -> None:
        self._stopped = True

    @property
    def running(self) -> bool:
        """True while run() is looping."""
        return self._running

    def set_listener(self, on_change: Callable[[AppState], None] | None) -> None:
        """Replace the callback invoked after every state change."""
        self._on_change = on_change

    def _start_session(
        self,
        tab_id: str,
        history: Sequence[ChatMessage],
        system: str | None,
        model: str | None,
    ) -> int:
        session = self._sessions.start(tab_id, history, system=system, model=model)
        self.mux.attach(session)
        return session.session_id

    async def step(self, timeout: float | None = None) -> bool:
        """Wait for and apply at most one event.

        Returns:
            True if an event was applied, False if the wait timed out
        """
        event = await self.mux.next_event(self._poll_interval if timeout is None else timeout)
        if event is None:
            self.machine.tick()
            if self.state.any_busy:
                self._notify()
            return False
        self.machine.dispatch(event)
        self._schedule_saves()
        self._notify()
        return True

    async def run(self) -> None:
        """Run until a Quit event or stop()."""
        self._running = True
        self._notify()
        try:
            while not self._stopped and not self.state.should_quit:
                await self.step()
        finally:
            self._running = False
            await self.mux.close()
            if self.mux.attached:
                logger.info("Draining %d abandoned session(s) in the background", self.mux.attached)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.state)

    def _schedule_saves(self) -> None:
        requests = self.machine.take_save_requests()
        if self._store is None:
            for tab_id, explicit in requests:
                if explicit:
                    self.post(SaveFinished(tab_id, explicit, error="persistence is disabled"))
            return
        for tab_id, explicit in requests:
            conversation = self.state.find(tab_id)
            if conversation is None or conversation.is_empty:
                continue
            snapshot = conversation.to_saved()
            task = asyncio.create_task(self._save(snapshot, explicit))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _save(self, snapshot: SavedConversation, explicit: bool) -> None:
        try:
            await self._store.save(snapshot)
        except (OSError, ValueError) as e:
            logger.warning("Saving conversation %s failed: %s", snapshot.id, e)
            self.post(SaveFinished(snapshot.id, explicit, error=str(e)))
        else:
            self.post(SaveFinished(snapshot.id, explicit))

    async def drain_saves(self) -> None:
        """Wait for background saves to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
