"""Event multiplexer: the single consumption point of the control loop.

Hidden design decisions:
- Sources are the input queue plus one bounded channel per live Session.
  Exactly one pending get() is kept per source, so items from one source
  are delivered in the order that source produced them. No order is
  promised between sources.
- A Session stays attached until its terminal increment has been read,
  even after its tab was closed. Its channel keeps being drained (and the
  items discarded) so an abandoned Session never blocks on a full channel.
  After close() a background drain task per attached Session takes over.
- Waits are bounded; a timeout returns None so the caller can animate.
"""

import asyncio
import logging
from collections.abc import Callable, Hashable

from ..llm.models import is_terminal
from ..llm.session import Session, SessionOutput
from .events import InputEvent

logger = logging.getLogger(__name__)

_INPUT = "input"

MultiplexedEvent = InputEvent | SessionOutput


class EventMultiplexer:
    """Merges user input and Session output into one ordered stream.

    Args:
        is_live: Tells whether a tab id still names a live conversation
    """

    def __init__(self, is_live: Callable[[str], bool]) -> None:
        self._is_live = is_live
        self._inputs: asyncio.Queue[InputEvent] = asyncio.Queue()
        self._sessions: dict[int, Session] = {}
        self._getters: dict[Hashable, asyncio.Future] = {}
        self.discarded = 0
        self._drains: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def attached(self) -> int:
        """Number of Sessions whose terminal increment is still unread."""
        return len(self._sessions)

    def post(self, event: InputEvent) -> None:
        """Queue a user input event. Never blocks."""
        self._inputs.put_nowait(event)

    def attach(self, session: Session) -> None:
        """Start consuming a Session's channel."""
        self._sessions[session.session_id] = session

    async def next_event(self, timeout: float) -> MultiplexedEvent | None:
        """Wait up to `timeout` seconds for the next deliverable event.

        Returns:
            An input event, a SessionOutput for a live tab, or None on timeout
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            self._arm()
            ready = [key for key, getter in self._getters.items() if getter.done()]
            if not ready:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return None
                done, _ = await asyncio.wait(
                    self._getters.values(),
                    timeout=remaining,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if not done:
                    return None
                ready = [key for key, getter in self._getters.items() if getter in done]

            key = ready[0]
            item = self._getters.pop(key).result()
            if key == _INPUT:
                return item
            event = self._route(key, item)
            if event is not None:
                return event

    def _arm(self) -> None:
        """Ensure exactly one pending get() per source."""
        if _INPUT not in self._getters:
            self._getters[_INPUT] = asyncio.ensure_future(self._inputs.get())
        for session_id, session in self._sessions.items():
            if session_id not in self._getters:
                self._getters[session_id] = asyncio.ensure_future(session.channel.get())

    def _route(self, session_id: Hashable, output: SessionOutput) -> SessionOutput | None:
        if is_terminal(output.increment):
            self._sessions.pop(session_id, None)
        if not self._is_live(output.tab_id):
            self.discarded += 1
            logger.debug(
                "Discarding increment %d of session %s for closed tab",
                output.sequence, output.session_id,
            )
            return None
        return output

    async def close(self) -> None:
        """Stop delivering events.

        Pending gets are cancelled. Sessions still attached are left running
        with a drain task each, which discards their output up to the
        terminal increment.
        """
        if self._closed:
            return
        self._closed = True
        getters = self._getters
        self._getters = {}
        for key, getter in getters.items():
            if not getter.done():
                getter.cancel()
            elif key != _INPUT and not getter.cancelled():
                self._route(key, getter.result())
        if getters:
            await asyncio.gather(*getters.values(), return_exceptions=True)
        for session in list(self._sessions.values()):
            task = asyncio.create_task(self._drain(session), name=f"drain-{session.session_id}")
            self._drains.add(task)
            task.add_done_callback(self._drains.discard)

    async def _drain(self, session: Session) -> None:
        while session.session_id in self._sessions:
            output = await session.channel.get()
            if is_terminal(output.increment):
                self._sessions.pop(session.session_id, None)
            self.discarded += 1
        logger.debug("Drained abandoned %r", session)
