"""Session management: one outbound exchange per conversation turn.

Hidden design decisions:
- Each Session runs as its own asyncio task and writes only to its own
  bounded channel (asyncio.Queue). A full channel suspends the Session,
  throttling a fast producer to the consumer's pace.
- Every failure is converted to exactly one ErrorIncrement; nothing
  escapes the task.
- Sessions are never cancelled by the application. An abandoned Session
  runs to completion in the background, its channel drained by the
  multiplexer even after the control loop stops; the transport's finite timeouts bound its lifetime.
"""

import asyncio
import itertools
import logging
from collections.abc import AsyncIterable, Sequence
from contextlib import AbstractAsyncContextManager, aclosing
from dataclasses import dataclass
from typing import Protocol

from ..errors import RemoteStatusError, TransportError
from .models import (
    ChatMessage,
    ErrorIncrement,
    Increment,
    MessagesRequest,
    is_terminal,
)
from .stream_parser import parse_stream

logger = logging.getLogger(__name__)


class StreamingClient(Protocol):
    """What a Session needs from the remote client."""

    @property
    def model(self) -> str: ...

    def build_request(
        self,
        messages: Sequence[ChatMessage],
        system: str | None = None,
        model: str | None = None,
        stream: bool = True,
    ) -> MessagesRequest: ...

    def open_stream(
        self, request: MessagesRequest
    ) -> AbstractAsyncContextManager[AsyncIterable[bytes]]: ...


@dataclass(frozen=True, slots=True)
class SessionOutput:
    """One increment as delivered on a Session's channel."""

    tab_id: str
    session_id: int
    sequence: int
    increment: Increment


class Session:
    """One in-flight turn for one conversation."""

    def __init__(self, session_id: int, tab_id: str, request: MessagesRequest, capacity: int):
        self.session_id = session_id
        self.tab_id = tab_id
        self.request = request
        self.channel: asyncio.Queue[SessionOutput] = asyncio.Queue(maxsize=capacity)
        self._sequence = 0
        self._terminated = False
        self._task: asyncio.Task[None] | None = None

    @property
    def model(self) -> str:
        return self.request.model

    @property
    def terminated(self) -> bool:
        """True once the terminal increment has been written."""
        return self._terminated

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def __repr__(self) -> str:
        return f"Session(id={self.session_id}, tab={self.tab_id!r}, model={self.model!r})"

    async def _emit(self, increment: Increment) -> None:
        if self._terminated:
            return
        self._sequence += 1
        if is_terminal(increment):
            self._terminated = True
        await self.channel.put(
            SessionOutput(self.tab_id, self.session_id, self._sequence, increment)
        )

    async def run(self, client: StreamingClient) -> None:
        """Drive one exchange to its terminal increment."""
        try:
            async with client.open_stream(self.request) as chunks:
                async with aclosing(parse_stream(chunks)) as increments:
                    async for increment in increments:
                        await self._emit(increment)
                        if self._terminated:
                            break
        except RemoteStatusError as e:
            await self._emit(ErrorIncrement(e.describe()))
        except TransportError as e:
            await self._emit(ErrorIncrement(str(e)))
        except Exception as e:
            logger.exception("Session %s failed unexpectedly", self.session_id)
            await self._emit(ErrorIncrement(f"unexpected error: {e}"))
        finally:
            if not self._terminated and not _cancelling():
                await self._emit(ErrorIncrement("stream ended without a result"))
        logger.debug("%r finished after %d increments", self, self._sequence)


def _cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class SessionManager:
    """Starts Sessions and keeps their tasks referenced until they finish."""

    def __init__(self, client: StreamingClient, capacity: int = 32):
        self._client = client
        self._capacity = capacity
        self._ids = itertools.count(1)
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def default_model(self) -> str:
        return self._client.model

    @property
    def running(self) -> int:
        """Number of Session tasks still running (including abandoned ones)."""
        return len(self._tasks)

    def start(
        self,
        tab_id: str,
        history: Sequence[ChatMessage],
        system: str | None = None,
        model: str | None = None,
    ) -> Session:
        """Issue one outbound exchange for one turn.

        Args:
            tab_id: Conversation the turn belongs to
            history: Message history; copied at call time
            system: Optional system directive
            model: Model override (None uses the client's default)

        Returns:
            The started Session; read its increments from session.channel
        """
        request = self._client.build_request(tuple(history), system=system, model=model)
        session = Session(next(self._ids), tab_id, request, self._capacity)
        task = asyncio.create_task(session.run(self._client), name=f"session-{session.session_id}")
        session._task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Started %r with %d messages", session, len(request.messages))
        return session
