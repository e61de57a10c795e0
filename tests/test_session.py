"""Tests for Sessions and the Session Manager."""
import asyncio
from contextlib import asynccontextmanager

import httpx
import pytest

from conftest import FakeStreamingClient, message_stop, stream_body, text_delta
from tabchat.errors import RemoteStatusError, TransportError
from tabchat.llm import (
    ChatMessage,
    DoneIncrement,
    ErrorIncrement,
    SessionManager,
    TextIncrement,
    is_terminal,
)
from tabchat.llm import session as session_module

HISTORY = [ChatMessage(role="user", content="Hi")]


async def drain(session, timeout: float = 2.0) -> list:
    """Read a session's channel up to and including its terminal output."""
    outputs = []
    while True:
        output = await asyncio.wait_for(session.channel.get(), timeout)
        outputs.append(output)
        if is_terminal(output.increment):
            return outputs


class TestSession:
    """Tests for a single Session's output contract."""

    @pytest.mark.asyncio
    async def test_increments_in_order(self, fake_client):
        fake_client.queue_reply("Hel", "lo")
        session = SessionManager(fake_client).start("tab-1", HISTORY)

        outputs = await drain(session)

        assert [o.increment for o in outputs] == [
            TextIncrement("Hel"),
            TextIncrement("lo"),
            DoneIncrement(),
        ]
        assert [o.sequence for o in outputs] == [1, 2, 3]
        assert {o.tab_id for o in outputs} == {"tab-1"}
        assert {o.session_id for o in outputs} == {session.session_id}
        assert session.terminated

    @pytest.mark.asyncio
    async def test_status_error_becomes_error_increment(self, fake_client):
        fake_client.queue(RemoteStatusError(429, {"error": {"message": "Rate limited"}}))
        session = SessionManager(fake_client).start("tab-1", HISTORY)

        outputs = await drain(session)

        assert [o.increment for o in outputs] == [
            ErrorIncrement("rate limited (HTTP 429): Rate limited")
        ]

    @pytest.mark.asyncio
    async def test_transport_failure_mid_stream(self, fake_client):
        fake_client.queue([text_delta("par"), TransportError("connection failed: reset")])
        session = SessionManager(fake_client).start("tab-1", HISTORY)

        outputs = await drain(session)

        assert [o.increment for o in outputs] == [
            TextIncrement("par"),
            ErrorIncrement("connection failed: reset"),
        ]

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_contained(self, fake_client):
        fake_client.queue(RuntimeError("boom"))
        session = SessionManager(fake_client).start("tab-1", HISTORY)

        outputs = await drain(session)

        assert len(outputs) == 1
        assert isinstance(outputs[0].increment, ErrorIncrement)
        assert "boom" in outputs[0].increment.message

    @pytest.mark.asyncio
    async def test_missing_stop_still_terminates(self, fake_client):
        fake_client.queue([stream_body("cut", stop=False)])
        session = SessionManager(fake_client).start("tab-1", HISTORY)

        outputs = await drain(session)

        assert [o.increment for o in outputs] == [TextIncrement("cut"), DoneIncrement()]

    @pytest.mark.asyncio
    async def test_exactly_one_terminal(self, fake_client):
        fake_client.queue([text_delta("a") + message_stop() + message_stop()])
        session = SessionManager(fake_client).start("tab-1", HISTORY)

        outputs = await drain(session)
        await asyncio.sleep(0.01)

        assert sum(1 for o in outputs if is_terminal(o.increment)) == 1
        assert session.channel.empty()

    @pytest.mark.asyncio
    async def test_parser_closed_before_stream(self, monkeypatch):
        order = []
        parse_stream = session_module.parse_stream

        async def tracking_parse(chunks):
            try:
                async for increment in parse_stream(chunks):
                    yield increment
            finally:
                order.append("parser")

        class OrderedClient(FakeStreamingClient):
            @asynccontextmanager
            async def open_stream(self, request):
                async with FakeStreamingClient.open_stream(self, request) as chunks:
                    yield chunks
                order.append("stream")

        monkeypatch.setattr(session_module, "parse_stream", tracking_parse)
        client = OrderedClient()
        client.queue([stream_body("done"), text_delta("never read")])
        session = SessionManager(client).start("tab-1", HISTORY)

        await drain(session)
        await session._task

        assert order == ["parser", "stream"]

    @pytest.mark.asyncio
    async def test_full_channel_suspends_producer(self, fake_client):
        fake_client.queue([text_delta(str(i)) for i in range(6)] + [message_stop()])
        session = SessionManager(fake_client, capacity=2).start("tab-1", HISTORY)

        for _ in range(20):
            await asyncio.sleep(0)
        assert session.channel.qsize() == 2
        assert not session.done

        outputs = await drain(session)
        texts = [o.increment.text for o in outputs if isinstance(o.increment, TextIncrement)]
        assert texts == ["0", "1", "2", "3", "4", "5"]


class TestSessionManager:
    """Tests for starting Sessions."""

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, fake_client):
        manager = SessionManager(fake_client)
        first = manager.start("tab-1", HISTORY)
        second = manager.start("tab-2", HISTORY)

        assert first.session_id != second.session_id
        await drain(first)
        await drain(second)

    @pytest.mark.asyncio
    async def test_history_is_copied(self, fake_client):
        manager = SessionManager(fake_client)
        history = list(HISTORY)
        session = manager.start("tab-1", history)
        history.append(ChatMessage(role="assistant", content="mutated"))

        await drain(session)
        assert fake_client.requests[0].messages == tuple(HISTORY)

    @pytest.mark.asyncio
    async def test_model_and_system_override(self, fake_client):
        manager = SessionManager(fake_client)
        assert manager.default_model == "claude-test"

        session = manager.start("tab-1", HISTORY, system="Be brief", model="claude-other")
        await drain(session)

        request = fake_client.requests[0]
        assert request.model == "claude-other"
        assert request.system == "Be brief"
        assert session.model == "claude-other"

    @pytest.mark.asyncio
    async def test_finished_tasks_are_released(self, fake_client):
        manager = SessionManager(fake_client)
        session = manager.start("tab-1", HISTORY)
        assert manager.running == 1

        await drain(session)
        for _ in range(5):
            await asyncio.sleep(0)
        assert manager.running == 0

    @pytest.mark.asyncio
    async def test_against_http_transport(self, mock_api_client):
        """A Session driven by the real client over a mocked HTTP exchange."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=stream_body("Hi", " there"),
            )

        async with mock_api_client(handler) as client:
            session = SessionManager(client).start("tab-1", HISTORY)
            outputs = await drain(session)

        assert [o.increment for o in outputs] == [
            TextIncrement("Hi"),
            TextIncrement(" there"),
            DoneIncrement(),
        ]
