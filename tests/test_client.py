"""Tests for the Anthropic client against a mocked HTTP transport."""
import json

import httpx
import pytest

from conftest import stream_body
from tabchat.errors import RemoteStatusError, TransportError
from tabchat.llm import AnthropicClient, ChatMessage, DoneIncrement, TextIncrement, parse_stream

HISTORY = (ChatMessage(role="user", content="Hi"),)


def error_response(status: int, message: str, error_type: str = "api_error") -> httpx.Response:
    return httpx.Response(
        status,
        json={"type": "error", "error": {"type": error_type, "message": message}},
    )


async def collect(client, request) -> list:
    async with client.open_stream(request) as chunks:
        return [i async for i in parse_stream(chunks)]


class TestConstruction:
    """Tests for configuring the underlying SDK client."""

    def test_default_transport_accepts_finite_timeouts(self):
        client = AnthropicClient(api_key="test-key", connect_timeout=3.0, read_timeout=30.0)

        timeout = client._client.timeout
        assert isinstance(timeout, httpx.Timeout)
        assert timeout.connect == 3.0
        assert timeout.read == 30.0
        assert client._client.max_retries == 0


class TestBuildRequest:
    """Tests for outbound payload construction."""

    def test_defaults(self, mock_api_client):
        client = mock_api_client(lambda request: httpx.Response(500))
        request = client.build_request(HISTORY)

        assert request.model == "claude-test"
        assert request.max_tokens == 4096
        assert request.system is None
        assert request.stream is True
        assert request.to_params() == {
            "model": "claude-test",
            "max_tokens": 4096,
            "messages": [{"role": "user", "content": "Hi"}],
            "stream": True,
        }

    def test_overrides(self, mock_api_client):
        client = mock_api_client(lambda request: httpx.Response(500))
        request = client.build_request(HISTORY, system="Be brief", model="claude-other")

        params = request.to_params()
        assert params["model"] == "claude-other"
        assert params["system"] == "Be brief"

    def test_empty_system_is_omitted(self, mock_api_client):
        client = mock_api_client(lambda request: httpx.Response(500))
        assert "system" not in client.build_request(HISTORY, system="").to_params()

    def test_request_is_a_snapshot(self, mock_api_client):
        client = mock_api_client(lambda request: httpx.Response(500))
        history = [ChatMessage(role="user", content="Hi")]
        request = client.build_request(history)
        history.append(ChatMessage(role="assistant", content="later"))
        assert len(request.messages) == 1


class TestOpenStream:
    """Tests for the streaming exchange."""

    @pytest.mark.asyncio
    async def test_successful_stream(self, mock_api_client):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=stream_body("Hel", "lo"),
            )

        client = mock_api_client(handler)
        try:
            increments = await collect(client, client.build_request(HISTORY))
        finally:
            await client.close()

        assert increments == [TextIncrement("Hel"), TextIncrement("lo"), DoneIncrement()]
        assert len(seen) == 1
        request = seen[0]
        assert request.url.path == "/v1/messages"
        assert request.headers["x-api-key"] == "test-key"
        assert "anthropic-version" in request.headers
        body = json.loads(request.content)
        assert body["stream"] is True
        assert body["model"] == "claude-test"
        assert body["messages"] == [{"role": "user", "content": "Hi"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "category"),
        [
            (401, "unauthorized"),
            (403, "unauthorized"),
            (429, "rate limited"),
            (500, "server error"),
            (529, "server error"),
            (400, "request failed"),
        ],
    )
    async def test_status_errors(self, mock_api_client, status, category):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return error_response(status, "Nope")

        client = mock_api_client(handler)
        try:
            with pytest.raises(RemoteStatusError) as exc_info:
                await collect(client, client.build_request(HISTORY))
        finally:
            await client.close()

        error = exc_info.value
        assert error.status_code == status
        assert error.category == category
        assert str(error) == f"{category} (HTTP {status}): Nope"
        # Retries are disabled: one turn is one exchange
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_connect_failure(self, mock_api_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = mock_api_client(handler)
        try:
            with pytest.raises(TransportError) as exc_info:
                await collect(client, client.build_request(HISTORY))
        finally:
            await client.close()

        assert str(exc_info.value).startswith("connection failed")

    @pytest.mark.asyncio
    async def test_timeout(self, mock_api_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = mock_api_client(handler)
        try:
            with pytest.raises(TransportError, match="request timed out"):
                await collect(client, client.build_request(HISTORY))
        finally:
            await client.close()


class TestComplete:
    """Tests for the non-streaming exchange."""

    @pytest.mark.asyncio
    async def test_concatenates_text_blocks(self, mock_api_client):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "id": "msg_1",
                    "type": "message",
                    "role": "assistant",
                    "model": "claude-test",
                    "content": [
                        {"type": "text", "text": "Hello"},
                        {"type": "text", "text": " there"},
                    ],
                    "stop_reason": "end_turn",
                    "stop_sequence": None,
                    "usage": {"input_tokens": 3, "output_tokens": 2},
                },
            )

        async with mock_api_client(handler) as client:
            text = await client.complete(HISTORY, system="Be brief")

        assert text == "Hello there"
        assert seen[0]["system"] == "Be brief"
        assert not seen[0].get("stream")

    @pytest.mark.asyncio
    async def test_status_error(self, mock_api_client):
        client = mock_api_client(lambda request: error_response(429, "Slow down", "rate_limit_error"))
        async with client:
            with pytest.raises(RemoteStatusError) as exc_info:
                await client.complete(HISTORY)
        assert exc_info.value.category == "rate limited"
