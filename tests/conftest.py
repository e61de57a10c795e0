"""Pytest configuration and shared fixtures."""
import asyncio
import json
from contextlib import asynccontextmanager

import httpx
import pytest

from tabchat.llm import AnthropicClient, MessagesRequest


def sse_frame(event_type: str, **payload) -> bytes:
    """One server-sent event as it appears on the wire."""
    data = json.dumps({"type": event_type, **payload}, ensure_ascii=False)
    return f"event: {event_type}\ndata: {data}\n\n".encode("utf-8")


def text_delta(text: str) -> bytes:
    return sse_frame(
        "content_block_delta",
        index=0,
        delta={"type": "text_delta", "text": text},
    )


def message_stop() -> bytes:
    return sse_frame("message_stop")


def error_frame(message: str | None = "Overloaded") -> bytes:
    error = {"type": "overloaded_error"}
    if message is not None:
        error["message"] = message
    return sse_frame("error", error=error)


def stream_body(*texts: str, stop: bool = True) -> bytes:
    """A full streamed reply: preamble, one delta per text, then the stop event."""
    parts = [
        sse_frame("message_start", message={"id": "msg_test", "role": "assistant", "content": []}),
        sse_frame("content_block_start", index=0, content_block={"type": "text", "text": ""}),
        sse_frame("ping"),
    ]
    parts.extend(text_delta(t) for t in texts)
    parts.append(sse_frame("content_block_stop", index=0))
    if stop:
        parts.append(message_stop())
    return b"".join(parts)


class FakeStreamingClient:
    """Stands in for AnthropicClient in Session and controller tests.

    Each call to open_stream consumes one queued script. A script is either
    an exception (raised when the stream is opened) or a list of items:
    bytes are yielded as network reads, exceptions are raised mid-stream and
    asyncio.Event items pause the stream until they are set.
    """

    def __init__(self, model: str = "claude-test") -> None:
        self._model = model
        self._scripts: list = []
        self.requests: list[MessagesRequest] = []

    @property
    def model(self) -> str:
        return self._model

    def queue(self, script) -> None:
        self._scripts.append(script)

    def queue_reply(self, *texts: str) -> None:
        self.queue([stream_body(*texts)])

    def build_request(self, messages, system=None, model=None, stream=True) -> MessagesRequest:
        return MessagesRequest(
            model=model or self._model,
            max_tokens=256,
            system=system or None,
            messages=tuple(messages),
            stream=stream,
        )

    @asynccontextmanager
    async def open_stream(self, request: MessagesRequest):
        self.requests.append(request)
        script = self._scripts.pop(0) if self._scripts else [stream_body("ok")]
        if isinstance(script, BaseException):
            raise script

        async def chunks():
            for item in script:
                if isinstance(item, asyncio.Event):
                    await item.wait()
                    continue
                if isinstance(item, BaseException):
                    raise item
                await asyncio.sleep(0)
                yield item

        yield chunks()


@pytest.fixture
def fake_client():
    """Scripted streaming client."""
    return FakeStreamingClient()


@pytest.fixture
def mock_api_client():
    """Factory for an AnthropicClient whose HTTP traffic goes to a handler.

    Usage:
        client = mock_api_client(handler)
    """
    def _make(handler, **kwargs) -> AnthropicClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return AnthropicClient(
            api_key="test-key",
            model="claude-test",
            http_client=http_client,
            **kwargs
        )
    return _make


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove tabchat-related environment variables and isolate XDG paths."""
    for name in (
        "ANTHROPIC_API_KEY",
        "CLAUDE_MODEL",
        "ANTHROPIC_BASE_URL",
        "TABCHAT_MAX_TOKENS",
        "TABCHAT_CONNECT_TIMEOUT",
        "TABCHAT_READ_TIMEOUT",
        "TABCHAT_CHANNEL_CAPACITY",
        "TABCHAT_DATA_DIR",
        "TABCHAT_AUTOSAVE",
        "TABCHAT_RESTORE_LIMIT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)
    return monkeypatch
