"""Anthropic messages API client.

Uses the official Anthropic Python SDK for transport and authentication.
Reference: https://github.com/anthropics/anthropic-sdk-python

Hidden design decisions:
- API client initialization (credential, version and content-type headers
  are set by the SDK)
- Request payload construction
- Translation of SDK and httpx failures into RemoteStatusError and
  TransportError
- Streaming responses are consumed as raw bytes, leaving framing to
  stream_parser
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import anthropic
import httpx
from anthropic import AsyncAnthropic

from ..config import DEFAULT_MODEL, Settings
from ..errors import RemoteStatusError, TransportError
from .models import ChatMessage, MessagesRequest

logger = logging.getLogger(__name__)


class AnthropicClient:
    """Thin async client over AsyncAnthropic.

    Supports async context manager protocol for proper resource cleanup:
        async with AnthropicClient(api_key) as client:
            text = await client.complete(messages)
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
        max_tokens: int = 4096,
        connect_timeout: float = 10.0,
        read_timeout: float = 120.0,
        max_retries: int = 0,
        **client_kwargs: Any
    ):
        """Initialize the client.

        Args:
            api_key: Anthropic API key
            model: Default model used when no override is given
            base_url: Optional custom API base URL
            max_tokens: Maximum output tokens per reply
            connect_timeout: Seconds allowed to establish a connection
            read_timeout: Seconds allowed between reads
            max_retries: Transport-level retries (0 = one exchange per turn)
            **client_kwargs: Additional kwargs for AsyncAnthropic (e.g. http_client)
        """
        self._model = model
        self._max_tokens = max_tokens
        self._client = AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
            max_retries=max_retries,
            **client_kwargs
        )

    @classmethod
    def from_settings(cls, settings: Settings, **client_kwargs: Any) -> "AnthropicClient":
        """Create a client from process settings (requires a credential)."""
        return cls(
            api_key=settings.require_api_key(),
            model=settings.model,
            base_url=settings.base_url,
            max_tokens=settings.max_tokens,
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
            max_retries=settings.max_retries,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    def build_request(
        self,
        messages: Sequence[ChatMessage],
        system: str | None = None,
        model: str | None = None,
        stream: bool = True,
    ) -> MessagesRequest:
        """Build the outbound payload from a history snapshot."""
        return MessagesRequest(
            model=model or self._model,
            max_tokens=self._max_tokens,
            system=system or None,
            messages=tuple(messages),
            stream=stream,
        )

    @asynccontextmanager
    async def open_stream(self, request: MessagesRequest) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a streaming exchange and yield its raw body fragments.

        Usage:
            async with client.open_stream(request) as chunks:
                async for chunk in chunks:
                    ...

        Raises:
            RemoteStatusError: The service answered with a non-success status
            TransportError: Connect failure, timeout, or mid-stream I/O failure
        """
        try:
            async with self._client.messages.with_streaming_response.create(
                **request.to_params()
            ) as response:
                yield response.iter_bytes()
        except anthropic.APIStatusError as e:
            logger.warning("Remote status %s for model %s", e.status_code, request.model)
            raise RemoteStatusError(e.status_code, e.body if e.body is not None else e.message) from e
        except anthropic.APIConnectionError as e:
            logger.warning("Transport failure: %s", e)
            raise TransportError(_describe_transport_error(e)) from e
        except httpx.HTTPError as e:
            logger.warning("Stream interrupted: %s", e)
            raise TransportError(_describe_transport_error(e)) from e

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        system: str | None = None,
        model: str | None = None,
    ) -> str:
        """Run one non-streaming exchange and return the generated text.

        Raises:
            RemoteStatusError: The service answered with a non-success status
            TransportError: Connect failure or timeout
        """
        request = self.build_request(messages, system=system, model=model, stream=False)
        try:
            response = await self._client.messages.create(**request.to_params())
        except anthropic.APIStatusError as e:
            raise RemoteStatusError(e.status_code, e.body if e.body is not None else e.message) from e
        except anthropic.APIConnectionError as e:
            raise TransportError(_describe_transport_error(e)) from e

        # Extract content (handle multiple content blocks)
        content = ""
        for block in response.content:
            if getattr(block, "type", None) == "text":
                content += block.text
        return content

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()

    async def __aenter__(self) -> "AnthropicClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the client.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise


def _describe_transport_error(error: Exception) -> str:
    if isinstance(error, (anthropic.APITimeoutError, httpx.TimeoutException)):
        return "request timed out"
    cause = error.__cause__ or error
    text = str(cause) or type(cause).__name__
    return f"connection failed: {text}"
