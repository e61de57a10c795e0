"""Error taxonomy for tabchat.

Every failure the core can observe maps onto one of these classes.
Only ConfigurationError is allowed to reach the user as a startup problem;
the others are recovered into status messages or Error increments.
"""

import json
from typing import Any


class TabChatError(Exception):
    """Base class for all tabchat errors."""


class ConfigurationError(TabChatError):
    """Process configuration is missing or invalid (e.g. no API key)."""


class TransportError(TabChatError):
    """Connect failure, timeout, or I/O failure in the middle of a stream."""


class ProtocolError(TabChatError):
    """A single streamed frame could not be decoded."""


class StateError(TabChatError):
    """An operation is not allowed in the current conversation state."""


# Status code classes mapped to human-readable categories
_UNAUTHORIZED = "unauthorized"
_RATE_LIMITED = "rate limited"
_SERVER_ERROR = "server error"
_OTHER = "request failed"


def classify_status(status_code: int) -> str:
    """Map an HTTP status code to a human-readable failure category."""
    if status_code in (401, 403):
        return _UNAUTHORIZED
    if status_code == 429:
        return _RATE_LIMITED
    if 500 <= status_code < 600:
        return _SERVER_ERROR
    return _OTHER


class RemoteStatusError(TabChatError):
    """The remote service answered with a non-success status."""

    def __init__(self, status_code: int, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(self.describe())

    @property
    def category(self) -> str:
        return classify_status(self.status_code)

    @property
    def detail(self) -> str:
        """Best-effort error message extracted from the response body."""
        body = self.body
        if isinstance(body, (bytes, bytearray)):
            body = body.decode("utf-8", errors="replace")
        if isinstance(body, str):
            try:
                body = json.loads(body)
            except ValueError:
                return body.strip()
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if body.get("message"):
                return str(body["message"])
        return ""

    def describe(self) -> str:
        text = f"{self.category} (HTTP {self.status_code})"
        detail = self.detail
        return f"{text}: {detail}" if detail else text
