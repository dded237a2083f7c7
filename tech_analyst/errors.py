"""Exception taxonomy and table-driven classification of upstream failures.

Every external call (LLM, search, scrape) is wrapped by the retry executor,
which consults ``is_retryable_error`` to decide whether another attempt is
worthwhile. Classification is by HTTP status first, then by exception type,
then by message markers, since the SDKs and transports we talk to surface
failures in all three shapes.
"""

from __future__ import annotations

import asyncio

import httpx
from pydantic import BaseModel


class AnalysisError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(AnalysisError):
    """Missing credentials or unusable setup. Fatal, never retried."""


class ToolNotFoundError(ConfigurationError):
    """No remote tool matches the requested capability."""

    def __init__(self, partial_name: str, available: list[str]):
        self.partial_name = partial_name
        self.available = available
        listing = ", ".join(available) if available else "none"
        super().__init__(
            f"Tool matching '{partial_name}' not found. Available tools: {listing}"
        )


class SessionLostError(AnalysisError):
    """The tool backend dropped our session; a full reconnect is required."""


class PipelineCancelled(AnalysisError):
    """The run was aborted through its cancel event."""


RETRYABLE_STATUS = frozenset({408, 429, 500, 502, 503, 504})
NON_RETRYABLE_STATUS = frozenset({400, 401, 403, 404, 422})

RETRYABLE_MARKERS = (
    "fetch failed",
    "timeout",
    "timed out",
    "rate limit",
    "ratelimit",
    "too many requests",
    "quota",
    "overloaded",
    "temporarily",
    "econnreset",
    "econnrefused",
    "connection reset",
    "connection refused",
    "eai_again",
    "enetunreach",
    "name resolution",
    "socket hang up",
    "server disconnected",
)

RETRYABLE_CODES = frozenset({"timeout", "econnreset", "econnrefused", "eai_again"})

RETRYABLE_TYPES: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    asyncio.TimeoutError,
    TimeoutError,
    ConnectionError,
    SessionLostError,
)

SESSION_LOST_MARKERS = ("Session not found", 'code":-32001')


class ErrorInfo(BaseModel):
    """Flattened view of an exception, used for retry logging."""
    type: str
    message: str
    status: int | None = None
    code: str | None = None
    cause: str | None = None


def get_status(error: BaseException) -> int | None:
    """Best-effort HTTP status for httpx, anthropic and openai errors."""
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int):
            return value
    return None


def _get_code(error: BaseException) -> str | None:
    code = getattr(error, "code", None)
    if code is None:
        return None
    return str(code)


def describe_error(error: BaseException) -> ErrorInfo:
    cause = error.__cause__ or error.__context__
    return ErrorInfo(
        type=type(error).__name__,
        message=str(error) or type(error).__name__,
        status=get_status(error),
        code=_get_code(error),
        cause=str(cause) if cause else None,
    )


def is_session_lost(error: BaseException) -> bool:
    if isinstance(error, SessionLostError):
        return True
    message = str(error)
    return any(marker in message for marker in SESSION_LOST_MARKERS)


def is_retryable_error(error: BaseException) -> bool:
    """Classify an exception as transient (worth retrying) or not."""
    if isinstance(error, (ConfigurationError, PipelineCancelled, asyncio.CancelledError)):
        return False

    status = get_status(error)
    if status is not None:
        if status in NON_RETRYABLE_STATUS:
            return False
        if status in RETRYABLE_STATUS:
            return True

    if isinstance(error, RETRYABLE_TYPES):
        return True

    code = _get_code(error)
    if code and code.lower() in RETRYABLE_CODES:
        return True

    message = str(error).lower()
    if any(marker in message for marker in RETRYABLE_MARKERS):
        return True
    return is_session_lost(error)
