"""Errors raised by completion service clients.

Every client error is a GentaskError. Errors that come from an HTTP
response carry its status code.
"""

from __future__ import annotations

from gentask.exceptions import GentaskError


class LLMClientError(GentaskError):
    """A completion service call failed.

    Attributes:
        status_code: HTTP status of the failing response, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class LLMConfigError(LLMClientError):
    """The client is misconfigured (no API key, bad base URL)."""


class LLMAuthError(LLMClientError):
    """The service rejected the credentials (401/403). Never retried."""


class LLMRateLimitError(LLMClientError):
    """The service answered 429.

    ``retry_after`` is the Retry-After header in seconds, or None.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, status_code=429)


class LLMResponseError(LLMClientError):
    """The response body did not have the chat-completions shape."""
