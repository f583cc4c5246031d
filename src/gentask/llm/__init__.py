"""Completion service infrastructure for gentask.

Provides an OpenAI-compatible async HTTP client and the pluggable
completion service protocol.
"""

from gentask.llm.client import OpenAIClient
from gentask.llm.errors import (
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)
from gentask.llm.protocols import ChatRequest, CompletionService, Features

__all__ = [
    "OpenAIClient",
    "ChatRequest",
    "CompletionService",
    "Features",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMResponseError",
]
