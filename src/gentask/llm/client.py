"""OpenAI-compatible completion service over httpx.

OpenAIClient implements CompletionService against any endpoint that
speaks the ``/chat/completions`` protocol. Transient failures (429, 5xx,
connection errors) are retried with tenacity; credentials problems fail
at once.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

import httpx
import tenacity

from gentask.llm.errors import (
    LLMAuthError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)
from gentask.llm.protocols import ChatRequest, Features
from gentask.models.messages import CompletionResponse, CompletionResult, FunctionCall

if TYPE_CHECKING:
    from gentask.models.config import ModelConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

_TRANSIENT_STATUS = frozenset({429, 500, 502, 503, 504})
_TRANSIENT_TRANSPORT = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.RemoteProtocolError,
)


def _is_retryable(exc: BaseException) -> bool:
    """True for rate limits, 5xx responses and dropped connections."""
    if isinstance(exc, LLMRateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _TRANSIENT_STATUS
    return isinstance(exc, _TRANSIENT_TRANSPORT)


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    try:
        return float(raw) if raw is not None else None
    except ValueError:
        return None


def _check_status(response: httpx.Response) -> None:
    """Map error responses onto the client error hierarchy."""
    status = response.status_code
    if status in (401, 403):
        raise LLMAuthError(
            f"Authentication failed: HTTP {status} - {response.text}",
            status_code=status,
        )
    if status == 429:
        raise LLMRateLimitError(
            f"Rate limited: HTTP 429 - {response.text}",
            retry_after=_retry_after(response),
        )
    response.raise_for_status()


class OpenAIClient:
    """CompletionService for OpenAI-compatible chat-completions endpoints.

    Usage::

        async with OpenAIClient(api_key="sk-...") as client:
            task = Generate(client, "question -> answer")
            out = await task.forward({"question": "Why is the sky blue?"})

    Models without native function calling (``native_functions=False``)
    get no ``tools`` in the payload; the task simulates calls through
    output fields instead.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        default_model: str = "gpt-4o-mini",
        timeout: float = 120.0,
        max_retries: int = 3,
        native_functions: bool = True,
    ) -> None:
        """Create a client; configuration falls back to the environment.

        Args:
            api_key: Bearer token; defaults to ``GENTASK_OPENAI_API_KEY``.
            base_url: Endpoint root; defaults to ``GENTASK_OPENAI_BASE_URL``,
                then DEFAULT_BASE_URL.
            default_model: Model used when the request config names none.
            timeout: Per-request timeout in seconds.
            max_retries: Attempts per chat() call, first one included.
            native_functions: Whether the model supports tool calls.

        Raises:
            LLMConfigError: No API key given or in the environment.
        """
        self._api_key = api_key or os.environ.get("GENTASK_OPENAI_API_KEY", "")
        if not self._api_key:
            raise LLMConfigError(
                "No API key provided. Pass api_key= or set the "
                "GENTASK_OPENAI_API_KEY environment variable."
            )
        self._base_url = (
            base_url or os.environ.get("GENTASK_OPENAI_BASE_URL") or DEFAULT_BASE_URL
        ).rstrip("/")
        self._default_model = default_model
        self._max_retries = max_retries
        self._features = Features(functions=native_functions)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
        )

    def features(self) -> Features:
        return self._features

    async def chat(
        self,
        request: ChatRequest,
        *,
        session_id: str | None = None,
        trace_id: str | None = None,
    ) -> CompletionResponse:
        """POST the request, retrying transient failures.

        Raises:
            LLMAuthError: 401/403, on the first attempt.
            LLMRateLimitError: Still rate limited after the last attempt.
            LLMResponseError: The body has no ``choices``.
            httpx.HTTPStatusError: Any other error status.
        """
        retryer = tenacity.AsyncRetrying(
            retry=tenacity.retry_if_exception(_is_retryable),
            wait=tenacity.wait_exponential(min=1, max=30) + tenacity.wait_random(0, 2),
            stop=tenacity.stop_after_attempt(self._max_retries),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retryer(self._post, request, session_id, trace_id)

    async def _post(
        self,
        request: ChatRequest,
        session_id: str | None,
        trace_id: str | None,
    ) -> CompletionResponse:
        headers = {
            name: value
            for name, value in (("X-Session-Id", session_id), ("X-Trace-Id", trace_id))
            if value
        }
        response = await self._client.post(
            f"{self._base_url}/chat/completions",
            json=self.build_payload(request),
            headers=headers,
        )
        _check_status(response)

        data = response.json()
        if "choices" not in data:
            raise LLMResponseError(f"Response has no 'choices' key: {data}")
        return self.parse_response(data)

    def build_payload(self, request: ChatRequest) -> dict[str, Any]:
        """Translate a ChatRequest into a chat-completions JSON payload."""
        config: ModelConfig | None = request.model_config
        payload: dict[str, Any] = {
            "model": (config.model if config and config.model else self._default_model),
            "messages": [
                m.to_openai(native_functions=self._features.functions)
                for m in request.messages
            ],
        }
        if request.functions and self._features.functions:
            payload["tools"] = [f.to_openai() for f in request.functions]
            if request.function_call is not None:
                payload["tool_choice"] = _tool_choice(request.function_call)

        if config is not None:
            params = config.to_dict()
            params.pop("model", None)
            stop = params.pop("stop_sequences", None)
            if stop:
                payload["stop"] = stop
            response_format = params.pop("response_format", None)
            if response_format:
                payload["response_format"] = {"type": response_format}
            payload.update(params)

        payload.update(request.extra)
        return payload

    @staticmethod
    def parse_response(data: dict) -> CompletionResponse:
        """Map a chat-completions response dict to a CompletionResponse.

        Raises:
            LLMResponseError: If a choice is missing its message.
        """
        results: list[CompletionResult] = []
        for choice in data.get("choices") or []:
            try:
                message = choice["message"]
            except (KeyError, TypeError) as exc:
                raise LLMResponseError(
                    f"Cannot extract message from choice: {exc}. Choice: {choice}"
                ) from exc
            calls = [
                FunctionCall(
                    id=tc.get("id"),
                    name=tc.get("function", {}).get("name", ""),
                    arguments=tc.get("function", {}).get("arguments"),
                )
                for tc in message.get("tool_calls") or []
            ]
            results.append(CompletionResult(
                id=data.get("id"),
                content=message.get("content"),
                finish_reason=choice.get("finish_reason"),
                function_calls=calls or None,
            ))
        return CompletionResponse(
            results=results,
            usage=data.get("usage"),
            model=data.get("model"),
        )

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    async def __aenter__(self) -> OpenAIClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


def _tool_choice(function_call: str | dict) -> str | dict:
    if isinstance(function_call, dict):
        return function_call
    if function_call in ("auto", "none", "required"):
        return function_call
    return {"type": "function", "function": {"name": function_call}}
