"""OpenAI-compatible chat-completions provider.

OpenRouter, DeepSeek, OpenAI and user-hosted endpoints all speak the same
``/chat/completions`` dialect, so one class covers them; each backend only
differs in base URL, extra headers and a few body fields.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from middleseek.errors import ConfigurationError, MalformedResponseError
from middleseek.providers._errors import wrap_provider_error
from middleseek.providers._utils import field_of
from middleseek.providers.models import ProviderResponse

if TYPE_CHECKING:
    import httpx

    from middleseek.providers.models import CompletionRequest

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"
OPENAI_BASE_URL = "https://api.openai.com/v1"

OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://middleseek.app",
    "X-Title": "MiddleSeek",
}


class OpenAICompatibleProvider:
    """Chat-completions provider backed by the ``openai`` SDK."""

    def __init__(
        self,
        api_key: str,
        *,
        name: str,
        base_url: str,
        timeout_s: float,
        default_headers: dict[str, str] | None = None,
        extra_params: dict[str, Any] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize with credentials and endpoint details."""
        self.api_key = api_key
        self.name = name
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.default_headers = dict(default_headers or {})
        self.extra_params = dict(extra_params or {})
        self._http_client = http_client
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise ConfigurationError(
                    "openai package not installed",
                    hint="pip install openai",
                ) from e
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout_s,
                # One request per call: retries are the caller's business.
                max_retries=0,
                default_headers=self.default_headers or None,
                http_client=self._http_client,
            )
        return self._client

    async def complete(self, request: CompletionRequest) -> ProviderResponse:
        """Send one chat-completions request and extract the reply text."""
        client = self._get_client()
        create_kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": [m.to_dict() for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            **self.extra_params,
        }

        try:
            response = await client.chat.completions.create(**create_kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            from openai import APIResponseValidationError

            if isinstance(e, APIResponseValidationError):
                raise MalformedResponseError(
                    f"Invalid response format from {self.name} API: {e}",
                    status_code=getattr(e, "status_code", None),
                    provider=self.name,
                    phase="complete",
                ) from e
            raise wrap_provider_error(
                e, provider=self.name, message=f"{self.name} API error"
            ) from e

        return ProviderResponse(
            text=_extract_text(response, provider=self.name),
            usage=_extract_usage(response),
            finish_reason=_extract_finish_reason(response),
        )

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def _first_choice(response: Any) -> Any:
    choices = field_of(response, "choices")
    if not isinstance(choices, list) or not choices:
        return None
    return choices[0]


def _extract_text(response: Any, *, provider: str) -> str:
    """Return ``choices[0].message.content`` or raise MalformedResponseError."""
    message = field_of(_first_choice(response), "message")
    content = field_of(message, "content")
    if not isinstance(content, str) or not content:
        raise MalformedResponseError(
            f"Invalid response format from {provider} API: "
            "missing choices[0].message.content",
            provider=provider,
            phase="complete",
        )
    return content


def _extract_usage(response: Any) -> dict[str, int]:
    usage_raw = field_of(response, "usage")
    usage: dict[str, int] = {}
    if usage_raw is None:
        return usage
    for src, dst in (
        ("prompt_tokens", "input_tokens"),
        ("completion_tokens", "output_tokens"),
        ("total_tokens", "total_tokens"),
    ):
        value = field_of(usage_raw, src)
        if isinstance(value, int):
            usage[dst] = value
    return usage


def _extract_finish_reason(response: Any) -> str | None:
    reason = field_of(_first_choice(response), "finish_reason")
    return reason if isinstance(reason, str) else None
