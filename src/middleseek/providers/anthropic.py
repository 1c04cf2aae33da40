"""Anthropic Messages API provider."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from middleseek.errors import ConfigurationError, MalformedResponseError
from middleseek.providers._errors import wrap_provider_error
from middleseek.providers._utils import field_of
from middleseek.providers.models import ProviderResponse

if TYPE_CHECKING:
    import httpx

    from middleseek.providers.models import ChatMessage, CompletionRequest


class AnthropicProvider:
    """Anthropic Messages API provider."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        *,
        timeout_s: float,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize with an API key."""
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._http_client = http_client
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the async Anthropic client."""
        if self._client is None:
            try:
                from anthropic import AsyncAnthropic
            except ImportError as e:
                raise ConfigurationError(
                    "anthropic package not installed",
                    hint="pip install anthropic",
                ) from e
            self._client = AsyncAnthropic(
                api_key=self.api_key,
                timeout=self.timeout_s,
                max_retries=0,
                http_client=self._http_client,
            )
        return self._client

    async def complete(self, request: CompletionRequest) -> ProviderResponse:
        """Send one Messages API request and join the text blocks of the reply."""
        client = self._get_client()
        system, messages = _split_system(request.messages)

        create_kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if system:
            create_kwargs["system"] = system

        try:
            response = await client.messages.create(**create_kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            from anthropic import APIResponseValidationError

            if isinstance(e, APIResponseValidationError):
                raise MalformedResponseError(
                    f"Invalid response format from anthropic API: {e}",
                    status_code=getattr(e, "status_code", None),
                    provider=self.name,
                    phase="complete",
                ) from e
            raise wrap_provider_error(
                e, provider=self.name, message="anthropic API error"
            ) from e

        text_parts: list[str] = []
        content = field_of(response, "content")
        for block in content if isinstance(content, list) else []:
            if field_of(block, "type") == "text":
                text = field_of(block, "text")
                if isinstance(text, str):
                    text_parts.append(text)
        text = "".join(text_parts)
        if not text:
            raise MalformedResponseError(
                "Invalid response format from anthropic API: no text content blocks",
                provider=self.name,
                phase="complete",
            )

        usage_raw = field_of(response, "usage")
        usage: dict[str, int] = {}
        if usage_raw is not None:
            input_tokens = field_of(usage_raw, "input_tokens")
            output_tokens = field_of(usage_raw, "output_tokens")
            if isinstance(input_tokens, int) and isinstance(output_tokens, int):
                usage = {
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                    "total_tokens": input_tokens + output_tokens,
                }
        stop_reason = field_of(response, "stop_reason")
        return ProviderResponse(
            text=text,
            usage=usage,
            finish_reason=stop_reason if isinstance(stop_reason, str) else None,
        )

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def _split_system(
    chat: tuple[ChatMessage, ...],
) -> tuple[str, list[dict[str, Any]]]:
    """Pull system entries into the ``system`` parameter.

    The remaining turns are passed through ``_append_message`` because the
    Messages API requires strict user/assistant alternation.
    """
    system_parts = [m.content for m in chat if m.role == "system" and m.content]
    messages: list[dict[str, Any]] = []
    for m in chat:
        if m.role == "system":
            continue
        _append_message(messages, {"role": m.role, "content": m.content})
    return "\n\n".join(system_parts), messages


def _append_message(messages: list[dict[str, Any]], msg: dict[str, Any]) -> None:
    """Append *msg*, merging into the previous message when roles match.

    Consecutive user turns happen when an earlier submit failed and the user
    sent again; they are merged into one message of text blocks.
    """
    if messages and messages[-1]["role"] == msg["role"]:
        prev = messages[-1]
        prev_content = prev["content"]
        new_content = msg["content"]
        if isinstance(prev_content, str):
            prev_content = [{"type": "text", "text": prev_content}]
        if isinstance(new_content, str):
            new_content = [{"type": "text", "text": new_content}]
        prev["content"] = prev_content + new_content
    else:
        messages.append(msg)
