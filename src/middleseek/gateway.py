"""Completion gateway: one transcript in, one reply (or a typed failure) out.

The gateway owns backend selection. The backend is chosen once from the
configuration and reused for every call until the configuration changes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
from typing import TYPE_CHECKING, Any

from middleseek.errors import (
    APIError,
    ConfigurationError,
    MalformedResponseError,
    NetworkError,
)
from middleseek.providers.models import ChatMessage, CompletionRequest

if TYPE_CHECKING:
    from collections.abc import Iterable

    import httpx

    from middleseek.config import LLMConfig
    from middleseek.messages import Message
    from middleseek.providers.base import CompletionProvider

logger = logging.getLogger(__name__)


class FailureKind(Enum):
    """Why a completion produced no text."""

    NETWORK = "network_error"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass(frozen=True)
class Failure:
    """Typed, terminal outcome of an unsuccessful completion."""

    kind: FailureKind
    detail: str
    error: APIError | None = None


def build_messages(
    transcript: Iterable[Message], preamble: str
) -> tuple[ChatMessage, ...]:
    """Map a transcript to provider chat turns, preceded by the system preamble."""
    turns = [ChatMessage(role="system", content=preamble)]
    for message in transcript:
        role = "user" if message.sender == "user" else "assistant"
        turns.append(ChatMessage(role=role, content=message.text))
    return tuple(turns)


def create_provider(
    config: LLMConfig, *, http_client: httpx.AsyncClient | None = None
) -> CompletionProvider:
    """Select the backend for *config*.

    Raises:
        ConfigurationError: For an unsupported provider or missing endpoint
            details. Raised before any network activity.
    """
    if config.use_mock:
        from middleseek.providers.mock import MockProvider

        return MockProvider()

    if not config.api_key:
        raise ConfigurationError(
            f"api_key required for {config.provider}",
            hint="Pass LLMConfig(api_key=...) or set the provider's *_API_KEY variable.",
        )

    if config.provider == "anthropic":
        from middleseek.providers.anthropic import AnthropicProvider

        return AnthropicProvider(
            config.api_key, timeout_s=config.timeout_s, http_client=http_client
        )

    from middleseek.providers import openai_compat

    base_url: str | None
    headers: dict[str, str] | None = None
    extra: dict[str, Any] | None = None
    if config.provider == "openrouter":
        base_url = openai_compat.OPENROUTER_BASE_URL
        headers = openai_compat.OPENROUTER_HEADERS
    elif config.provider == "deepseek":
        base_url = openai_compat.DEEPSEEK_BASE_URL
        extra = {"stream": False}
    elif config.provider == "openai":
        base_url = openai_compat.OPENAI_BASE_URL
    elif config.provider == "custom":
        base_url = config.base_url
        if not base_url:
            raise ConfigurationError(
                "Base URL is required for custom provider",
                hint="Pass LLMConfig(provider='custom', base_url='https://...').",
            )
    else:
        raise ConfigurationError(f"Unsupported LLM provider: {config.provider!r}")

    return openai_compat.OpenAICompatibleProvider(
        config.api_key,
        name=config.provider,
        base_url=base_url,
        timeout_s=config.timeout_s,
        default_headers=headers,
        extra_params=extra,
        http_client=http_client,
    )


class CompletionGateway:
    """Wrap one completion backend behind ``complete(transcript, preamble)``."""

    def __init__(
        self,
        config: LLMConfig,
        *,
        provider: CompletionProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Bind *config* and select its backend.

        Args:
            config: Provider, model and sampling settings.
            provider: Explicit backend, bypassing selection (tests, custom
                integrations).
            http_client: Optional ``httpx.AsyncClient`` handed to the SDK.
        """
        self._config = config
        self._http_client = http_client
        self._provider = (
            provider
            if provider is not None
            else create_provider(config, http_client=http_client)
        )
        logger.info(
            "Completion gateway ready: provider=%s model=%s",
            getattr(self._provider, "name", config.provider),
            config.model,
        )

    @property
    def config(self) -> LLMConfig:
        return self._config

    @property
    def provider(self) -> CompletionProvider:
        return self._provider

    async def update_config(self, **changes: Any) -> LLMConfig:
        """Merge *changes* into the config and re-select the backend.

        The previous backend is closed only after the new one was built, so a
        rejected change leaves the gateway untouched.
        """
        config = self._config.merge(**changes)
        provider = create_provider(config, http_client=self._http_client)
        previous = self._provider
        self._config, self._provider = config, provider
        await _close_quietly(previous)
        return config

    async def complete(
        self, transcript: Iterable[Message], preamble: str
    ) -> str | Failure:
        """Request one reply for *transcript*.

        Returns:
            The generated text verbatim, or a ``Failure`` for transport errors
            and unusable responses. Exactly one request is sent; there is no
            retry.
        """
        request = CompletionRequest(
            model=self._config.model,
            messages=build_messages(transcript, preamble),
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
        )
        try:
            response = await asyncio.wait_for(
                self._provider.complete(request), timeout=self._config.timeout_s
            )
        except asyncio.TimeoutError:
            e = NetworkError(
                f"{self._config.provider} request timed out after {self._config.timeout_s}s",
                provider=self._config.provider,
                phase="complete",
            )
            logger.debug("Completion request failed: %s", e)
            return Failure(FailureKind.NETWORK, str(e), e)
        except MalformedResponseError as e:
            logger.debug("Malformed completion response: %s", e)
            return Failure(FailureKind.MALFORMED_RESPONSE, str(e), e)
        except APIError as e:
            logger.debug("Completion request failed: %s", e)
            return Failure(FailureKind.NETWORK, str(e), e)
        return response.text

    async def aclose(self) -> None:
        await _close_quietly(self._provider)


async def _close_quietly(provider: CompletionProvider) -> None:
    aclose = getattr(provider, "aclose", None)
    if not callable(aclose):
        return
    try:
        await aclose()
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        # Cleanup should never mask the primary failure.
        logger.warning("Provider cleanup failed: %s", exc)
