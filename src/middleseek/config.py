"""Configuration: frozen LLMConfig with explicit provider validation."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
import os
from typing import Any, Literal, get_args

from dotenv import load_dotenv

from middleseek.errors import ConfigurationError

load_dotenv()

ProviderName = Literal["openrouter", "deepseek", "openai", "anthropic", "custom"]

SUPPORTED_PROVIDERS: tuple[str, ...] = get_args(ProviderName)

DEFAULT_PROVIDER: ProviderName = "openrouter"
DEFAULT_MODEL = "openai/gpt-3.5-turbo"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000
DEFAULT_TIMEOUT_S = 60.0

# Provider-specific API key environment variable names
_API_KEY_ENV_VARS: dict[str, str] = {
    "openrouter": "OPENROUTER_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "custom": "MIDDLESEEK_API_KEY",
}


@dataclass(frozen=True)
class LLMConfig:
    """Immutable configuration for the completion gateway.

    API keys are auto-resolved from the provider's standard environment
    variable when not passed explicitly.

    Example:
        config = LLMConfig(provider="deepseek", model="deepseek-chat")
        # API key is automatically resolved from DEEPSEEK_API_KEY
    """

    provider: ProviderName = DEFAULT_PROVIDER
    model: str = DEFAULT_MODEL
    #: Auto-resolved from the provider's ``*_API_KEY`` variable when *None*.
    api_key: str | None = None
    #: Required for ``provider="custom"``; ignored otherwise.
    base_url: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    #: Upper bound on a single provider call, in seconds.
    timeout_s: float = DEFAULT_TIMEOUT_S
    use_mock: bool = False
    #: True when ``api_key`` came from the environment rather than the caller.
    _key_from_env: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Auto-resolve API key and validate configuration."""
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported LLM provider: {self.provider!r}",
                hint=f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}",
            )

        if not isinstance(self.model, str) or not self.model.strip():
            raise ConfigurationError(
                "model must be a non-empty string",
                hint="Pass model='openai/gpt-3.5-turbo' or another provider model id.",
            )

        if self.provider == "custom" and not self.base_url:
            raise ConfigurationError(
                "Base URL is required for custom provider",
                hint="Pass base_url='https://your-endpoint/v1'.",
            )

        if (
            isinstance(self.max_tokens, bool)
            or not isinstance(self.max_tokens, int)
            or self.max_tokens <= 0
        ):
            raise ConfigurationError(
                f"max_tokens must be a positive integer, got {self.max_tokens!r}",
                hint="This caps the length of each generated reply.",
            )
        if (
            isinstance(self.temperature, bool)
            or not isinstance(self.temperature, (int, float))
            or not 0 <= self.temperature <= 2
        ):
            raise ConfigurationError(
                f"temperature must be a number in [0, 2], got {self.temperature!r}",
                hint="0.7 is a good default for conversational replies.",
            )
        if not isinstance(self.timeout_s, (int, float)) or self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s!r}",
                hint="This bounds how long one provider call may hold the conversation.",
            )

        # Auto-resolve API key from environment if not provided
        if self.api_key is None and not self.use_mock:
            resolved_key = os.environ.get(_API_KEY_ENV_VARS[self.provider])
            object.__setattr__(self, "api_key", resolved_key)
            object.__setattr__(self, "_key_from_env", resolved_key is not None)

        # Validate: real API calls need a key
        if not self.use_mock and not self.api_key:
            env_var = _API_KEY_ENV_VARS[self.provider]
            raise ConfigurationError(
                f"API key required for {self.provider}",
                hint=f"Set {env_var} environment variable or pass api_key=...",
            )

    def merge(self, **changes: Any) -> LLMConfig:
        """Return a copy with *changes* applied; unspecified fields are preserved.

        A key that was read from the old provider's environment variable is
        never copied as if it were explicit: unless ``api_key`` is passed, it
        is resolved again, so a provider switch reads the new provider's
        variable.
        """
        known = {f.name for f in fields(self) if f.init}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown config field(s): {', '.join(unknown)}",
                hint=f"Valid fields: {', '.join(sorted(known))}",
            )
        if self._key_from_env and "api_key" not in changes:
            changes["api_key"] = None
        return replace(self, **changes)

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"LLMConfig(provider={self.provider!r}, model={self.model!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"base_url={self.base_url!r}, use_mock={self.use_mock})"
        )

    __repr__ = __str__
