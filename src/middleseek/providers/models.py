"""Domain models for the provider transport layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """A role/content pair in provider-neutral form."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class CompletionRequest:
    """A unified request payload for a single completion call."""

    model: str
    messages: tuple[ChatMessage, ...]
    temperature: float
    max_tokens: int


@dataclass
class ProviderResponse:
    """A standardized response from a provider completion call."""

    text: str = ""
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str | None = None
