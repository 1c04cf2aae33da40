"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off provider subclasses as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import json
from typing import Any

import httpx

from middleseek.errors import APIError
from middleseek.providers.models import CompletionRequest, ProviderResponse
from tests.conftest import FakeProvider


@dataclass
class ScriptedProvider(FakeProvider):
    """FakeProvider that returns a scripted sequence of results/exceptions."""

    script: list[str | ProviderResponse | BaseException] = field(default_factory=list)

    async def complete(self, request: CompletionRequest) -> ProviderResponse:
        self.requests.append(request)
        if not self.script:
            return ProviderResponse(text="ok")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, ProviderResponse):
            return item
        return ProviderResponse(text=item)


@dataclass
class GateProvider(FakeProvider):
    """FakeProvider that blocks until released, for in-flight tests."""

    started: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event = field(default_factory=asyncio.Event)
    outcome: str | APIError = "gated reply"

    async def complete(self, request: CompletionRequest) -> ProviderResponse:
        self.requests.append(request)
        self.started.set()
        await self.release.wait()
        if isinstance(self.outcome, APIError):
            raise self.outcome
        return ProviderResponse(text=self.outcome)


@dataclass
class RecordingTransport:
    """httpx MockTransport wrapper that counts requests and keeps JSON bodies."""

    status_code: int = 200
    payload: Any = None
    raise_exc: Exception | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def bodies(self) -> list[Any]:
        return [json.loads(r.content) for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc
        return httpx.Response(self.status_code, json=self.payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def chat_completion(content: Any = "Hello from the model") -> dict[str, Any]:
    """Minimal chat-completions response body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "m",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 5, "completion_tokens": 7, "total_tokens": 12},
    }


def anthropic_message(*blocks: dict[str, Any]) -> dict[str, Any]:
    """Minimal Messages API response body."""
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "model": "claude-test",
        "content": list(blocks),
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 3, "output_tokens": 4},
    }
