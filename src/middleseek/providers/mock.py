"""Mock provider for offline use and testing."""

from __future__ import annotations

from middleseek.providers.models import CompletionRequest, ProviderResponse


class MockProvider:
    """Echo the latest user message without any network access."""

    name = "mock"

    async def complete(self, request: CompletionRequest) -> ProviderResponse:
        """Return a deterministic echo of the last user turn."""
        text = next(
            (m.content for m in reversed(request.messages) if m.role == "user"), ""
        )
        return ProviderResponse(
            text=f"echo: {text[:100]}",
            usage={"input_tokens": 10, "total_tokens": 20},
        )

    async def aclose(self) -> None:
        return None
