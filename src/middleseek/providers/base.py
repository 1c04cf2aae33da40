"""Provider protocol: minimal interface for completion backends."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from middleseek.providers.models import CompletionRequest, ProviderResponse


@runtime_checkable
class CompletionProvider(Protocol):
    """One capability: turn a request into generated text.

    Implementations send exactly one request per call and raise
    ``NetworkError`` or ``MalformedResponseError`` on failure.
    """

    name: str

    async def complete(self, request: CompletionRequest) -> ProviderResponse:
        """Generate a reply for the request."""
        ...

    async def aclose(self) -> None:
        """Release client resources."""
        ...
