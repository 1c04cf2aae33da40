"""middleseek: conversation core for an LLM chat client.

Public API:
    - open_session(): Build a gateway + conversation store for one session
    - ConversationStore: Transcript, busy gate, receipts and reactions
    - CompletionGateway: One transcript in, one reply or Failure out
    - LLMConfig: Configuration dataclass
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING, Any

from middleseek.cells import CellIdentification, CellIdentifier, cell_information
from middleseek.config import LLMConfig
from middleseek.conversation import ConversationStore
from middleseek.errors import (
    APIError,
    ConfigurationError,
    MalformedResponseError,
    MiddleseekError,
    NetworkError,
    PreambleError,
)
from middleseek.gateway import CompletionGateway, Failure, FailureKind
from middleseek.messages import Message, ReactionPolicy

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("middleseek")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("middleseek").addHandler(logging.NullHandler())


@asynccontextmanager
async def open_session(
    config: LLMConfig,
    *,
    preamble_repo: str | None = None,
    preamble_path: str | None = None,
    http_client: httpx.AsyncClient | None = None,
    **store_options: Any,
) -> AsyncIterator[ConversationStore]:
    """Open a conversation session and close its resources on exit.

    Args:
        config: Provider and model settings.
        preamble_repo: ``owner/name`` holding the system preamble document.
        preamble_path: Path of the preamble inside ``preamble_repo``.
            The fetch runs in the background; the session is usable at once.
        http_client: Optional client shared by the SDK backend.
        **store_options: Forwarded to ``ConversationStore``.

    Example:
        config = LLMConfig(provider="openrouter", model="openai/gpt-3.5-turbo")
        async with open_session(config) as chat:
            reply = await chat.submit("Hello!")
    """
    gateway = CompletionGateway(config, http_client=http_client)
    store = ConversationStore(gateway, **store_options)
    try:
        if preamble_repo and preamble_path:
            store.start_base_prompt_load(preamble_repo, preamble_path)
        yield store
    finally:
        await store.aclose()


__all__ = [
    "APIError",
    "CellIdentification",
    "CellIdentifier",
    "CompletionGateway",
    "ConfigurationError",
    "ConversationStore",
    "Failure",
    "FailureKind",
    "LLMConfig",
    "MalformedResponseError",
    "Message",
    "MiddleseekError",
    "NetworkError",
    "PreambleError",
    "ReactionPolicy",
    "cell_information",
    "open_session",
]
