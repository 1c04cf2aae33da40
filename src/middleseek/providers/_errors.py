"""Shared provider-side error helpers.

Providers map SDK exceptions into ``NetworkError`` here so the gateway can
classify failures by type instead of by message text.
"""

from __future__ import annotations

import asyncio

from middleseek.config import _API_KEY_ENV_VARS
from middleseek.errors import APIError, NetworkError, _walk_exception_chain


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _auth_hint(provider: str, status_code: int | None) -> str | None:
    """Generate a hint for auth errors where naming the env var is useful."""
    if status_code in {401, 403}:
        env_var = _API_KEY_ENV_VARS.get(provider, "API key")
        return f"Check credentials/permissions (try setting {env_var} or LLMConfig.api_key)."
    return None


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str = "complete",
    message: str | None = None,
) -> APIError:
    """Map provider SDK exceptions into NetworkError with status metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, APIError):
        if exc.provider is None:
            exc.provider = provider
        if exc.phase is None:
            exc.phase = phase
        return exc

    status_code = extract_status_code(exc)
    msg = message or f"{provider} {phase} failed"
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = str(exc)
    return NetworkError(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        hint=_auth_hint(provider, status_code),
        status_code=status_code,
        provider=provider,
        phase=phase,
    )
