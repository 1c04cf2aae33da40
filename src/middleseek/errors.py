"""Exception hierarchy for middleseek."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class MiddleseekError(Exception):
    """Base exception for all middleseek errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(MiddleseekError):
    """Configuration validation or provider selection failed."""


class PreambleError(MiddleseekError):
    """Loading the base preamble failed."""


class APIError(MiddleseekError):
    """A provider call failed.

    Providers attach the status code and call phase so callers can classify
    the failure without substring matching.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.provider = provider
        self.phase = phase


class NetworkError(APIError):
    """Transport failure or non-2xx HTTP status."""


class MalformedResponseError(APIError):
    """The provider answered 2xx but the body has no usable generated text."""


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
