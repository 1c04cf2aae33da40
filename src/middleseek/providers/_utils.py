"""Shared utilities for provider implementations."""

from __future__ import annotations

from typing import Any


def field_of(obj: Any, name: str) -> Any:
    """Read *name* from an SDK model or a plain dict, tolerating absence.

    Provider responses are untrusted: SDKs build models without validation,
    so a missing field can surface as an absent attribute or a raw dict.
    """
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)
