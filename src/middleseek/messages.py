"""Typed, immutable data structures for the conversation transcript."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal, get_args
import uuid

if TYPE_CHECKING:
    from collections.abc import Mapping

Sender = Literal["user", "bot"]
DeliveryStatus = Literal["sending", "sent", "delivered", "read", "error"]
ReactionKind = Literal["clarity", "support", "prevention", "liberation", "reversal"]

REACTION_KINDS: frozenset[str] = frozenset(get_args(ReactionKind))


class ReactionPolicy(Enum):
    """Which messages accept reactions."""

    BOT_ONLY = "bot_only"
    ANY = "any"


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _frozen_counts(counts: Mapping[str, int] | None = None) -> Mapping[str, int]:
    return MappingProxyType(dict(counts or {}))


@dataclass(frozen=True)
class Message:
    """A single transcript entry.

    Messages are values: status and reaction updates produce a new instance
    via :meth:`with_status` / :meth:`with_reaction`.
    """

    text: str
    sender: Sender
    status: DeliveryStatus | None = None
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)
    reactions: Mapping[str, int] = field(default_factory=_frozen_counts)

    def __post_init__(self) -> None:
        if self.sender not in ("user", "bot"):
            raise ValueError(f"sender must be 'user' or 'bot', got {self.sender!r}")
        if self.sender == "bot" and self.status is not None:
            raise ValueError("bot messages carry no delivery status")
        if not isinstance(self.reactions, MappingProxyType):
            object.__setattr__(self, "reactions", _frozen_counts(self.reactions))

    @classmethod
    def user(cls, text: str) -> Message:
        """Create a pending user message."""
        return cls(text=text, sender="user", status="sending")

    @classmethod
    def bot(cls, text: str) -> Message:
        """Create a bot reply."""
        return cls(text=text, sender="bot")

    @property
    def is_bot(self) -> bool:
        return self.sender == "bot"

    def with_status(self, status: DeliveryStatus) -> Message:
        return replace(self, status=status)

    def with_reaction(self, kind: str) -> Message:
        counts = dict(self.reactions)
        counts[kind] = counts.get(kind, 0) + 1
        return replace(self, reactions=_frozen_counts(counts))
