"""Conversation store: the transcript, the busy gate and delivery receipts.

The store is the only writer of the transcript. Rendering code reads it via
``snapshot()`` (a tuple of frozen messages) and drives it through
``submit``, ``react`` and ``clear``.

Concurrency model: one asyncio loop, at most one ``submit`` in flight. A
``submit`` issued while another is pending is dropped, not queued.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from middleseek.errors import PreambleError
from middleseek.gateway import Failure
from middleseek.messages import REACTION_KINDS, Message, ReactionPolicy
from middleseek.preamble import fetch_preamble

if TYPE_CHECKING:
    from types import TracebackType

    import httpx

    from middleseek.gateway import CompletionGateway
    from middleseek.messages import DeliveryStatus

logger = logging.getLogger(__name__)

DELIVERED_DELAY_S = 0.5
READ_DELAY_S = 1.0


class ConversationStore:
    """Owns one conversation transcript and its single-request gate."""

    def __init__(
        self,
        gateway: CompletionGateway,
        *,
        base_prompt: str = "",
        reaction_policy: ReactionPolicy = ReactionPolicy.BOT_ONLY,
        delivered_delay_s: float = DELIVERED_DELAY_S,
        read_delay_s: float = READ_DELAY_S,
    ) -> None:
        """Create an empty conversation.

        Args:
            gateway: Completion gateway used by ``submit``.
            base_prompt: Initial system preamble; may be loaded later instead.
            reaction_policy: Whether user messages accept reactions.
            delivered_delay_s: Delay before a sent message shows as delivered.
            read_delay_s: Delay (from send) before it shows as read. Both
                delays at zero apply the receipts immediately.
        """
        if delivered_delay_s < 0 or read_delay_s < delivered_delay_s:
            raise ValueError("receipt delays must satisfy 0 <= delivered <= read")
        self._gateway = gateway
        self._base_prompt = base_prompt
        self._preamble_requested = bool(base_prompt)
        self._reaction_policy = reaction_policy
        self._delivered_delay_s = delivered_delay_s
        self._read_delay_s = read_delay_s
        self._messages: list[Message] = []
        self._positions: dict[str, int] = {}
        self._busy = False
        self._receipts: set[asyncio.Task[None]] = set()
        self._preamble_task: asyncio.Task[bool] | None = None

    # --- read side -------------------------------------------------------

    @property
    def busy(self) -> bool:
        """True while a submit is waiting on the gateway."""
        return self._busy

    @property
    def base_prompt(self) -> str:
        return self._base_prompt

    @property
    def reaction_policy(self) -> ReactionPolicy:
        return self._reaction_policy

    @property
    def gateway(self) -> CompletionGateway:
        return self._gateway

    def snapshot(self) -> tuple[Message, ...]:
        """Return the transcript as an immutable tuple."""
        return tuple(self._messages)

    def get(self, message_id: str) -> Message | None:
        pos = self._positions.get(message_id)
        return None if pos is None else self._messages[pos]

    def __len__(self) -> int:
        return len(self._messages)

    # --- write side ------------------------------------------------------

    async def submit(self, text: str) -> Message | None:
        """Send *text* and record the reply.

        Returns:
            The bot message on success. ``None`` when the call was dropped
            because another submit is in flight, or when the completion
            failed (the user message then carries ``status="error"``).

        Raises:
            ValueError: If *text* is empty or whitespace-only.
        """
        if self._busy:
            logger.debug("Dropping submit while a request is in flight")
            return None
        if not isinstance(text, str) or not text.strip():
            raise ValueError("message text must be a non-empty string")

        self._busy = True
        try:
            user = self._append(Message.user(text))
            try:
                result = await self._gateway.complete(
                    self.snapshot(), self._base_prompt
                )
            except BaseException:
                self._set_status(user.id, "error")
                raise

            if isinstance(result, Failure):
                logger.warning(
                    "Message %s failed (%s): %s", user.id, result.kind.value, result.detail
                )
                self._set_status(user.id, "error")
                return None

            if self._set_status(user.id, "sent") is None:
                # Transcript was cleared while the request was in flight.
                logger.debug("Discarding reply to cleared message %s", user.id)
                return None
            bot = self._append(Message.bot(result))
            self._schedule_receipts(user.id)
            return bot
        finally:
            self._busy = False

    def react(self, message_id: str, kind: str) -> None:
        """Add one *kind* reaction to a message; unknown targets are ignored."""
        if kind not in REACTION_KINDS:
            logger.debug("Ignoring unknown reaction kind %r", kind)
            return
        pos = self._positions.get(message_id)
        if pos is None:
            return
        message = self._messages[pos]
        if self._reaction_policy is ReactionPolicy.BOT_ONLY and not message.is_bot:
            return
        self._messages[pos] = message.with_reaction(kind)

    def clear(self) -> None:
        """Drop every message and any pending receipts. ``busy`` is untouched."""
        self._cancel_receipts()
        self._messages.clear()
        self._positions.clear()

    async def load_base_prompt(
        self,
        repo: str,
        path: str,
        *,
        branch: str = "main",
        client: httpx.AsyncClient | None = None,
    ) -> bool:
        """Fetch the preamble once; failures are logged and leave it empty.

        Returns:
            True when a preamble is available after the call.
        """
        if self._preamble_requested:
            return bool(self._base_prompt)
        self._preamble_requested = True
        try:
            self._base_prompt = await fetch_preamble(
                repo, path, branch=branch, client=client
            )
        except PreambleError as e:
            logger.warning("Error loading base prompt: %s", e)
            return False
        return True

    def start_base_prompt_load(
        self,
        repo: str,
        path: str,
        *,
        branch: str = "main",
        client: httpx.AsyncClient | None = None,
    ) -> asyncio.Task[bool]:
        """Run ``load_base_prompt`` in the background.

        Submits issued before the fetch resolves use the current (possibly
        empty) preamble. ``aclose`` cancels a load that is still pending.
        """
        if self._preamble_task is None:
            self._preamble_task = asyncio.create_task(
                self.load_base_prompt(repo, path, branch=branch, client=client)
            )
        return self._preamble_task

    async def wait_base_prompt(self) -> bool:
        """Wait for a background preamble load, if one was started."""
        if self._preamble_task is None:
            return bool(self._base_prompt)
        return await asyncio.shield(self._preamble_task)

    async def wait_settled(self) -> None:
        """Wait until all scheduled delivery receipts have been applied."""
        while self._receipts:
            await asyncio.gather(*list(self._receipts), return_exceptions=True)

    async def aclose(self) -> None:
        self._cancel_receipts()
        task = self._preamble_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self._gateway.aclose()

    async def __aenter__(self) -> ConversationStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # --- internals -------------------------------------------------------

    def _append(self, message: Message) -> Message:
        self._positions[message.id] = len(self._messages)
        self._messages.append(message)
        logger.debug("Appended %s message %s", message.sender, message.id)
        return message

    def _set_status(self, message_id: str, status: DeliveryStatus) -> Message | None:
        pos = self._positions.get(message_id)
        if pos is None:
            return None
        updated = self._messages[pos].with_status(status)
        self._messages[pos] = updated
        logger.debug("Message %s -> %s", message_id, status)
        return updated

    def _schedule_receipts(self, message_id: str) -> None:
        if self._read_delay_s == 0:
            self._set_status(message_id, "delivered")
            self._set_status(message_id, "read")
            return
        task = asyncio.create_task(self._advance_receipts(message_id))
        self._receipts.add(task)
        task.add_done_callback(self._receipts.discard)

    async def _advance_receipts(self, message_id: str) -> None:
        await asyncio.sleep(self._delivered_delay_s)
        self._set_status(message_id, "delivered")
        await asyncio.sleep(self._read_delay_s - self._delivered_delay_s)
        self._set_status(message_id, "read")

    def _cancel_receipts(self) -> None:
        for task in list(self._receipts):
            task.cancel()
        self._receipts.clear()
