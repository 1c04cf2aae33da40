"""Conversation store: busy gate, receipts, reactions, clear and snapshots."""

from __future__ import annotations

import asyncio

import pytest

from middleseek.config import LLMConfig
from middleseek.conversation import ConversationStore
from middleseek.errors import NetworkError
from middleseek.gateway import CompletionGateway
from middleseek.messages import Message, ReactionPolicy
from tests.conftest import FakeProvider
from tests.helpers import (
    GateProvider,
    RecordingTransport,
    ScriptedProvider,
    chat_completion,
)

pytestmark = pytest.mark.unit

CONFIG = LLMConfig(provider="openrouter", model="m", api_key="k")


def _store(provider: FakeProvider, **kwargs) -> ConversationStore:
    kwargs.setdefault("delivered_delay_s", 0)
    kwargs.setdefault("read_delay_s", 0)
    return ConversationStore(CompletionGateway(CONFIG, provider=provider), **kwargs)


# =============================================================================
# submit
# =============================================================================


@pytest.mark.asyncio
async def test_successful_submit_appends_user_then_bot() -> None:
    store = _store(ScriptedProvider(script=["Hi there!"]))

    bot = await store.submit("hello")

    user_msg, bot_msg = store.snapshot()
    assert (user_msg.sender, user_msg.text, user_msg.status) == ("user", "hello", "read")
    assert (bot_msg.sender, bot_msg.text, bot_msg.status) == ("bot", "Hi there!", None)
    assert dict(bot_msg.reactions) == {}
    assert bot == bot_msg
    assert store.busy is False


@pytest.mark.asyncio
async def test_failed_submit_marks_user_message_error() -> None:
    store = _store(ScriptedProvider(script=[NetworkError("offline")]))

    result = await store.submit("x")

    assert result is None
    (only,) = store.snapshot()
    assert (only.sender, only.text, only.status) == ("user", "x", "error")
    assert store.busy is False


@pytest.mark.asyncio
async def test_gateway_sees_full_transcript_and_preamble() -> None:
    provider = ScriptedProvider(script=["a1", "a2"])
    store = _store(provider, base_prompt="SYS")

    await store.submit("q1")
    await store.submit("q2")

    contents = [(m.role, m.content) for m in provider.requests[1].messages]
    assert contents == [
        ("system", "SYS"),
        ("user", "q1"),
        ("assistant", "a1"),
        ("user", "q2"),
    ]


@pytest.mark.asyncio
async def test_failed_message_stays_in_later_transcripts() -> None:
    provider = ScriptedProvider(script=[NetworkError("offline"), "ok"])
    store = _store(provider)

    await store.submit("first")
    await store.submit("second")

    assert [m.text for m in store.snapshot()] == ["first", "second", "ok"]
    assert [m.status for m in store.snapshot()] == ["error", "read", None]
    assert [m.content for m in provider.requests[1].messages][1:] == ["first", "second"]


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n"])
async def test_submit_rejects_blank_text(text: str) -> None:
    provider = FakeProvider()
    store = _store(provider)

    with pytest.raises(ValueError, match="non-empty"):
        await store.submit(text)

    assert store.snapshot() == ()
    assert store.busy is False
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_concurrent_submits_while_busy_are_dropped() -> None:
    provider = GateProvider()
    store = _store(provider)

    first = asyncio.create_task(store.submit("one"))
    await provider.started.wait()
    assert store.busy is True

    dropped = await asyncio.gather(*(store.submit(f"extra {i}") for i in range(5)))
    assert dropped == [None] * 5
    assert [m.text for m in store.snapshot()] == ["one"]
    assert store.snapshot()[0].status == "sending"

    provider.release.set()
    reply = await first

    assert reply is not None
    assert reply.text == "gated reply"
    assert provider.calls == 1
    assert [m.text for m in store.snapshot()] == ["one", "gated reply"]
    assert store.busy is False


@pytest.mark.asyncio
async def test_busy_cleared_on_failure_allows_next_submit() -> None:
    provider = GateProvider(outcome=NetworkError("down"))
    store = _store(provider)

    task = asyncio.create_task(store.submit("one"))
    await provider.started.wait()
    provider.release.set()
    assert await task is None
    assert store.busy is False

    provider.outcome = "recovered"
    assert (await store.submit("two")) is not None


@pytest.mark.asyncio
async def test_cancelled_submit_clears_busy_and_marks_error() -> None:
    provider = GateProvider()
    store = _store(provider)

    task = asyncio.create_task(store.submit("one"))
    await provider.started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert store.busy is False
    assert store.snapshot()[0].status == "error"


@pytest.mark.asyncio
async def test_reply_to_cleared_message_is_discarded() -> None:
    provider = GateProvider()
    store = _store(provider)

    task = asyncio.create_task(store.submit("one"))
    await provider.started.wait()
    store.clear()
    assert store.busy is True

    provider.release.set()
    assert await task is None
    assert store.snapshot() == ()
    assert store.busy is False


# =============================================================================
# Delivery receipts
# =============================================================================


@pytest.mark.asyncio
async def test_receipts_advance_sent_delivered_read() -> None:
    store = _store(
        ScriptedProvider(script=["hi"]), delivered_delay_s=0.05, read_delay_s=0.2
    )

    await store.submit("hello")
    assert store.snapshot()[0].status == "sent"

    await asyncio.sleep(0.1)
    assert store.snapshot()[0].status == "delivered"

    await store.wait_settled()
    assert store.snapshot()[0].status == "read"


@pytest.mark.asyncio
async def test_clear_cancels_pending_receipts() -> None:
    store = _store(
        ScriptedProvider(script=["hi"]), delivered_delay_s=0.01, read_delay_s=0.02
    )
    await store.submit("hello")

    store.clear()
    await asyncio.sleep(0.05)

    assert store.snapshot() == ()
    await store.wait_settled()


def test_receipt_delays_must_be_ordered() -> None:
    with pytest.raises(ValueError, match="receipt delays"):
        _store(FakeProvider(), delivered_delay_s=1.0, read_delay_s=0.5)


# =============================================================================
# react
# =============================================================================


@pytest.mark.asyncio
async def test_react_twice_counts_two() -> None:
    store = _store(ScriptedProvider(script=["answer"]))
    bot = await store.submit("q")
    assert bot is not None

    store.react(bot.id, "support")
    store.react(bot.id, "support")
    store.react(bot.id, "clarity")

    reacted = store.get(bot.id)
    assert reacted is not None
    assert dict(reacted.reactions) == {"support": 2, "clarity": 1}


@pytest.mark.asyncio
async def test_react_does_not_mutate_earlier_snapshots() -> None:
    store = _store(ScriptedProvider(script=["answer"]))
    bot = await store.submit("q")
    assert bot is not None
    before = store.snapshot()

    store.react(bot.id, "reversal")

    assert dict(before[1].reactions) == {}
    assert store.snapshot()[1].reactions["reversal"] == 1


def test_react_unknown_id_is_noop() -> None:
    store = _store(FakeProvider())
    store.react("missing", "support")
    assert store.snapshot() == ()


@pytest.mark.asyncio
async def test_react_unknown_kind_is_noop() -> None:
    store = _store(ScriptedProvider(script=["answer"]))
    bot = await store.submit("q")
    assert bot is not None

    store.react(bot.id, "thumbsUp")

    assert dict(store.snapshot()[1].reactions) == {}


@pytest.mark.asyncio
async def test_bot_only_policy_ignores_user_messages() -> None:
    store = _store(ScriptedProvider(script=["answer"]))
    await store.submit("q")
    user_msg = store.snapshot()[0]

    store.react(user_msg.id, "support")

    assert dict(store.snapshot()[0].reactions) == {}
    assert store.reaction_policy is ReactionPolicy.BOT_ONLY


@pytest.mark.asyncio
async def test_any_policy_allows_user_messages() -> None:
    store = _store(ScriptedProvider(script=["answer"]), reaction_policy=ReactionPolicy.ANY)
    await store.submit("q")
    user_msg, bot_msg = store.snapshot()

    store.react(user_msg.id, "support")
    store.react(bot_msg.id, "support")

    assert store.snapshot()[0].reactions["support"] == 1
    assert store.snapshot()[1].reactions["support"] == 1


# =============================================================================
# clear / snapshot
# =============================================================================


@pytest.mark.asyncio
async def test_clear_empties_transcript_regardless_of_history() -> None:
    store = _store(ScriptedProvider(script=["a", NetworkError("x"), "c"]))
    for text in ("1", "2", "3"):
        await store.submit(text)
    assert len(store) == 5

    store.clear()

    assert store.snapshot() == ()
    assert store.get("anything") is None


@pytest.mark.asyncio
async def test_ids_stay_unique_across_clear() -> None:
    store = _store(ScriptedProvider(script=["a", "b"]))
    await store.submit("1")
    first_ids = {m.id for m in store.snapshot()}
    store.clear()
    await store.submit("2")

    assert first_ids.isdisjoint({m.id for m in store.snapshot()})


@pytest.mark.asyncio
async def test_snapshot_is_an_immutable_copy() -> None:
    store = _store(ScriptedProvider(script=["a"]))
    await store.submit("1")

    snap = store.snapshot()
    assert isinstance(snap, tuple)
    assert all(isinstance(m, Message) for m in snap)

    await store.submit("2")
    assert len(snap) == 2
    assert len(store.snapshot()) == 4


# =============================================================================
# Request body scenario
# =============================================================================


@pytest.mark.asyncio
async def test_openrouter_body_for_first_message() -> None:
    transport = RecordingTransport(payload=chat_completion("hello!"))
    gateway = CompletionGateway(CONFIG, http_client=transport.client())
    store = ConversationStore(
        gateway, base_prompt="SYS", delivered_delay_s=0, read_delay_s=0
    )

    async with store:
        reply = await store.submit("hi")

    assert reply is not None
    assert reply.text == "hello!"
    assert transport.bodies == [
        {
            "model": "m",
            "messages": [
                {"role": "system", "content": "SYS"},
                {"role": "user", "content": "hi"},
            ],
            "temperature": 0.7,
            "max_tokens": 2000,
        }
    ]
