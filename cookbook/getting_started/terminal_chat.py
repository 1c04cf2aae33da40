#!/usr/bin/env python3
"""🎯 Recipe: Terminal Chat

When you need to: Chat with a model from the terminal while watching delivery
receipts and reactions update, using the same store a mobile UI would drive.

Ingredients:
- Nothing for mock mode; an API key (e.g. `OPENROUTER_API_KEY`) without `--mock`
- Optional: `--preamble-repo owner/name --preamble-path prompts/base.md`

What you'll learn:
- Open a session with `open_session()` and submit messages
- Read transcript snapshots and delivery status
- React to bot replies with `/react <kind>`

Difficulty: ⭐
Time: ~3 minutes

Run from the repository root:
    python -m cookbook.getting_started.terminal_chat --mock
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from cookbook.utils.runtime import add_runtime_args, config_from_args
from middleseek import ConversationStore, open_session
from middleseek.messages import REACTION_KINDS

_STATUS_MARKS = {
    "sending": "…",
    "sent": "✓",
    "delivered": "✓✓",
    "read": "✓✓ read",
    "error": "⚠ failed",
}


def render(chat: ConversationStore) -> None:
    for message in chat.snapshot()[-2:]:
        if message.sender == "user":
            mark = _STATUS_MARKS.get(message.status or "", "")
            print(f"  you: {message.text}  [{mark}]")
        else:
            counts = ", ".join(f"{k}={v}" for k, v in sorted(message.reactions.items()))
            suffix = f"  ({counts})" if counts else ""
            print(f"  bot: {message.text}{suffix}")


async def main_async(args: argparse.Namespace) -> None:
    config = config_from_args(args)
    backend = "mock" if config.use_mock else config.provider
    print(f"Chatting with {config.model} via {backend}")
    async with open_session(
        config,
        preamble_repo=args.preamble_repo,
        preamble_path=args.preamble_path,
    ) as chat:
        print("Type a message. Commands: /react <kind>, /clear, /quit")
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            text = line.strip()
            if not text:
                continue
            if text == "/quit":
                break
            if text == "/clear":
                chat.clear()
                print("  (cleared)")
                continue
            if text.startswith("/react"):
                kind = text.removeprefix("/react").strip()
                if kind not in REACTION_KINDS:
                    print(f"  kinds: {', '.join(sorted(REACTION_KINDS))}")
                    continue
                bots = [m for m in chat.snapshot() if m.sender == "bot"]
                if bots:
                    chat.react(bots[-1].id, kind)
                render(chat)
                continue
            await chat.submit(text)
            await chat.wait_settled()
            render(chat)


def main() -> None:
    parser = argparse.ArgumentParser(description="Terminal chat demo")
    add_runtime_args(parser)
    parser.add_argument("--preamble-repo", default=None, help="owner/name")
    parser.add_argument("--preamble-path", default=None, help="Path in the repo")
    args = parser.parse_args()
    asyncio.run(main_async(args))


if __name__ == "__main__":
    main()
