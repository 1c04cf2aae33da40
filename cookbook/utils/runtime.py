"""Command-line plumbing shared by cookbook recipes."""

from __future__ import annotations

import argparse
import sys

from middleseek import LLMConfig
from middleseek.config import DEFAULT_MODEL, DEFAULT_PROVIDER, SUPPORTED_PROVIDERS
from middleseek.errors import ConfigurationError


def add_runtime_args(parser: argparse.ArgumentParser) -> None:
    """Register the backend selection flags understood by ``config_from_args``."""
    backend = parser.add_argument_group("backend")
    backend.add_argument("--provider", choices=SUPPORTED_PROVIDERS, default=DEFAULT_PROVIDER)
    backend.add_argument("--model", default=DEFAULT_MODEL)
    backend.add_argument("--base-url", help="Endpoint for --provider custom.")
    backend.add_argument("--api-key", help="Overrides the provider's *_API_KEY variable.")
    backend.add_argument(
        "--mock", action="store_true", help="Echo replies locally; no key needed."
    )


def config_from_args(args: argparse.Namespace) -> LLMConfig:
    """Build the session config, or exit with status 2 and the error's hint."""
    try:
        return LLMConfig(
            provider=args.provider,
            model=args.model,
            api_key=args.api_key,
            base_url=args.base_url,
            use_mock=args.mock,
        )
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        if exc.hint:
            print(f"hint: {exc.hint}", file=sys.stderr)
        raise SystemExit(2) from exc
