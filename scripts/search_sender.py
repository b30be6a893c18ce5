"""Search the connected inbox for one sender from the command line.

Calls a running mailroom API with a user access token and prints the matching
emails, newest first::

    python -m scripts.search_sender alerts@example.com \
        --base-url http://localhost:8000 --token "$MAILROOM_ACCESS_TOKEN"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict

import httpx

from mailroom.clients.search_api import (
    SearchApiClient,
    SearchReauthorizationRequired,
    SearchRequestError,
)
from mailroom.utils.http import RetryConfig

EXIT_OK = 0
EXIT_USAGE_ERROR = 2
EXIT_REAUTHORIZE = 4
EXIT_RUNTIME_ERROR = 5


def _print_emails(payload: Dict[str, Any]) -> None:
    print(payload.get("message", ""))
    for email in payload.get("emails", []):
        hidden = " (hidden)" if email.get("isHidden") else ""
        print(f"\n[{email.get('date') or 'no date'}] {email.get('subject')}{hidden}")
        print(f"  from: {email.get('from')}")
        body = (email.get("body") or "").strip()
        if body:
            preview = body if len(body) <= 200 else body[:200] + "..."
            print(f"  {preview}")


def _attempt_count(value: str) -> int:
    attempts = int(value)
    if attempts < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return attempts


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search the connected inbox for a sender.")
    parser.add_argument("sender", help="Sender email address to search for.")
    parser.add_argument(
        "--base-url",
        default=os.environ.get("MAILROOM_API_URL", "http://localhost:8000"),
        help="Mailroom API root (default: $MAILROOM_API_URL or http://localhost:8000).",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get("MAILROOM_ACCESS_TOKEN"),
        help="User access token (default: $MAILROOM_ACCESS_TOKEN).",
    )
    parser.add_argument(
        "--attempts", type=_attempt_count, default=3, help="Maximum request attempts."
    )
    parser.add_argument("--json", action="store_true", help="Print the raw JSON response.")
    return parser


async def _run(args: argparse.Namespace) -> Dict[str, Any]:
    client = SearchApiClient(
        args.base_url,
        args.token,
        retry_config=RetryConfig(attempts=args.attempts),
    )
    return await client.search_emails(args.sender)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if not args.token:
        print("An access token is required (--token or MAILROOM_ACCESS_TOKEN).", file=sys.stderr)
        return EXIT_USAGE_ERROR

    try:
        payload = asyncio.run(_run(args))
    except SearchReauthorizationRequired as exc:
        print(f"{exc}\nAsk an admin to reconnect the Google account.", file=sys.stderr)
        return EXIT_REAUTHORIZE
    except (SearchRequestError, httpx.HTTPError) as exc:
        print(f"Search failed: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        _print_emails(payload)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
