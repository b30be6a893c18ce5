"""Verify that the mailroom environment configuration is usable and unchanged.

Two things are checked:

1. ``AppSettings`` must load from the given ``.env`` file, and the loaded values
   must make sense together (absolute redirect URI, positive refresh window,
   a Gmail page size Google accepts, a database path that is not a directory).
2. Optionally, a recorded SHA256 baseline of the ``.env`` file is compared so
   edits made outside the deploy process are noticed before a restart.

Example usages::

    # Validate and store the checksum baseline after a deploy.
    python -m scripts.check_env record --env-file /opt/mailroom/.env \
        --hash-file /opt/mailroom/.env.sha256

    # Later, from cron or a systemd timer.
    python -m scripts.check_env verify --env-file /opt/mailroom/.env \
        --hash-file /opt/mailroom/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable
from urllib.parse import urlparse

from pydantic import ValidationError

from mailroom.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5

GMAIL_MAX_PAGE_SIZE = 500


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    _load_env_file(str(env_file))
    return AppSettings(_env_file=str(env_file))  # type: ignore[call-arg]


def _consistency_problems(settings: AppSettings) -> list[str]:
    """Values that parse fine but would break the OAuth or search flows."""
    problems: list[str] = []

    redirect = urlparse(settings.oauth.redirect_uri)
    if redirect.scheme not in {"http", "https"} or not redirect.netloc:
        problems.append(
            f"GOOGLE_REDIRECT_URI must be an absolute http(s) URL, got {settings.oauth.redirect_uri!r}"
        )
    if not settings.oauth.scopes:
        problems.append("OAUTH_SCOPES must name at least one scope")
    if settings.oauth.refresh_window_seconds <= 0:
        problems.append("OAUTH_REFRESH_WINDOW_SECONDS must be positive")
    if not 1 <= settings.gmail.max_results <= GMAIL_MAX_PAGE_SIZE:
        problems.append(
            f"GMAIL_MAX_RESULTS must be between 1 and {GMAIL_MAX_PAGE_SIZE}"
        )

    if Path(settings.database_path).expanduser().is_dir():
        problems.append(f"MAILROOM_DB_PATH points at a directory: {settings.database_path}")

    return problems


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    """Compare the current checksum to the recorded baseline."""
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}\n"
        "Review the change before restarting the mailroom service.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _print_summary(settings: AppSettings) -> int:
    # Secrets are never echoed.
    print(f"environment:      {settings.environment}")
    print(f"database:         {settings.database_path}")
    print(f"redirect uri:     {settings.oauth.redirect_uri}")
    print(f"scopes:           {', '.join(settings.oauth.scopes)}")
    print(f"refresh window:   {settings.oauth.refresh_window_seconds}s")
    print(f"gmail page size:  {settings.gmail.max_results}")
    print("Settings OK.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate mailroom settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_env_file(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the working directory).",
        )

    def add_hash_file(subparser: argparse.ArgumentParser, help_text: str) -> None:
        subparser.add_argument("--hash-file", required=True, type=Path, help=help_text)

    record_parser = subparsers.add_parser(
        "record", help="Validate settings and store the checksum baseline."
    )
    add_env_file(record_parser)
    add_hash_file(record_parser, "Location to write the checksum baseline.")

    verify_parser = subparsers.add_parser(
        "verify", help="Validate settings and compare the checksum with the baseline."
    )
    add_env_file(verify_parser)
    add_hash_file(verify_parser, "Location of the previously recorded checksum baseline.")

    check_parser = subparsers.add_parser(
        "check", help="Validate settings and print a summary without secrets."
    )
    add_env_file(check_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error during validation: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    problems = _consistency_problems(settings)
    if problems:
        print("Settings are inconsistent:", file=sys.stderr)
        for problem in problems:
            print(f"  - {problem}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: _print_summary(settings),
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
