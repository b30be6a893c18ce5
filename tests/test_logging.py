try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import logging

from mailroom.core.logging import RedactingFilter, redact


def test_redact_masks_bearer_tokens_and_oauth_parameters() -> None:
    line = "headers={'authorization': 'Bearer ya29.abc-DEF'} body=code=4/0Ab&refresh_token=1//xyz"

    cleaned = redact(line)

    assert "ya29.abc-DEF" not in cleaned
    assert "4/0Ab" not in cleaned
    assert "1//xyz" not in cleaned
    assert "Bearer [redacted]" in cleaned


def test_redact_leaves_plain_messages_alone() -> None:
    assert redact("Refreshed access token for configuration abc") == (
        "Refreshed access token for configuration abc"
    )


def test_filter_rewrites_formatted_record() -> None:
    record = logging.LogRecord(
        "mailroom", logging.INFO, __file__, 1, "sent %s", ("Bearer secret-token",), None
    )

    assert RedactingFilter().filter(record) is True
    assert record.getMessage() == "sent Bearer [redacted]"


def test_redact_keeps_fields_that_only_end_in_code() -> None:
    line = "Gmail call failed status_code=503 errorcode: 42 code=4/0Ab"

    assert redact(line) == "Gmail call failed status_code=503 errorcode: 42 code=[redacted]"
