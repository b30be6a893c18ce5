from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

from mailroom.clients.search_api import (
    SearchApiClient,
    SearchReauthorizationRequired,
    SearchRequestError,
)
from mailroom.utils.http import RetryConfig
from scripts import search_sender

pytestmark = pytest.mark.anyio

REAUTHORIZE_BODY = {
    "error": "Failed to refresh access token. Please reauthorize with Google in the Admin panel.",
    "kind": "reauthorize_required",
}


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _client(
    responses: list[tuple[int, dict]], sleep: RecordingSleep
) -> tuple[SearchApiClient, list[httpx.Request]]:
    """Serve ``responses`` in order, repeating the last one."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        status_code, kwargs = responses[min(len(requests), len(responses)) - 1]
        return httpx.Response(status_code, **kwargs)

    client = SearchApiClient(
        "http://mailroom.test",
        "user-token",
        retry_config=RetryConfig(sleep=sleep),
        transport=httpx.MockTransport(handler),
    )
    return client, requests


async def test_success_on_first_attempt() -> None:
    sleep = RecordingSleep()
    payload = {"emails": [], "count": 0, "message": "No emails found from this sender"}
    client, requests = _client([(200, {"json": payload})], sleep)

    result = await client.search_emails("alerts@example.com")

    assert result == payload
    assert len(requests) == 1
    assert requests[0].url.path == "/api/search-emails"
    assert requests[0].headers["authorization"] == "Bearer user-token"
    assert sleep.delays == []


async def test_transient_failures_are_retried_with_backoff() -> None:
    sleep = RecordingSleep()
    client, requests = _client(
        [
            (502, {"json": {"error": "Failed to fetch emails", "kind": "upstream_error"}}),
            (500, {"text": "oops"}),
            (200, {"json": {"emails": [], "count": 0, "message": "ok"}}),
        ],
        sleep,
    )

    result = await client.search_emails("alerts@example.com")

    assert result["message"] == "ok"
    assert len(requests) == 3
    assert sleep.delays == [2.0, 4.0]


async def test_last_failure_is_raised_after_three_attempts() -> None:
    sleep = RecordingSleep()
    client, requests = _client(
        [(502, {"json": {"error": "Gateway down", "kind": "upstream_error"}})], sleep
    )

    with pytest.raises(SearchRequestError) as excinfo:
        await client.search_emails("alerts@example.com")

    assert len(requests) == 3
    assert str(excinfo.value) == "Gateway down"
    assert excinfo.value.status_code == 502
    assert sleep.delays == [2.0, 4.0]


async def test_reauthorization_is_not_retried() -> None:
    sleep = RecordingSleep()
    client, requests = _client([(401, {"json": REAUTHORIZE_BODY})], sleep)

    with pytest.raises(SearchReauthorizationRequired) as excinfo:
        await client.search_emails("alerts@example.com")

    assert excinfo.value.kind == "reauthorize_required"
    assert len(requests) == 1
    assert sleep.delays == []


async def test_embedded_error_mentioning_reauthorize_is_not_retried() -> None:
    sleep = RecordingSleep()
    client, requests = _client(
        [(200, {"json": {"error": "Access token expired. Please reauthorize."}})], sleep
    )

    with pytest.raises(SearchReauthorizationRequired):
        await client.search_emails("alerts@example.com")

    assert len(requests) == 1


async def test_network_errors_are_retried() -> None:
    sleep = RecordingSleep()
    attempts: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"emails": [], "count": 0, "message": "ok"})

    client = SearchApiClient(
        "http://mailroom.test",
        "user-token",
        retry_config=RetryConfig(sleep=sleep),
        transport=httpx.MockTransport(handler),
    )

    assert (await client.search_emails("alerts@example.com"))["message"] == "ok"
    assert len(attempts) == 2
    assert sleep.delays == [2.0]


def test_retry_config_needs_at_least_one_attempt() -> None:
    with pytest.raises(ValueError):
        RetryConfig(attempts=0)


def test_cli_rejects_zero_attempts(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        search_sender.main(["alerts@example.com", "--token", "t", "--attempts", "0"])

    assert excinfo.value.code == search_sender.EXIT_USAGE_ERROR
    assert "must be at least 1" in capsys.readouterr().err
