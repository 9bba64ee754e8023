# tests/test_upstream_client.py

"""
Tests for the society backend client (httpx MockTransport, no network).
"""

import json

import httpx
import pytest

from core.errors import UpstreamFetchError
from core.upstream_client import UpstreamClient, normalize_envelope


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr("core.upstream_client.RETRY_DELAYS", (0, 0, 0))


def make_client(handler, max_retries=2):
    return UpstreamClient(
        base_url="http://upstream.test/api",
        max_retries=max_retries,
        transport=httpx.MockTransport(handler),
    )


# -----------------------------------------------------
# Envelope normalization
# -----------------------------------------------------
def test_bare_list_passes_through():
    assert normalize_envelope([{"a": 1}]) == [{"a": 1}]


def test_data_key_is_unwrapped():
    assert normalize_envelope({"success": True, "data": [1, 2]}) == [1, 2]


def test_first_list_key_is_used_when_data_missing():
    assert normalize_envelope({"success": True, "owners": [3]}) == [3]


def test_empty_object_and_none_are_empty_lists():
    assert normalize_envelope({}) == []
    assert normalize_envelope(None) == []


@pytest.mark.parametrize("payload", [
    "<!DOCTYPE html><html></html>",
    "plain text",
    {"success": False, "message": "nope"},
    42,
])
def test_unusable_payloads_raise(payload):
    with pytest.raises(UpstreamFetchError):
        normalize_envelope(payload, "owners")


# -----------------------------------------------------
# Requests
# -----------------------------------------------------
async def test_fetch_collection_uses_endpoint_table_and_headers():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["ngrok"] = request.headers.get("ngrok-skip-browser-warning")
        return httpx.Response(200, json={"data": [{"owner_id": 1}]})

    async with make_client(handler) as client:
        rows = await client.fetch_collection("owners")

    assert rows == [{"owner_id": 1}]
    assert seen == {"method": "POST", "path": "/api/owners", "ngrok": "true"}


async def test_unknown_collection_is_rejected():
    async with make_client(lambda request: httpx.Response(200, json=[])) as client:
        with pytest.raises(ValueError):
            await client.fetch_collection("unicorns")


async def test_retries_on_5xx_then_succeeds():
    attempts = []

    def handler(request):
        attempts.append(request.url.path)
        if len(attempts) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=[])

    async with make_client(handler) as client:
        assert await client.fetch_collection("meetings") == []
    assert len(attempts) == 3


async def test_client_error_is_not_retried():
    attempts = []

    def handler(request):
        attempts.append(1)
        return httpx.Response(404)

    async with make_client(handler) as client:
        with pytest.raises(UpstreamFetchError) as exc:
            await client.fetch_collection("meetings")

    assert exc.value.status_code == 404
    assert len(attempts) == 1


async def test_transport_error_raises_after_retries():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with make_client(handler, max_retries=1) as client:
        with pytest.raises(UpstreamFetchError):
            await client.fetch_collection("wings")


async def test_html_response_is_an_error():
    def handler(request):
        return httpx.Response(200, text="<!DOCTYPE html><html></html>", headers={"content-type": "text/html"})

    async with make_client(handler) as client:
        with pytest.raises(UpstreamFetchError):
            await client.fetch_collection("owners")


# -----------------------------------------------------
# Fan-out policies
# -----------------------------------------------------
def failing_expenses(request):
    if request.url.path.endswith("/expenses"):
        return httpx.Response(500)
    return httpx.Response(200, json={"data": [{"id": 1}]})


async def test_all_or_nothing_fails_the_whole_set():
    async with make_client(failing_expenses, max_retries=0) as client:
        with pytest.raises(UpstreamFetchError) as exc:
            await client.fetch_all_or_nothing(["owners", "expenses", "meetings"])

    assert exc.value.collection == "expenses"


async def test_best_effort_defaults_failures_to_empty():
    async with make_client(failing_expenses, max_retries=0) as client:
        result = await client.fetch_best_effort(["owners", "expenses"])

    assert result == {"owners": [{"id": 1}], "expenses": []}


# -----------------------------------------------------
# Notifications
# -----------------------------------------------------
async def test_fetch_notifications_returns_list_and_count():
    def handler(request):
        if request.url.path.endswith("/unread-count"):
            return httpx.Response(200, json={"success": True, "unread_count": 4})
        return httpx.Response(200, json={"success": True, "data": [{"notification_id": 1}]})

    async with make_client(handler) as client:
        items, unread = await client.fetch_notifications({"user_id": "u1"})

    assert items == [{"notification_id": 1}]
    assert unread == 4


async def test_mark_read_posts_id_and_user():
    bodies = []

    def handler(request):
        bodies.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"success": True})

    async with make_client(handler) as client:
        await client.mark_notification_read(5, "u1")

    assert bodies == [("/api/notifications/mark-read", {"notification_id": 5, "user_id": "u1"})]
