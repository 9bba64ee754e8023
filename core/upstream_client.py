# core/upstream_client.py

"""
Client for the society REST backend.

List endpoints answer either a bare array or an object wrapping the array
(usually under "data"). normalize_envelope turns both into a list. Two
fan-out policies are offered and each data class uses exactly one:

  • fetch_all_or_nothing: financial collections; one failure fails the cycle
  • fetch_best_effort:    reference data (wing names); failures become []
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from core.config import settings
from core.errors import UpstreamFetchError
from core.logging_config import logger


# ============================================================
# Endpoint table (name → method, path)
# ============================================================
LIST_ENDPOINTS: Dict[str, Tuple[str, str]] = {
    "owners": ("POST", "/owners"),
    "wings": ("POST", "/wings"),
    "rentals": ("GET", "/rental"),
    "maintenance": ("GET", "/maintenance-details"),
    "expenses": ("GET", "/expenses"),
    "activity_payments": ("GET", "/activity-payments"),
    "activity_expenses": ("GET", "/activity-expenses"),
    "meetings": ("GET", "/meetings"),
    "parking": ("GET", "/parking/get"),
    "role_delegations": ("GET", "/role-delegations"),
}

NOTIFICATIONS_PATH = "/notifications/get"
UNREAD_COUNT_PATH = "/notifications/unread-count"
MARK_READ_PATH = "/notifications/mark-read"
MARK_ALL_READ_PATH = "/notifications/mark-all-read"
MONTHLY_REMINDERS_PATH = "/maintenance-details/send-monthly-reminders"

RETRY_ON_STATUS = (429, 500, 502, 503, 504)
RETRY_DELAYS = (0.5, 1.0, 2.0)

DEFAULT_HEADERS = {
    "ngrok-skip-browser-warning": "true",
    "Content-Type": "application/json",
}


# -----------------------------------------------------
# Envelope normalization
# -----------------------------------------------------
def normalize_envelope(payload: Any, collection: str = "collection") -> List[Any]:
    if isinstance(payload, list):
        return payload

    if isinstance(payload, str):
        if "<!DOCTYPE html>" in payload or "<html" in payload.lower():
            raise UpstreamFetchError(collection, "received HTML instead of JSON")
        raise UpstreamFetchError(collection, "unexpected text response")

    if isinstance(payload, dict):
        if isinstance(payload.get("data"), list):
            return payload["data"]
        for key, value in payload.items():
            if isinstance(value, list):
                logger.warning(f"{collection}: list found under '{key}' instead of 'data'")
                return value
        if not payload:
            return []
        raise UpstreamFetchError(collection, "response has no list payload")

    if payload is None:
        return []

    raise UpstreamFetchError(collection, f"unexpected payload type {type(payload).__name__}")


def _decode(response: httpx.Response, collection: str) -> Any:
    content_type = response.headers.get("content-type", "")
    if "json" not in content_type:
        return response.text
    try:
        return response.json()
    except ValueError:
        raise UpstreamFetchError(collection, "invalid JSON body", response.status_code)


# ============================================================
# Client
# ============================================================
class UpstreamClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.UPSTREAM_API_URL).rstrip("/")
        self.max_retries = settings.UPSTREAM_MAX_RETRIES if max_retries is None else max_retries
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=DEFAULT_HEADERS,
            timeout=timeout or settings.UPSTREAM_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    # -----------------------------------------------------
    # Low-level request with retry
    # -----------------------------------------------------
    async def request(self, method: str, path: str, collection: str, json: Any = None) -> Any:
        for attempt in range(self.max_retries + 1):
            try:
                response = await self._client.request(method, path, json=json)
            except httpx.RequestError as exc:
                if attempt < self.max_retries:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.warning(f"{collection}: {exc!r}, retrying in {delay}s ({attempt + 1}/{self.max_retries})")
                    await asyncio.sleep(delay)
                    continue
                raise UpstreamFetchError(collection, f"transport error: {exc!r}")

            if response.status_code in RETRY_ON_STATUS and attempt < self.max_retries:
                delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                logger.warning(f"{collection}: HTTP {response.status_code}, retrying in {delay}s ({attempt + 1}/{self.max_retries})")
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 400:
                raise UpstreamFetchError(collection, f"HTTP {response.status_code}", response.status_code)

            return _decode(response, collection)

        raise UpstreamFetchError(collection, "retries exhausted")

    # -----------------------------------------------------
    # Collections
    # -----------------------------------------------------
    async def fetch_collection(self, name: str) -> List[Dict[str, Any]]:
        if name not in LIST_ENDPOINTS:
            raise ValueError(f"Unknown collection: {name}")

        method, path = LIST_ENDPOINTS[name]
        payload = await self.request(method, path, name)
        return normalize_envelope(payload, name)

    async def fetch_all_or_nothing(self, names: Iterable[str]) -> Dict[str, List[Dict[str, Any]]]:
        """
        Fan out, then join. Any failure cancels the siblings and raises,
        so the caller never sees a partial set.
        """
        names = list(names)
        tasks = [asyncio.ensure_future(self.fetch_collection(name)) for name in names]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return dict(zip(names, results))

    async def fetch_best_effort(self, names: Iterable[str]) -> Dict[str, List[Dict[str, Any]]]:
        names = list(names)
        results = await asyncio.gather(
            *(self.fetch_collection(name) for name in names),
            return_exceptions=True,
        )

        collections = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.warning(f"Reference data '{name}' unavailable, using empty list: {result}")
                collections[name] = []
            else:
                collections[name] = result
        return collections

    # -----------------------------------------------------
    # Notifications
    # -----------------------------------------------------
    async def fetch_notifications(self, identity: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Any]:
        payload, count_payload = await asyncio.gather(
            self.request("POST", NOTIFICATIONS_PATH, "notifications", json=identity),
            self.request("POST", UNREAD_COUNT_PATH, "notifications_unread_count", json=identity),
        )
        unread = count_payload.get("unread_count") if isinstance(count_payload, dict) else None
        return normalize_envelope(payload, "notifications"), unread

    async def mark_notification_read(self, notification_id: int, user_id: Optional[str]) -> Any:
        return await self.request(
            "POST", MARK_READ_PATH, "notifications_mark_read",
            json={"notification_id": notification_id, "user_id": user_id},
        )

    async def mark_all_notifications_read(self, identity: Dict[str, Any]) -> Any:
        return await self.request("POST", MARK_ALL_READ_PATH, "notifications_mark_all_read", json=identity)

    # -----------------------------------------------------
    # Jobs / health
    # -----------------------------------------------------
    async def send_monthly_reminders(self) -> Any:
        return await self.request("POST", MONTHLY_REMINDERS_PATH, "monthly_reminders")

    async def ping(self) -> Dict[str, Any]:
        """
        Simple connectivity check against a few list endpoints.
        """
        results = {}
        for name in ("wings", "owners", "meetings"):
            try:
                rows = await self.fetch_collection(name)
                results[name] = {"status": "ok", "rows_found": len(rows)}
            except UpstreamFetchError as err:
                results[name] = {"status": "error", "detail": err.detail}

        status = "ok" if all(r["status"] == "ok" for r in results.values()) else "degraded"
        return {"service": "Upstream", "status": status, "base_url": self.base_url, "collections": results}


def identity_payload(ctx) -> Dict[str, Any]:
    """Viewer record as the notification endpoints expect it."""
    return {
        "user_id": ctx.user_id,
        "role_type": ctx.role_type,
        "wing_id": ctx.wing_id,
        "owner_id": ctx.owner_id,
    }
