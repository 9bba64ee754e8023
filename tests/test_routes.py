# tests/test_routes.py

"""
HTTP-level tests with the upstream client mocked out.
"""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from core.errors import UpstreamFetchError
from services.live_views import LiveViewRegistry


# -----------------------------------------------------
# Dashboard
# -----------------------------------------------------
def test_owner_dashboard_stats(client: TestClient, owner_headers):
    response = client.get("/dashboard/stats", headers=owner_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["stats"]["total_owners"] == 1
    assert data["stats"]["total_maintenance_amount"] == 1000.0
    assert data["stats"]["total_maintenance_pending"] == 400.0
    assert data["stats"]["collection_rate_percent"] == 60.0
    assert data["wings"] == [{"wing_id": 2, "wing_name": "B"}]


def test_admin_dashboard_stats(client: TestClient, admin_headers):
    data = client.get("/dashboard/stats", headers=admin_headers).json()

    assert data["stats"]["total_maintenance_amount"] == 1500.0
    assert data["stats"]["collection_rate_percent"] == 73.3
    assert len(data["wings"]) == 2


def test_dashboard_is_unavailable_when_a_collection_fails(client: TestClient, admin_headers, mock_upstream):
    mock_upstream.fetch_all_or_nothing.side_effect = UpstreamFetchError("expenses", "HTTP 500", 500)

    response = client.get("/dashboard/stats", headers=admin_headers)

    assert response.status_code == 503
    assert response.json()["status"] == "stats_unavailable"
    assert response.json()["collection"] == "expenses"


def test_malformed_wing_reference_does_not_break_stats(client: TestClient, admin_headers, mock_upstream):
    mock_upstream.fetch_best_effort.side_effect = None
    mock_upstream.fetch_best_effort.return_value = {"wings": [{"wing_id": "abc", "wing_name": 5}, {"wing_id": "1", "wing_name": "A"}]}

    response = client.get("/dashboard/stats", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["wings"] == [{"wing_id": None, "wing_name": "5"}, {"wing_id": 1, "wing_name": "A"}]


def test_missing_role_header_is_rejected(client: TestClient):
    response = client.get("/dashboard/stats")
    assert response.status_code == 401


# -----------------------------------------------------
# Reports
# -----------------------------------------------------
def test_complete_report(client: TestClient, admin_headers):
    response = client.get("/reports/complete", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["grand_total_balance"] == 1279.5


def test_complete_report_rejects_reversed_range(client: TestClient, admin_headers):
    response = client.get(
        "/reports/complete",
        headers=admin_headers,
        params={"start_date": "2026-03-10", "end_date": "2026-03-01"},
    )
    assert response.status_code == 400


def test_parking_report_for_owner(client: TestClient, owner_headers):
    response = client.get("/reports/parking", headers=owner_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_vehicles"] == 2
    assert [p["parking_id"] for p in data["owner_parking"]["items"]] == [1]


# -----------------------------------------------------
# Notifications
# -----------------------------------------------------
def test_list_notifications(client: TestClient, owner_headers):
    data = client.get("/notifications", headers=owner_headers).json()

    assert [n["notification_id"] for n in data["notifications"]] == [1, 2, 3]
    assert data["unread_count"] == 2
    assert data["notifications"][0]["icon"] == "📢"


def test_mark_one_read(client: TestClient, owner_headers, mock_upstream):
    response = client.post("/notifications/1/read", headers=owner_headers)

    assert response.status_code == 200
    assert response.json() == {"changed": 1, "unread_count": 1}
    mock_upstream.mark_notification_read.assert_awaited_once_with(1, "owner-7")


def test_mark_read_of_already_read_item_is_noop(client: TestClient, owner_headers, mock_upstream):
    response = client.post("/notifications/3/read", headers=owner_headers)

    assert response.json() == {"changed": 0, "unread_count": 2}
    mock_upstream.mark_notification_read.assert_not_awaited()


def test_mark_read_failure_returns_conflict(client: TestClient, owner_headers, mock_upstream):
    mock_upstream.mark_notification_read.side_effect = UpstreamFetchError("notifications_mark_read", "HTTP 500", 500)

    response = client.post("/notifications/1/read", headers=owner_headers)

    assert response.status_code == 409
    assert response.json()["operation"] == "mark_read"


@pytest.mark.parametrize("notification_id,status", [("4", 404), ("abc", 400)])
def test_mark_read_rejects_invisible_or_invalid_ids(client: TestClient, owner_headers, notification_id, status):
    response = client.post(f"/notifications/{notification_id}/read", headers=owner_headers)
    assert response.status_code == status


def test_mark_all_read(client: TestClient, owner_headers):
    response = client.post("/notifications/read-all", headers=owner_headers)

    assert response.json() == {"changed": 2, "unread_count": 0}


# -----------------------------------------------------
# Live views
# -----------------------------------------------------
@pytest.fixture
def registry(client: TestClient, mock_upstream):
    scheduler = Mock()
    scheduler.timezone = None
    live_views = LiveViewRegistry(mock_upstream, scheduler)
    client.app.state.live_views = live_views
    return live_views


def test_mount_refresh_and_teardown_dashboard_view(client: TestClient, admin_headers, registry):
    mounted = client.post("/views/dashboard", headers=admin_headers)
    assert mounted.status_code == 201
    view_id = mounted.json()["view_id"]
    assert mounted.json()["snapshot"] is None

    refreshed = client.post(f"/views/{view_id}/refresh", headers=admin_headers).json()
    assert refreshed["stale"] is False
    assert refreshed["snapshot"]["stats"]["total_maintenance_amount"] == 1500.0

    assert client.delete(f"/views/{view_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/views/{view_id}", headers=admin_headers).status_code == 404


def test_failed_refresh_keeps_last_snapshot_and_flags_stale(client: TestClient, admin_headers, registry, mock_upstream):
    view_id = client.post("/views/dashboard", headers=admin_headers).json()["view_id"]
    client.post(f"/views/{view_id}/refresh", headers=admin_headers)

    mock_upstream.fetch_all_or_nothing.side_effect = UpstreamFetchError("owners", "HTTP 502", 502)
    data = client.post(f"/views/{view_id}/refresh", headers=admin_headers).json()

    assert data["stale"] is True
    assert data["last_error"] == "HTTP 502"
    assert data["snapshot"]["stats"]["total_owners"] == 3


def test_notification_view_tracks_feed(client: TestClient, owner_headers, registry):
    view_id = client.post("/views/notifications", headers=owner_headers).json()["view_id"]

    data = client.post(f"/views/{view_id}/refresh", headers=owner_headers).json()
    assert data["snapshot"]["unread_count"] == 2


def test_marks_in_notification_view_update_snapshot_at_once(client: TestClient, owner_headers, registry, mock_upstream):
    view_id = client.post("/views/notifications", headers=owner_headers).json()["view_id"]
    client.post(f"/views/{view_id}/refresh", headers=owner_headers)

    marked = client.post(f"/views/{view_id}/notifications/1/read", headers=owner_headers)

    assert marked.status_code == 200
    assert marked.json()["snapshot"]["unread_count"] == 1
    assert client.get(f"/views/{view_id}", headers=owner_headers).json()["snapshot"]["unread_count"] == 1
    mock_upstream.mark_notification_read.assert_awaited_once_with(1, "owner-7")


def test_rejected_mark_in_notification_view_restores_snapshot(client: TestClient, owner_headers, registry, mock_upstream):
    view_id = client.post("/views/notifications", headers=owner_headers).json()["view_id"]
    client.post(f"/views/{view_id}/refresh", headers=owner_headers)
    mock_upstream.mark_notification_read.side_effect = UpstreamFetchError("notifications_mark_read", "HTTP 500", 500)

    response = client.post(f"/views/{view_id}/notifications/1/read", headers=owner_headers)

    assert response.status_code == 409
    assert response.json()["operation"] == "mark_read"
    snapshot = client.get(f"/views/{view_id}", headers=owner_headers).json()["snapshot"]
    assert snapshot["unread_count"] == 2
    assert snapshot["notifications"][0]["is_read_by_user"] is False


def test_mark_all_in_notification_view(client: TestClient, owner_headers, registry, mock_upstream):
    view_id = client.post("/views/notifications", headers=owner_headers).json()["view_id"]
    client.post(f"/views/{view_id}/refresh", headers=owner_headers)

    data = client.post(f"/views/{view_id}/notifications/read-all", headers=owner_headers).json()

    assert data["snapshot"]["unread_count"] == 0
    mock_upstream.mark_all_notifications_read.assert_awaited_once()


@pytest.mark.parametrize("notification_id,status", [("4", 404), ("abc", 400)])
def test_view_mark_rejects_invisible_or_invalid_ids(client: TestClient, owner_headers, registry, notification_id, status):
    view_id = client.post("/views/notifications", headers=owner_headers).json()["view_id"]
    client.post(f"/views/{view_id}/refresh", headers=owner_headers)

    response = client.post(f"/views/{view_id}/notifications/{notification_id}/read", headers=owner_headers)
    assert response.status_code == status


def test_dashboard_view_has_no_notification_marks(client: TestClient, admin_headers, registry):
    view_id = client.post("/views/dashboard", headers=admin_headers).json()["view_id"]

    response = client.post(f"/views/{view_id}/notifications/read-all", headers=admin_headers)
    assert response.status_code == 404


def test_views_are_private_to_the_mounting_viewer(client: TestClient, admin_headers, owner_headers, registry):
    view_id = client.post("/views/dashboard", headers=admin_headers).json()["view_id"]

    assert client.get(f"/views/{view_id}", headers=owner_headers).status_code == 404


# -----------------------------------------------------
# Health
# -----------------------------------------------------
def test_health_app(client: TestClient):
    assert client.get("/health/app").json()["status"] == "ok"


def test_health_upstream(client: TestClient, mock_upstream):
    data = client.get("/health/upstream").json()

    assert data["status"] == "ok"
    mock_upstream.ping.assert_awaited_once()


def test_health_upstream_reports_errors(client: TestClient, mock_upstream):
    mock_upstream.ping = AsyncMock(side_effect=RuntimeError("boom"))

    assert client.get("/health/upstream").json()["status"] == "error"
