# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, Mock
from typing import Generator

from main import create_app
from core.security_context import SecurityContext
from dependencies.auth import get_upstream_client
from models.enums import ViewerRole


# ============================================================
# Viewer contexts
# ============================================================
@pytest.fixture
def admin_ctx():
    """Society-wide admin (no wing)."""
    return SecurityContext(role=ViewerRole.admin, user_id="admin-1", role_type="admin")


@pytest.fixture
def committee_ctx():
    """Committee member of wing 2."""
    return SecurityContext(role=ViewerRole.committee, wing_id=2, user_id="cm-2", role_type="treasurer")


@pytest.fixture
def owner_ctx():
    """Owner 7 living in wing 2."""
    return SecurityContext(role=ViewerRole.owner, wing_id=2, owner_id=7, user_id="owner-7", role_type="owner")


ADMIN_HEADERS = {"X-User-Id": "admin-1", "X-Role-Type": "admin"}
OWNER_HEADERS = {"X-User-Id": "owner-7", "X-Role-Type": "owner", "X-Wing-Id": "2", "X-Owner-Id": "7"}


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)


@pytest.fixture
def owner_headers():
    return dict(OWNER_HEADERS)


# ============================================================
# Sample upstream data
# ============================================================
@pytest.fixture
def raw_collections():
    """
    One fetch cycle. Owner 7 (flat 101) and owner 9 (flat 102) live in
    wing 2; owner 1 (flat 201) in wing 1.
    """
    return {
        "owners": [
            {"owner_id": 1, "flat_id": 201, "wing_id": 1, "owner_name": "Asha", "owner_contactno": "9000000001", "is_deleted": 0},
            {"owner_id": 7, "flat_id": 101, "wing_id": 2, "owner_name": "Ravi", "owner_contactno": "9000000007", "is_deleted": 0},
            {"owner_id": 9, "flat_id": 102, "wing_id": 2, "owner_name": "Meera", "owner_contactno": "9000000009", "is_deleted": 0},
        ],
        "rentals": [
            {"rental_id": 1, "owner_id": 7, "tenant_name": "Kiran", "tenant_contactno": "", "tenant_altercontactno": "8000000001",
             "start_date": "2026-01-01", "end_date": "2026-12-31", "is_deleted": 0},
            {"rental_id": 2, "owner_id": 1, "tenant_name": "Sunil", "tenant_contactno": "8000000002",
             "start_date": "2026-01-01", "end_date": "2026-12-31", "is_deleted": 0},
        ],
        "maintenance": [
            {"maintain_id": 1, "owner_id": 7, "total_amount": 1000, "paid_amount": 600, "payment_mode": "cash", "is_deleted": 0},
            {"maintain_id": 2, "owner_id": 9, "total_amount": "500", "paid_amount": "500", "payment_mode": "UPI", "is_deleted": 0},
        ],
        "expenses": [
            {"exp_id": 1, "wing_id": 2, "amount": "150.50", "payment_mode": "Cash", "date": "2026-03-10", "is_deleted": 0},
            {"exp_id": 2, "wing_id": 1, "amount": 80, "payment_mode": "Cash", "date": "2026-03-11", "is_deleted": 0},
        ],
        "activity_payments": [
            {"payment_id": 1, "flat_id": 101, "amount": 200, "payment_mode": "upi", "payment_date": "2026-03-05", "is_deleted": 0},
            {"payment_id": 2, "flat_id": 102, "amount": 300, "payment_mode": "bank transfer", "payment_date": "2026-03-06", "is_deleted": 0},
        ],
        "activity_expenses": [
            {"activity_exp_id": 1, "amount": 50, "payment_mode": "Cash", "date": "2026-03-07", "is_deleted": 0},
            {"activity_exp_id": 2, "wing_id": 2, "amount": 40, "payment_mode": "Cheque", "date": "2026-03-08", "is_deleted": 0},
        ],
        "meetings": [
            {"meeting_id": 1, "wing_id": 2, "meeting_date": "2026-03-15", "is_deleted": 0},
            {"meeting_id": 2, "wing_id": 1, "meeting_date": "2026-03-16", "is_deleted": 0},
        ],
        "parking": [
            {"parking_id": 1, "owner_id": 7, "ownership_type": "Owner", "vehical_type": "Car", "vehical_no": "MH12AB1234", "is_deleted": 0},
            {"parking_id": 2, "owner_id": 7, "ownership_type": "Rental", "vehical_type": "Bike", "vehical_no": "MH12CD5678", "is_deleted": 0},
            {"parking_id": 3, "owner_id": 9, "ownership_type": "", "vehical_type": "Car", "vehical_no": "MH14EF0001", "is_deleted": 0},
        ],
    }


@pytest.fixture
def notifications():
    return [
        {"notification_id": 1, "notification_type": "announcement", "title": "Water cut", "target_audience": "all",
         "notification_date": "2026-03-12", "is_read_by_user": 0,
         "attachment_url": ["https://cdn.example.com/a.png", "https://cdn.example.com/b.pdf"]},
        {"notification_id": 2, "notification_type": "maintenance_reminder", "title": "Dues", "target_audience": "owners",
         "notification_date": "2026-03-12", "is_read_by_user": 0},
        {"notification_id": 3, "notification_type": "meeting_scheduled", "title": "Wing 2 meeting", "target_audience": "specific_wing",
         "wing_id": 2, "notification_date": "2026-03-13", "is_read_by_user": 1},
        {"notification_id": 4, "notification_type": "cutoff", "title": "Wing 1 cutoff", "target_audience": "specific_wing",
         "wing_id": 1, "notification_date": "2026-03-13", "is_read_by_user": 0},
    ]


# ============================================================
# Upstream client mock
# ============================================================
@pytest.fixture
def mock_upstream(raw_collections, notifications):
    """Stand-in for UpstreamClient with the sample data wired in."""
    client = Mock()

    async def fetch_all_or_nothing(names):
        return {name: raw_collections.get(name, []) for name in names}

    async def fetch_best_effort(names):
        reference = {"wings": [{"wing_id": 1, "wing_name": "A"}, {"wing_id": 2, "wing_name": "B"}], "role_delegations": []}
        return {name: reference.get(name, []) for name in names}

    client.fetch_all_or_nothing = AsyncMock(side_effect=fetch_all_or_nothing)
    client.fetch_best_effort = AsyncMock(side_effect=fetch_best_effort)
    client.fetch_notifications = AsyncMock(return_value=(notifications, 3))
    client.mark_notification_read = AsyncMock(return_value={"success": True})
    client.mark_all_notifications_read = AsyncMock(return_value={"success": True})
    client.send_monthly_reminders = AsyncMock(return_value={"success": True})
    client.ping = AsyncMock(return_value={"service": "Upstream", "status": "ok", "collections": {}})
    return client


@pytest.fixture(scope="function")
def app(mock_upstream):
    """Create a test FastAPI application instance with the upstream mocked."""
    application = create_app()
    application.dependency_overrides[get_upstream_client] = lambda: mock_upstream
    return application


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client
