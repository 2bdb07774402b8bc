"""
Integration Tests for the Food Tracker HTTP API

Tests:
- Manual notification check (success, unconfigured collaborators)
- Scheduler status
- Manual push send
- Device token registration
- Health and root endpoints
- Startup with a database that cannot be initialized
"""

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from foodtracker.api.config import Settings
from foodtracker.api.main import create_app
from foodtracker.notifications.exceptions import StoreError
from foodtracker.notifications.records import ProductRecord
from foodtracker.notifications.scheduler import NotificationScheduler
from foodtracker.tests.fakes import RecordingDelivery, expiring_in


# ============================================================================
# Test App Setup
# ============================================================================

@pytest.fixture
def app(store, delivery, clock):
    application = create_app(Settings(DATABASE_URL=None, ENVIRONMENT="test"))
    application.state.store = store
    application.state.delivery = delivery
    application.state.session_factory = None
    application.state.scheduler = NotificationScheduler(store=store, delivery=delivery, clock=clock)
    return application


@pytest.fixture
async def async_client(app):
    """Async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


# ============================================================================
# Notification Check Tests
# ============================================================================

class TestCheckNow:
    """Test POST /api/notification/check-now."""

    @pytest.mark.asyncio
    async def test_check_now_runs_a_pass(self, async_client, store, delivery):
        store.add_user("u1", products=[
            ProductRecord(id="p1", name="Milk", expiry_date=expiring_in(1)),
        ])

        response = await async_client.post("/api/notification/check-now")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Notification check completed"
        assert "timestamp" in data
        assert data["report"]["users_checked"] == 1
        assert data["report"]["notifications_sent"] == 2
        assert len(delivery.sent) == 2

    @pytest.mark.asyncio
    async def test_check_now_succeeds_when_sends_fail(self, app, async_client, store, clock):
        failing = RecordingDelivery(fail_when=lambda call: True)
        app.state.scheduler = NotificationScheduler(store=store, delivery=failing, clock=clock)
        store.add_user("u1", products=[])

        response = await async_client.post("/api/notification/check-now")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["report"]["notifications_failed"] == 1

    @pytest.mark.asyncio
    async def test_check_now_without_store_returns_500(self, app, async_client, delivery, clock):
        app.state.scheduler = NotificationScheduler(store=None, delivery=delivery, clock=clock)

        response = await async_client.post("/api/notification/check-now")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert "not configured" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_check_now_when_user_listing_fails(self, async_client, store):
        store.list_users_error = StoreError("connection refused")

        response = await async_client.post("/api/notification/check-now")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR

    @pytest.mark.asyncio
    async def test_check_now_without_scheduler_returns_500(self, app, async_client):
        app.state.scheduler = None

        response = await async_client.post("/api/notification/check-now")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR


class TestSchedulerStatus:
    """Test GET /api/notification/status."""

    @pytest.mark.asyncio
    async def test_status_when_stopped(self, async_client):
        response = await async_client.get("/api/notification/status")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"is_running": False, "cadence_description": "Not scheduled"}

    @pytest.mark.asyncio
    async def test_status_when_running(self, app, async_client):
        scheduler = app.state.scheduler
        scheduler.start(12)
        try:
            response = await async_client.get("/api/notification/status")
        finally:
            scheduler.stop()
            await scheduler.wait_idle()

        assert response.json() == {"is_running": True, "cadence_description": "Every 12 hours"}


# ============================================================================
# Manual Send Tests
# ============================================================================

class TestManualSend:
    """Test POST /api/notification/send."""

    @pytest.mark.asyncio
    async def test_send_with_defaults(self, async_client, delivery):
        response = await async_client.post("/api/notification/send", json={"token": "device-1"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["message_id"] == "projects/demo/messages/1"
        assert delivery.sent == [{
            "token": "device-1",
            "title": "Food Tracker Notification",
            "body": "You have a new notification",
            "data": {},
        }]

    @pytest.mark.asyncio
    async def test_send_stringifies_data(self, async_client, delivery):
        response = await async_client.post("/api/notification/send", json={
            "token": "device-1",
            "title": "Hi",
            "body": "There",
            "data": {"count": 3},
        })

        assert response.status_code == status.HTTP_200_OK
        assert delivery.sent[0]["data"] == {"count": "3"}

    @pytest.mark.asyncio
    async def test_send_requires_token(self, async_client):
        response = await async_client.post("/api/notification/send", json={"title": "Hi"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_send_failure_returns_500(self, app, async_client):
        app.state.delivery = RecordingDelivery(fail_when=lambda call: True)

        response = await async_client.post("/api/notification/send", json={"token": "stale"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR

    @pytest.mark.asyncio
    async def test_send_without_firebase_returns_500(self, app, async_client):
        app.state.delivery = None

        response = await async_client.post("/api/notification/send", json={"token": "device-1"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"] == "Firebase Admin not initialized"


# ============================================================================
# Device Token Tests
# ============================================================================

class TestDeviceToken:
    """Test PUT /api/users/{user_id}/device-token."""

    @pytest.mark.asyncio
    async def test_register_token(self, async_client, store):
        store.add_user("u1", device_token=None)

        response = await async_client.put("/api/users/u1/device-token", json={"device_token": "fcm-1"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "Device token saved", "success": True}
        assert store.users["u1"].device_token == "fcm-1"

    @pytest.mark.asyncio
    async def test_unknown_user(self, async_client):
        response = await async_client.put("/api/users/ghost/device-token", json={"device_token": "fcm-1"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_without_store(self, app, async_client):
        app.state.store = None

        response = await async_client.put("/api/users/u1/device-token", json={"device_token": "fcm-1"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR


# ============================================================================
# Health Check Tests
# ============================================================================

class TestHealthEndpoints:
    """Test health check endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, async_client):
        response = await async_client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == {"status": "not_configured"}
        assert data["push"] == "initialized"
        assert data["scheduler"] == {"is_running": False, "cadence_description": "Not scheduled"}

    @pytest.mark.asyncio
    async def test_health_with_database(self, app, async_client, session_factory):
        app.state.session_factory = session_factory

        response = await async_client.get("/health")

        assert response.json()["database"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_root(self, async_client):
        response = await async_client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "operational"
        assert response.json()["environment"] == "test"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, async_client):
        response = await async_client.get("/", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"


# ============================================================================
# Startup Tests
# ============================================================================

class TestStartup:
    """Test the application lifespan with collaborators that fail to start."""

    @pytest.mark.asyncio
    async def test_unreachable_database_does_not_block_startup(self, tmp_path):
        settings = Settings(
            DATABASE_URL=f"sqlite:///{tmp_path / 'missing' / 'foodtracker.db'}",
            DATABASE_CREATE_TABLES=True,
            FIREBASE_PROJECT_ID=None,
            FIREBASE_PRIVATE_KEY=None,
            FIREBASE_CLIENT_EMAIL=None,
        )
        app = create_app(settings)

        async with app.router.lifespan_context(app):
            assert app.state.store is None
            assert app.state.scheduler.is_running is False

            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                health = await client.get("/health")
                check = await client.post("/api/notification/check-now")

        assert health.status_code == status.HTTP_200_OK
        assert health.json()["database"] == {"status": "not_configured"}
        assert health.json()["scheduler"]["is_running"] is False
        assert check.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
