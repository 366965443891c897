import pytest
from datetime import timedelta

from fastapi.testclient import TestClient

from reminder_service.config.settings import settings
from reminder_service.db.models import NotificationType
from reminder_service.db.session import get_sync_session
from reminder_service.main import app
from reminder_service.routers.admin import get_notification_services

PREFIX = settings.API_PREFIX
ADMIN_TOKEN = "test-admin-token-0123"
ADMIN_HEADERS = {"X-Admin-Token": ADMIN_TOKEN}


@pytest.fixture
def client(db_session, provider, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_TOKEN", ADMIN_TOKEN)

    def override_session():
        yield db_session

    app.dependency_overrides[get_sync_session] = override_session
    app.dependency_overrides[get_notification_services] = lambda: provider
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestDeviceRoutes:
    def test_register_device(self, client):
        response = client.post(
            f"{PREFIX}/notifications/devices",
            json={"token": "  token-aaaaaaaa  ", "platform": "android"},
            headers={"X-User-Id": "7"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["userId"] == 7
        assert body["data"]["token"] == "token-aaaaaaaa"
        assert body["data"]["platform"] == "android"
        assert body["data"]["isActive"] is True

    def test_register_requires_user(self, client):
        response = client.post(
            f"{PREFIX}/notifications/devices", json={"token": "token-aaaaaaaa"}
        )

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_register_rejects_short_token(self, client):
        response = client.post(
            f"{PREFIX}/notifications/devices",
            json={"token": "short"},
            headers={"X-User-Id": "7"},
        )

        assert response.status_code == 422

    def test_invalid_user_header(self, client):
        response = client.post(
            f"{PREFIX}/notifications/devices",
            json={"token": "token-aaaaaaaa"},
            headers={"X-User-Id": "abc"},
        )

        assert response.status_code == 401

    def test_remove_device(self, client, factory):
        factory.device(7, "token-aaaaaaaa")

        response = client.delete(
            f"{PREFIX}/notifications/devices/token-aaaaaaaa",
            headers={"X-User-Id": "7"},
        )
        assert response.status_code == 200
        assert response.json()["data"] == {"removed": True}

        response = client.delete(
            f"{PREFIX}/notifications/devices/token-aaaaaaaa",
            headers={"X-User-Id": "7"},
        )
        assert response.status_code == 404
        assert response.json()["meta"]["error_code"] == "DEVICE_NOT_FOUND"

    def test_cannot_remove_another_users_device(self, client, factory):
        factory.device(8, "token-aaaaaaaa")

        response = client.delete(
            f"{PREFIX}/notifications/devices/token-aaaaaaaa",
            headers={"X-User-Id": "7"},
        )

        assert response.status_code == 404


class TestAdminRoutes:
    def test_admin_token_required(self, client):
        response = client.get(f"{PREFIX}/admin/notifications/stats")

        assert response.status_code == 401

    def test_wrong_admin_token(self, client):
        response = client.get(
            f"{PREFIX}/admin/notifications/stats",
            headers={"X-Admin-Token": "not-the-token"},
        )

        assert response.status_code == 403

    def test_non_ascii_admin_token_is_rejected(self, client):
        response = client.get(
            f"{PREFIX}/admin/notifications/stats",
            headers={"X-Admin-Token": "café".encode("latin-1")},
        )

        assert response.status_code == 403
        assert response.json()["meta"]["error_code"] == "INSUFFICIENT_PERMISSIONS"

    @pytest.mark.parametrize("configured", ["", "<your-admin-api-token>"])
    def test_admin_routes_refused_without_configured_token(
        self, client, fake_queue, monkeypatch, configured
    ):
        monkeypatch.setattr(settings, "ADMIN_API_TOKEN", configured)

        response = client.post(
            f"{PREFIX}/admin/notifications/broadcast",
            json={"title": "Hello", "body": "A new journal is here"},
            headers={"X-Admin-Token": configured or "anything"},
        )

        assert response.status_code == 403
        assert response.json()["meta"]["error_code"] == "ADMIN_API_DISABLED"
        assert fake_queue.jobs == []

    def test_broadcast_is_queued(self, client, fake_queue):
        response = client.post(
            f"{PREFIX}/admin/notifications/broadcast",
            json={"title": "Hello", "body": "A new journal is here", "data": {"screen": "journal"}},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 202
        assert response.json()["data"] == {"status": "queued", "jobId": "job-1"}
        [job] = fake_queue.of_type("broadcast-fanout")
        assert job.payload.title == "Hello"
        assert job.payload.data == {"screen": "journal"}

    def test_broadcast_validates_body(self, client, fake_queue):
        response = client.post(
            f"{PREFIX}/admin/notifications/broadcast",
            json={"title": "", "body": "x"},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 422
        assert fake_queue.jobs == []

    def test_stats(self, client, factory):
        factory.user(1)
        factory.user(2)
        factory.device(1, "token-aaaaaaaa")

        response = client.get(
            f"{PREFIX}/admin/notifications/stats", headers=ADMIN_HEADERS
        )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "totalUsers": 2,
            "usersWithDeviceToken": 1,
            "usersWithoutDeviceToken": 1,
        }

    def test_list_devices_paginated(self, client, factory):
        for index in range(3):
            factory.device(1, f"token-user1-{index}")
        factory.device(2, "token-user2-0")

        response = client.get(
            f"{PREFIX}/admin/notifications/devices",
            params={"userId": 1, "page": 1, "perPage": 2},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"]["total"] == 3
        assert body["pagination"]["totalPages"] == 2
        assert body["pagination"]["hasNext"] is True

    def test_per_page_is_capped(self, client):
        response = client.get(
            f"{PREFIX}/admin/notifications/devices",
            params={"perPage": 500},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 422

    def test_list_trackers(self, client, factory, now):
        factory.tracker(1, NotificationType.MISSING_MOOD, now - timedelta(days=1))
        factory.tracker(1, NotificationType.PENDING_SURVEY, now)

        response = client.get(
            f"{PREFIX}/admin/notifications/trackers",
            params={"userId": 1},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [t["type"] for t in data] == ["pending-survey", "missing-mood"]
        assert data[0]["lastSentAt"] == now.isoformat()


def test_health(client):
    response = client.get(f"{PREFIX}/health")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "healthy"
