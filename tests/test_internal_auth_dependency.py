# tests/test_internal_auth_dependency.py
from http import HTTPStatus

from attendsync.api.dependencies import internal_auth as auth_module
from attendsync.api.dependencies.services import get_notification_sink


class DummySettingsProd:
    APP_ENV = "prod"
    INTERNAL_API_KEY = "supersecret"


class DummySettingsProdNoKey:
    APP_ENV = "prod"
    INTERNAL_API_KEY = None


class DummySettingsLocalWithKey:
    APP_ENV = "local"
    INTERNAL_API_KEY = "localkey"


class _SilentSink:
    async def send_invite(self, user_id, meeting):
        return None

    async def send_reminder(self, user_id, meeting):
        return None

    async def post_channel_message(self, channel_id, content):
        return None


def test_internal_endpoint_401_when_key_missing_in_prod(monkeypatch, api_client):
    """
    Non-local env with INTERNAL_API_KEY set: no header -> 401.
    """
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = api_client.post("/internal/run-meeting-reminders")
    assert resp.status_code == HTTPStatus.UNAUTHORIZED
    assert "invalid or missing" in resp.json()["detail"].lower()


def test_internal_endpoint_401_when_key_wrong_in_prod(monkeypatch, api_client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = api_client.post(
        "/internal/run-meeting-reminders",
        headers={"X-Internal-Api-Key": "wrong-key"},
    )
    assert resp.status_code == HTTPStatus.UNAUTHORIZED


def test_internal_endpoint_500_when_key_not_configured_in_prod(monkeypatch, api_client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProdNoKey())

    resp = api_client.post("/internal/run-meeting-reminders")
    assert resp.status_code == HTTPStatus.INTERNAL_SERVER_ERROR


def test_local_env_enforces_key_when_configured(monkeypatch, api_client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsLocalWithKey())

    resp = api_client.post("/internal/run-meeting-reminders")
    assert resp.status_code == HTTPStatus.UNAUTHORIZED


def test_internal_endpoint_200_when_key_correct_in_prod(monkeypatch, api_client):
    """
    Correct key -> request goes through and the (empty) sweep summary comes back.
    """
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())
    api_client.app.dependency_overrides[get_notification_sink] = lambda: _SilentSink()

    resp = api_client.post(
        "/internal/run-meeting-reminders",
        headers={"X-Internal-Api-Key": "supersecret"},
    )
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["meetings_reminded"] == []
    assert data["reminders_sent"] == 0
