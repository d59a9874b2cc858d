# tests/test_discord_client.py
from typing import Any, Dict, List, Optional

import httpx
import pytest

from attendsync.services import discord_client as discord_module
from attendsync.services.discord_client import DiscordClient, DiscordClientError


class _FakeResponse:
    def __init__(self, status_code: int, json_data: Dict[str, Any]):
        self.status_code = status_code
        self._json_data = json_data
        self.text = str(json_data)

    def json(self) -> Dict[str, Any]:
        return self._json_data


class _FakeAsyncClient:
    """
    Minimal stand-in for httpx.AsyncClient.

    Records every request and answers from a small routing table.
    """

    requests: List[Dict[str, Any]] = []
    fail_messages: bool = False
    raise_transport_error: bool = False

    def __init__(self, timeout: float | None = None):
        self._timeout = timeout

    async def __aenter__(self) -> "_FakeAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> _FakeResponse:
        if _FakeAsyncClient.raise_transport_error:
            raise httpx.ConnectError("connection refused")

        _FakeAsyncClient.requests.append(
            {"method": method, "url": url, "headers": headers, "params": params, "json": json}
        )
        if url.endswith("/users/@me/channels"):
            return _FakeResponse(200, {"id": "dm-999", "type": 1})
        if url.endswith("/messages"):
            if _FakeAsyncClient.fail_messages:
                return _FakeResponse(403, {"message": "Cannot send messages to this user"})
            return _FakeResponse(200, {"id": "msg-1", "content": json["content"]})
        return _FakeResponse(200, {"id": "1", "username": "attendsync-bot"})


@pytest.fixture(autouse=True)
def fake_httpx(monkeypatch):
    _FakeAsyncClient.requests = []
    _FakeAsyncClient.fail_messages = False
    _FakeAsyncClient.raise_transport_error = False
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)


@pytest.mark.asyncio
async def test_direct_message_opens_dm_channel_then_posts():
    client = DiscordClient(bot_token="bot-token", base_url="https://discord.test/api/v10/")

    message = await client.send_direct_message("12345", "hello", components=[{"type": 1}])

    assert message["id"] == "msg-1"
    open_dm, post = _FakeAsyncClient.requests
    assert open_dm["method"] == "POST"
    assert open_dm["url"] == "https://discord.test/api/v10/users/@me/channels"
    assert open_dm["json"] == {"recipient_id": "12345"}
    assert open_dm["headers"]["Authorization"] == "Bot bot-token"
    assert post["url"] == "https://discord.test/api/v10/channels/dm-999/messages"
    assert post["json"] == {"content": "hello", "components": [{"type": 1}]}


@pytest.mark.asyncio
async def test_channel_message_without_components():
    client = DiscordClient(bot_token="bot-token")

    await client.send_channel_message("c-1", "ping")

    (post,) = _FakeAsyncClient.requests
    assert post["url"] == "https://discord.com/api/v10/channels/c-1/messages"
    assert post["json"] == {"content": "ping"}


@pytest.mark.asyncio
async def test_non_2xx_raises_client_error():
    _FakeAsyncClient.fail_messages = True
    client = DiscordClient(bot_token="bot-token")

    with pytest.raises(DiscordClientError) as exc_info:
        await client.send_channel_message("c-1", "ping")
    assert "403" in str(exc_info.value)


@pytest.mark.asyncio
async def test_transport_errors_are_wrapped():
    _FakeAsyncClient.raise_transport_error = True
    client = DiscordClient(bot_token="bot-token")

    with pytest.raises(DiscordClientError):
        await client.send_channel_message("c-1", "ping")


def test_token_is_required():
    with pytest.raises(ValueError):
        DiscordClient(bot_token="")


class _NoTokenSettings:
    DISCORD_BOT_TOKEN = None
    DISCORD_API_BASE_URL = None


class _TokenSettings:
    DISCORD_BOT_TOKEN = "configured"
    DISCORD_API_BASE_URL = None


def test_get_discord_client_requires_configuration(monkeypatch):
    monkeypatch.setattr(discord_module, "_discord_client_instance", None)
    monkeypatch.setattr(discord_module, "get_settings", lambda: _NoTokenSettings())

    with pytest.raises(DiscordClientError):
        discord_module.get_discord_client()


def test_get_discord_client_is_cached(monkeypatch):
    monkeypatch.setattr(discord_module, "_discord_client_instance", None)
    monkeypatch.setattr(discord_module, "get_settings", lambda: _TokenSettings())

    first = discord_module.get_discord_client()

    assert discord_module.get_discord_client() is first
