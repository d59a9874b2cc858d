# attendsync/services/discord_client.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from attendsync.core.config import get_settings

DEFAULT_DISCORD_API_BASE_URL = "https://discord.com/api/v10"


class DiscordClientError(RuntimeError):
    """
    Raised when a Discord REST call fails or the client is misconfigured.
    """


class DiscordClient:
    """
    Minimal Discord REST client authenticated with a bot token.

    Responsibilities
    ----------------
    - Provide a thin POST helper against the Discord REST API.
    - Open DM channels and post messages (invites, reminders, channel notices).
    - Avoid leaking HTTP client details into the rest of the codebase.

    Gateway events (slash commands, buttons, voice state) are handled by the
    bot process and are not part of this client.
    """

    def __init__(
        self,
        bot_token: str,
        base_url: str = DEFAULT_DISCORD_API_BASE_URL,
        timeout_seconds: float = 10.0,
    ) -> None:
        if not bot_token:
            raise ValueError("bot_token is required")

        self._bot_token = bot_token
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
    ) -> httpx.Response:
        """
        Low-level helper for issuing an authenticated HTTP request.

        `path` may be absolute or relative to the configured base URL.
        """
        if path.startswith("http://") or path.startswith("https://"):
            url = path
        else:
            url = f"{self._base_url}/{path.lstrip('/')}"

        headers = {
            "Authorization": f"Bot {self._bot_token}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.request(
                    method=method.upper(),
                    url=url,
                    headers=headers,
                    json=json,
                )
        except httpx.HTTPError as exc:
            raise DiscordClientError(f"Discord {method.upper()} {url} failed: {exc}") from exc

        return resp

    async def post_json(
        self,
        path: str,
        *,
        json: Any = None,
    ) -> Dict[str, Any]:
        """
        Issue a POST request and return the JSON payload.

        Raises DiscordClientError on non-2xx responses.
        """
        resp = await self._request("POST", path, json=json)
        if resp.status_code // 100 != 2:
            raise DiscordClientError(
                f"Discord POST failed (status={resp.status_code}): {resp.text}"
            )
        return resp.json()

    async def send_channel_message(
        self,
        channel_id: str,
        content: str,
        components: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"content": content}
        if components:
            body["components"] = components
        return await self.post_json(f"/channels/{channel_id}/messages", json=body)

    async def send_direct_message(
        self,
        discord_user_id: str,
        content: str,
        components: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Open (or reuse) the DM channel with a user and post a message to it.
        """
        channel = await self.post_json(
            "/users/@me/channels",
            json={"recipient_id": discord_user_id},
        )
        channel_id = channel.get("id")
        if not channel_id:
            raise DiscordClientError(f"Could not open DM channel with {discord_user_id}")
        return await self.send_channel_message(channel_id, content, components)


# Simple singleton-style accessor wired to app settings
_discord_client_instance: Optional[DiscordClient] = None


def get_discord_client() -> DiscordClient:
    """
    Lazily construct a DiscordClient instance using application settings.
    """
    global _discord_client_instance
    if _discord_client_instance is None:
        settings = get_settings()
        if not settings.DISCORD_BOT_TOKEN:
            raise DiscordClientError(
                "DISCORD_BOT_TOKEN must be configured to send Discord notifications."
            )
        _discord_client_instance = DiscordClient(
            bot_token=settings.DISCORD_BOT_TOKEN,
            base_url=str(settings.DISCORD_API_BASE_URL or DEFAULT_DISCORD_API_BASE_URL),
        )
    return _discord_client_instance
