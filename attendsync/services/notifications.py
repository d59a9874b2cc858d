# attendsync/services/notifications.py
from __future__ import annotations

from typing import Any, Dict, List, Protocol

from attendsync.common.discord_format import channel_mention, discord_timestamp, user_mention
from attendsync.core.exceptions import NotificationError
from attendsync.schemas.meeting import MeetingRead
from attendsync.services.discord_client import DiscordClient, DiscordClientError
from attendsync.services.user_directory import UserDirectory

ACCEPT_BUTTON_PREFIX = "mtg-accept-"
REJECT_BUTTON_PREFIX = "mtg-reject-"

# Discord component type / button style codes
_ACTION_ROW = 1
_BUTTON = 2
_STYLE_SUCCESS = 3
_STYLE_DANGER = 4


class NotificationSink(Protocol):
    """
    Outbound participant notifications. Each call targets one recipient and
    may raise; callers decide whether a failure matters.
    """

    async def send_invite(self, user_id: str, meeting: MeetingRead) -> None:
        ...

    async def send_reminder(self, user_id: str, meeting: MeetingRead) -> None:
        ...

    async def post_channel_message(self, channel_id: str, content: str) -> None:
        ...


def invite_buttons(meeting_id: str) -> List[Dict[str, Any]]:
    return [
        {
            "type": _ACTION_ROW,
            "components": [
                {
                    "type": _BUTTON,
                    "style": _STYLE_SUCCESS,
                    "label": "Accept",
                    "emoji": {"name": "✅"},
                    "custom_id": f"{ACCEPT_BUTTON_PREFIX}{meeting_id}",
                },
                {
                    "type": _BUTTON,
                    "style": _STYLE_DANGER,
                    "label": "Reject",
                    "emoji": {"name": "❌"},
                    "custom_id": f"{REJECT_BUTTON_PREFIX}{meeting_id}",
                },
            ],
        }
    ]


def meeting_when(meeting: MeetingRead) -> str:
    return (
        f"{discord_timestamp(meeting.start_time, 'F')} "
        f"({meeting.duration_mins} mins, {discord_timestamp(meeting.start_time, 'R')})"
    )


def build_invite_message(meeting: MeetingRead, inviter_discord_id: str | None) -> str:
    inviter = user_mention(inviter_discord_id) if inviter_discord_id else "someone"
    title = f": **{meeting.title}**" if meeting.title else ""
    return (
        f"{inviter} is inviting you to a meeting{title} in "
        f"{channel_mention(meeting.channel_id)} on {meeting_when(meeting)}. Do you accept?"
    )


def build_reminder_message(meeting: MeetingRead) -> str:
    title = f' "{meeting.title}"' if meeting.title else ""
    return (
        f"Reminder: Your meeting{title} starts at "
        f"{discord_timestamp(meeting.start_time, 't')} "
        f"({discord_timestamp(meeting.start_time, 'R')})."
    )


class DiscordNotificationSink:
    """
    NotificationSink that DMs participants through the Discord REST API.
    """

    def __init__(self, client: DiscordClient, users: UserDirectory) -> None:
        self.client = client
        self.users = users

    async def _discord_id(self, user_id: str) -> str:
        mapping = await self.users.get_discord_ids([user_id])
        discord_id = mapping.get(user_id)
        if not discord_id:
            raise NotificationError(f"No Discord account linked to user {user_id}")
        return discord_id

    async def send_invite(self, user_id: str, meeting: MeetingRead) -> None:
        discord_id = await self._discord_id(user_id)
        inviter = (await self.users.get_discord_ids([meeting.creator_user_id])).get(
            meeting.creator_user_id
        )
        try:
            await self.client.send_direct_message(
                discord_id,
                build_invite_message(meeting, inviter),
                components=invite_buttons(meeting.id),
            )
        except DiscordClientError as exc:
            raise NotificationError(f"Invite DM to {user_id} failed: {exc}") from exc

    async def send_reminder(self, user_id: str, meeting: MeetingRead) -> None:
        discord_id = await self._discord_id(user_id)
        try:
            await self.client.send_direct_message(discord_id, build_reminder_message(meeting))
        except DiscordClientError as exc:
            raise NotificationError(f"Reminder DM to {user_id} failed: {exc}") from exc

    async def post_channel_message(self, channel_id: str, content: str) -> None:
        try:
            await self.client.send_channel_message(channel_id, content)
        except DiscordClientError as exc:
            raise NotificationError(f"Posting to channel {channel_id} failed: {exc}") from exc
