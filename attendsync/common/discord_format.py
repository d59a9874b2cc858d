# attendsync/common/discord_format.py
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Literal

TimestampStyle = Literal["t", "T", "d", "D", "f", "F", "R"]


def discord_timestamp(value: datetime, style: TimestampStyle = "F") -> str:
    """
    Format a datetime as a Discord dynamic timestamp, e.g. `<t:1577836800:F>`.

    Discord renders these in each reader's own timezone.
    """
    return f"<t:{int(value.timestamp())}:{style}>"


def user_mention(discord_id: str) -> str:
    return f"<@{discord_id}>"


def channel_mention(channel_id: str) -> str:
    return f"<#{channel_id}>"


def mention_list(discord_ids: Iterable[str]) -> str:
    return " ".join(user_mention(d) for d in discord_ids)


def format_minutes_12h(minutes: int) -> str:
    """Minutes since midnight -> `9:05 AM` style label."""
    h24 = (minutes // 60) % 24
    period = "PM" if h24 >= 12 else "AM"
    h12 = 12 if h24 % 12 == 0 else h24 % 12
    return f"{h12}:{minutes % 60:02d} {period}"
