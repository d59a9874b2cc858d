# attendsync/services/heatmap_renderer.py
from __future__ import annotations

from datetime import date, datetime, time, tzinfo
from typing import Dict, List

from attendsync.common.discord_format import discord_timestamp, user_mention
from attendsync.schemas.availability import GroupHeatmap, UserHeatmap

BAR_WIDTH = 10
HOURS = range(24)


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def shade_for(confidence: float) -> str:
    if confidence >= 0.66:
        return "▓"
    if confidence >= 0.33:
        return "▒"
    return "░"


def _hour_label_12h(hour: int) -> str:
    period = "PM" if hour >= 12 else "AM"
    h12 = 12 if hour % 12 == 0 else hour % 12
    return f"{h12:02d}:00 {period}"


def render_user_heatmap(
    heatmap: UserHeatmap,
    discord_id: str,
    today: date,
    tz: tzinfo,
) -> str:
    """
    Hourly bar chart for /availability.

    Each row shows the hour, a Discord timestamp for that hour today (so
    readers see it in their own timezone), a bar proportional to confidence
    and the percentage.
    """
    if not heatmap.has_data:
        return (
            f"ℹ️ Not enough data to estimate active times for {user_mention(discord_id)} "
            f"in the last {heatmap.lookback_days} days."
        )

    by_start: Dict[int, float] = {s.start_minutes: s.confidence for s in heatmap.slots}
    rows: List[str] = []
    for hour in HOURS:
        confidence = by_start.get(hour * 60, 0.0)
        filled = _round_half_up(confidence * BAR_WIDTH)
        bar = (shade_for(confidence) * filled).ljust(BAR_WIDTH) if filled > 0 else " " * BAR_WIDTH
        at = datetime.combine(today, time(hour=hour), tzinfo=tz)
        pct = f"{_round_half_up(confidence * 100)}%"
        rows.append(f"{_hour_label_12h(hour)} {discord_timestamp(at, 't')} {bar} {pct}")

    header = (
        f"📊 Availability heatmap for {user_mention(discord_id)} "
        f"(last {heatmap.lookback_days} days, hourly avg):"
    )
    return header + "\n" + "\n".join(rows)


def render_group_heatmap(group: GroupHeatmap) -> str:
    """Compact hourly heatmap appended to the /meeting suggestions."""
    by_start: Dict[int, float] = {s.start_minutes: s.avg_confidence for s in group.slots}
    rows: List[str] = []
    for hour in HOURS:
        avg = by_start.get(hour * 60, 0.0)
        rows.append(f"{hour:02d}:00 {shade_for(avg) * BAR_WIDTH} {_round_half_up(avg * 100)}%")
    return "Availability heatmap (hourly avg):\n" + "\n".join(rows)
