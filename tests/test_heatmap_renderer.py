# tests/test_heatmap_renderer.py
from datetime import date, datetime, timezone

from attendsync.schemas.availability import (
    GroupHeatmap,
    GroupHeatmapSlot,
    HeatmapSlot,
    UserHeatmap,
)
from attendsync.services.heatmap_renderer import (
    render_group_heatmap,
    render_user_heatmap,
    shade_for,
)

TODAY = date(2025, 1, 6)


def _heatmap(observed_days: int, active: dict) -> UserHeatmap:
    return UserHeatmap(
        user_id="u1",
        lookback_days=30,
        slot_minutes=60,
        observed_days=observed_days,
        slots=[HeatmapSlot(start_minutes=h * 60, confidence=active.get(h, 0.0)) for h in range(24)],
    )


def test_shades():
    assert shade_for(1.0) == "▓"
    assert shade_for(0.66) == "▓"
    assert shade_for(0.5) == "▒"
    assert shade_for(0.33) == "▒"
    assert shade_for(0.1) == "░"


def test_user_without_data_gets_notice():
    text = render_user_heatmap(_heatmap(0, {}), "111", TODAY, timezone.utc)

    assert text == "ℹ️ Not enough data to estimate active times for <@111> in the last 30 days."


def test_user_heatmap_rows():
    text = render_user_heatmap(_heatmap(4, {9: 0.7, 13: 0.25}), "111", TODAY, timezone.utc)
    lines = text.split("\n")

    assert lines[0] == "📊 Availability heatmap for <@111> (last 30 days, hourly avg):"
    assert len(lines) == 25
    nine = int(datetime(2025, 1, 6, 9, tzinfo=timezone.utc).timestamp())
    assert lines[10] == f"09:00 AM <t:{nine}:t> ▓▓▓▓▓▓▓    70%"
    assert lines[14].endswith("░░░        25%")
    assert lines[1].startswith("12:00 AM")
    assert lines[13].startswith("12:00 PM")


def test_group_heatmap_rows():
    group = GroupHeatmap(
        slot_minutes=60,
        participant_count=2,
        slots=[GroupHeatmapSlot(start_minutes=h * 60, avg_confidence=0.5 if h == 10 else 0.0) for h in range(24)],
    )

    lines = render_group_heatmap(group).split("\n")

    assert lines[0] == "Availability heatmap (hourly avg):"
    assert lines[11] == "10:00 ▒▒▒▒▒▒▒▒▒▒ 50%"
    assert lines[1] == "00:00 ░░░░░░░░░░ 0%"
