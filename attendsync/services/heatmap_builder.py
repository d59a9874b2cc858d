# attendsync/services/heatmap_builder.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable, Dict, Iterable, List, Tuple

from attendsync.common.datetime_utils import (
    MINUTES_PER_DAY,
    ensure_utc,
    is_weekday,
    minutes_since_midnight,
    utc_now,
)
from attendsync.schemas.attendance import AttendanceRecord
from attendsync.schemas.availability import HeatmapSlot, UserHeatmap
from attendsync.services.attendance_store import AttendanceStore

logger = logging.getLogger(__name__)

Interval = Tuple[float, float]

MAX_LOOKBACK_DAYS = 365


def slot_starts(slot_minutes: int) -> List[int]:
    """
    Start minute of every slot in one day.

    Raises ValueError unless `slot_minutes` is a positive divisor of 1440.
    """
    if slot_minutes <= 0 or MINUTES_PER_DAY % slot_minutes != 0:
        raise ValueError(f"slot_minutes must be a positive divisor of 1440, got {slot_minutes}")
    return list(range(0, MINUTES_PER_DAY, slot_minutes))


def _subtract(intervals: List[Interval], cut: Interval) -> List[Interval]:
    cut_start, cut_end = cut
    if cut_end <= cut_start:
        return intervals
    remaining: List[Interval] = []
    for start, end in intervals:
        if cut_end <= start or cut_start >= end:
            remaining.append((start, end))
            continue
        if cut_start > start:
            remaining.append((start, cut_start))
        if cut_end < end:
            remaining.append((cut_end, end))
    return remaining


def work_intervals(
    record: AttendanceRecord,
    day: date,
    today: date,
    now: datetime,
    tz: tzinfo,
) -> List[Interval]:
    """
    Active intervals of one record as minutes since local midnight of `day`.

    Active time runs from login to logout minus every break, clipped to the
    record's own day. A missing logout (or break end) is open through `now`
    when the record is from today and through end of day otherwise.
    """

    def to_minutes(value: datetime) -> float:
        return minutes_since_midnight(value, day, tz)

    if day == today:
        open_end = min(to_minutes(now), float(MINUTES_PER_DAY))
    else:
        open_end = float(MINUTES_PER_DAY)

    start = max(0.0, to_minutes(record.login))
    end = to_minutes(record.logout) if record.logout is not None else open_end
    end = min(float(MINUTES_PER_DAY), end)
    if end <= start:
        return []

    intervals: List[Interval] = [(start, end)]
    for brk in record.breaks:
        brk_end = to_minutes(brk.end) if brk.end is not None else open_end
        intervals = _subtract(intervals, (to_minutes(brk.start), brk_end))
    return intervals


def compute_heatmap(
    user_id: str,
    records: Iterable[AttendanceRecord],
    *,
    lookback_days: int,
    slot_minutes: int,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> UserHeatmap:
    """
    Turn attendance records into a dense weekday activity profile.

    Steps
    -----
    1) Group records by local calendar day, ignoring Saturdays and Sundays.
       Several records on the same day count as one observed day.
    2) For every slot, count the observed days on which any work interval
       overlaps the slot.
    3) confidence = active days / observed days. Days without any record are
       not observations; with no observed day at all every slot is 0.
    """
    starts = slot_starts(slot_minutes)
    now = ensure_utc(now)
    today = now.astimezone(tz).date()

    intervals_by_day: Dict[date, List[Interval]] = {}
    for record in records:
        day = record.login.astimezone(tz).date()
        if not is_weekday(day):
            continue
        intervals_by_day.setdefault(day, []).extend(
            work_intervals(record, day, today, now, tz)
        )

    observed_days = len(intervals_by_day)
    active_counts = [0] * len(starts)
    for intervals in intervals_by_day.values():
        for idx, slot_start in enumerate(starts):
            slot_end = slot_start + slot_minutes
            if any(a < slot_end and b > slot_start for a, b in intervals):
                active_counts[idx] += 1

    slots = [
        HeatmapSlot(
            start_minutes=slot_start,
            confidence=(active_counts[idx] / observed_days) if observed_days else 0.0,
        )
        for idx, slot_start in enumerate(starts)
    ]

    return UserHeatmap(
        user_id=user_id,
        lookback_days=lookback_days,
        slot_minutes=slot_minutes,
        observed_days=observed_days,
        slots=slots,
    )


class HeatmapBuilder:
    """
    Builds a user's weekday availability heatmap from their attendance history.

    The builder is read-only: it fetches records from the AttendanceStore and
    runs a pure computation over them, so any number of builds can run
    concurrently.
    """

    def __init__(
        self,
        store: AttendanceStore,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.tz = tz
        self._clock = clock

    async def build_heatmap(
        self,
        user_id: str,
        lookback_days: int = 30,
        slot_minutes: int = 60,
    ) -> UserHeatmap:
        """
        Heatmap for `user_id` over the last `lookback_days` days.

        Returns an all-zero heatmap (observed_days == 0) when the user has no
        attendance in the window; deciding that this means "not enough data"
        is up to the caller.
        """
        if not 1 <= lookback_days <= MAX_LOOKBACK_DAYS:
            raise ValueError(
                f"lookback_days must be between 1 and {MAX_LOOKBACK_DAYS}, got {lookback_days}"
            )
        slot_starts(slot_minutes)

        now = ensure_utc(self._clock())
        records = await self.store.get_attendances_in_range(
            user_id,
            now - timedelta(days=lookback_days),
            now,
        )
        heatmap = compute_heatmap(
            user_id,
            records,
            lookback_days=lookback_days,
            slot_minutes=slot_minutes,
            now=now,
            tz=self.tz,
        )
        logger.debug(
            "Built heatmap for user %s: %d records, %d observed weekdays",
            user_id,
            len(records),
            heatmap.observed_days,
        )
        return heatmap
