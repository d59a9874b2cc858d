# attendsync/services/window_searcher.py
from __future__ import annotations

import math
from typing import List, Optional

from attendsync.schemas.availability import AvailabilityWindow, GroupHeatmap


class WindowSearcher:
    """
    Finds meeting windows in a group heatmap.

    Every start slot that leaves room for the required number of slots before
    midnight is a candidate, so overlapping windows are expected: they are the
    same good period starting at slightly different times. Candidates are
    ranked by mean confidence (highest first), ties broken by earlier start.

    A slot with confidence 0 is still a valid slot here; only the heatmap
    decides what "no evidence" means.
    """

    @staticmethod
    def find_windows(
        group_heatmap: GroupHeatmap,
        required_duration_minutes: int,
        slot_minutes: Optional[int] = None,
        min_start_minutes: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[AvailabilityWindow]:
        """
        Rank every window of `ceil(duration / slot_minutes)` slots.

        Parameters
        ----------
        group_heatmap:
            Aggregated heatmap to scan.
        required_duration_minutes:
            Meeting length; must be positive.
        slot_minutes:
            Slot width; defaults to the heatmap's own width.
        min_start_minutes:
            Windows must start at or after this minute of the day (used for
            "not earlier than now" when scheduling for today). Only the start
            is constrained.
        limit:
            Optional cap on the number of windows returned.

        Returns
        -------
        list[AvailabilityWindow]
            Empty when the heatmap is empty or no window fits in the day.
        """
        if slot_minutes is None:
            slot_minutes = group_heatmap.slot_minutes
        if slot_minutes <= 0:
            raise ValueError(f"slot_minutes must be positive, got {slot_minutes}")
        if required_duration_minutes <= 0:
            raise ValueError(
                f"required_duration_minutes must be positive, got {required_duration_minutes}"
            )

        slots = group_heatmap.slots
        total = len(slots)
        k = math.ceil(required_duration_minutes / slot_minutes)
        if total == 0 or k > total:
            return []

        windows: List[AvailabilityWindow] = []
        for i in range(0, total - k + 1):
            start = slots[i].start_minutes
            if min_start_minutes is not None and start < min_start_minutes:
                continue
            avg = math.fsum(s.avg_confidence for s in slots[i : i + k]) / k
            windows.append(
                AvailabilityWindow(
                    start_minutes=start,
                    end_minutes=start + k * slot_minutes,
                    avg_confidence=min(1.0, avg),
                )
            )

        windows.sort(key=lambda w: (-w.avg_confidence, w.start_minutes))
        if limit is not None:
            windows = windows[:limit]
        return windows
