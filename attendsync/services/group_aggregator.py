# attendsync/services/group_aggregator.py
from __future__ import annotations

import math
from typing import List, Sequence

from attendsync.schemas.availability import (
    GroupHeatmap,
    GroupHeatmapSlot,
    MissingDataPolicy,
    UserHeatmap,
)
from attendsync.services.heatmap_builder import slot_starts


def apply_missing_data_policy(
    heatmaps: Sequence[UserHeatmap],
    policy: MissingDataPolicy,
) -> List[UserHeatmap]:
    """
    ZERO keeps users without data (their all-zero heatmap drags the mean
    down); EXCLUDE drops them from the aggregate.
    """
    if policy is MissingDataPolicy.EXCLUDE:
        return [h for h in heatmaps if h.has_data]
    return list(heatmaps)


class GroupAvailabilityAggregator:
    """
    Combines several users' heatmaps into one group profile.

    Rules
    -----
    - avg_confidence of a slot is the arithmetic mean of every user's
      confidence in that slot; each participant counts equally.
    - With `weighted=True` users are weighted by their observed days instead.
    - No heatmaps -> all-zero group heatmap; never divides by zero.
    """

    @staticmethod
    def aggregate(
        heatmaps: Sequence[UserHeatmap],
        slot_minutes: int = 60,
        weighted: bool = False,
    ) -> GroupHeatmap:
        if heatmaps:
            slot_minutes = heatmaps[0].slot_minutes
        starts = slot_starts(slot_minutes)

        for heatmap in heatmaps:
            if heatmap.slot_minutes != slot_minutes or len(heatmap.slots) != len(starts):
                raise ValueError("all heatmaps must share the same slot layout")

        weights = [float(h.observed_days) if weighted else 1.0 for h in heatmaps]
        total_weight = math.fsum(weights)

        slots: List[GroupHeatmapSlot] = []
        for idx, slot_start in enumerate(starts):
            if total_weight > 0:
                weighted_sum = math.fsum(
                    w * h.slots[idx].confidence for w, h in zip(weights, heatmaps)
                )
                avg = min(1.0, weighted_sum / total_weight)
            else:
                avg = 0.0
            slots.append(GroupHeatmapSlot(start_minutes=slot_start, avg_confidence=avg))

        return GroupHeatmap(
            slot_minutes=slot_minutes,
            participant_count=len(heatmaps),
            slots=slots,
        )
