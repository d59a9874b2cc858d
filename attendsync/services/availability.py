# attendsync/services/availability.py
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from attendsync.schemas.availability import (
    AvailabilityWindow,
    GroupHeatmap,
    MissingDataPolicy,
    UserHeatmap,
)
from attendsync.services.group_aggregator import (
    GroupAvailabilityAggregator,
    apply_missing_data_policy,
)
from attendsync.services.heatmap_builder import HeatmapBuilder
from attendsync.services.window_searcher import WindowSearcher

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Glue between the heatmap builder, the aggregator and the window searcher.

    This is what /availability, /meeting and the HTTP API call; none of the
    steps write anything.
    """

    def __init__(self, builder: HeatmapBuilder) -> None:
        self.builder = builder

    async def get_user_heatmap(
        self,
        user_id: str,
        lookback_days: int = 30,
        slot_minutes: int = 60,
    ) -> UserHeatmap:
        return await self.builder.build_heatmap(user_id, lookback_days, slot_minutes)

    async def get_user_heatmaps(
        self,
        user_ids: Sequence[str],
        lookback_days: int = 30,
        slot_minutes: int = 60,
    ) -> List[UserHeatmap]:
        return list(
            await asyncio.gather(
                *(
                    self.builder.build_heatmap(uid, lookback_days, slot_minutes)
                    for uid in user_ids
                )
            )
        )

    async def get_group_heatmap(
        self,
        user_ids: Sequence[str],
        lookback_days: int = 30,
        slot_minutes: int = 60,
        missing_data: MissingDataPolicy = MissingDataPolicy.ZERO,
    ) -> GroupHeatmap:
        heatmaps = await self.get_user_heatmaps(user_ids, lookback_days, slot_minutes)
        included = apply_missing_data_policy(heatmaps, missing_data)
        if len(included) < len(heatmaps):
            logger.debug(
                "Excluded %d user(s) without attendance data from group heatmap",
                len(heatmaps) - len(included),
            )
        return GroupAvailabilityAggregator.aggregate(included, slot_minutes=slot_minutes)

    async def get_group_availability_windows(
        self,
        user_ids: Sequence[str],
        duration_minutes: int,
        lookback_days: int = 30,
        slot_minutes: int = 60,
        min_start_minutes: Optional[int] = None,
        missing_data: MissingDataPolicy = MissingDataPolicy.ZERO,
        limit: Optional[int] = None,
    ) -> Tuple[GroupHeatmap, List[AvailabilityWindow]]:
        """
        Group heatmap plus ranked candidate windows for `user_ids`.

        An empty window list is a normal result ("relax the constraints"),
        never an error.
        """
        group = await self.get_group_heatmap(user_ids, lookback_days, slot_minutes, missing_data)
        windows = WindowSearcher.find_windows(
            group,
            duration_minutes,
            slot_minutes=slot_minutes,
            min_start_minutes=min_start_minutes,
            limit=limit,
        )
        return group, windows
