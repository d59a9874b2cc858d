# attendsync/schemas/availability.py
from enum import Enum

from pydantic import BaseModel, Field


class MissingDataPolicy(str, Enum):
    """
    How users without any attendance history take part in a group search.

    ZERO     -> strict path: the user counts, with confidence 0 in every slot.
    EXCLUDE  -> fallback path: the user is left out of the aggregate.
    """

    ZERO = "ZERO"
    EXCLUDE = "EXCLUDE"


class HeatmapSlot(BaseModel):
    start_minutes: int = Field(
        ...,
        ge=0,
        le=1439,
        description="Start of the slot in minutes since local midnight.",
        examples=[540],
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description=(
            "Fraction of observed weekdays on which the user was active "
            "(logged in and not on break) during this slot."
        ),
        examples=[0.8],
    )


class UserHeatmap(BaseModel):
    """
    Dense per-slot activity profile of a single user over one synthetic day.
    """

    user_id: str
    lookback_days: int = Field(..., examples=[30])
    slot_minutes: int = Field(..., examples=[60])
    observed_days: int = Field(
        ...,
        ge=0,
        description=(
            "Number of weekdays in the lookback window with at least one "
            "attendance record. Zero means there is not enough data."
        ),
    )
    slots: list[HeatmapSlot]

    @property
    def has_data(self) -> bool:
        return self.observed_days > 0


class GroupHeatmapSlot(BaseModel):
    start_minutes: int = Field(..., ge=0, le=1439)
    avg_confidence: float = Field(..., ge=0.0, le=1.0)


class GroupHeatmap(BaseModel):
    """
    Per-slot mean of several users' heatmaps.
    """

    slot_minutes: int
    participant_count: int = Field(
        ...,
        ge=0,
        description="Number of user heatmaps that went into the average.",
    )
    slots: list[GroupHeatmapSlot]


class AvailabilityWindow(BaseModel):
    """
    Contiguous run of slots long enough for the requested meeting duration.
    """

    start_minutes: int = Field(..., ge=0, le=1439, examples=[540])
    end_minutes: int = Field(..., ge=1, le=1440, examples=[600])
    avg_confidence: float = Field(..., ge=0.0, le=1.0, examples=[0.75])


class WindowSearchRequest(BaseModel):
    """
    Body of POST /availability/windows.
    """

    user_ids: list[str] = Field(
        ...,
        description="Application user ids of every participant (at least two).",
        examples=[["u-alice", "u-bob"]],
    )
    duration_minutes: int = Field(30, ge=10, le=120, examples=[60])
    lookback_days: int | None = Field(
        None,
        ge=7,
        le=120,
        description="History to consider; defaults to AVAILABILITY_LOOKBACK_DAYS.",
    )
    slot_minutes: int | None = Field(
        None,
        description="Heatmap resolution; defaults to AVAILABILITY_SLOT_MINUTES.",
    )
    min_start_minutes: int | None = Field(
        None,
        ge=0,
        le=1439,
        description="Earliest allowed window start, in minutes since midnight.",
    )
    missing_data: MissingDataPolicy = MissingDataPolicy.ZERO
    limit: int | None = Field(None, ge=1, examples=[3])


class WindowSearchResponse(BaseModel):
    heatmap: GroupHeatmap
    windows: list[AvailabilityWindow]
