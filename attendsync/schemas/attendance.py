# attendsync/schemas/attendance.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from attendsync.common.datetime_utils import ensure_utc


class WorkSegment(BaseModel):
    """
    A stretch of focused work on one project inside an attendance record.
    """

    start: datetime = Field(..., description="When the segment started (UTC).")
    end: datetime | None = Field(
        None,
        description="When the segment ended; null while it is still running.",
    )
    project: str | None = Field(None, examples=["attendsync"])

    @field_validator("start", "end")
    @classmethod
    def _normalize(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class BreakInterval(BaseModel):
    """
    A break taken while logged in. Breaks do not count as active time.
    """

    start: datetime
    end: datetime | None = None
    reason: str | None = None

    @field_validator("start", "end")
    @classmethod
    def _normalize(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class AttendanceRecord(BaseModel):
    """
    One user's attendance for one calendar day.

    `logout` is null while the user is still logged in (or never logged out).
    Segments within a record never overlap.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(..., examples=["5e23ebb84d38965d54026712"])
    login: datetime = Field(..., description="Login timestamp (UTC).")
    logout: datetime | None = Field(
        None,
        description="Logout timestamp (UTC); null for an open-ended session.",
    )
    work_segments: list[WorkSegment] = Field(default_factory=list)
    breaks: list[BreakInterval] = Field(default_factory=list)

    @field_validator("login", "logout")
    @classmethod
    def _normalize(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @field_validator("work_segments", "breaks", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value

    @model_validator(mode="after")
    def _segments_after_login(self) -> "AttendanceRecord":
        if self.work_segments and self.work_segments[0].start < self.login:
            raise ValueError("first work segment cannot start before login")
        return self
