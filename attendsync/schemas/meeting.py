# attendsync/schemas/meeting.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from attendsync.common.datetime_utils import ensure_utc


class MeetingRequestEntry(BaseModel):
    """
    Invitation state of one participant for one meeting.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    request_sent_at: datetime
    request_accepted_at: datetime | None = None
    rejected_at: datetime | None = None
    attended: bool = False

    @field_validator("request_sent_at", "request_accepted_at", "rejected_at")
    @classmethod
    def _normalize(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @property
    def is_accepted(self) -> bool:
        return self.request_accepted_at is not None and self.rejected_at is None


class MeetingCreate(BaseModel):
    """
    Payload used to persist a confirmed meeting.
    """

    creator_user_id: str
    channel_id: str
    title: str | None = Field(None, examples=["Sprint planning"])
    start_time: datetime
    end_time: datetime
    duration_mins: int = Field(..., ge=1, examples=[30])
    requests: list[MeetingRequestEntry] = Field(default_factory=list)


class MeetingUpdate(BaseModel):
    """
    Partial update of a meeting's top-level fields.

    Only fields explicitly provided are written.
    """

    title: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_mins: int | None = Field(None, ge=1)
    is_canceled: bool | None = None
    reminder_sent_at: datetime | None = None


class MeetingRead(BaseModel):
    """
    Public representation of a persisted meeting.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., examples=["0f8c6b9e-4a8e-4c3a-9a2f-1d2e3f4a5b6c"])
    creator_user_id: str
    channel_id: str
    title: str | None = None
    start_time: datetime
    end_time: datetime
    duration_mins: int
    is_canceled: bool = False
    reminder_sent_at: datetime | None = None
    requests: list[MeetingRequestEntry] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator(
        "start_time", "end_time", "reminder_sent_at", "created_at", "updated_at"
    )
    @classmethod
    def _normalize(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    def request_for(self, user_id: str) -> MeetingRequestEntry | None:
        for request in self.requests:
            if request.user_id == user_id:
                return request
        return None

    @property
    def invitees(self) -> list[MeetingRequestEntry]:
        """Requests of everyone except the creator."""
        return [r for r in self.requests if r.user_id != self.creator_user_id]

    @property
    def everyone_rejected(self) -> bool:
        """
        True if every invitee rejected and none of them accepted.

        The creator's own request is pre-accepted and does not count.
        """
        invitees = self.invitees
        if not invitees:
            return False
        any_accepted = any(r.request_accepted_at is not None for r in invitees)
        all_rejected = all(r.rejected_at is not None for r in invitees)
        return all_rejected and not any_accepted


class InviteResponse(BaseModel):
    """
    Body of POST /meetings/{meeting_id}/responses.
    """

    user_id: str = Field(..., description="Application user id of the invitee.")
    accepted: bool = Field(..., description="True to accept, false to reject.")


class ReminderSweepSummary(BaseModel):
    """
    Result of one reminder sweep.
    """

    checked_at: datetime
    meetings_reminded: list[str] = Field(default_factory=list)
    reminders_sent: int = 0
    reminders_failed: int = 0


class AttendanceEventResult(BaseModel):
    """
    Meetings whose attendance flag was set by one attendance update.
    """

    user_id: str
    marked_meeting_ids: list[str] = Field(default_factory=list)
