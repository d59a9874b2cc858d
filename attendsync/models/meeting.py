# attendsync/models/meeting.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from attendsync.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Meeting(Base):
    """
    A meeting created through the interactive /meeting flow.
    """

    __tablename__ = "meetings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    creator_user_id = Column(String(36), nullable=False, index=True)
    channel_id = Column(String(32), nullable=False)
    title = Column(String(255), nullable=True)

    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration_mins = Column(Integer, nullable=False)

    is_canceled = Column(Boolean, nullable=False, default=False)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    requests = relationship(
        "MeetingRequest",
        back_populates="meeting",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MeetingRequest.id",
    )

    def __repr__(self) -> str:
        return (
            f"<Meeting id={self.id} start={self.start_time} "
            f"canceled={self.is_canceled}>"
        )


class MeetingRequest(Base):
    """
    Invitation of one participant to one meeting.

    Accept/reject, attendance detection and reminders each touch their own
    columns, so every mutator can use a targeted UPDATE on a single row.
    """

    __tablename__ = "meeting_requests"

    id = Column(Integer, primary_key=True, index=True)

    meeting_id = Column(
        String(36),
        ForeignKey("meetings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(36), nullable=False, index=True)

    request_sent_at = Column(DateTime(timezone=True), nullable=False)
    request_accepted_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    attended = Column(Boolean, nullable=False, default=False)

    meeting = relationship("Meeting", back_populates="requests")

    __table_args__ = (
        UniqueConstraint(
            "meeting_id",
            "user_id",
            name="uq_meeting_requests_meeting_user",
        ),
    )
