# attendsync/models/attendance.py
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from attendsync.db.base import Base


class Attendance(Base):
    """
    One user's attendance for one calendar day, written by the voice-channel
    hook as the user logs in, takes breaks, switches projects and logs out.

    `work_segments` and `breaks` are stored as JSON arrays of
    `{"start": iso, "end": iso | null, ...}` objects in UTC.
    """

    __tablename__ = "attendances"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    login = Column(DateTime(timezone=True), nullable=False, index=True)
    logout = Column(DateTime(timezone=True), nullable=True)

    work_segments = Column(JSON, nullable=False, default=list)
    breaks = Column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return (
            f"<Attendance id={self.id} user_id={self.user_id} "
            f"login={self.login} logout={self.logout}>"
        )
