# attendsync/services/meeting_attendance.py
from __future__ import annotations

import logging
from datetime import datetime

from attendsync.common.datetime_utils import ensure_utc
from attendsync.schemas.attendance import AttendanceRecord
from attendsync.schemas.meeting import AttendanceEventResult
from attendsync.services.meeting_store import SqlMeetingStore

logger = logging.getLogger(__name__)


def is_working_at(record: AttendanceRecord, at: datetime) -> bool:
    """
    True if the record's most recent work segment is still open or ends
    after `at`.
    """
    if not record.work_segments:
        return False
    last = record.work_segments[-1]
    return last.end is None or last.end > ensure_utc(at)


async def mark_meeting_attendance(
    store: SqlMeetingStore,
    record: AttendanceRecord,
    now: datetime,
) -> AttendanceEventResult:
    """
    Attendance hook, run whenever a user's attendance record changes.

    Every non-canceled meeting running at `now` that the user is invited to
    gets `attended = true` on the user's request. Setting the flag twice is
    a no-op.
    """
    result = AttendanceEventResult(user_id=record.user_id)
    if not is_working_at(record, now):
        return result

    for meeting in await store.find_running_for_user(record.user_id, now):
        if await store.mark_attended(meeting.id, record.user_id):
            logger.info(
                "Marked user %s as attending meeting %s", record.user_id, meeting.id
            )
            result.marked_meeting_ids.append(meeting.id)
    return result
