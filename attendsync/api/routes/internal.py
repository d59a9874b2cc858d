# attendsync/api/routes/internal.py
from http import HTTPStatus
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from attendsync.api.dependencies.internal_auth import verify_internal_api_key
from attendsync.api.dependencies.services import (
    get_app_settings,
    get_attendance_store,
    get_meeting_store,
    get_notification_sink,
    get_user_directory,
)
from attendsync.common.datetime_utils import utc_now
from attendsync.core.config import Settings
from attendsync.schemas.meeting import AttendanceEventResult, ReminderSweepSummary
from attendsync.services.attendance_store import SqlAttendanceStore
from attendsync.services.meeting_attendance import mark_meeting_attendance
from attendsync.services.meeting_reminders import run_meeting_reminders
from attendsync.services.meeting_store import SqlMeetingStore
from attendsync.services.notifications import NotificationSink
from attendsync.services.user_directory import SqlUserDirectory

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


class AttendanceEvent(BaseModel):
    user_id: str = Field(..., description="User whose attendance record just changed.")


@router.post(
    "/run-meeting-reminders",
    response_model=ReminderSweepSummary,
    status_code=HTTPStatus.OK,
    summary="Send reminders for meetings starting soon",
    description=(
        "Intended to be called every minute by a scheduler.\n\n"
        "Every non-canceled meeting that starts within the next "
        "`MEETING_REMINDER_LEAD_MINUTES` and has not been reminded yet gets a DM "
        "to each accepted participant plus a post in its channel. Overlapping "
        "calls never remind the same meeting twice."
    ),
    responses={
        401: {"description": "Missing or invalid internal API key (if configured)."},
        503: {"description": "Discord is not configured."},
    },
)
async def trigger_meeting_reminders(
    store: SqlMeetingStore = Depends(get_meeting_store),
    users: SqlUserDirectory = Depends(get_user_directory),
    sink: Optional[NotificationSink] = Depends(get_notification_sink),
    settings: Settings = Depends(get_app_settings),
) -> ReminderSweepSummary:
    if sink is None:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="DISCORD_BOT_TOKEN must be configured to send reminders.",
        )
    return await run_meeting_reminders(
        store,
        sink,
        now=utc_now(),
        lead_minutes=settings.MEETING_REMINDER_LEAD_MINUTES,
        users=users,
    )


@router.post(
    "/attendance-events",
    response_model=AttendanceEventResult,
    status_code=HTTPStatus.OK,
    summary="Mark meeting attendance after an attendance update",
    description=(
        "Called by the attendance tracker after a user's record changes. If the "
        "user is currently working, every running meeting they are invited to "
        "is marked as attended for them."
    ),
    responses={
        401: {"description": "Missing or invalid internal API key (if configured)."},
        404: {"description": "The user has no attendance record."},
    },
)
async def record_attendance_event(
    payload: AttendanceEvent,
    attendance: SqlAttendanceStore = Depends(get_attendance_store),
    meetings: SqlMeetingStore = Depends(get_meeting_store),
) -> AttendanceEventResult:
    record = await attendance.get_latest_for_user(payload.user_id)
    if record is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"No attendance recorded for user '{payload.user_id}'.",
        )
    return await mark_meeting_attendance(meetings, record, now=utc_now())
