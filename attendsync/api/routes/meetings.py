# attendsync/api/routes/meetings.py
from http import HTTPStatus
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path

from attendsync.api.dependencies.services import get_meeting_store, get_notification_sink
from attendsync.core.exceptions import MeetingNotActiveError
from attendsync.schemas.meeting import InviteResponse, MeetingRead
from attendsync.services.meeting_responses import respond_to_invite
from attendsync.services.meeting_store import SqlMeetingStore
from attendsync.services.notifications import NotificationSink

router = APIRouter(prefix="/meetings", tags=["Meetings"])


@router.get(
    "/{meeting_id}",
    response_model=MeetingRead,
    status_code=HTTPStatus.OK,
    summary="Get a meeting with its invitations",
    responses={404: {"description": "Meeting not found."}},
)
async def get_meeting(
    meeting_id: str = Path(..., description="Meeting id (uuid)."),
    store: SqlMeetingStore = Depends(get_meeting_store),
) -> MeetingRead:
    meeting = await store.get(meeting_id)
    if meeting is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Meeting '{meeting_id}' not found.",
        )
    return meeting


@router.post(
    "/{meeting_id}/responses",
    response_model=MeetingRead,
    status_code=HTTPStatus.OK,
    summary="Accept or reject a meeting invitation",
    description=(
        "Records an invitee's answer, the same way the Accept / Reject buttons "
        "on the invite DM do.\n\n"
        "If every invitee has rejected, the meeting is canceled and the "
        "meeting channel is told (when Discord is configured)."
    ),
    responses={
        404: {"description": "Meeting not found."},
        409: {"description": "Meeting was canceled or the user is not invited."},
    },
)
async def respond_to_meeting(
    payload: InviteResponse,
    meeting_id: str = Path(..., description="Meeting id (uuid)."),
    store: SqlMeetingStore = Depends(get_meeting_store),
    sink: Optional[NotificationSink] = Depends(get_notification_sink),
) -> MeetingRead:
    if await store.get(meeting_id) is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Meeting '{meeting_id}' not found.",
        )

    try:
        return await respond_to_invite(
            store,
            meeting_id,
            payload.user_id,
            payload.accepted,
            sink=sink,
        )
    except MeetingNotActiveError as exc:
        raise HTTPException(status_code=HTTPStatus.CONFLICT, detail=str(exc)) from exc
