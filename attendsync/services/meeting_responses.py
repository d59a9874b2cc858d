# attendsync/services/meeting_responses.py
from __future__ import annotations

import logging
from datetime import datetime

from attendsync.common.datetime_utils import ensure_utc, utc_now
from attendsync.core.exceptions import MeetingNotActiveError
from attendsync.schemas.meeting import MeetingRead
from attendsync.services.meeting_store import SqlMeetingStore
from attendsync.services.notifications import NotificationSink

logger = logging.getLogger(__name__)


def build_all_rejected_message(meeting: MeetingRead) -> str:
    title = f' "{meeting.title}"' if meeting.title else ""
    return f"All invitees rejected. Meeting{title} has been canceled."


async def respond_to_invite(
    store: SqlMeetingStore,
    meeting_id: str,
    user_id: str,
    accepted: bool,
    sink: NotificationSink | None = None,
    now: datetime | None = None,
) -> MeetingRead:
    """
    Record an invitee's Accept / Reject answer.

    Rules
    -----
    - Unknown or canceled meeting -> MeetingNotActiveError.
    - Accepting clears a previous rejection and vice versa.
    - When every invitee has rejected (and nobody accepted) the meeting is
      canceled and, if a sink is given, the meeting channel is told.

    Parameters
    ----------
    store:
        Meeting persistence.
    meeting_id:
        Id carried by the invite button.
    user_id:
        Application user id of the invitee who clicked.
    accepted:
        True for Accept, False for Reject.
    sink:
        Optional notification sink used for the cancellation notice.
    now:
        Response timestamp; defaults to the current UTC time.

    Returns
    -------
    MeetingRead:
        The meeting after the response (and possible cancellation).
    """
    at = ensure_utc(now) if now is not None else utc_now()

    meeting = await store.get(meeting_id)
    if meeting is None or meeting.is_canceled:
        raise MeetingNotActiveError(f"Meeting {meeting_id} is no longer active")

    refreshed = await store.set_request_response(meeting_id, user_id, accepted, at)
    if refreshed is None:
        raise MeetingNotActiveError(
            f"User {user_id} is not invited to meeting {meeting_id}"
        )

    logger.info(
        "User %s %s meeting %s",
        user_id,
        "accepted" if accepted else "rejected",
        meeting_id,
    )

    if not refreshed.everyone_rejected:
        return refreshed

    canceled = await store.cancel(meeting_id) or refreshed
    logger.info("Meeting %s canceled: all invitees rejected", meeting_id)
    if sink is not None:
        try:
            await sink.post_channel_message(
                canceled.channel_id, build_all_rejected_message(canceled)
            )
        except Exception:
            logger.exception(
                "Failed to post cancellation notice for meeting %s", meeting_id
            )
    return canceled
