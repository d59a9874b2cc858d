# attendsync/services/meeting_reminders.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict

from attendsync.common.datetime_utils import ensure_utc
from attendsync.common.discord_format import discord_timestamp, mention_list
from attendsync.schemas.meeting import MeetingRead, ReminderSweepSummary
from attendsync.services.meeting_store import SqlMeetingStore
from attendsync.services.notifications import NotificationSink
from attendsync.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


def build_channel_reminder(meeting: MeetingRead, mentions: str) -> str:
    title = f' "{meeting.title}"' if meeting.title else ""
    prefix = f"{mentions} " if mentions else ""
    return (
        f"{prefix}Reminder: Meeting{title} starts at "
        f"{discord_timestamp(meeting.start_time, 't')} "
        f"({discord_timestamp(meeting.start_time, 'R')})."
    )


async def run_meeting_reminders(
    store: SqlMeetingStore,
    sink: NotificationSink,
    now: datetime,
    lead_minutes: int = 10,
    users: UserDirectory | None = None,
) -> ReminderSweepSummary:
    """
    Send reminders for meetings starting within the next `lead_minutes`.

    Behavior
    --------
    - Meetings that are canceled or already reminded are skipped.
    - The reminder is claimed (reminder_sent_at set) before anything is
      sent; a sweep that loses the claim skips the meeting.
    - Every participant who accepted and did not reject gets a DM; failures
      are logged per recipient and do not stop the sweep.
    - The meeting channel gets one post mentioning those participants.

    Parameters
    ----------
    store:
        Meeting persistence.
    sink:
        Outbound notifications.
    now:
        Sweep time.
    lead_minutes:
        How far ahead of the start reminders go out.
    users:
        Optional directory used to build channel mentions.

    Returns
    -------
    ReminderSweepSummary
    """
    now = ensure_utc(now)
    summary = ReminderSweepSummary(checked_at=now)

    for meeting in await store.find_due_for_reminder(now, lead_minutes):
        if not await store.mark_reminder_sent(meeting.id, now):
            logger.debug("Reminder for meeting %s already claimed", meeting.id)
            continue

        recipients = [r.user_id for r in meeting.requests if r.is_accepted]
        for user_id in recipients:
            try:
                await sink.send_reminder(user_id, meeting)
                summary.reminders_sent += 1
            except Exception:
                summary.reminders_failed += 1
                logger.exception(
                    "Failed to send reminder for meeting %s to user %s",
                    meeting.id,
                    user_id,
                )

        discord_ids: Dict[str, str] = {}
        if users is not None and recipients:
            discord_ids = await users.get_discord_ids(recipients)
        mentions = mention_list([discord_ids[u] for u in recipients if u in discord_ids])
        try:
            await sink.post_channel_message(
                meeting.channel_id, build_channel_reminder(meeting, mentions)
            )
        except Exception:
            logger.exception("Failed to post reminder for meeting %s", meeting.id)

        summary.meetings_reminded.append(meeting.id)

    if summary.meetings_reminded:
        logger.info(
            "Reminder sweep: %d meeting(s), %d sent, %d failed",
            len(summary.meetings_reminded),
            summary.reminders_sent,
            summary.reminders_failed,
        )
    return summary
