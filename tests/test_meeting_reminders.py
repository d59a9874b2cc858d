# tests/test_meeting_reminders.py
import logging
from datetime import datetime, timedelta, timezone

import pytest

from attendsync.core.exceptions import NotificationError
from attendsync.schemas.meeting import MeetingCreate, MeetingRead, MeetingRequestEntry
from attendsync.services.meeting_reminders import build_channel_reminder, run_meeting_reminders
from attendsync.services.meeting_store import SqlMeetingStore

START = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)
NOW = START - timedelta(minutes=8)
SENT = START - timedelta(days=1)


class RecordingSink:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.reminded = []
        self.channel_posts = []

    async def send_invite(self, user_id, meeting):
        return None

    async def send_reminder(self, user_id, meeting):
        if user_id in self.fail_for:
            raise NotificationError(f"cannot DM {user_id}")
        self.reminded.append((user_id, meeting.id))

    async def post_channel_message(self, channel_id, content):
        self.channel_posts.append((channel_id, content))


class FakeUsers:
    async def get_discord_ids(self, user_ids):
        return {u: f"d-{u}" for u in user_ids}


async def _create(store, start=START):
    return await store.create(
        MeetingCreate(
            creator_user_id="u1",
            channel_id="c-1",
            title="Standup",
            start_time=start,
            end_time=start + timedelta(minutes=15),
            duration_mins=15,
            requests=[
                MeetingRequestEntry(user_id="u1", request_sent_at=SENT, request_accepted_at=SENT),
                MeetingRequestEntry(user_id="u2", request_sent_at=SENT, request_accepted_at=SENT),
                MeetingRequestEntry(user_id="u3", request_sent_at=SENT, rejected_at=SENT),
                MeetingRequestEntry(user_id="u4", request_sent_at=SENT),
            ],
        )
    )


@pytest.mark.asyncio
async def test_reminders_go_to_accepted_participants_only(session_factory):
    store = SqlMeetingStore(session_factory)
    sink = RecordingSink()
    meeting = await _create(store)

    summary = await run_meeting_reminders(store, sink, NOW, lead_minutes=10, users=FakeUsers())

    assert summary.meetings_reminded == [meeting.id]
    assert summary.reminders_sent == 2
    assert sorted(u for u, _ in sink.reminded) == ["u1", "u2"]
    assert len(sink.channel_posts) == 1
    channel_id, content = sink.channel_posts[0]
    assert channel_id == "c-1"
    assert content.startswith("<@d-u1> <@d-u2> Reminder: Meeting \"Standup\" starts at <t:")
    assert (await store.get(meeting.id)).reminder_sent_at == NOW


@pytest.mark.asyncio
async def test_second_sweep_does_not_resend(session_factory):
    store = SqlMeetingStore(session_factory)
    sink = RecordingSink()
    await _create(store)

    await run_meeting_reminders(store, sink, NOW)
    summary = await run_meeting_reminders(store, sink, NOW + timedelta(minutes=1))

    assert summary.meetings_reminded == []
    assert len(sink.reminded) == 2
    assert len(sink.channel_posts) == 1


@pytest.mark.asyncio
async def test_meetings_outside_lead_window_are_left_alone(session_factory):
    store = SqlMeetingStore(session_factory)
    sink = RecordingSink()
    await _create(store, start=START + timedelta(hours=2))

    summary = await run_meeting_reminders(store, sink, NOW, lead_minutes=10)

    assert summary.meetings_reminded == []
    assert sink.reminded == []


@pytest.mark.asyncio
async def test_failed_dm_is_logged_and_sweep_continues(session_factory, caplog):
    store = SqlMeetingStore(session_factory)
    sink = RecordingSink(fail_for={"u1"})
    await _create(store)

    with caplog.at_level(logging.ERROR):
        summary = await run_meeting_reminders(store, sink, NOW)

    assert summary.reminders_sent == 1
    assert summary.reminders_failed == 1
    assert [u for u, _ in sink.reminded] == ["u2"]
    assert len(sink.channel_posts) == 1
    assert "Failed to send reminder" in caplog.text


def test_channel_reminder_without_mentions():
    meeting = MeetingRead(
        id="m-1",
        creator_user_id="u1",
        channel_id="c-1",
        title=None,
        start_time=START,
        end_time=START + timedelta(minutes=15),
        duration_mins=15,
    )
    epoch = int(START.timestamp())

    assert build_channel_reminder(meeting, "") == (
        f"Reminder: Meeting starts at <t:{epoch}:t> (<t:{epoch}:R>)."
    )
