# tests/test_meeting_store.py
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from attendsync.core.exceptions import PersistenceError
from attendsync.schemas.meeting import MeetingCreate, MeetingRequestEntry, MeetingUpdate
from attendsync.services.meeting_store import SqlMeetingStore

START = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)
SENT = START - timedelta(days=1)


def _payload(start=START, users=("u1", "u2", "u3"), title="Sprint planning") -> MeetingCreate:
    return MeetingCreate(
        creator_user_id=users[0],
        channel_id="c-1",
        title=title,
        start_time=start,
        end_time=start + timedelta(minutes=30),
        duration_mins=30,
        requests=[
            MeetingRequestEntry(
                user_id=u,
                request_sent_at=SENT,
                request_accepted_at=SENT if u == users[0] else None,
            )
            for u in users
        ],
    )


@pytest.mark.asyncio
async def test_create_and_get_round_trip(session_factory):
    store = SqlMeetingStore(session_factory)

    created = await store.create(_payload())
    fetched = await store.get(created.id)

    assert fetched is not None
    assert fetched.id == created.id
    assert fetched.title == "Sprint planning"
    assert fetched.start_time == START
    assert fetched.is_canceled is False
    assert fetched.reminder_sent_at is None
    assert fetched.created_at is not None
    assert [r.user_id for r in fetched.requests] == ["u1", "u2", "u3"]
    assert fetched.request_for("u1").is_accepted
    assert not fetched.request_for("u2").is_accepted


@pytest.mark.asyncio
async def test_get_and_update_unknown_meeting(session_factory):
    store = SqlMeetingStore(session_factory)

    assert await store.get("missing") is None
    assert await store.update("missing", MeetingUpdate(title="x")) is None


@pytest.mark.asyncio
async def test_update_only_touches_given_fields(session_factory):
    store = SqlMeetingStore(session_factory)
    created = await store.create(_payload())

    updated = await store.update(created.id, MeetingUpdate(title="Retro"))

    assert updated.title == "Retro"
    assert updated.start_time == START
    assert updated.duration_mins == 30
    assert len(updated.requests) == 3


@pytest.mark.asyncio
async def test_set_request_response_targets_one_invitee(session_factory):
    store = SqlMeetingStore(session_factory)
    created = await store.create(_payload())
    at = START - timedelta(hours=2)

    after_reject = await store.set_request_response(created.id, "u2", False, at)
    assert after_reject.request_for("u2").rejected_at == at
    assert after_reject.request_for("u2").request_accepted_at is None

    after_accept = await store.set_request_response(created.id, "u2", True, at)
    assert after_accept.request_for("u2").is_accepted
    assert after_accept.request_for("u2").rejected_at is None
    # other invitees untouched
    assert after_accept.request_for("u3").request_accepted_at is None
    assert after_accept.request_for("u1").is_accepted


@pytest.mark.asyncio
async def test_set_request_response_for_non_invitee(session_factory):
    store = SqlMeetingStore(session_factory)
    created = await store.create(_payload())

    assert await store.set_request_response(created.id, "stranger", True, START) is None


@pytest.mark.asyncio
async def test_reminder_is_claimed_once(session_factory):
    store = SqlMeetingStore(session_factory)
    created = await store.create(_payload())
    now = START - timedelta(minutes=5)

    assert await store.mark_reminder_sent(created.id, now) is True
    assert await store.mark_reminder_sent(created.id, now) is False

    meeting = await store.get(created.id)
    assert meeting.reminder_sent_at == now


@pytest.mark.asyncio
async def test_find_due_for_reminder(session_factory):
    store = SqlMeetingStore(session_factory)
    now = START - timedelta(minutes=5)

    due = await store.create(_payload(start=START))
    later = await store.create(_payload(start=START + timedelta(hours=1)))
    canceled = await store.create(_payload(start=START + timedelta(minutes=2)))
    reminded = await store.create(_payload(start=START + timedelta(minutes=3)))
    await store.cancel(canceled.id)
    await store.mark_reminder_sent(reminded.id, now)

    result = await store.find_due_for_reminder(now, lead_minutes=10)

    assert [m.id for m in result] == [due.id]
    assert later.id not in [m.id for m in result]


@pytest.mark.asyncio
async def test_mark_attended_is_idempotent(session_factory):
    store = SqlMeetingStore(session_factory)
    created = await store.create(_payload())

    assert await store.mark_attended(created.id, "u2") is True
    assert await store.mark_attended(created.id, "u2") is False

    meeting = await store.get(created.id)
    assert meeting.request_for("u2").attended is True
    assert meeting.request_for("u3").attended is False


@pytest.mark.asyncio
async def test_find_running_for_user(session_factory):
    store = SqlMeetingStore(session_factory)
    running = await store.create(_payload())
    await store.create(_payload(users=("u5", "u6")))
    other_day = await store.create(_payload(start=START + timedelta(days=1)))
    at = START + timedelta(minutes=10)

    result = await store.find_running_for_user("u2", at)

    assert [m.id for m in result] == [running.id]
    assert other_day.id not in [m.id for m in result]

    await store.cancel(running.id)
    assert await store.find_running_for_user("u2", at) == []


@pytest.mark.asyncio
async def test_database_errors_become_persistence_errors(tmp_path):
    # no schema created on this database
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}", poolclass=NullPool)
    store = SqlMeetingStore(async_sessionmaker(bind=engine, class_=AsyncSession))

    with pytest.raises(PersistenceError):
        await store.get("anything")
