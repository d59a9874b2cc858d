# attendsync/services/meeting_store.py
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendsync.common.datetime_utils import ensure_utc
from attendsync.core.exceptions import PersistenceError
from attendsync.models.meeting import Meeting, MeetingRequest
from attendsync.schemas.meeting import MeetingCreate, MeetingRead, MeetingUpdate


class MeetingStore(Protocol):
    """
    Persistence operations the scheduling flow depends on.
    """

    async def create(self, payload: MeetingCreate) -> MeetingRead:
        ...

    async def update(self, meeting_id: str, changes: MeetingUpdate) -> Optional[MeetingRead]:
        ...


class SqlMeetingStore:
    """
    MeetingStore backed by the `meetings` / `meeting_requests` tables.

    Mutations after creation are targeted UPDATE statements on the columns
    each caller owns (acceptance, attendance, reminder), so concurrent
    triggers on the same meeting cannot overwrite each other's fields.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Meeting store failure: {exc}") from exc
        except ValidationError as exc:
            raise PersistenceError(f"Meeting store returned an invalid row: {exc}") from exc

    @staticmethod
    async def _load(session: AsyncSession, meeting_id: str) -> Optional[Meeting]:
        stmt = (
            select(Meeting)
            .where(Meeting.id == meeting_id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, payload: MeetingCreate) -> MeetingRead:
        meeting = Meeting(
            creator_user_id=payload.creator_user_id,
            channel_id=payload.channel_id,
            title=payload.title,
            start_time=ensure_utc(payload.start_time),
            end_time=ensure_utc(payload.end_time),
            duration_mins=payload.duration_mins,
            is_canceled=False,
            reminder_sent_at=None,
            requests=[
                MeetingRequest(
                    user_id=r.user_id,
                    request_sent_at=ensure_utc(r.request_sent_at),
                    request_accepted_at=r.request_accepted_at,
                    rejected_at=r.rejected_at,
                    attended=r.attended,
                )
                for r in payload.requests
            ],
        )
        async with self._session() as session:
            session.add(meeting)
            await session.commit()
            created = await self._load(session, meeting.id)
            return MeetingRead.model_validate(created)

    async def get(self, meeting_id: str) -> Optional[MeetingRead]:
        async with self._session() as session:
            meeting = await self._load(session, meeting_id)
            return MeetingRead.model_validate(meeting) if meeting is not None else None

    async def update(self, meeting_id: str, changes: MeetingUpdate) -> Optional[MeetingRead]:
        """
        Apply the explicitly-set fields of `changes`. Returns None when the
        meeting does not exist.
        """
        values: Dict[str, Any] = changes.model_dump(exclude_unset=True)
        for key, value in values.items():
            if isinstance(value, datetime):
                values[key] = ensure_utc(value)

        async with self._session() as session:
            if values:
                result = await session.execute(
                    update(Meeting).where(Meeting.id == meeting_id).values(**values)
                )
                if result.rowcount == 0:
                    return None
                await session.commit()
            meeting = await self._load(session, meeting_id)
            return MeetingRead.model_validate(meeting) if meeting is not None else None

    async def cancel(self, meeting_id: str) -> Optional[MeetingRead]:
        return await self.update(meeting_id, MeetingUpdate(is_canceled=True))

    async def set_request_response(
        self,
        meeting_id: str,
        user_id: str,
        accepted: bool,
        at: datetime,
    ) -> Optional[MeetingRead]:
        """
        Record an accept / reject for one invitee. Returns None when the
        meeting or the invitee's request does not exist.
        """
        at = ensure_utc(at)
        stmt = (
            update(MeetingRequest)
            .where(
                MeetingRequest.meeting_id == meeting_id,
                MeetingRequest.user_id == user_id,
            )
            .values(
                request_accepted_at=at if accepted else None,
                rejected_at=None if accepted else at,
            )
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                return None
            await session.commit()
            meeting = await self._load(session, meeting_id)
            return MeetingRead.model_validate(meeting) if meeting is not None else None

    async def mark_attended(self, meeting_id: str, user_id: str) -> bool:
        """Set attended=true; returns False if it was already set."""
        stmt = (
            update(MeetingRequest)
            .where(
                MeetingRequest.meeting_id == meeting_id,
                MeetingRequest.user_id == user_id,
                MeetingRequest.attended.is_(False),
            )
            .values(attended=True)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount > 0

    async def find_running_for_user(self, user_id: str, at: datetime) -> List[MeetingRead]:
        """Non-canceled meetings the user is invited to that are running at `at`."""
        at = ensure_utc(at)
        invited = select(MeetingRequest.meeting_id).where(MeetingRequest.user_id == user_id)
        stmt = (
            select(Meeting)
            .where(
                Meeting.is_canceled.is_(False),
                Meeting.start_time <= at,
                Meeting.end_time >= at,
                Meeting.id.in_(invited),
            )
            .order_by(Meeting.start_time.asc())
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            meetings = result.scalars().all()
            return [MeetingRead.model_validate(m) for m in meetings]

    async def find_due_for_reminder(
        self,
        now: datetime,
        lead_minutes: int,
    ) -> List[MeetingRead]:
        """
        Meetings starting within [now, now + lead] with no reminder sent yet.

        The whole window is scanned on every sweep so a restart never loses
        a reminder.
        """
        now = ensure_utc(now)
        stmt = (
            select(Meeting)
            .where(
                Meeting.is_canceled.is_(False),
                Meeting.reminder_sent_at.is_(None),
                Meeting.start_time >= now,
                Meeting.start_time <= now + timedelta(minutes=lead_minutes),
            )
            .order_by(Meeting.start_time.asc())
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            meetings = result.scalars().all()
            return [MeetingRead.model_validate(m) for m in meetings]

    async def mark_reminder_sent(self, meeting_id: str, at: datetime) -> bool:
        """
        Claim the reminder for a meeting. Only the first caller gets True.
        """
        stmt = (
            update(Meeting)
            .where(Meeting.id == meeting_id, Meeting.reminder_sent_at.is_(None))
            .values(reminder_sent_at=ensure_utc(at))
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount > 0
