# attendsync/services/attendance_store.py
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendsync.common.datetime_utils import ensure_utc
from attendsync.core.exceptions import PersistenceError
from attendsync.models.attendance import Attendance
from attendsync.schemas.attendance import AttendanceRecord


class AttendanceStore(Protocol):
    """
    Read access to historical attendance, as consumed by the heatmap builder.
    """

    async def get_attendances_in_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> List[AttendanceRecord]:
        ...


class SqlAttendanceStore:
    """
    AttendanceStore backed by the `attendances` table.

    Every call opens its own session, so one store instance can serve many
    concurrent heatmap builds.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Attendance store failure: {exc}") from exc
        except ValidationError as exc:
            raise PersistenceError(f"Attendance store returned an invalid row: {exc}") from exc

    async def get_attendances_in_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> List[AttendanceRecord]:
        """
        Return the user's records whose login falls within [start, end],
        ordered by login.
        """
        stmt = (
            select(Attendance)
            .where(
                Attendance.user_id == user_id,
                Attendance.login >= ensure_utc(start),
                Attendance.login <= ensure_utc(end),
            )
            .order_by(Attendance.login.asc())
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
            return [AttendanceRecord.model_validate(row) for row in rows]

    async def get_latest_for_user(self, user_id: str) -> Optional[AttendanceRecord]:
        stmt = (
            select(Attendance)
            .where(Attendance.user_id == user_id)
            .order_by(Attendance.login.desc())
            .limit(1)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            return AttendanceRecord.model_validate(row) if row is not None else None

    async def add(self, record: AttendanceRecord) -> AttendanceRecord:
        payload = record.model_dump(mode="json")
        row = Attendance(
            user_id=record.user_id,
            login=record.login,
            logout=record.logout,
            work_segments=payload["work_segments"],
            breaks=payload["breaks"],
        )
        async with self._session() as session:
            session.add(row)
            await session.commit()
        return record
