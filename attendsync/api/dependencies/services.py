# attendsync/api/dependencies/services.py
"""
FastAPI dependencies that assemble stores and services for the routes.

Everything hangs off `get_session_factory`, so tests can point the whole
API at another database with a single dependency override.
"""
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendsync.core.config import Settings, get_settings
from attendsync.db.session import get_session_factory
from attendsync.services.attendance_store import SqlAttendanceStore
from attendsync.services.availability import AvailabilityService
from attendsync.services.discord_client import get_discord_client
from attendsync.services.heatmap_builder import HeatmapBuilder
from attendsync.services.meeting_scheduler import MeetingScheduler
from attendsync.services.meeting_store import SqlMeetingStore
from attendsync.services.notifications import DiscordNotificationSink, NotificationSink
from attendsync.services.user_directory import SqlUserDirectory


def get_app_settings() -> Settings:
    return get_settings()


def get_attendance_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAttendanceStore:
    return SqlAttendanceStore(session_factory)


def get_meeting_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlMeetingStore:
    return SqlMeetingStore(session_factory)


def get_user_directory(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlUserDirectory:
    return SqlUserDirectory(session_factory)


def get_availability_service(
    store: SqlAttendanceStore = Depends(get_attendance_store),
    settings: Settings = Depends(get_app_settings),
) -> AvailabilityService:
    return AvailabilityService(HeatmapBuilder(store, tz=settings.tzinfo))


def get_notification_sink(
    users: SqlUserDirectory = Depends(get_user_directory),
    settings: Settings = Depends(get_app_settings),
) -> Optional[NotificationSink]:
    """
    Discord-backed sink, or None when no bot token is configured.
    """
    if not settings.DISCORD_BOT_TOKEN:
        return None
    return DiscordNotificationSink(get_discord_client(), users)


def build_meeting_scheduler(
    session_factory: async_sessionmaker[AsyncSession],
    sink: NotificationSink,
    settings: Settings | None = None,
) -> MeetingScheduler:
    """
    Assemble the interactive /meeting flow with its tunables from settings.

    Used by the chat integration, which owns the interaction surface.
    """
    settings = settings or get_settings()
    return MeetingScheduler(
        AvailabilityService(HeatmapBuilder(SqlAttendanceStore(session_factory), tz=settings.tzinfo)),
        SqlMeetingStore(session_factory),
        sink,
        SqlUserDirectory(session_factory),
        tz=settings.tzinfo,
        timeout_seconds=settings.INTERACTION_TIMEOUT_SECONDS,
        lookback_days=settings.AVAILABILITY_LOOKBACK_DAYS,
        slot_minutes=settings.AVAILABILITY_SLOT_MINUTES,
        suggestion_limit=settings.MEETING_SUGGESTION_LIMIT,
    )
