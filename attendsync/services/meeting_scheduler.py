# attendsync/services/meeting_scheduler.py
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date as date_type, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, TypeVar

from pydantic import BaseModel, Field

from attendsync.common.datetime_utils import ensure_utc, utc_now
from attendsync.common.discord_format import (
    discord_timestamp,
    format_minutes_12h,
    user_mention,
)
from attendsync.core.exceptions import PersistenceError
from attendsync.schemas.availability import AvailabilityWindow, MissingDataPolicy
from attendsync.schemas.meeting import MeetingCreate, MeetingRead, MeetingRequestEntry
from attendsync.services.availability import AvailabilityService
from attendsync.services.heatmap_renderer import render_group_heatmap
from attendsync.services.meeting_store import MeetingStore
from attendsync.services.notifications import NotificationSink
from attendsync.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _InteractionTimeout(Exception):
    """The organizer did not answer within the interaction timeout."""

CUSTOM_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

MSG_NOT_ENOUGH_PARTICIPANTS = "❌ Not enough valid participants found."
MSG_DATE_IN_PAST = "❌ Date cannot be in the past."
MSG_NO_AVAILABILITY = (
    "❌ Couldn't find any good time windows. Try a shorter duration or different group."
)
MSG_INVALID_TIME = "❌ Invalid time. Use 24h format HH:MM (e.g., 09:00, 14:30)."
MSG_CANCELED = "❎ Meeting creation canceled."
MSG_TIMED_OUT = "⏱️ Time out. Please run the command again."
MSG_FAILED = "❌ Failed to schedule the meeting. Please try again later."


class SchedulingState(str, Enum):
    COLLECTING_WINDOWS = "COLLECTING_WINDOWS"
    PRESENTING_CHOICES = "PRESENTING_CHOICES"
    SELECTED_SUGGESTION = "SELECTED_SUGGESTION"
    AWAITING_CUSTOM_TIME = "AWAITING_CUSTOM_TIME"
    CONFIRMING = "CONFIRMING"
    PERSISTED = "PERSISTED"
    CANCELED = "CANCELED"
    TIMED_OUT = "TIMED_OUT"
    INSUFFICIENT_PARTICIPANTS = "INSUFFICIENT_PARTICIPANTS"
    INVALID_DATE = "INVALID_DATE"
    NO_AVAILABILITY = "NO_AVAILABILITY"
    INVALID_CUSTOM_TIME = "INVALID_CUSTOM_TIME"
    FAILED = "FAILED"


TERMINAL_STATES = frozenset(
    {
        SchedulingState.PERSISTED,
        SchedulingState.CANCELED,
        SchedulingState.TIMED_OUT,
        SchedulingState.INSUFFICIENT_PARTICIPANTS,
        SchedulingState.INVALID_DATE,
        SchedulingState.NO_AVAILABILITY,
        SchedulingState.INVALID_CUSTOM_TIME,
        SchedulingState.FAILED,
    }
)


class MeetingRequestInput(BaseModel):
    """
    Options of one /meeting invocation, already resolved to user ids.
    """

    initiator_user_id: str
    participant_user_ids: List[str] = Field(default_factory=list)
    channel_id: str
    agenda: str = Field(..., min_length=1, examples=["Sprint planning"])
    date: Optional[date_type] = Field(
        None,
        description="Target day; defaults to today in the service timezone.",
    )
    duration_minutes: int = Field(30, ge=10, le=120)
    heatmap_requested: bool = False


@dataclass(frozen=True)
class ChoiceSelection:
    """What the organizer clicked: a suggestion index, or the custom-time button."""

    index: Optional[int] = None

    @classmethod
    def suggestion(cls, index: int) -> "ChoiceSelection":
        return cls(index=index)

    @classmethod
    def custom(cls) -> "ChoiceSelection":
        return cls(index=None)

    @property
    def is_custom(self) -> bool:
        return self.index is None


class MeetingInteraction(Protocol):
    """
    The chat surface driving one scheduling flow (e.g. an ephemeral Discord
    reply with buttons and a modal). Every `present_*`/`prompt_*`/`confirm`
    call suspends until the organizer acts; the scheduler bounds each wait.
    """

    async def present_choices(
        self,
        content: str,
        windows: Sequence[AvailabilityWindow],
    ) -> ChoiceSelection:
        ...

    async def prompt_custom_time(self) -> str:
        ...

    async def confirm(self, content: str) -> bool:
        ...

    async def reply(self, content: str) -> None:
        ...


class SchedulingOutcome(BaseModel):
    state: SchedulingState
    message: str
    history: List[SchedulingState] = Field(default_factory=list)
    windows: List[AvailabilityWindow] = Field(default_factory=list)
    start_time: Optional[datetime] = None
    meeting: Optional[MeetingRead] = None
    failed_invites: List[str] = Field(default_factory=list)


def parse_custom_time(value: str) -> Optional[int]:
    """
    Parse a 24h `HH:MM` string into minutes since midnight.

    The hour may drop its leading zero ("9:05"), the minutes may not ("9:5").
    Returns None for anything else.
    """
    match = CUSTOM_TIME_PATTERN.match(value.strip())
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def materialize_start_time(
    schedule_date: date_type,
    start_minutes: int,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> datetime:
    """
    Turn a time of day into a concrete meeting start.

    If the target day is today and that time has already passed, move to
    tomorrow; then skip forward over Saturday and Sunday.
    """
    local_now = ensure_utc(now).astimezone(tz)
    start = datetime.combine(
        schedule_date,
        time(hour=start_minutes // 60, minute=start_minutes % 60),
        tzinfo=tz,
    )
    if schedule_date == local_now.date() and start <= local_now:
        start += timedelta(days=1)
    while start.weekday() >= 5:
        start += timedelta(days=1)
    return start


def window_label(window: AvailabilityWindow) -> str:
    """Button label such as `9:00 AM–10:00 AM (75%)`."""
    return (
        f"{format_minutes_12h(window.start_minutes)}–{format_minutes_12h(window.end_minutes)} "
        f"({int(window.avg_confidence * 100 + 0.5)}%)"
    )


def _dedupe_participants(initiator: str, participants: Sequence[str]) -> List[str]:
    ordered = list(dict.fromkeys(p for p in participants if p))
    if initiator not in ordered:
        ordered.append(initiator)
    return ordered


class MeetingScheduler:
    """
    Interactive /meeting flow.

    COLLECTING_WINDOWS -> PRESENTING_CHOICES
        -> SELECTED_SUGGESTION | AWAITING_CUSTOM_TIME
        -> CONFIRMING -> PERSISTED | CANCELED | TIMED_OUT

    One `run` call owns all of its state, so concurrent invocations are
    independent. Nothing is written before the organizer confirms.
    """

    def __init__(
        self,
        availability: AvailabilityService,
        meetings: MeetingStore,
        notifications: NotificationSink,
        users: Optional[UserDirectory] = None,
        *,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = utc_now,
        timeout_seconds: float = 60.0,
        lookback_days: int = 30,
        slot_minutes: int = 60,
        suggestion_limit: int = 3,
    ) -> None:
        self.availability = availability
        self.meetings = meetings
        self.notifications = notifications
        self.users = users
        self.tz = tz
        self._clock = clock
        self.timeout_seconds = timeout_seconds
        self.lookback_days = lookback_days
        self.slot_minutes = slot_minutes
        self.suggestion_limit = suggestion_limit

    async def _wait(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise _InteractionTimeout() from exc

    async def _collect_windows(
        self,
        participants: List[str],
        initiator: str,
        duration: int,
        min_start: Optional[int],
    ):
        group, windows = await self.availability.get_group_availability_windows(
            participants,
            duration,
            lookback_days=self.lookback_days,
            slot_minutes=self.slot_minutes,
            min_start_minutes=min_start,
            missing_data=MissingDataPolicy.ZERO,
        )
        if windows:
            return group, windows

        # One user with unusual hours should not block everyone else.
        others = [p for p in participants if p != initiator]
        if others:
            logger.info(
                "No windows for %d participants; retrying without initiator %s",
                len(participants),
                initiator,
            )
            _, windows = await self.availability.get_group_availability_windows(
                others,
                duration,
                lookback_days=self.lookback_days,
                slot_minutes=self.slot_minutes,
                min_start_minutes=min_start,
                missing_data=MissingDataPolicy.EXCLUDE,
            )
        return group, windows

    async def _mentions(self, participants: List[str]) -> str:
        discord_ids: Dict[str, str] = {}
        if self.users is not None:
            discord_ids = await self.users.get_discord_ids(participants)
        return " ".join(
            user_mention(discord_ids[p]) if p in discord_ids else p for p in participants
        )

    async def _send_invite(self, user_id: str, meeting: MeetingRead) -> bool:
        try:
            await self.notifications.send_invite(user_id, meeting)
        except Exception:
            logger.exception("Failed to send invite for meeting %s to user %s", meeting.id, user_id)
            return False
        return True

    async def run(
        self,
        request: MeetingRequestInput,
        interaction: MeetingInteraction,
    ) -> SchedulingOutcome:
        """
        Drive one scheduling flow to a terminal state.

        User-facing dead ends (too few participants, nothing available, bad
        custom time, cancel, timeout) are outcomes, not exceptions. Store
        failures end the flow as FAILED and are logged.
        """
        history: List[SchedulingState] = [SchedulingState.COLLECTING_WINDOWS]
        windows: List[AvailabilityWindow] = []
        start_time: Optional[datetime] = None

        async def finish(state: SchedulingState, message: str) -> SchedulingOutcome:
            history.append(state)
            await interaction.reply(message)
            return SchedulingOutcome(
                state=state,
                message=message,
                history=history,
                windows=windows,
                start_time=start_time,
            )

        now = ensure_utc(self._clock())
        local_now = now.astimezone(self.tz)
        today = local_now.date()
        initiator = request.initiator_user_id
        duration = request.duration_minutes

        try:
            participants = _dedupe_participants(initiator, request.participant_user_ids)
            if len(participants) < 2:
                return await finish(
                    SchedulingState.INSUFFICIENT_PARTICIPANTS, MSG_NOT_ENOUGH_PARTICIPANTS
                )

            schedule_date = request.date or today
            if schedule_date < today:
                return await finish(SchedulingState.INVALID_DATE, MSG_DATE_IN_PAST)

            is_today = schedule_date == today
            min_start = local_now.hour * 60 + local_now.minute if is_today else None

            group, found = await self._collect_windows(participants, initiator, duration, min_start)
            if not found:
                return await finish(SchedulingState.NO_AVAILABILITY, MSG_NO_AVAILABILITY)
            windows = found[: self.suggestion_limit]

            history.append(SchedulingState.PRESENTING_CHOICES)
            target = f" for {request.date.isoformat()}" if request.date else " (today/tomorrow weekday)"
            content = f"Select a meeting time{target}:\n" + "\n".join(
                f"{number}. {window_label(window)}" for number, window in enumerate(windows, start=1)
            )
            if request.heatmap_requested:
                content += "\n\n" + render_group_heatmap(group)
            selection = await self._wait(interaction.present_choices(content, windows))

            if selection.is_custom:
                history.append(SchedulingState.AWAITING_CUSTOM_TIME)
                raw_time = await self._wait(interaction.prompt_custom_time())
                start_minutes = parse_custom_time(raw_time)
                if start_minutes is None:
                    return await finish(SchedulingState.INVALID_CUSTOM_TIME, MSG_INVALID_TIME)
            else:
                if not 0 <= selection.index < len(windows):
                    raise ValueError(f"suggestion index {selection.index} out of range")
                history.append(SchedulingState.SELECTED_SUGGESTION)
                start_minutes = windows[selection.index].start_minutes

            start_time = materialize_start_time(schedule_date, start_minutes, now, self.tz)
            end_time = start_time + timedelta(minutes=duration)

            history.append(SchedulingState.CONFIRMING)
            when = (
                f"{discord_timestamp(start_time, 'F')} "
                f"({duration} mins, {discord_timestamp(start_time, 'R')})"
            )
            summary = (
                "Review meeting details:\n"
                f"• Agenda: {request.agenda}\n"
                f"• When: {when}\n"
                f"• Participants: {await self._mentions(participants)}\n\n"
                "Confirm?"
            )
            if not await self._wait(interaction.confirm(summary)):
                return await finish(SchedulingState.CANCELED, MSG_CANCELED)

            sent_at = ensure_utc(self._clock())
            meeting = await self.meetings.create(
                MeetingCreate(
                    creator_user_id=initiator,
                    channel_id=request.channel_id,
                    title=request.agenda,
                    start_time=start_time,
                    end_time=end_time,
                    duration_mins=duration,
                    requests=[
                        MeetingRequestEntry(
                            user_id=user_id,
                            request_sent_at=sent_at,
                            request_accepted_at=sent_at if user_id == initiator else None,
                        )
                        for user_id in participants
                    ],
                )
            )
        except _InteractionTimeout:
            logger.info("Meeting scheduling by %s timed out", initiator)
            return await finish(SchedulingState.TIMED_OUT, MSG_TIMED_OUT)
        except (PersistenceError, asyncio.TimeoutError):
            logger.exception("Meeting scheduling by %s failed", initiator)
            return await finish(SchedulingState.FAILED, MSG_FAILED)

        history.append(SchedulingState.PERSISTED)
        message = (
            f"✅ Meeting scheduled for {discord_timestamp(start_time, 'F')} "
            f"({duration} mins, {discord_timestamp(start_time, 'R')}). "
            f"Agenda: {request.agenda}. Invitations sent."
        )
        invitees = [r.user_id for r in meeting.requests if r.user_id != initiator]
        delivered = await asyncio.gather(*(self._send_invite(uid, meeting) for uid in invitees))
        failed = [uid for uid, ok in zip(invitees, delivered) if not ok]

        try:
            await interaction.reply(message)
        except Exception:
            logger.exception("Failed to confirm meeting %s to %s", meeting.id, initiator)

        return SchedulingOutcome(
            state=SchedulingState.PERSISTED,
            message=message,
            history=history,
            windows=windows,
            start_time=start_time,
            meeting=meeting,
            failed_invites=failed,
        )
