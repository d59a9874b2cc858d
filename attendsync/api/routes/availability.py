# attendsync/api/routes/availability.py
from http import HTTPStatus
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.responses import PlainTextResponse

from attendsync.api.dependencies.services import (
    get_app_settings,
    get_availability_service,
    get_user_directory,
)
from attendsync.common.datetime_utils import utc_now
from attendsync.core.config import Settings
from attendsync.core.exceptions import PersistenceError
from attendsync.schemas.availability import (
    UserHeatmap,
    WindowSearchRequest,
    WindowSearchResponse,
)
from attendsync.services.availability import AvailabilityService
from attendsync.services.heatmap_renderer import render_user_heatmap
from attendsync.services.user_directory import SqlUserDirectory

router = APIRouter(prefix="/availability", tags=["Availability"])


@router.get(
    "/users/{user_id}",
    response_model=UserHeatmap,
    status_code=HTTPStatus.OK,
    summary="Availability heatmap of one user",
    description=(
        "Builds a time-of-day availability heatmap from the user's weekday "
        "attendance over the last `days` days.\n\n"
        "Each slot's `confidence` is the fraction of observed days on which "
        "the user was actively working at some point inside that slot. "
        "A user without attendance gets an all-zero heatmap with "
        "`observed_days = 0`."
    ),
    responses={
        400: {"description": "`slot_minutes` does not divide a day evenly."},
        503: {"description": "Attendance storage is unavailable."},
    },
)
async def get_user_availability(
    user_id: str = Path(..., description="Application user id."),
    days: Optional[int] = Query(
        default=None,
        ge=7,
        le=120,
        description="Lookback in days; defaults to AVAILABILITY_LOOKBACK_DAYS.",
    ),
    slot_minutes: Optional[int] = Query(
        default=None,
        description="Slot width in minutes; must divide 1440.",
        examples=[60],
    ),
    service: AvailabilityService = Depends(get_availability_service),
    settings: Settings = Depends(get_app_settings),
) -> UserHeatmap:
    try:
        return await service.get_user_heatmap(
            user_id,
            lookback_days=days or settings.AVAILABILITY_LOOKBACK_DAYS,
            slot_minutes=slot_minutes or settings.AVAILABILITY_SLOT_MINUTES,
        )
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc


@router.post(
    "/windows",
    response_model=WindowSearchResponse,
    status_code=HTTPStatus.OK,
    summary="Find common meeting windows for a group",
    description=(
        "Aggregates the participants' heatmaps and returns the best contiguous "
        "windows long enough for `duration_minutes`, ranked by average "
        "group confidence (ties broken by earlier start).\n\n"
        "An empty `windows` list is a normal answer: relax the duration or "
        "the group."
    ),
    responses={
        200: {
            "description": "Group heatmap and ranked windows.",
            "content": {
                "application/json": {
                    "example": {
                        "heatmap": {
                            "slot_minutes": 60,
                            "participant_count": 2,
                            "slots": [{"start_minutes": 540, "avg_confidence": 1.0}],
                        },
                        "windows": [
                            {"start_minutes": 540, "end_minutes": 600, "avg_confidence": 1.0}
                        ],
                    }
                }
            },
        },
        400: {"description": "Fewer than two participants, or an invalid slot width."},
        503: {"description": "Attendance storage is unavailable."},
    },
)
async def find_group_windows(
    payload: WindowSearchRequest,
    service: AvailabilityService = Depends(get_availability_service),
    settings: Settings = Depends(get_app_settings),
) -> WindowSearchResponse:
    user_ids = list(dict.fromkeys(u for u in payload.user_ids if u))
    if len(user_ids) < 2:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="At least two distinct participants are required.",
        )

    try:
        heatmap, windows = await service.get_group_availability_windows(
            user_ids,
            payload.duration_minutes,
            lookback_days=payload.lookback_days or settings.AVAILABILITY_LOOKBACK_DAYS,
            slot_minutes=payload.slot_minutes or settings.AVAILABILITY_SLOT_MINUTES,
            min_start_minutes=payload.min_start_minutes,
            missing_data=payload.missing_data,
            limit=payload.limit,
        )
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc

    return WindowSearchResponse(heatmap=heatmap, windows=windows)


@router.get(
    "/users/{user_id}/chart",
    response_class=PlainTextResponse,
    status_code=HTTPStatus.OK,
    summary="Hourly availability chart of one user",
    description=(
        "Same data as `/availability/users/{user_id}` at hourly resolution, "
        "rendered as the text chart posted to Discord by `/availability`."
    ),
)
async def get_user_availability_chart(
    user_id: str = Path(..., description="Application user id."),
    days: Optional[int] = Query(default=None, ge=7, le=120),
    service: AvailabilityService = Depends(get_availability_service),
    users: SqlUserDirectory = Depends(get_user_directory),
    settings: Settings = Depends(get_app_settings),
) -> str:
    try:
        heatmap = await service.get_user_heatmap(
            user_id,
            lookback_days=days or settings.AVAILABILITY_LOOKBACK_DAYS,
            slot_minutes=60,
        )
        discord_id = (await users.get_discord_ids([user_id])).get(user_id, user_id)
    except PersistenceError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc

    today = utc_now().astimezone(settings.tzinfo).date()
    return render_user_heatmap(heatmap, discord_id, today, settings.tzinfo)
