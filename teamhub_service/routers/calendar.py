import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..add_event_flow import FlowError, validate_submission_scope
from ..calendar_grid import MAX_GRID_YEAR
from ..dependencies import SessionContext, get_current_user_id, get_db, get_session_context, require_staff
from ..exceptions import ValidationFailedException
from ..schemas.calendar import (
    EventSubmission,
    MonthGridResponse,
    ScheduleEventResponse,
    ScheduleEventUpdate,
    SubmissionResult,
    TeamEventSubmission,
    WeekResponse,
)
from ..schemas.common import PlayerScope, TeamScope
from ..services import calendar_service

router = APIRouter(prefix="/calendar", tags=["calendar"])


def _this_month() -> tuple[int, int]:
    today = dt.date.today()
    return today.year, today.month


async def _submit(db: AsyncSession, ctx: SessionContext, view, submission) -> SubmissionResult:
    try:
        validate_submission_scope(view, submission)
    except FlowError as exc:
        raise ValidationFailedException(str(exc)) from exc
    return await calendar_service.apply_submission(db, ctx, submission)


# --- team calendars ----------------------------------------------------------


@router.get("/teams/{team_id}/events", response_model=List[ScheduleEventResponse])
async def list_team_calendar(
    team_id: int,
    start: Optional[dt.date] = Query(None),
    end: Optional[dt.date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await calendar_service.list_events(db, ctx, TeamScope(team_id=team_id), start, end)


@router.get("/teams/{team_id}/month", response_model=MonthGridResponse)
async def team_month(
    team_id: int,
    year: Optional[int] = Query(None, ge=1900, le=MAX_GRID_YEAR),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    default_year, default_month = _this_month()
    return await calendar_service.month_grid(
        db, ctx, TeamScope(team_id=team_id), year or default_year, month or default_month
    )


@router.get("/teams/{team_id}/week", response_model=WeekResponse)
async def team_week(
    team_id: int,
    date: Optional[dt.date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await calendar_service.week_view(db, ctx, TeamScope(team_id=team_id), date or dt.date.today())


@router.post("/teams/{team_id}/submissions", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
async def submit_to_team(
    team_id: int,
    submission: EventSubmission = Body(...),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await _submit(db, ctx, TeamScope(team_id=team_id), submission)


# --- player calendars --------------------------------------------------------


@router.get("/players/{player_id}/events", response_model=List[ScheduleEventResponse])
async def list_player_calendar(
    player_id: str,
    start: Optional[dt.date] = Query(None),
    end: Optional[dt.date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await calendar_service.list_events(db, ctx, PlayerScope(player_id=player_id), start, end)


@router.get("/players/{player_id}/month", response_model=MonthGridResponse)
async def player_month(
    player_id: str,
    year: Optional[int] = Query(None, ge=1900, le=MAX_GRID_YEAR),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    default_year, default_month = _this_month()
    return await calendar_service.month_grid(
        db, ctx, PlayerScope(player_id=player_id), year or default_year, month or default_month
    )


@router.get("/players/{player_id}/week", response_model=WeekResponse)
async def player_week(
    player_id: str,
    date: Optional[dt.date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await calendar_service.week_view(db, ctx, PlayerScope(player_id=player_id), date or dt.date.today())


@router.post(
    "/players/{player_id}/submissions", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED
)
async def submit_to_player(
    player_id: str,
    submission: EventSubmission = Body(...),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await _submit(db, ctx, PlayerScope(player_id=player_id), submission)


# --- events ------------------------------------------------------------------


@router.get("/team-events", response_model=List[ScheduleEventResponse])
async def list_team_events(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await calendar_service.list_team_events(db, ctx)


@router.post("/team-events", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
async def create_team_event(
    submission: TeamEventSubmission,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await calendar_service.apply_submission(db, ctx, submission)


@router.patch("/events/{event_id}", response_model=ScheduleEventResponse)
async def update_event(
    event_id: int,
    payload: ScheduleEventUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await calendar_service.update_event(db, ctx, event_id, payload)


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    await calendar_service.delete_event(db, user_id, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
