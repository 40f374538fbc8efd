from __future__ import annotations

import datetime as dt

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import calendar_grid
from ..dependencies import SessionContext, load_session_context
from ..exceptions import (
    EntityNotFoundException,
    ForbiddenException,
    NotFoundOrNotPermittedException,
    PartialWriteException,
)
from ..metrics import ASSIGNMENTS_CREATED_TOTAL, SCHEDULE_EVENTS_CREATED_TOTAL
from ..models import Meal, ScheduleEvent, Team, TrainingDay
from ..schemas.calendar import (
    MealPlanSubmission,
    MealSubmission,
    MonthGridResponse,
    NewMealSubmission,
    NewWorkoutSubmission,
    ProgramAssignmentSubmission,
    ScheduleEventResponse,
    ScheduleEventUpdate,
    SubmissionResult,
    TeamEventSubmission,
    WeekResponse,
    WorkoutDaySubmission,
)
from ..schemas.common import EventType, PlayerScope, TeamScope, scope_from_row
from ..schemas.programs import MealPlanAssignmentCreate, ProgramAssignmentCreate
from . import programs_service
from .access import ensure_can_manage_scope, ensure_can_view_scope, team_ids_for

logger = structlog.get_logger(__name__)

TEAM_EVENT_TYPES = (EventType.game.value, EventType.practice.value)


def _scope_clause(scope: TeamScope | PlayerScope):
    # a team calendar never shows player rows and vice versa
    if isinstance(scope, TeamScope):
        return ScheduleEvent.team_id == scope.team_id
    return ScheduleEvent.player_id == scope.player_id


async def list_events(
    db: AsyncSession,
    ctx: SessionContext,
    scope: TeamScope | PlayerScope,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> list[ScheduleEventResponse]:
    await ensure_can_view_scope(db, ctx, scope)
    stmt = select(ScheduleEvent).where(_scope_clause(scope))
    if start is not None:
        stmt = stmt.where(ScheduleEvent.event_date >= start)
    if end is not None:
        stmt = stmt.where(ScheduleEvent.event_date <= end)
    stmt = stmt.order_by(ScheduleEvent.event_date, ScheduleEvent.event_time, ScheduleEvent.id)
    res = await db.scalars(stmt)
    return [ScheduleEventResponse.model_validate(e) for e in res.all()]


async def month_grid(
    db: AsyncSession,
    ctx: SessionContext,
    scope: TeamScope | PlayerScope,
    year: int,
    month: int,
    today: dt.date | None = None,
) -> MonthGridResponse:
    start, end = calendar_grid.grid_bounds(year, month)
    events = await list_events(db, ctx, scope, start, end)
    return MonthGridResponse(
        year=year,
        month=month,
        scope=scope,
        cells=calendar_grid.build_month_grid(year, month, events, today=today),
    )


async def week_view(
    db: AsyncSession,
    ctx: SessionContext,
    scope: TeamScope | PlayerScope,
    anchor: dt.date,
    today: dt.date | None = None,
) -> WeekResponse:
    start = calendar_grid.week_start(anchor)
    end = start + dt.timedelta(days=6)
    events = await list_events(db, ctx, scope, start, end)
    return WeekResponse(
        start=start,
        end=end,
        scope=scope,
        days=calendar_grid.build_week(anchor, events, today=today),
    )


async def list_team_events(db: AsyncSession, ctx: SessionContext) -> list[ScheduleEventResponse]:
    """Every team-scoped event the caller can manage, soonest first."""
    if not ctx.is_staff:
        raise ForbiddenException("Only coaches and admins can list team events")
    stmt = select(ScheduleEvent).where(ScheduleEvent.team_id.is_not(None))
    if not ctx.is_admin:
        stmt = stmt.where(ScheduleEvent.team_id.in_(await team_ids_for(db, ctx.user_id)))
    stmt = stmt.order_by(ScheduleEvent.event_date, ScheduleEvent.event_time, ScheduleEvent.id)
    return [ScheduleEventResponse.model_validate(e) for e in (await db.scalars(stmt)).all()]


async def _insert_event(db: AsyncSession, event: ScheduleEvent) -> SubmissionResult:
    db.add(event)
    await db.commit()
    SCHEDULE_EVENTS_CREATED_TOTAL.labels(event_type=event.event_type).inc()
    logger.info(
        "schedule_event_created",
        event_id=event.id,
        event_type=event.event_type,
        team_id=event.team_id,
        player_id=event.player_id,
    )
    return SubmissionResult(
        kind="event",
        event=ScheduleEventResponse.model_validate(event),
        meal_id=event.meal_id,
    )


async def _team_event(db: AsyncSession, sub: TeamEventSubmission) -> SubmissionResult:
    if await db.get(Team, sub.team_id) is None:
        raise EntityNotFoundException("Team", sub.team_id)
    event = ScheduleEvent(
        event_type=sub.event_type,
        event_date=sub.event_date,
        event_time=sub.event_time,
        opponent=sub.opponent,
        location=sub.location,
        address=sub.address,
        home_away=sub.home_away.value if sub.event_type == EventType.game.value and sub.home_away else None,
        is_optional=sub.is_optional,
        notes=sub.notes,
        **sub.scope.columns(),
    )
    return await _insert_event(db, event)


async def _workout_day(db: AsyncSession, sub: WorkoutDaySubmission) -> SubmissionResult:
    day = await db.get(TrainingDay, sub.training_day_id)
    if day is None:
        raise EntityNotFoundException("TrainingDay", sub.training_day_id)
    event = ScheduleEvent(
        event_type=EventType.workout.value,
        event_date=sub.event_date,
        title=day.title or f"Day {day.day_number}",
        training_day_id=day.id,
        **sub.scope.columns(),
    )
    return await _insert_event(db, event)


async def _new_workout(db: AsyncSession, sub: NewWorkoutSubmission) -> SubmissionResult:
    event = ScheduleEvent(
        event_type=EventType.workout.value,
        event_date=sub.event_date,
        title=sub.title,
        notes=sub.notes,
        **sub.scope.columns(),
    )
    return await _insert_event(db, event)


async def _existing_meal(db: AsyncSession, sub: MealSubmission) -> SubmissionResult:
    meal = await programs_service.get_meal(db, sub.meal_id)
    event = ScheduleEvent(
        event_type=EventType.meal.value,
        event_date=sub.event_date,
        title=meal.name,
        meal_id=meal.id,
        **sub.scope.columns(),
    )
    return await _insert_event(db, event)


async def _new_meal(db: AsyncSession, ctx: SessionContext, sub: NewMealSubmission) -> SubmissionResult:
    step = "create_meal"
    try:
        meal = await programs_service.stage_meal(db, ctx, sub.meal)
        step = "schedule_meal"
        event = ScheduleEvent(
            event_type=EventType.meal.value,
            event_date=sub.event_date,
            title=meal.name,
            meal_id=meal.id,
            **sub.scope.columns(),
        )
        db.add(event)
        await db.flush()
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        error = str(getattr(exc, "orig", None) or exc)
        logger.error("meal_event_create_failed", step=step, error=error)
        raise PartialWriteException(step, error) from exc

    SCHEDULE_EVENTS_CREATED_TOTAL.labels(event_type=EventType.meal.value).inc()
    logger.info("meal_event_created", event_id=event.id, meal_id=meal.id, player_id=event.player_id)
    return SubmissionResult(kind="event", event=ScheduleEventResponse.model_validate(event), meal_id=meal.id)


async def apply_submission(db: AsyncSession, ctx: SessionContext, submission) -> SubmissionResult:
    """Write whatever the add-event flow produced: an event, a new meal plus event, or an assignment."""
    await ensure_can_manage_scope(db, ctx, submission.scope)

    if isinstance(submission, TeamEventSubmission):
        return await _team_event(db, submission)
    if isinstance(submission, WorkoutDaySubmission):
        return await _workout_day(db, submission)
    if isinstance(submission, NewWorkoutSubmission):
        return await _new_workout(db, submission)
    if isinstance(submission, MealSubmission):
        return await _existing_meal(db, submission)
    if isinstance(submission, NewMealSubmission):
        return await _new_meal(db, ctx, submission)

    if isinstance(submission, ProgramAssignmentSubmission):
        assignment = await programs_service.stage_program_assignment(
            db,
            ctx,
            ProgramAssignmentCreate(
                program_id=submission.program_id,
                start_date=submission.start_date,
                end_date=submission.end_date,
                scope=submission.scope,
            ),
        )
        kind = "training_program"
    elif isinstance(submission, MealPlanSubmission):
        assignment = await programs_service.stage_meal_plan_assignment(
            db,
            ctx,
            MealPlanAssignmentCreate(
                meal_plan_id=submission.meal_plan_id,
                start_date=submission.start_date,
                end_date=submission.end_date,
                scope=submission.scope,
            ),
        )
        kind = "meal_plan"
    else:
        raise TypeError(f"Unsupported submission {type(submission).__name__}")

    await db.commit()
    ASSIGNMENTS_CREATED_TOTAL.labels(kind=kind, scope=submission.scope.kind).inc()
    logger.info("calendar_assignment_created", kind=kind, assignment_id=assignment.id, start_date=str(assignment.start_date))
    return SubmissionResult(kind=kind, assignment_id=assignment.id)


async def _get_event(db: AsyncSession, event_id: int) -> ScheduleEvent:
    event = await db.get(ScheduleEvent, event_id, populate_existing=True)
    if event is None:
        raise NotFoundOrNotPermittedException("ScheduleEvent", event_id)
    return event


async def update_event(
    db: AsyncSession,
    ctx: SessionContext,
    event_id: int,
    payload: ScheduleEventUpdate,
) -> ScheduleEventResponse:
    event = await _get_event(db, event_id)
    await ensure_can_manage_scope(db, ctx, scope_from_row(event))

    values = payload.model_dump(include={"event_time", "location", "notes"}, exclude_unset=True)
    title = (payload.title or "").strip() or None

    if event.event_type == EventType.meal.value and event.meal_id is not None:
        # the event title always tracks the linked meal's name
        if payload.meal is not None:
            meal_values = programs_service.meal_values(payload.meal)
        else:
            meal_values = {"name": title}
        res = await db.execute(update(Meal).where(Meal.id == event.meal_id).values(**meal_values))
        if res.rowcount == 0:
            await db.rollback()
            raise NotFoundOrNotPermittedException("Meal", event.meal_id)
        values["title"] = meal_values["name"]
    else:
        values["title"] = title
        if event.event_type in TEAM_EVENT_TYPES:
            values["opponent"] = title

    res = await db.execute(update(ScheduleEvent).where(ScheduleEvent.id == event_id).values(**values))
    if res.rowcount == 0:
        await db.rollback()
        raise NotFoundOrNotPermittedException("ScheduleEvent", event_id)
    await db.commit()
    logger.info("schedule_event_updated", event_id=event_id, meal_id=event.meal_id)
    return ScheduleEventResponse.model_validate(await _get_event(db, event_id))


async def delete_event(db: AsyncSession, user_id: str, event_id: int) -> None:
    # role can change mid-session; take it from the users table right before deleting
    ctx = await load_session_context(db, user_id)
    if not ctx.is_staff:
        raise ForbiddenException("Only coaches and admins can delete events")

    event = await db.get(ScheduleEvent, event_id)
    if event is None:
        raise NotFoundOrNotPermittedException("ScheduleEvent", event_id)
    await ensure_can_manage_scope(db, ctx, scope_from_row(event))

    res = await db.execute(delete(ScheduleEvent).where(ScheduleEvent.id == event_id))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("ScheduleEvent", event_id)
    await db.commit()
    logger.info("schedule_event_deleted", event_id=event_id, deleted_by=ctx.user_id)
