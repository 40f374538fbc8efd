from __future__ import annotations

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..dependencies import SessionContext
from ..exceptions import EntityNotFoundException, NotFoundOrNotPermittedException
from ..metrics import ASSIGNMENTS_CREATED_TOTAL
from ..models import (
    Meal,
    MealPlan,
    MealPlanAssignment,
    MealPlanItem,
    TrainingDay,
    TrainingExercise,
    TrainingProgram,
    TrainingProgramAssignment,
)
from ..schemas.calendar import MealFields
from ..schemas.common import PlayerScope, TeamScope, scope_from_row
from ..schemas.programs import (
    MealPlanAssignmentCreate,
    MealPlanAssignmentResponse,
    MealPlanCreate,
    MealPlanItemResponse,
    MealPlanResponse,
    MealResponse,
    MealsByType,
    NutritionTotals,
    ProgramAssignmentCreate,
    ProgramAssignmentResponse,
    TrainingDayCreate,
    TrainingDayResponse,
    TrainingExerciseCreate,
    TrainingExerciseResponse,
    TrainingProgramCreate,
    TrainingProgramResponse,
    TrainingProgramUpdate,
)
from .access import ensure_can_manage_scope

logger = structlog.get_logger(__name__)


# --- training programs -------------------------------------------------------


def _program_query():
    return select(TrainingProgram).options(
        selectinload(TrainingProgram.days).selectinload(TrainingDay.exercises)
    )


async def get_program(db: AsyncSession, program_id: int) -> TrainingProgramResponse:
    stmt = _program_query().where(TrainingProgram.id == program_id).execution_options(populate_existing=True)
    program = await db.scalar(stmt)
    if program is None:
        raise EntityNotFoundException("TrainingProgram", program_id)
    return TrainingProgramResponse.model_validate(program)


async def list_programs(db: AsyncSession) -> list[TrainingProgramResponse]:
    res = await db.scalars(_program_query().order_by(TrainingProgram.name, TrainingProgram.id))
    return [TrainingProgramResponse.model_validate(p) for p in res.all()]


async def create_program(db: AsyncSession, ctx: SessionContext, payload: TrainingProgramCreate) -> TrainingProgramResponse:
    program = TrainingProgram(**payload.model_dump(), created_by=ctx.user_id)
    db.add(program)
    await db.commit()
    logger.info("training_program_created", program_id=program.id, created_by=ctx.user_id)
    return await get_program(db, program.id)


async def update_program(db: AsyncSession, program_id: int, payload: TrainingProgramUpdate) -> TrainingProgramResponse:
    values = payload.model_dump(exclude_unset=True)
    if values:
        res = await db.execute(update(TrainingProgram).where(TrainingProgram.id == program_id).values(**values))
        if res.rowcount == 0:
            raise NotFoundOrNotPermittedException("TrainingProgram", program_id)
        await db.commit()
    return await get_program(db, program_id)


async def delete_program(db: AsyncSession, program_id: int) -> None:
    res = await db.execute(delete(TrainingProgram).where(TrainingProgram.id == program_id))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("TrainingProgram", program_id)
    await db.commit()
    logger.info("training_program_deleted", program_id=program_id)


async def add_day(db: AsyncSession, program_id: int, payload: TrainingDayCreate) -> TrainingDayResponse:
    if await db.get(TrainingProgram, program_id) is None:
        raise EntityNotFoundException("TrainingProgram", program_id)
    last = await db.scalar(select(func.max(TrainingDay.day_number)).where(TrainingDay.program_id == program_id))
    day = TrainingDay(program_id=program_id, day_number=(last or 0) + 1, **payload.model_dump())
    db.add(day)
    await db.commit()
    logger.info("training_day_added", program_id=program_id, day_id=day.id, day_number=day.day_number)
    return await get_day(db, day.id)


async def get_day(db: AsyncSession, day_id: int) -> TrainingDayResponse:
    stmt = (
        select(TrainingDay)
        .options(selectinload(TrainingDay.exercises))
        .where(TrainingDay.id == day_id)
        .execution_options(populate_existing=True)
    )
    day = await db.scalar(stmt)
    if day is None:
        raise EntityNotFoundException("TrainingDay", day_id)
    return TrainingDayResponse.model_validate(day)


async def delete_day(db: AsyncSession, day_id: int) -> None:
    res = await db.execute(delete(TrainingDay).where(TrainingDay.id == day_id))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("TrainingDay", day_id)
    await db.commit()


async def add_exercise(db: AsyncSession, day_id: int, payload: TrainingExerciseCreate) -> TrainingExerciseResponse:
    if await db.get(TrainingDay, day_id) is None:
        raise EntityNotFoundException("TrainingDay", day_id)
    count = await db.scalar(select(func.count(TrainingExercise.id)).where(TrainingExercise.day_id == day_id))
    values = payload.model_dump()
    values["category"] = payload.category.value
    exercise = TrainingExercise(day_id=day_id, sort_order=count or 0, **values)
    db.add(exercise)
    await db.commit()
    return TrainingExerciseResponse.model_validate(exercise)


async def delete_exercise(db: AsyncSession, exercise_id: int) -> None:
    res = await db.execute(delete(TrainingExercise).where(TrainingExercise.id == exercise_id))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("TrainingExercise", exercise_id)
    await db.commit()


# --- assignments -------------------------------------------------------------


def program_assignment_response(assignment: TrainingProgramAssignment) -> ProgramAssignmentResponse:
    program = assignment.program
    return ProgramAssignmentResponse(
        id=assignment.id,
        program_id=assignment.program_id,
        program_name=program.name if program else None,
        day_count=len(program.days) if program else 0,
        team_id=assignment.team_id,
        player_id=assignment.player_id,
        start_date=assignment.start_date,
        end_date=assignment.end_date,
        assigned_by=assignment.assigned_by,
        created_at=assignment.created_at,
    )


def meal_plan_assignment_response(assignment: MealPlanAssignment) -> MealPlanAssignmentResponse:
    return MealPlanAssignmentResponse(
        id=assignment.id,
        meal_plan_id=assignment.meal_plan_id,
        meal_plan_name=assignment.plan.name if assignment.plan else None,
        team_id=assignment.team_id,
        player_id=assignment.player_id,
        start_date=assignment.start_date,
        end_date=assignment.end_date,
        assigned_by=assignment.assigned_by,
        created_at=assignment.created_at,
    )


def _program_assignment_query():
    return select(TrainingProgramAssignment).options(
        selectinload(TrainingProgramAssignment.program).selectinload(TrainingProgram.days)
    )


def _plan_assignment_query():
    return select(MealPlanAssignment).options(selectinload(MealPlanAssignment.plan))


def _scope_filter(model, scopes: list[TeamScope | PlayerScope]):
    team_ids = [s.team_id for s in scopes if isinstance(s, TeamScope)]
    player_ids = [s.player_id for s in scopes if isinstance(s, PlayerScope)]
    return model.team_id.in_(team_ids) | model.player_id.in_(player_ids)


async def list_program_assignments(
    db: AsyncSession, scopes: list[TeamScope | PlayerScope]
) -> list[ProgramAssignmentResponse]:
    stmt = (
        _program_assignment_query()
        .where(_scope_filter(TrainingProgramAssignment, scopes))
        .order_by(TrainingProgramAssignment.start_date.desc(), TrainingProgramAssignment.id.desc())
    )
    return [program_assignment_response(a) for a in (await db.scalars(stmt)).all()]


async def list_meal_plan_assignments(
    db: AsyncSession, scopes: list[TeamScope | PlayerScope]
) -> list[MealPlanAssignmentResponse]:
    stmt = (
        _plan_assignment_query()
        .where(_scope_filter(MealPlanAssignment, scopes))
        .order_by(MealPlanAssignment.start_date.desc(), MealPlanAssignment.id.desc())
    )
    return [meal_plan_assignment_response(a) for a in (await db.scalars(stmt)).all()]


async def stage_program_assignment(
    db: AsyncSession,
    ctx: SessionContext,
    payload: ProgramAssignmentCreate,
) -> TrainingProgramAssignment:
    """Validate and add the row to the session without committing."""
    await ensure_can_manage_scope(db, ctx, payload.scope)
    if await db.get(TrainingProgram, payload.program_id) is None:
        raise EntityNotFoundException("TrainingProgram", payload.program_id)
    assignment = TrainingProgramAssignment(
        program_id=payload.program_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        assigned_by=ctx.user_id,
        **payload.scope.columns(),
    )
    db.add(assignment)
    await db.flush()
    return assignment


async def assign_program(
    db: AsyncSession,
    ctx: SessionContext,
    payload: ProgramAssignmentCreate,
) -> ProgramAssignmentResponse:
    assignment = await stage_program_assignment(db, ctx, payload)
    await db.commit()
    ASSIGNMENTS_CREATED_TOTAL.labels(kind="training_program", scope=payload.scope.kind).inc()
    logger.info(
        "training_program_assigned",
        assignment_id=assignment.id,
        program_id=payload.program_id,
        scope=payload.scope.kind,
    )
    stmt = (
        _program_assignment_query()
        .where(TrainingProgramAssignment.id == assignment.id)
        .execution_options(populate_existing=True)
    )
    return program_assignment_response(await db.scalar(stmt))


async def stage_meal_plan_assignment(
    db: AsyncSession,
    ctx: SessionContext,
    payload: MealPlanAssignmentCreate,
) -> MealPlanAssignment:
    await ensure_can_manage_scope(db, ctx, payload.scope)
    if await db.get(MealPlan, payload.meal_plan_id) is None:
        raise EntityNotFoundException("MealPlan", payload.meal_plan_id)
    assignment = MealPlanAssignment(
        meal_plan_id=payload.meal_plan_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        assigned_by=ctx.user_id,
        **payload.scope.columns(),
    )
    db.add(assignment)
    await db.flush()
    return assignment


async def assign_meal_plan(
    db: AsyncSession,
    ctx: SessionContext,
    payload: MealPlanAssignmentCreate,
) -> MealPlanAssignmentResponse:
    assignment = await stage_meal_plan_assignment(db, ctx, payload)
    await db.commit()
    ASSIGNMENTS_CREATED_TOTAL.labels(kind="meal_plan", scope=payload.scope.kind).inc()
    logger.info(
        "meal_plan_assigned",
        assignment_id=assignment.id,
        meal_plan_id=payload.meal_plan_id,
        scope=payload.scope.kind,
    )
    stmt = (
        _plan_assignment_query()
        .where(MealPlanAssignment.id == assignment.id)
        .execution_options(populate_existing=True)
    )
    return meal_plan_assignment_response(await db.scalar(stmt))


async def _delete_assignment(db: AsyncSession, ctx: SessionContext, model, entity: str, assignment_id: int) -> None:
    assignment = await db.get(model, assignment_id)
    if assignment is None:
        raise NotFoundOrNotPermittedException(entity, assignment_id)
    await ensure_can_manage_scope(db, ctx, scope_from_row(assignment))
    res = await db.execute(delete(model).where(model.id == assignment_id))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException(entity, assignment_id)
    await db.commit()
    logger.info("assignment_deleted", entity=entity, assignment_id=assignment_id)


async def delete_program_assignment(db: AsyncSession, ctx: SessionContext, assignment_id: int) -> None:
    await _delete_assignment(db, ctx, TrainingProgramAssignment, "TrainingProgramAssignment", assignment_id)


async def delete_meal_plan_assignment(db: AsyncSession, ctx: SessionContext, assignment_id: int) -> None:
    await _delete_assignment(db, ctx, MealPlanAssignment, "MealPlanAssignment", assignment_id)


# --- meals -------------------------------------------------------------------


def meal_values(fields: MealFields) -> dict:
    values = fields.model_dump()
    values["meal_type"] = fields.meal_type.value
    return values


async def get_meal(db: AsyncSession, meal_id: int) -> Meal:
    meal = await db.get(Meal, meal_id)
    if meal is None:
        raise EntityNotFoundException("Meal", meal_id)
    return meal


async def list_meals(db: AsyncSession) -> list[MealResponse]:
    res = await db.scalars(select(Meal).order_by(Meal.meal_type, Meal.name))
    return [MealResponse.model_validate(m) for m in res.all()]


async def list_meals_by_type(db: AsyncSession) -> MealsByType:
    grouped = MealsByType()
    for meal in await list_meals(db):
        getattr(grouped, meal.meal_type.value).append(meal)
    return grouped


async def stage_meal(db: AsyncSession, ctx: SessionContext, fields: MealFields) -> Meal:
    meal = Meal(**meal_values(fields), created_by=ctx.user_id)
    db.add(meal)
    await db.flush()
    return meal


async def create_meal(db: AsyncSession, ctx: SessionContext, fields: MealFields) -> MealResponse:
    meal = await stage_meal(db, ctx, fields)
    await db.commit()
    logger.info("meal_created", meal_id=meal.id, meal_type=meal.meal_type)
    return MealResponse.model_validate(meal)


async def update_meal(db: AsyncSession, meal_id: int, fields: MealFields) -> MealResponse:
    res = await db.execute(update(Meal).where(Meal.id == meal_id).values(**meal_values(fields)))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("Meal", meal_id)
    await db.commit()
    meal = await db.get(Meal, meal_id, populate_existing=True)
    return MealResponse.model_validate(meal)


async def delete_meal(db: AsyncSession, meal_id: int) -> None:
    res = await db.execute(delete(Meal).where(Meal.id == meal_id))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("Meal", meal_id)
    await db.commit()
    logger.info("meal_deleted", meal_id=meal_id)


# --- meal plans --------------------------------------------------------------


def nutrition_totals(meals: list[Meal]) -> NutritionTotals:
    return NutritionTotals(
        calories=sum(m.calories or 0 for m in meals),
        protein_g=round(sum(m.protein_g or 0 for m in meals), 1),
        carbs_g=round(sum(m.carbs_g or 0 for m in meals), 1),
        fat_g=round(sum(m.fat_g or 0 for m in meals), 1),
    )


def meal_plan_response(plan: MealPlan) -> MealPlanResponse:
    items = sorted(plan.items, key=lambda i: i.sort_order)
    return MealPlanResponse(
        id=plan.id,
        name=plan.name,
        description=plan.description,
        created_by=plan.created_by,
        created_at=plan.created_at,
        items=[
            MealPlanItemResponse(id=i.id, sort_order=i.sort_order, meal=MealResponse.model_validate(i.meal))
            for i in items
        ],
        totals=nutrition_totals([i.meal for i in items]),
    )


def _plan_query():
    return select(MealPlan).options(selectinload(MealPlan.items).selectinload(MealPlanItem.meal))


async def get_meal_plan(db: AsyncSession, plan_id: int) -> MealPlanResponse:
    stmt = _plan_query().where(MealPlan.id == plan_id).execution_options(populate_existing=True)
    plan = await db.scalar(stmt)
    if plan is None:
        raise EntityNotFoundException("MealPlan", plan_id)
    return meal_plan_response(plan)


async def list_meal_plans(db: AsyncSession) -> list[MealPlanResponse]:
    res = await db.scalars(_plan_query().order_by(MealPlan.name, MealPlan.id))
    return [meal_plan_response(p) for p in res.all()]


async def create_meal_plan(db: AsyncSession, ctx: SessionContext, payload: MealPlanCreate) -> MealPlanResponse:
    known = set((await db.scalars(select(Meal.id).where(Meal.id.in_(payload.meal_ids)))).all())
    missing = [mid for mid in payload.meal_ids if mid not in known]
    if missing:
        raise EntityNotFoundException("Meal", missing[0])

    plan = MealPlan(name=payload.name, description=payload.description, created_by=ctx.user_id)
    db.add(plan)
    await db.flush()
    db.add_all(
        [MealPlanItem(meal_plan_id=plan.id, meal_id=mid, sort_order=index) for index, mid in enumerate(payload.meal_ids)]
    )
    await db.commit()
    logger.info("meal_plan_created", meal_plan_id=plan.id, meals=len(payload.meal_ids))
    return await get_meal_plan(db, plan.id)


async def delete_meal_plan(db: AsyncSession, plan_id: int) -> None:
    res = await db.execute(delete(MealPlan).where(MealPlan.id == plan_id))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("MealPlan", plan_id)
    await db.commit()
    logger.info("meal_plan_deleted", meal_plan_id=plan_id)
