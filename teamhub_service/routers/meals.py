from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext, get_db, get_session_context, require_staff
from ..schemas.common import PlayerScope, TeamScope
from ..schemas.programs import (
    MealCreate,
    MealPlanAssignmentCreate,
    MealPlanAssignmentResponse,
    MealPlanCreate,
    MealPlanResponse,
    MealResponse,
    MealsByType,
)
from ..services import programs_service
from ..services.access import ensure_can_view_scope

router = APIRouter(tags=["meals"])


@router.get("/meals", response_model=List[MealResponse])
async def list_meals(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await programs_service.list_meals(db)


@router.get("/meals/by-type", response_model=MealsByType)
async def list_meals_by_type(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await programs_service.list_meals_by_type(db)


@router.post("/meals", response_model=MealResponse, status_code=status.HTTP_201_CREATED)
async def create_meal(
    payload: MealCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await programs_service.create_meal(db, ctx, payload)


@router.put("/meals/{meal_id}", response_model=MealResponse)
async def update_meal(
    meal_id: int,
    payload: MealCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await programs_service.update_meal(db, meal_id, payload)


@router.delete("/meals/{meal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meal(
    meal_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    await programs_service.delete_meal(db, meal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/meal-plans", response_model=List[MealPlanResponse])
async def list_meal_plans(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await programs_service.list_meal_plans(db)


@router.post("/meal-plans", response_model=MealPlanResponse, status_code=status.HTTP_201_CREATED)
async def create_meal_plan(
    payload: MealPlanCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await programs_service.create_meal_plan(db, ctx, payload)


@router.get("/meal-plans/assignments", response_model=List[MealPlanAssignmentResponse])
async def list_meal_plan_assignments(
    team_id: Optional[int] = Query(None),
    player_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    scopes = []
    if team_id is not None:
        scopes.append(TeamScope(team_id=team_id))
    if player_id is not None:
        scopes.append(PlayerScope(player_id=player_id))
    if not scopes:
        scopes.append(PlayerScope(player_id=ctx.user_id))
    for scope in scopes:
        await ensure_can_view_scope(db, ctx, scope)
    return await programs_service.list_meal_plan_assignments(db, scopes)


@router.post(
    "/meal-plans/assignments", response_model=MealPlanAssignmentResponse, status_code=status.HTTP_201_CREATED
)
async def assign_meal_plan(
    payload: MealPlanAssignmentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await programs_service.assign_meal_plan(db, ctx, payload)


@router.delete("/meal-plans/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meal_plan_assignment(
    assignment_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    await programs_service.delete_meal_plan_assignment(db, ctx, assignment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/meal-plans/{plan_id}", response_model=MealPlanResponse)
async def get_meal_plan(
    plan_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await programs_service.get_meal_plan(db, plan_id)


@router.delete("/meal-plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meal_plan(
    plan_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    await programs_service.delete_meal_plan(db, plan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
