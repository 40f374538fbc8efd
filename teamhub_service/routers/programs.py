from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext, get_db, get_session_context, require_staff
from ..schemas.common import PlayerScope, TeamScope
from ..schemas.programs import (
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
from ..services import programs_service
from ..services.access import ensure_can_view_scope

router = APIRouter(prefix="/training-programs", tags=["training"])


@router.get("/", response_model=List[TrainingProgramResponse])
async def list_programs(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await programs_service.list_programs(db)


@router.post("/", response_model=TrainingProgramResponse, status_code=status.HTTP_201_CREATED)
async def create_program(
    payload: TrainingProgramCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await programs_service.create_program(db, ctx, payload)


@router.get("/assignments", response_model=List[ProgramAssignmentResponse])
async def list_assignments(
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
    return await programs_service.list_program_assignments(db, scopes)


@router.post("/assignments", response_model=ProgramAssignmentResponse, status_code=status.HTTP_201_CREATED)
async def assign_program(
    payload: ProgramAssignmentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await programs_service.assign_program(db, ctx, payload)


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    await programs_service.delete_program_assignment(db, ctx, assignment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{program_id}", response_model=TrainingProgramResponse)
async def get_program(
    program_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await programs_service.get_program(db, program_id)


@router.patch("/{program_id}", response_model=TrainingProgramResponse)
async def update_program(
    program_id: int,
    payload: TrainingProgramUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await programs_service.update_program(db, program_id, payload)


@router.delete("/{program_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_program(
    program_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    await programs_service.delete_program(db, program_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{program_id}/days", response_model=TrainingDayResponse, status_code=status.HTTP_201_CREATED)
async def add_day(
    program_id: int,
    payload: TrainingDayCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await programs_service.add_day(db, program_id, payload)


@router.get("/days/{day_id}", response_model=TrainingDayResponse)
async def get_day(
    day_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await programs_service.get_day(db, day_id)


@router.delete("/days/{day_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_day(
    day_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    await programs_service.delete_day(db, day_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/days/{day_id}/exercises", response_model=TrainingExerciseResponse, status_code=status.HTTP_201_CREATED)
async def add_exercise(
    day_id: int,
    payload: TrainingExerciseCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await programs_service.add_exercise(db, day_id, payload)


@router.delete("/exercises/{exercise_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exercise(
    exercise_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    await programs_service.delete_exercise(db, exercise_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
