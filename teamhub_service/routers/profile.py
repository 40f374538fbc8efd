from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext, get_db, get_session_context, require_staff
from ..schemas.profile import (
    DashboardResponse,
    MyTeamResponse,
    PerformanceStatCreate,
    PerformanceStatResponse,
    ProfileResponse,
    ProfileUpdate,
)
from ..services import profile_service, team_views_service
from ..services.team_views_service import RosterSort

router = APIRouter(tags=["profile"])


@router.get("/profile/me", response_model=ProfileResponse)
async def get_my_profile(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await profile_service.get_profile(db, ctx.user_id)


@router.put("/profile/me", response_model=ProfileResponse)
async def update_my_profile(
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await profile_service.update_profile(db, ctx, payload)


@router.delete("/profile/me/contacts/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_contact(
    contact_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    await profile_service.delete_contact(db, ctx, contact_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/profile/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    await profile_service.ensure_can_view_profile(db, ctx, user_id)
    return await profile_service.get_profile(db, user_id)


@router.get("/players/{player_id}/stats", response_model=List[PerformanceStatResponse])
async def list_stats(
    player_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    await profile_service.ensure_can_view_profile(db, ctx, player_id)
    return await profile_service.list_stats(db, player_id)


@router.post("/players/{player_id}/stats", response_model=PerformanceStatResponse, status_code=status.HTTP_201_CREATED)
async def create_stat(
    player_id: str,
    payload: PerformanceStatCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await profile_service.create_stat(db, ctx, player_id, payload)


@router.get("/my-team", response_model=MyTeamResponse)
async def my_team(
    team_id: Optional[int] = Query(None),
    sort: RosterSort = Query(RosterSort.name),
    position: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await team_views_service.my_team(db, ctx, team_id=team_id, sort=sort, position=position)


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await team_views_service.dashboard(db, ctx)
