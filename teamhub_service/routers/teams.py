from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..dependencies import SessionContext, get_db, get_session_context, get_storage, require_admin
from ..schemas.directory import TeamCreate, TeamMemberResponse, TeamResponse, TeamUpdate
from ..services import directory_service
from ..storage import ObjectStorage, validate_image_upload

router = APIRouter(prefix="/teams", tags=["teams"])


@router.get("/", response_model=List[TeamResponse])
async def list_teams(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await directory_service.list_teams(db)


@router.post("/", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    payload: TeamCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
):
    return await directory_service.create_team(db, payload)


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await directory_service.get_team_or_404(db, team_id)


@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: int,
    payload: TeamUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
):
    return await directory_service.update_team(db, team_id, payload)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
):
    await directory_service.delete_team(db, team_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{team_id}/members", response_model=List[TeamMemberResponse])
async def list_team_members(
    team_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await directory_service.list_team_members(db, team_id)


@router.post("/{team_id}/photo", response_model=TeamResponse)
async def upload_team_photo(
    team_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    ctx: SessionContext = Depends(require_admin),
):
    raw: bytes = await request.body()
    content_type = validate_image_upload(
        raw, request.headers.get("content-type"), get_settings().STORAGE_MAX_UPLOAD_BYTES
    )
    return await directory_service.upload_team_photo(db, storage, team_id, raw, content_type)
