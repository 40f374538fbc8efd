from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..dependencies import SessionContext, get_db, get_session_context, get_storage, require_admin, require_staff
from ..identity import IdentityProvider, get_identity_provider
from ..schemas.directory import MembershipsReplace, RoleChange, UserCreate, UserResponse
from ..services import directory_service
from ..services.profile_service import ensure_can_view_profile
from ..storage import ObjectStorage, validate_image_upload

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=List[UserResponse])
async def list_users(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
):
    return await directory_service.list_users(db)


@router.get("/players", response_model=List[UserResponse])
async def list_players(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await directory_service.list_visible_players(db, ctx)


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    ctx: SessionContext = Depends(require_admin),
):
    return await directory_service.create_user(db, identity, payload)


@router.post("/me/avatar", response_model=UserResponse)
async def upload_my_avatar(
    request: Request,
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    ctx: SessionContext = Depends(get_session_context),
):
    raw: bytes = await request.body()
    content_type = validate_image_upload(
        raw, request.headers.get("content-type"), get_settings().STORAGE_MAX_UPLOAD_BYTES
    )
    return await directory_service.upload_avatar(db, storage, ctx.user_id, raw, content_type)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    await ensure_can_view_profile(db, ctx, user_id)
    return directory_service.user_response(await directory_service.load_user(db, user_id))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
):
    await directory_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: str,
    payload: RoleChange,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
):
    return await directory_service.change_role(db, user_id, payload.role)


@router.put("/{user_id}/memberships", response_model=UserResponse)
async def replace_memberships(
    user_id: str,
    payload: MembershipsReplace,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_admin),
):
    return await directory_service.replace_memberships(db, user_id, payload.memberships)
