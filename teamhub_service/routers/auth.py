import structlog
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext, get_current_user_id, get_db, get_session_context, load_session_context
from ..identity import IdentityProvider, get_identity_provider
from ..schemas.auth import SessionResponse, SignInRequest, SignInResponse, SignUpRequest
from ..schemas.common import UserRole
from ..schemas.directory import UserCreate, UserResponse
from ..services import directory_service

router = APIRouter(prefix="/auth", tags=["auth"])

logger = structlog.get_logger(__name__)


def _session(ctx: SessionContext) -> SessionResponse:
    return SessionResponse(user_id=ctx.user_id, role=ctx.role, full_name=ctx.full_name, email=ctx.email)


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    payload: SignInRequest,
    db: AsyncSession = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> SignInResponse:
    result = await identity.sign_in(payload.email, payload.password)
    ctx = await load_session_context(db, result.user_id)
    logger.info("user_signed_in", user_id=ctx.user_id, role=ctx.role)
    return SignInResponse(
        **_session(ctx).model_dump(),
        id_token=result.id_token,
        refresh_token=result.refresh_token,
        expires_in=result.expires_in,
    )


@router.post("/sign-up", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    payload: SignUpRequest,
    db: AsyncSession = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> UserResponse:
    """Self-service registration always creates a player."""
    user = UserCreate(
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        phone=payload.phone,
        role=UserRole.player,
    )
    return await directory_service.create_user(db, identity, user)


@router.get("/session", response_model=SessionResponse)
async def get_session(ctx: SessionContext = Depends(get_session_context)) -> SessionResponse:
    return _session(ctx)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    user_id: str = Depends(get_current_user_id),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Response:
    await identity.sign_out(user_id)
    logger.info("user_signed_out", user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
