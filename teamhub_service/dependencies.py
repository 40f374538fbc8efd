from __future__ import annotations

from dataclasses import dataclass

from backend_common.dependencies import bearer_token_from, bind_sentry_user, forwarded_user_id, make_get_db_async
from backend_common.logging import bind_principal
from fastapi import Depends, HTTPException, Request, WebSocket, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import AsyncSessionLocal
from .exceptions import ForbiddenException
from .identity import IdentityProvider, get_identity_provider
from .models import User
from .schemas.common import STAFF_ROLES, UserRole
from .storage import ObjectStorage

SERVICE_NAME = "teamhub-service"

get_db = make_get_db_async(AsyncSessionLocal)


@dataclass(frozen=True)
class SessionContext:
    """Who is calling, rebuilt from the users table on every request."""

    user_id: str
    role: str
    full_name: str
    email: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value


async def _resolve_user_id(request: Request, identity: IdentityProvider) -> str:
    token = bearer_token_from(request)
    if token:
        user_id = await identity.verify_token(token)
    else:
        user_id = forwarded_user_id(request, internal_secret=get_settings().INTERNAL_GATEWAY_SECRET)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    bind_sentry_user(SERVICE_NAME, user_id)
    return user_id


async def get_current_user_id(
    request: Request,
    identity: IdentityProvider = Depends(get_identity_provider),
) -> str:
    return await _resolve_user_id(request, identity)


async def load_session_context(db: AsyncSession, user_id: str) -> SessionContext:
    user = await db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise ForbiddenException("No user record for this account")
    bind_principal(user.id, user.role)
    return SessionContext(user_id=user.id, role=user.role, full_name=user.full_name, email=user.email)


async def get_session_context(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    return await load_session_context(db, user_id)


async def require_staff(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not ctx.is_staff:
        raise ForbiddenException("Only coaches and admins can do this")
    return ctx


async def require_admin(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not ctx.is_admin:
        raise ForbiddenException("Only admins can do this")
    return ctx


async def get_websocket_user_id(
    websocket: WebSocket,
    identity: IdentityProvider = Depends(get_identity_provider),
) -> str | None:
    """Browsers cannot set headers on websockets, so a ``token`` query param is also accepted."""
    token = websocket.query_params.get("token") or bearer_token_from(websocket)
    if token:
        return await identity.verify_token(token)
    return forwarded_user_id(websocket, internal_secret=get_settings().INTERNAL_GATEWAY_SECRET)


def get_storage(db: AsyncSession = Depends(get_db)) -> ObjectStorage:
    return ObjectStorage(db, get_settings().PUBLIC_BASE_URL)
