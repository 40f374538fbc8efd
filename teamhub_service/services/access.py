"""Ad hoc role checks shared by the calendar, assignment and messaging services.

The global ``users.role`` decides what a caller may do; team membership (in any
per-team role) only narrows which teams and players a coach can reach.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext
from ..exceptions import ForbiddenException
from ..models import TeamMembership
from ..schemas.common import PlayerScope, TeamScope


async def team_ids_for(db: AsyncSession, user_id: str) -> set[int]:
    rows = await db.scalars(select(TeamMembership.team_id).where(TeamMembership.user_id == user_id))
    return set(rows.all())


async def shares_team(db: AsyncSession, user_a: str, user_b: str) -> bool:
    return bool(await team_ids_for(db, user_a) & await team_ids_for(db, user_b))


async def can_manage_scope(db: AsyncSession, ctx: SessionContext, scope: TeamScope | PlayerScope) -> bool:
    if ctx.is_admin:
        return True
    if not ctx.is_staff:
        return False
    if isinstance(scope, TeamScope):
        return scope.team_id in await team_ids_for(db, ctx.user_id)
    return await shares_team(db, ctx.user_id, scope.player_id)


async def can_view_scope(db: AsyncSession, ctx: SessionContext, scope: TeamScope | PlayerScope) -> bool:
    if await can_manage_scope(db, ctx, scope):
        return True
    if isinstance(scope, TeamScope):
        return scope.team_id in await team_ids_for(db, ctx.user_id)
    return scope.player_id == ctx.user_id


async def ensure_can_manage_scope(db: AsyncSession, ctx: SessionContext, scope: TeamScope | PlayerScope) -> None:
    if not await can_manage_scope(db, ctx, scope):
        raise ForbiddenException(f"You cannot manage this {scope.kind} calendar")


async def ensure_can_view_scope(db: AsyncSession, ctx: SessionContext, scope: TeamScope | PlayerScope) -> None:
    if not await can_view_scope(db, ctx, scope):
        raise ForbiddenException(f"You cannot view this {scope.kind} calendar")
