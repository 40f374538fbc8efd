from __future__ import annotations

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..dependencies import SessionContext
from ..exceptions import EntityNotFoundException, NotFoundOrNotPermittedException
from ..identity import IdentityProvider
from ..metrics import TEAMS_CREATED_TOTAL, USERS_CREATED_TOTAL
from ..models import PlayerProfile, Team, TeamMembership, User
from ..schemas.common import TeamRole, UserRole
from ..schemas.directory import (
    MembershipAssignment,
    MembershipResponse,
    PlayerProfileResponse,
    TeamCreate,
    TeamMemberResponse,
    TeamUpdate,
    UserCreate,
    UserResponse,
)
from ..storage import AVATARS_PREFIX, MEDIA_BUCKET, TEAM_PHOTOS_PREFIX, ObjectStorage, timestamped_path
from .access import team_ids_for

logger = structlog.get_logger(__name__)


def default_team_role(user_role: str) -> str:
    """Admins sit on a roster as coaches; everyone else keeps their own role."""
    if user_role == UserRole.player.value:
        return TeamRole.player.value
    return TeamRole.coach.value


def _user_query():
    return select(User).options(
        selectinload(User.player_profile),
        selectinload(User.memberships).selectinload(TeamMembership.team),
    )


def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        phone=user.phone,
        avatar_url=user.avatar_url,
        role=user.role,
        created_at=user.created_at,
        player_profile=PlayerProfileResponse.model_validate(user.player_profile) if user.player_profile else None,
        memberships=[
            MembershipResponse(
                id=m.id,
                team_id=m.team_id,
                user_id=m.user_id,
                role=m.role,
                team_name=m.team.name if m.team else None,
            )
            for m in sorted(user.memberships, key=lambda m: m.id)
        ],
    )


async def load_user(db: AsyncSession, user_id: str) -> User:
    stmt = _user_query().where(User.id == user_id).execution_options(populate_existing=True)
    user = await db.scalar(stmt)
    if user is None:
        raise EntityNotFoundException("User", user_id)
    return user


async def get_team_or_404(db: AsyncSession, team_id: int) -> Team:
    team = await db.get(Team, team_id)
    if team is None:
        raise EntityNotFoundException("Team", team_id)
    return team


async def list_teams(db: AsyncSession) -> list[Team]:
    res = await db.scalars(select(Team).order_by(Team.name, Team.id))
    return list(res.all())


async def create_team(db: AsyncSession, payload: TeamCreate) -> Team:
    team = Team(**payload.model_dump())
    db.add(team)
    await db.commit()
    TEAMS_CREATED_TOTAL.inc()
    logger.info("team_created", team_id=team.id, name=team.name)
    return team


async def update_team(db: AsyncSession, team_id: int, payload: TeamUpdate) -> Team:
    values = payload.model_dump(exclude_unset=True)
    if values:
        res = await db.execute(update(Team).where(Team.id == team_id).values(**values))
        if res.rowcount == 0:
            raise NotFoundOrNotPermittedException("Team", team_id)
        await db.commit()
    team = await db.get(Team, team_id, populate_existing=True)
    if team is None:
        raise EntityNotFoundException("Team", team_id)
    return team


async def delete_team(db: AsyncSession, team_id: int) -> None:
    """Memberships and team-scoped rows go with the team via FK cascades; users stay."""
    res = await db.execute(delete(Team).where(Team.id == team_id))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("Team", team_id)
    await db.commit()
    logger.info("team_deleted", team_id=team_id)


async def list_team_members(db: AsyncSession, team_id: int) -> list[TeamMemberResponse]:
    await get_team_or_404(db, team_id)
    rows = await db.execute(
        select(TeamMembership, User, PlayerProfile)
        .join(User, User.id == TeamMembership.user_id)
        .outerjoin(PlayerProfile, PlayerProfile.user_id == User.id)
        .where(TeamMembership.team_id == team_id)
        .order_by(User.full_name)
    )
    return [
        TeamMemberResponse(
            membership_id=membership.id,
            user_id=user.id,
            full_name=user.full_name,
            email=user.email,
            avatar_url=user.avatar_url,
            team_role=membership.role,
            user_role=user.role,
            jersey_number=profile.jersey_number if profile else None,
            position=profile.position if profile else None,
        )
        for membership, user, profile in rows.all()
    ]


async def upload_team_photo(
    db: AsyncSession,
    storage: ObjectStorage,
    team_id: int,
    raw: bytes,
    content_type: str,
) -> Team:
    team = await get_team_or_404(db, team_id)
    path = timestamped_path(TEAM_PHOTOS_PREFIX, team_id, content_type)
    await storage.upload(MEDIA_BUCKET, path, raw, content_type, overwrite=True)
    team.photo_url = storage.public_url(MEDIA_BUCKET, path)
    await db.commit()
    return team


async def list_users(db: AsyncSession) -> list[UserResponse]:
    res = await db.scalars(_user_query().order_by(User.full_name, User.id))
    return [user_response(u) for u in res.all()]


async def list_visible_players(db: AsyncSession, ctx: SessionContext) -> list[UserResponse]:
    stmt = _user_query().where(User.role == UserRole.player.value).order_by(User.full_name)
    if not ctx.is_admin:
        team_ids = await team_ids_for(db, ctx.user_id)
        if not team_ids:
            return []
        member_ids = select(TeamMembership.user_id).where(TeamMembership.team_id.in_(team_ids))
        stmt = stmt.where(User.id.in_(member_ids))
    res = await db.scalars(stmt)
    return [user_response(u) for u in res.all()]


async def ensure_player_profile(db: AsyncSession, user_id: str) -> bool:
    """Create the profile if missing. Returns True when a row was added."""
    existing = await db.scalar(select(PlayerProfile.id).where(PlayerProfile.user_id == user_id))
    if existing is not None:
        return False
    db.add(PlayerProfile(user_id=user_id))
    await db.flush()
    return True


async def _insert_user_rows(db: AsyncSession, user_id: str, payload: UserCreate) -> None:
    db.add(
        User(
            id=user_id,
            email=payload.email,
            full_name=payload.full_name,
            phone=payload.phone,
            role=payload.role.value,
        )
    )
    await db.flush()

    if payload.role == UserRole.player:
        profile_fields = payload.player_profile.model_dump() if payload.player_profile else {}
        db.add(PlayerProfile(user_id=user_id, **profile_fields))

    if payload.team_id is not None:
        db.add(TeamMembership(team_id=payload.team_id, user_id=user_id, role=default_team_role(payload.role.value)))

    await db.commit()


async def create_user(db: AsyncSession, identity: IdentityProvider, payload: UserCreate) -> UserResponse:
    """Create the identity account, then the users row, profile and membership.

    Row checks run before the identity call. When the database rejects the rows
    the identity account is deleted again so the email stays usable.
    """
    if payload.team_id is not None:
        await get_team_or_404(db, payload.team_id)

    user_id = await identity.sign_up(payload.email, payload.password, {"full_name": payload.full_name})

    try:
        await _insert_user_rows(db, user_id, payload)
    except Exception:
        await db.rollback()
        logger.error("user_create_failed_after_sign_up", user_id=user_id, email=payload.email)
        try:
            await identity.delete_account(user_id)
        except Exception as exc:
            logger.error("identity_account_cleanup_failed", user_id=user_id, error=str(exc))
        raise

    USERS_CREATED_TOTAL.inc()
    logger.info("user_created", user_id=user_id, role=payload.role.value, team_id=payload.team_id)
    return user_response(await load_user(db, user_id))


async def delete_user(db: AsyncSession, user_id: str) -> None:
    res = await db.execute(delete(User).where(User.id == user_id))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("User", user_id)
    await db.commit()
    logger.info("user_deleted", user_id=user_id)


async def change_role(db: AsyncSession, user_id: str, role: UserRole) -> UserResponse:
    res = await db.execute(update(User).where(User.id == user_id).values(role=role.value))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("User", user_id)
    created_profile = False
    if role == UserRole.player:
        created_profile = await ensure_player_profile(db, user_id)
    await db.commit()
    logger.info("user_role_changed", user_id=user_id, role=role.value, created_profile=created_profile)
    return user_response(await load_user(db, user_id))


async def replace_memberships(
    db: AsyncSession,
    user_id: str,
    desired: list[MembershipAssignment],
) -> UserResponse:
    user = await load_user(db, user_id)
    fallback_role = default_team_role(user.role)

    wanted = {a.team_id: (a.role.value if a.role else fallback_role) for a in desired}
    current = {m.team_id: m for m in user.memberships}

    for team_id in wanted.keys() - current.keys():
        await get_team_or_404(db, team_id)

    removed = [current[t].id for t in current.keys() - wanted.keys()]
    if removed:
        await db.execute(delete(TeamMembership).where(TeamMembership.id.in_(removed)))

    for team_id, role in wanted.items():
        membership = current.get(team_id)
        if membership is None:
            db.add(TeamMembership(team_id=team_id, user_id=user_id, role=role))
        elif membership.role != role:
            membership.role = role

    await db.commit()
    logger.info(
        "user_memberships_replaced",
        user_id=user_id,
        added=sorted(wanted.keys() - current.keys()),
        removed=sorted(current.keys() - wanted.keys()),
    )
    return user_response(await load_user(db, user_id))


async def upload_avatar(
    db: AsyncSession,
    storage: ObjectStorage,
    user_id: str,
    raw: bytes,
    content_type: str,
) -> UserResponse:
    path = timestamped_path(AVATARS_PREFIX, user_id, content_type)
    await storage.upload(MEDIA_BUCKET, path, raw, content_type, overwrite=True)
    res = await db.execute(
        update(User).where(User.id == user_id).values(avatar_url=storage.public_url(MEDIA_BUCKET, path))
    )
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("User", user_id)
    await db.commit()
    return user_response(await load_user(db, user_id))
