from __future__ import annotations

import datetime as dt
from collections import Counter

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext
from ..exceptions import ForbiddenException, NotFoundOrNotPermittedException, ValidationFailedException
from ..models import PerformanceStat, PlayerProfile, User, UserContact
from ..schemas.common import ContactType, PlayerScope, TeamScope
from ..schemas.profile import (
    MAX_CONTACTS_PER_TYPE,
    ContactResponse,
    ContactUpsert,
    PerformanceStatCreate,
    PerformanceStatResponse,
    ProfileResponse,
    ProfileUpdate,
)
from . import programs_service
from .access import ensure_can_manage_scope, shares_team
from .directory_service import load_user, user_response

logger = structlog.get_logger(__name__)

_CONTACT_TYPE_ORDER = {t.value: i for i, t in enumerate(ContactType)}


def is_active(end_date: dt.date | None, today: dt.date) -> bool:
    return end_date is None or end_date >= today


async def ensure_can_view_profile(db: AsyncSession, ctx: SessionContext, user_id: str) -> None:
    if ctx.user_id == user_id or ctx.is_admin:
        return
    if ctx.is_staff and await shares_team(db, ctx.user_id, user_id):
        return
    raise ForbiddenException("You cannot view this profile")


async def list_contacts(db: AsyncSession, user_id: str) -> list[UserContact]:
    res = await db.scalars(select(UserContact).where(UserContact.user_id == user_id))
    return sorted(res.all(), key=lambda c: (_CONTACT_TYPE_ORDER.get(c.contact_type, 99), c.sort_order, c.id))


async def get_profile(db: AsyncSession, user_id: str, today: dt.date | None = None) -> ProfileResponse:
    today = today or dt.date.today()
    user = await load_user(db, user_id)
    scopes = [PlayerScope(player_id=user.id), *(TeamScope(team_id=m.team_id) for m in user.memberships)]

    programs = await programs_service.list_program_assignments(db, scopes)
    plans = await programs_service.list_meal_plan_assignments(db, scopes)
    response = user_response(user)

    return ProfileResponse(
        user=response,
        player_profile=response.player_profile,
        teams=response.memberships,
        active_programs=[a for a in programs if is_active(a.end_date, today)],
        completed_programs=[a for a in programs if not is_active(a.end_date, today)],
        active_meal_plans=[a for a in plans if is_active(a.end_date, today)],
        completed_meal_plans=[a for a in plans if not is_active(a.end_date, today)],
        contacts=[ContactResponse.model_validate(c) for c in await list_contacts(db, user_id)],
    )


def _check_contact_limits(final_types: list[str]) -> None:
    counts = Counter(final_types)
    for contact_type, count in counts.items():
        if count > MAX_CONTACTS_PER_TYPE:
            raise ValidationFailedException(
                f"At most {MAX_CONTACTS_PER_TYPE} {contact_type} contacts are allowed, got {count}"
            )


async def _apply_contacts(db: AsyncSession, user_id: str, upserts: list[ContactUpsert]) -> None:
    existing = {c.id: c for c in await list_contacts(db, user_id)}

    unknown = [u.id for u in upserts if u.id is not None and u.id not in existing]
    if unknown:
        raise NotFoundOrNotPermittedException("UserContact", unknown[0])

    updates = {u.id: u for u in upserts if u.id is not None}
    final_types = [
        (updates[c.id].contact_type.value if c.id in updates else c.contact_type) for c in existing.values()
    ]
    final_types += [u.contact_type.value for u in upserts if u.id is None]
    _check_contact_limits(final_types)

    for contact_id, upsert in updates.items():
        contact = existing[contact_id]
        contact.contact_type = upsert.contact_type.value
        contact.value = upsert.value
        contact.label = upsert.label

    # new contacts go after the highest sort_order of their type
    next_order: Counter[str] = Counter()
    for contact in existing.values():
        next_order[contact.contact_type] = max(next_order[contact.contact_type], contact.sort_order + 1)
    for upsert in upserts:
        if upsert.id is not None:
            continue
        contact_type = upsert.contact_type.value
        db.add(
            UserContact(
                user_id=user_id,
                contact_type=contact_type,
                value=upsert.value,
                label=upsert.label,
                sort_order=next_order[contact_type],
            )
        )
        next_order[contact_type] += 1


async def update_profile(db: AsyncSession, ctx: SessionContext, payload: ProfileUpdate) -> ProfileResponse:
    values = payload.model_dump(include={"full_name", "phone"}, exclude_unset=True)
    if values:
        await db.execute(update(User).where(User.id == ctx.user_id).values(**values))

    profile_values = payload.player_profile.model_dump(exclude_unset=True) if payload.player_profile else {}
    if profile_values:
        # player attributes only apply once a profile exists
        await db.execute(
            update(PlayerProfile).where(PlayerProfile.user_id == ctx.user_id).values(**profile_values)
        )

    if payload.contacts is not None:
        await _apply_contacts(db, ctx.user_id, payload.contacts)

    await db.commit()
    logger.info("profile_updated", user_id=ctx.user_id, fields=sorted(payload.model_dump(exclude_unset=True)))
    return await get_profile(db, ctx.user_id)


async def delete_contact(db: AsyncSession, ctx: SessionContext, contact_id: int) -> None:
    res = await db.execute(
        delete(UserContact).where(UserContact.id == contact_id, UserContact.user_id == ctx.user_id)
    )
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("UserContact", contact_id)
    await db.commit()


async def list_stats(db: AsyncSession, player_id: str, limit: int | None = None) -> list[PerformanceStat]:
    stmt = (
        select(PerformanceStat)
        .where(PerformanceStat.player_id == player_id)
        .order_by(PerformanceStat.date.desc(), PerformanceStat.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list((await db.scalars(stmt)).all())


async def create_stat(
    db: AsyncSession,
    ctx: SessionContext,
    player_id: str,
    payload: PerformanceStatCreate,
) -> PerformanceStatResponse:
    await ensure_can_manage_scope(db, ctx, PlayerScope(player_id=player_id))
    if await db.get(User, player_id) is None:
        raise NotFoundOrNotPermittedException("User", player_id)
    stat = PerformanceStat(player_id=player_id, **payload.model_dump())
    db.add(stat)
    await db.commit()
    logger.info("performance_stat_recorded", player_id=player_id, stat_id=stat.id, date=str(stat.date))
    return PerformanceStatResponse.model_validate(stat)
