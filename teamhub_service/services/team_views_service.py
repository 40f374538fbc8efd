"""Read models for the My Team page and the player dashboard."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext
from ..exceptions import EntityNotFoundException, ForbiddenException
from ..models import Conversation, Message, ScheduleEvent, Team, TeamMembership, User
from ..schemas.calendar import ScheduleEventResponse
from ..schemas.common import TeamRole
from ..schemas.directory import TeamMemberResponse, TeamResponse
from ..schemas.messaging import ConversationType, MessageResponse
from ..schemas.profile import AnnouncementPreview, DashboardResponse, MyTeamResponse, PerformanceStatResponse
from .directory_service import list_team_members, load_user, user_response
from .profile_service import list_stats

MY_TEAM_EVENT_LIMIT = 5
MY_TEAM_ANNOUNCEMENT_LIMIT = 5
DASHBOARD_EVENT_LIMIT = 3


class RosterSort(str, Enum):
    name = "name"
    number = "number"
    position = "position"


def _jersey_key(member: TeamMemberResponse):
    number = (member.jersey_number or "").strip()
    if number.isdigit():
        return (0, int(number), member.full_name)
    return (1, 0, member.full_name)


def sort_roster(
    members: list[TeamMemberResponse],
    sort: RosterSort = RosterSort.name,
    position: str | None = None,
) -> list[TeamMemberResponse]:
    if position:
        wanted = position.strip().lower()
        members = [m for m in members if (m.position or "").lower() == wanted]
    if sort == RosterSort.number:
        return sorted(members, key=_jersey_key)
    if sort == RosterSort.position:
        return sorted(members, key=lambda m: (m.position is None, (m.position or "").lower(), m.full_name))
    return sorted(members, key=lambda m: m.full_name.lower())


async def first_team(db: AsyncSession, user_id: str) -> Team | None:
    return await db.scalar(
        select(Team)
        .join(TeamMembership, TeamMembership.team_id == Team.id)
        .where(TeamMembership.user_id == user_id)
        .order_by(TeamMembership.id)
        .limit(1)
    )


async def upcoming_team_events(db: AsyncSession, team_id: int, today: dt.date, limit: int) -> list[ScheduleEventResponse]:
    res = await db.scalars(
        select(ScheduleEvent)
        .where(ScheduleEvent.team_id == team_id, ScheduleEvent.event_date >= today)
        .order_by(ScheduleEvent.event_date, ScheduleEvent.event_time, ScheduleEvent.id)
        .limit(limit)
    )
    return [ScheduleEventResponse.model_validate(e) for e in res.all()]


async def recent_announcements(db: AsyncSession, team_id: int, limit: int) -> list[AnnouncementPreview]:
    conversations = (
        await db.scalars(
            select(Conversation)
            .where(
                Conversation.team_id == team_id,
                Conversation.type == ConversationType.team_announcement.value,
            )
            .order_by(Conversation.created_at.desc(), Conversation.id.desc())
            .limit(limit)
        )
    ).all()
    if not conversations:
        return []

    rows = await db.execute(
        select(Message, User.full_name)
        .outerjoin(User, User.id == Message.sender_id)
        .where(Message.conversation_id.in_([c.id for c in conversations]))
        .order_by(Message.created_at, Message.id)
    )
    by_conversation: dict[int, list[MessageResponse]] = {c.id: [] for c in conversations}
    for message, sender_name in rows.all():
        by_conversation[message.conversation_id].append(
            MessageResponse(
                id=message.id,
                conversation_id=message.conversation_id,
                sender_id=message.sender_id,
                sender_name=sender_name,
                content=message.content,
                parent_message_id=message.parent_message_id,
                created_at=message.created_at,
            )
        )
    return [
        AnnouncementPreview(
            conversation_id=c.id,
            title=c.title,
            created_at=c.created_at,
            messages=by_conversation[c.id],
        )
        for c in conversations
    ]


async def my_team(
    db: AsyncSession,
    ctx: SessionContext,
    *,
    team_id: int | None = None,
    sort: RosterSort = RosterSort.name,
    position: str | None = None,
    today: dt.date | None = None,
) -> MyTeamResponse:
    today = today or dt.date.today()
    if team_id is None:
        team = await first_team(db, ctx.user_id)
        if team is None:
            raise EntityNotFoundException("Team membership for user", ctx.user_id)
    else:
        team = await db.get(Team, team_id)
        if team is None:
            raise EntityNotFoundException("Team", team_id)
        is_member = await db.scalar(
            select(TeamMembership.id).where(TeamMembership.team_id == team_id, TeamMembership.user_id == ctx.user_id)
        )
        if is_member is None and not ctx.is_admin:
            raise ForbiddenException("You are not on this team")

    members = await list_team_members(db, team.id)
    players = [m for m in members if m.team_role == TeamRole.player]
    coaches = [m for m in members if m.team_role == TeamRole.coach]

    return MyTeamResponse(
        team=TeamResponse.model_validate(team),
        players=sort_roster(players, sort, position),
        coaches=sort_roster(coaches),
        upcoming_events=await upcoming_team_events(db, team.id, today, MY_TEAM_EVENT_LIMIT),
        announcements=await recent_announcements(db, team.id, MY_TEAM_ANNOUNCEMENT_LIMIT),
    )


async def dashboard(db: AsyncSession, ctx: SessionContext, today: dt.date | None = None) -> DashboardResponse:
    today = today or dt.date.today()
    user = user_response(await load_user(db, ctx.user_id))
    team = await first_team(db, ctx.user_id)
    stats = await list_stats(db, ctx.user_id, limit=1)
    return DashboardResponse(
        user=user,
        team=TeamResponse.model_validate(team) if team else None,
        upcoming_events=await upcoming_team_events(db, team.id, today, DASHBOARD_EVENT_LIMIT) if team else [],
        latest_stats=PerformanceStatResponse.model_validate(stats[0]) if stats else None,
    )
