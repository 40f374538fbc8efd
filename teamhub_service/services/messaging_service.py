from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext
from ..exceptions import (
    EntityNotFoundException,
    ForbiddenException,
    NotFoundOrNotPermittedException,
    PartialWriteException,
    ValidationFailedException,
)
from ..metrics import CONVERSATIONS_CREATED_TOTAL, MESSAGES_SENT_TOTAL
from ..models import Conversation, ConversationParticipant, Message, MessageRead, Team, TeamMembership, User
from ..realtime import ChangeFeed
from ..schemas.messaging import (
    ConversationCreate,
    ConversationDetail,
    ConversationSummary,
    ConversationType,
    MessageCreate,
    MessageResponse,
    MessageThread,
    ParticipantResponse,
    PinState,
)

logger = structlog.get_logger(__name__)

MESSAGES_TABLE = "messages"
CONVERSATIONS_TABLE = "conversations"


def can_reply(conversation: Conversation, ctx: SessionContext) -> bool:
    if conversation.type == ConversationType.direct.value:
        return True
    return not conversation.replies_disabled or ctx.is_staff


def display_title(
    conversation: Conversation,
    team_name: str | None,
    participants: list[ParticipantResponse],
    viewer_id: str,
) -> str:
    if conversation.type == ConversationType.team_announcement.value:
        return f"{team_name} - {conversation.title}" if team_name else conversation.title or "Announcement"
    if conversation.type == ConversationType.group.value:
        return conversation.title or "Group"
    other = next((p for p in participants if p.user_id != viewer_id), None)
    return other.full_name if other else "Direct message"


def _error_text(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


async def _get_conversation_for(db: AsyncSession, ctx: SessionContext, conversation_id: int) -> Conversation:
    conversation = await db.get(Conversation, conversation_id)
    if conversation is None:
        raise EntityNotFoundException("Conversation", conversation_id)
    is_participant = await db.scalar(
        select(ConversationParticipant.id).where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == ctx.user_id,
        )
    )
    if is_participant is None:
        raise ForbiddenException("You are not a participant of this conversation")
    return conversation


async def _resolve_participants(db: AsyncSession, ctx: SessionContext, payload: ConversationCreate) -> list[str]:
    if payload.type == ConversationType.team_announcement:
        if await db.get(Team, payload.team_id) is None:
            raise EntityNotFoundException("Team", payload.team_id)
        # snapshot of the roster right now; later joiners are not added
        members = await db.scalars(select(TeamMembership.user_id).where(TeamMembership.team_id == payload.team_id))
        candidates = list(members.all())
    else:
        candidates = list(payload.recipient_ids)
        if payload.type == ConversationType.direct and candidates[0] == ctx.user_id:
            raise ValidationFailedException("A direct conversation needs a recipient other than yourself")
        known = set((await db.scalars(select(User.id).where(User.id.in_(candidates)))).all())
        unknown = sorted(set(candidates) - known)
        if unknown:
            raise ValidationFailedException(f"Unknown recipients: {', '.join(unknown)}")

    participant_ids = [ctx.user_id]
    for user_id in candidates:
        if user_id not in participant_ids:
            participant_ids.append(user_id)
    return participant_ids


async def create_conversation(
    db: AsyncSession,
    feed: ChangeFeed,
    ctx: SessionContext,
    payload: ConversationCreate,
) -> ConversationDetail:
    if not ctx.is_staff:
        raise ForbiddenException("Only coaches and admins can start conversations")

    participant_ids = await _resolve_participants(db, ctx, payload)
    now = datetime.utcnow()

    # conversation, participants and first message commit together or not at all
    step = "create_conversation"
    try:
        conversation = Conversation(
            type=payload.type.value,
            title=payload.title,
            team_id=payload.team_id,
            created_by=ctx.user_id,
            is_pinned=False,
            replies_disabled=payload.replies_disabled,
            created_at=now,
            updated_at=now,
        )
        db.add(conversation)
        await db.flush()

        step = "add_participants"
        db.add_all(
            [ConversationParticipant(conversation_id=conversation.id, user_id=uid) for uid in participant_ids]
        )
        await db.flush()

        step = "send_initial_message"
        message = Message(
            conversation_id=conversation.id,
            sender_id=ctx.user_id,
            content=payload.content,
            created_at=now,
        )
        db.add(message)
        await db.flush()

        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("conversation_create_failed", step=step, error=_error_text(exc), type=payload.type.value)
        raise PartialWriteException(step, _error_text(exc)) from exc

    CONVERSATIONS_CREATED_TOTAL.labels(type=payload.type.value).inc()
    logger.info(
        "conversation_created",
        conversation_id=conversation.id,
        type=payload.type.value,
        participants=len(participant_ids),
        created_by=ctx.user_id,
    )
    await feed.emit(CONVERSATIONS_TABLE, "INSERT", conversation.id)
    await feed.emit(MESSAGES_TABLE, "INSERT", message.id)
    return await get_conversation_detail(db, ctx, conversation.id)


async def send_message(
    db: AsyncSession,
    feed: ChangeFeed,
    ctx: SessionContext,
    conversation_id: int,
    payload: MessageCreate,
) -> MessageResponse:
    conversation = await _get_conversation_for(db, ctx, conversation_id)
    if not can_reply(conversation, ctx):
        raise ForbiddenException("Replies are disabled for this conversation")
    if not payload.content.strip():
        raise ValidationFailedException("Message cannot be blank")

    parent_id = None
    if payload.parent_message_id is not None:
        parent = await db.get(Message, payload.parent_message_id)
        if parent is None or parent.conversation_id != conversation_id:
            raise ValidationFailedException("Parent message must belong to the same conversation")
        # threads are one level deep: a reply to a reply joins the top-level thread
        parent_id = parent.parent_message_id or parent.id

    now = datetime.utcnow()
    message = Message(
        conversation_id=conversation_id,
        sender_id=ctx.user_id,
        content=payload.content,
        parent_message_id=parent_id,
        created_at=now,
    )
    db.add(message)
    conversation.updated_at = now
    await db.commit()

    MESSAGES_SENT_TOTAL.inc()
    logger.info(
        "message_sent",
        conversation_id=conversation_id,
        message_id=message.id,
        parent_message_id=parent_id,
    )
    await feed.emit(MESSAGES_TABLE, "INSERT", message.id)
    return MessageResponse(
        id=message.id,
        conversation_id=conversation_id,
        sender_id=ctx.user_id,
        sender_name=ctx.full_name,
        content=message.content,
        parent_message_id=parent_id,
        created_at=message.created_at,
        is_read=True,
    )


async def mark_conversation_read(db: AsyncSession, user_id: str, conversation_id: int) -> int:
    """Insert read receipts for every unread message by others. Returns how many were added."""
    read_exists = (
        select(MessageRead.id)
        .where(MessageRead.message_id == Message.id, MessageRead.user_id == user_id)
        .exists()
    )
    unread_ids = (
        await db.scalars(
            select(Message.id).where(
                Message.conversation_id == conversation_id,
                or_(Message.sender_id.is_(None), Message.sender_id != user_id),
                ~read_exists,
            )
        )
    ).all()
    if not unread_ids:
        return 0

    db.add_all([MessageRead(message_id=mid, user_id=user_id) for mid in unread_ids])
    try:
        await db.commit()
    except IntegrityError:
        # a concurrent open already recorded them
        await db.rollback()
        logger.info("message_reads_raced", conversation_id=conversation_id, user_id=user_id)
        return 0
    return len(unread_ids)


async def _participants_by_conversation(
    db: AsyncSession, conversation_ids: list[int]
) -> dict[int, list[ParticipantResponse]]:
    rows = await db.execute(
        select(ConversationParticipant.conversation_id, User)
        .join(User, User.id == ConversationParticipant.user_id)
        .where(ConversationParticipant.conversation_id.in_(conversation_ids))
        .order_by(User.full_name)
    )
    result: dict[int, list[ParticipantResponse]] = {cid: [] for cid in conversation_ids}
    for conversation_id, user in rows.all():
        result[conversation_id].append(
            ParticipantResponse(user_id=user.id, full_name=user.full_name, role=user.role, avatar_url=user.avatar_url)
        )
    return result


async def _unread_counts(db: AsyncSession, user_id: str, conversation_ids: list[int]) -> dict[int, int]:
    rows = await db.execute(
        select(Message.conversation_id, func.count(Message.id))
        .outerjoin(MessageRead, and_(MessageRead.message_id == Message.id, MessageRead.user_id == user_id))
        .where(
            Message.conversation_id.in_(conversation_ids),
            or_(Message.sender_id.is_(None), Message.sender_id != user_id),
            MessageRead.id.is_(None),
        )
        .group_by(Message.conversation_id)
    )
    return {cid: count for cid, count in rows.all()}


async def _sender_names(db: AsyncSession, sender_ids: set[str]) -> dict[str, str]:
    if not sender_ids:
        return {}
    rows = await db.execute(select(User.id, User.full_name).where(User.id.in_(sender_ids)))
    return {uid: name for uid, name in rows.all()}


def _message_response(message: Message, names: dict[str, str], read_ids: set[int], viewer_id: str) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        conversation_id=message.conversation_id,
        sender_id=message.sender_id,
        sender_name=names.get(message.sender_id) if message.sender_id else None,
        content=message.content,
        parent_message_id=message.parent_message_id,
        created_at=message.created_at,
        is_read=message.sender_id == viewer_id or message.id in read_ids,
    )


async def _summaries(
    db: AsyncSession,
    ctx: SessionContext,
    conversation_ids: list[int],
) -> list[ConversationSummary]:
    if not conversation_ids:
        return []

    rows = (
        await db.execute(
            select(Conversation, Team.name)
            .outerjoin(Team, Team.id == Conversation.team_id)
            .where(Conversation.id.in_(conversation_ids))
        )
    ).all()
    participants = await _participants_by_conversation(db, conversation_ids)
    unread = await _unread_counts(db, ctx.user_id, conversation_ids)

    last_ids = select(func.max(Message.id)).where(Message.conversation_id.in_(conversation_ids)).group_by(
        Message.conversation_id
    )
    last_messages = {m.conversation_id: m for m in (await db.scalars(select(Message).where(Message.id.in_(last_ids)))).all()}
    names = await _sender_names(db, {m.sender_id for m in last_messages.values() if m.sender_id})
    read_ids = set(
        (
            await db.scalars(
                select(MessageRead.message_id).where(
                    MessageRead.user_id == ctx.user_id,
                    MessageRead.message_id.in_([m.id for m in last_messages.values()]),
                )
            )
        ).all()
    )

    summaries = []
    for conversation, team_name in rows:
        people = participants.get(conversation.id, [])
        last = last_messages.get(conversation.id)
        summaries.append(
            ConversationSummary(
                id=conversation.id,
                type=conversation.type,
                title=conversation.title,
                display_title=display_title(conversation, team_name, people, ctx.user_id),
                team_id=conversation.team_id,
                team_name=team_name,
                created_by=conversation.created_by,
                is_pinned=conversation.is_pinned,
                replies_disabled=conversation.replies_disabled,
                can_reply=can_reply(conversation, ctx),
                unread_count=unread.get(conversation.id, 0),
                participants=people,
                last_message=_message_response(last, names, read_ids, ctx.user_id) if last else None,
                created_at=conversation.created_at,
                updated_at=conversation.updated_at,
            )
        )
    # pinned first, then most recently active
    summaries.sort(key=lambda s: s.updated_at, reverse=True)
    summaries.sort(key=lambda s: not s.is_pinned)
    return summaries


async def list_conversations(db: AsyncSession, ctx: SessionContext) -> list[ConversationSummary]:
    ids = (
        await db.scalars(
            select(ConversationParticipant.conversation_id).where(ConversationParticipant.user_id == ctx.user_id)
        )
    ).all()
    return await _summaries(db, ctx, list(ids))


async def get_conversation_detail(
    db: AsyncSession,
    ctx: SessionContext,
    conversation_id: int,
    *,
    mark_read: bool = True,
) -> ConversationDetail:
    await _get_conversation_for(db, ctx, conversation_id)
    if mark_read:
        added = await mark_conversation_read(db, ctx.user_id, conversation_id)
        if added:
            logger.info("conversation_marked_read", conversation_id=conversation_id, messages=added)

    summary = (await _summaries(db, ctx, [conversation_id]))[0]
    messages = (
        await db.scalars(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at, Message.id)
        )
    ).all()
    names = await _sender_names(db, {m.sender_id for m in messages if m.sender_id})
    read_ids = set(
        (
            await db.scalars(
                select(MessageRead.message_id)
                .join(Message, Message.id == MessageRead.message_id)
                .where(MessageRead.user_id == ctx.user_id, Message.conversation_id == conversation_id)
            )
        ).all()
    )

    parents = {m.id: m.parent_message_id for m in messages}
    threads: dict[int, MessageThread] = {}
    for message in messages:
        response = _message_response(message, names, read_ids, ctx.user_id)
        if message.parent_message_id is None:
            threads[message.id] = MessageThread(**response.model_dump())
            continue
        root = message.parent_message_id
        while parents.get(root) is not None:
            root = parents[root]
        if root in threads:
            threads[root].replies.append(response)

    return ConversationDetail(**summary.model_dump(), threads=list(threads.values()))


async def toggle_pin(db: AsyncSession, feed: ChangeFeed, ctx: SessionContext, conversation_id: int) -> PinState:
    if not ctx.is_staff:
        raise ForbiddenException("Only coaches and admins can pin conversations")
    if not ctx.is_admin:
        await _get_conversation_for(db, ctx, conversation_id)

    res = await db.execute(
        update(Conversation)
        .where(Conversation.id == conversation_id)
        .values(is_pinned=~Conversation.is_pinned)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("Conversation", conversation_id)
    await db.commit()

    is_pinned = await db.scalar(select(Conversation.is_pinned).where(Conversation.id == conversation_id))
    logger.info("conversation_pin_toggled", conversation_id=conversation_id, is_pinned=is_pinned)
    await feed.emit(CONVERSATIONS_TABLE, "UPDATE", conversation_id)
    return PinState(id=conversation_id, is_pinned=bool(is_pinned))
