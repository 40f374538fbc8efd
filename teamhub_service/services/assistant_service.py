from __future__ import annotations

from datetime import datetime

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..assistant import AssistantClient
from ..dependencies import SessionContext
from ..exceptions import NotFoundOrNotPermittedException
from ..metrics import ASSISTANT_REQUESTS_TOTAL
from ..models import AIConversation, AIMessage
from ..schemas.knowledge import (
    AIConversationResponse,
    AIMessageResponse,
    AssistantExchange,
    AssistantRole,
    AssistantSend,
)

logger = structlog.get_logger(__name__)

TITLE_LENGTH = 50


async def list_conversations(db: AsyncSession, ctx: SessionContext) -> list[AIConversation]:
    res = await db.scalars(
        select(AIConversation)
        .where(AIConversation.user_id == ctx.user_id)
        .order_by(AIConversation.updated_at.desc(), AIConversation.id.desc())
    )
    return list(res.all())


async def create_conversation(db: AsyncSession, ctx: SessionContext, title: str | None = None) -> AIConversation:
    now = datetime.utcnow()
    conversation = AIConversation(user_id=ctx.user_id, title=title, created_at=now, updated_at=now)
    db.add(conversation)
    await db.commit()
    return conversation


async def get_conversation(db: AsyncSession, ctx: SessionContext, conversation_id: int) -> AIConversation:
    conversation = await db.get(AIConversation, conversation_id)
    if conversation is None or conversation.user_id != ctx.user_id:
        raise NotFoundOrNotPermittedException("AIConversation", conversation_id)
    return conversation


async def list_messages(db: AsyncSession, ctx: SessionContext, conversation_id: int) -> list[AIMessage]:
    await get_conversation(db, ctx, conversation_id)
    res = await db.scalars(
        select(AIMessage)
        .where(AIMessage.conversation_id == conversation_id)
        .order_by(AIMessage.created_at, AIMessage.id)
    )
    return list(res.all())


async def delete_conversation(db: AsyncSession, ctx: SessionContext, conversation_id: int) -> None:
    res = await db.execute(
        delete(AIConversation).where(AIConversation.id == conversation_id, AIConversation.user_id == ctx.user_id)
    )
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("AIConversation", conversation_id)
    await db.commit()


async def _append(db: AsyncSession, conversation: AIConversation, role: AssistantRole, content: str) -> AIMessage:
    now = datetime.utcnow()
    message = AIMessage(conversation_id=conversation.id, role=role.value, content=content, created_at=now)
    db.add(message)
    conversation.updated_at = now
    await db.commit()
    return message


async def send(
    db: AsyncSession,
    ctx: SessionContext,
    client: AssistantClient,
    payload: AssistantSend,
) -> AssistantExchange:
    """Persist the question, ask the assistant, persist the answer.

    The question is committed before the upstream call so a failed completion
    still leaves it in the history.
    """
    if payload.conversation_id is None:
        conversation = await create_conversation(db, ctx)
    else:
        conversation = await get_conversation(db, ctx, payload.conversation_id)

    if not conversation.title:
        conversation.title = payload.message.strip()[:TITLE_LENGTH]
    user_message = await _append(db, conversation, AssistantRole.user, payload.message)

    try:
        reply = await client.complete(conversation.id, payload.message)
    except HTTPException:
        ASSISTANT_REQUESTS_TOTAL.labels(outcome="error").inc()
        logger.warning("assistant_completion_failed", conversation_id=conversation.id)
        raise

    ASSISTANT_REQUESTS_TOTAL.labels(outcome="ok").inc()
    assistant_message = await _append(db, conversation, AssistantRole.assistant, reply)
    logger.info("assistant_exchange_stored", conversation_id=conversation.id)
    return AssistantExchange(
        conversation=AIConversationResponse.model_validate(conversation),
        user_message=AIMessageResponse.model_validate(user_message),
        assistant_message=AIMessageResponse.model_validate(assistant_message),
    )
