from typing import List

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext, get_db, get_session_context
from ..realtime import ChangeFeed, get_change_feed
from ..schemas.messaging import (
    ConversationCreate,
    ConversationDetail,
    ConversationSummary,
    MessageCreate,
    MessageResponse,
    PinState,
)
from ..services import messaging_service

router = APIRouter(prefix="/conversations", tags=["messaging"])

logger = structlog.get_logger(__name__)


@router.get("/", response_model=List[ConversationSummary])
async def list_conversations(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await messaging_service.list_conversations(db, ctx)


@router.post("/", response_model=ConversationDetail, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    payload: ConversationCreate,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    ctx: SessionContext = Depends(get_session_context),
):
    logger.info(
        "conversation_create_requested",
        type=payload.type.value,
        recipients=len(payload.recipient_ids),
        team_id=payload.team_id,
    )
    return await messaging_service.create_conversation(db, feed, ctx, payload)


@router.get("/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(
    conversation_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Opening a conversation marks every message from others as read."""
    return await messaging_service.get_conversation_detail(db, ctx, conversation_id)


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: int,
    payload: MessageCreate,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    ctx: SessionContext = Depends(get_session_context),
):
    return await messaging_service.send_message(db, feed, ctx, conversation_id, payload)


@router.post("/{conversation_id}/pin", response_model=PinState)
async def toggle_pin(
    conversation_id: int,
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    ctx: SessionContext = Depends(get_session_context),
):
    return await messaging_service.toggle_pin(db, feed, ctx, conversation_id)
