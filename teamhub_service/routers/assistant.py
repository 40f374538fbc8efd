from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..assistant import AssistantClient, get_assistant_client
from ..dependencies import SessionContext, get_db, get_session_context
from ..schemas.knowledge import AIConversationResponse, AIMessageResponse, AssistantExchange, AssistantSend
from ..services import assistant_service

router = APIRouter(prefix="/assistant", tags=["assistant"])


@router.get("/conversations", response_model=List[AIConversationResponse])
async def list_conversations(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await assistant_service.list_conversations(db, ctx)


@router.post("/conversations", response_model=AIConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await assistant_service.create_conversation(db, ctx)


@router.get("/conversations/{conversation_id}/messages", response_model=List[AIMessageResponse])
async def list_messages(
    conversation_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await assistant_service.list_messages(db, ctx, conversation_id)


@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    await assistant_service.delete_conversation(db, ctx, conversation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/messages", response_model=AssistantExchange)
async def send_message(
    payload: AssistantSend,
    db: AsyncSession = Depends(get_db),
    client: AssistantClient = Depends(get_assistant_client),
    ctx: SessionContext = Depends(get_session_context),
):
    return await assistant_service.send(db, ctx, client, payload)
