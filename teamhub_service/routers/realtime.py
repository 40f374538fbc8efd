import asyncio

import structlog
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from ..database import AsyncSessionLocal
from ..dependencies import get_websocket_user_id, load_session_context
from ..identity import IdentityProvider, get_identity_provider
from ..realtime import ChangeFeed, get_change_feed
from ..services import messaging_service

router = APIRouter(tags=["realtime"])

logger = structlog.get_logger(__name__)

WS_UNAUTHORIZED = 4401
WS_FORBIDDEN = 4403


async def messaging_snapshot(user_id: str, open_id: int | None) -> dict:
    """Full conversation list plus the open conversation, read in a fresh session."""
    async with AsyncSessionLocal() as db:
        ctx = await load_session_context(db, user_id)
        conversations = await messaging_service.list_conversations(db, ctx)
        payload = {
            "type": "snapshot",
            "conversations": [c.model_dump(mode="json") for c in conversations],
            "open": None,
        }
        if open_id is not None:
            try:
                detail = await messaging_service.get_conversation_detail(db, ctx, open_id)
                payload["open"] = detail.model_dump(mode="json")
            except HTTPException as exc:
                payload["error"] = {"status_code": exc.status_code, "detail": exc.detail}
        return payload


def _requested_open(data, current: int | None) -> int | None:
    if not isinstance(data, dict) or "open" not in data:
        return current
    value = data["open"]
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return current


@router.websocket("/ws/messages")
async def messages_ws(
    websocket: WebSocket,
    identity: IdentityProvider = Depends(get_identity_provider),
    feed: ChangeFeed = Depends(get_change_feed),
):
    try:
        user_id = await get_websocket_user_id(websocket, identity)
    except HTTPException:
        user_id = None
    if not user_id:
        await websocket.close(code=WS_UNAUTHORIZED)
        return

    try:
        first = await messaging_snapshot(user_id, None)
    except HTTPException:
        await websocket.close(code=WS_FORBIDDEN)
        return

    await websocket.accept()
    open_id: int | None = None

    # any change to messages or pins triggers a complete re-read
    async with feed.subscribe("messages", "conversations") as sub:
        await websocket.send_json(first)
        receive = asyncio.create_task(websocket.receive_json())
        changed = asyncio.create_task(sub.get())
        try:
            while True:
                done, _ = await asyncio.wait({receive, changed}, return_when=asyncio.FIRST_COMPLETED)
                if receive in done:
                    data = receive.result()
                    if isinstance(data, dict) and data.get("type") == "ping":
                        await websocket.send_json({"type": "pong"})
                        receive = asyncio.create_task(websocket.receive_json())
                        continue
                    open_id = _requested_open(data, open_id)
                    receive = asyncio.create_task(websocket.receive_json())
                if changed in done:
                    event = changed.result()
                    logger.debug("messaging_ws_resync", table=event.table, action=event.action, user_id=user_id)
                    changed = asyncio.create_task(sub.get())
                await websocket.send_json(await messaging_snapshot(user_id, open_id))
        except WebSocketDisconnect:
            logger.info("messaging_ws_disconnected", user_id=user_id)
        finally:
            receive.cancel()
            changed.cancel()
