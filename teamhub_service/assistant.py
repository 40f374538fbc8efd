from __future__ import annotations

from functools import lru_cache

import structlog
from backend_common.http_client import ServiceClient

from .config import get_settings
from .exceptions import UpstreamServiceException

logger = structlog.get_logger(__name__)


class AssistantClient:
    """Chat completion endpoint: POST ``{conversationId, message}`` -> ``{reply}``."""

    def __init__(self, url: str, timeout: float = 60.0, transport=None) -> None:
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def complete(self, conversation_id: int, message: str) -> str:
        async with ServiceClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(
                self.url,
                json={"conversationId": conversation_id, "message": message},
                conversation_id=conversation_id,
            )
        if not resp.success:
            raise UpstreamServiceException(f"AI assistant request failed: {resp.error}")

        reply = resp.data.get("reply") if isinstance(resp.data, dict) else None
        if not isinstance(reply, str) or not reply.strip():
            logger.error("assistant_reply_missing", conversation_id=conversation_id)
            raise UpstreamServiceException("AI assistant returned no reply")
        return reply


@lru_cache()
def get_assistant_client() -> AssistantClient:
    settings = get_settings()
    return AssistantClient(settings.AI_ASSISTANT_URL, timeout=settings.AI_ASSISTANT_TIMEOUT_SECONDS)
