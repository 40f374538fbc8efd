"""
Outbound HTTP client for calls to collaborating services.

Every call returns a ServiceResponse instead of raising, so callers decide how
an upstream failure maps onto their own error taxonomy:

    async with ServiceClient(base_url=url, timeout=30) as client:
        resp = await client.post("/chat", json=payload, conversation_id=cid)
        if not resp.success:
            raise UpstreamServiceException(resp.error)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

logger = structlog.get_logger(__name__)


@dataclass
class ServiceResponse:
    success: bool
    data: Any = None
    status_code: int | None = None
    error: str | None = None
    headers: dict[str, str] = field(default_factory=dict)


class ServiceClient:
    """Async httpx wrapper with JSON decoding and structured error logging."""

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout: float | httpx.Timeout = 20.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout) if isinstance(timeout, int | float) else timeout
        self._headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ServiceClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        expected_status: int | tuple[int, ...] = (200, 201),
        **log_context: Any,
    ) -> ServiceResponse:
        if isinstance(expected_status, int):
            expected_status = (expected_status,)
        if self._client is None:
            raise RuntimeError("ServiceClient used outside of its async context")

        try:
            response = await self._client.request(method, url, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("http_request_failed", method=method, url=url, error=str(exc), **log_context)
            return ServiceResponse(success=False, error=str(exc) or exc.__class__.__name__)

        if response.status_code not in expected_status:
            logger.error(
                "unexpected_status_code",
                method=method,
                url=url,
                status_code=response.status_code,
                expected=expected_status,
                body_preview=response.text[:500] if response.text else "",
                **log_context,
            )
            return ServiceResponse(
                success=False,
                status_code=response.status_code,
                error=f"Unexpected status {response.status_code}",
            )

        try:
            data = response.json() if response.content else None
        except ValueError:
            logger.error(
                "json_parse_failed",
                url=url,
                status_code=response.status_code,
                body_preview=response.text[:500],
                **log_context,
            )
            return ServiceResponse(success=False, status_code=response.status_code, error="JSON parse failed")

        return ServiceResponse(
            success=True,
            data=data,
            status_code=response.status_code,
            headers=dict(response.headers),
        )

    async def get(self, url: str, **kwargs: Any) -> ServiceResponse:
        kwargs.setdefault("expected_status", 200)
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> ServiceResponse:
        return await self.request("POST", url, **kwargs)
