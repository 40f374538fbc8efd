import hmac
from collections.abc import AsyncGenerator, Callable

from fastapi import HTTPException, status
from fastapi.requests import HTTPConnection
from sentry_sdk import set_tag, set_user
from sqlalchemy.ext.asyncio import AsyncSession


def make_get_db_async(
    async_session_factory: Callable[[], AsyncSession],
) -> Callable[[], AsyncGenerator[AsyncSession, None]]:
    async def get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_factory() as session:
            yield session

    return get_db


def bearer_token_from(request: HTTPConnection) -> str | None:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def forwarded_user_id(
    request: HTTPConnection,
    *,
    internal_secret: str | None,
    header_name: str = "x-user-id",
    secret_header_name: str = "x-internal-secret",
) -> str | None:
    """Return the user id forwarded by the gateway, if the request is trusted.

    When an internal secret is configured the caller must echo it back in
    ``X-Internal-Secret``; otherwise the header is taken at face value (local
    development and tests).
    """
    user_id = request.headers.get(header_name)
    if not user_id:
        return None
    if internal_secret:
        presented = request.headers.get(secret_header_name) or ""
        if not hmac.compare_digest(presented, internal_secret):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Untrusted forwarded identity")
    return user_id


def bind_sentry_user(service_name: str, user_id: str) -> None:
    set_user({"id": str(user_id)})
    set_tag("service", service_name)
