"""Identity collaborator backed by Firebase Authentication.

Token verification, account creation and refresh-token revocation go through
the Firebase Admin SDK. Password sign-in is not exposed by the Admin SDK, so it
uses the Identity Toolkit REST endpoint with the project's web API key.
"""

from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import firebase_admin
import structlog
from backend_common.http_client import ServiceClient
from fastapi import HTTPException, status
from fastapi.concurrency import run_in_threadpool
from firebase_admin import auth as fb_auth
from firebase_admin import credentials
from firebase_admin import exceptions as fb_exceptions

from .config import get_settings
from .exceptions import ConflictException, UpstreamServiceException

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SignInResult:
    user_id: str
    id_token: str
    refresh_token: str
    expires_in: int


class IdentityProvider:
    """Interface every identity backend implements."""

    async def verify_token(self, token: str) -> str:
        raise NotImplementedError

    async def sign_in(self, email: str, password: str) -> SignInResult:
        raise NotImplementedError

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> str:
        raise NotImplementedError

    async def sign_out(self, user_id: str) -> None:
        raise NotImplementedError

    async def delete_account(self, user_id: str) -> None:
        raise NotImplementedError


class FirebaseIdentityProvider(IdentityProvider):
    def __init__(self, *, web_api_key: str | None, toolkit_url: str, check_revoked: bool = False) -> None:
        self._web_api_key = web_api_key
        self._toolkit_url = toolkit_url.rstrip("/")
        self._check_revoked = check_revoked

    @staticmethod
    def _ensure_initialized() -> None:
        if firebase_admin._apps:
            return

        cred_base64 = os.getenv("FIREBASE_CREDENTIALS_BASE64")
        if cred_base64:
            data = json.loads(base64.b64decode(cred_base64).decode("utf-8"))
            firebase_admin.initialize_app(credentials.Certificate(data))
            return

        path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        if path and os.path.isfile(path):
            firebase_admin.initialize_app(credentials.Certificate(path))
            return

        firebase_admin.initialize_app()

    async def verify_token(self, token: str) -> str:
        self._ensure_initialized()
        try:
            decoded = await run_in_threadpool(fb_auth.verify_id_token, token, check_revoked=self._check_revoked)
        except (fb_auth.InvalidIdTokenError, fb_auth.ExpiredIdTokenError, fb_auth.RevokedIdTokenError) as exc:
            logger.info("identity_token_rejected", error=str(exc))
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token") from exc
        return decoded["uid"]

    async def sign_in(self, email: str, password: str) -> SignInResult:
        if not self._web_api_key:
            raise UpstreamServiceException("Password sign-in is not configured")

        async with ServiceClient(base_url=self._toolkit_url, timeout=10.0) as client:
            resp = await client.post(
                f"/accounts:signInWithPassword?key={self._web_api_key}",
                json={"email": email, "password": password, "returnSecureToken": True},
                expected_status=(200, 400),
                email=email,
            )
        if not resp.success:
            raise UpstreamServiceException(f"Identity provider unavailable: {resp.error}")
        if resp.status_code == 400:
            message = ((resp.data or {}).get("error") or {}).get("message", "INVALID_LOGIN_CREDENTIALS")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)

        return SignInResult(
            user_id=resp.data["localId"],
            id_token=resp.data["idToken"],
            refresh_token=resp.data["refreshToken"],
            expires_in=int(resp.data.get("expiresIn", 3600)),
        )

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> str:
        self._ensure_initialized()
        try:
            record = await run_in_threadpool(
                fb_auth.create_user,
                email=email,
                password=password,
                display_name=metadata.get("full_name"),
                email_verified=False,
            )
        except fb_auth.EmailAlreadyExistsError as exc:
            raise ConflictException(str(exc)) from exc
        except fb_exceptions.FirebaseError as exc:
            logger.error("identity_sign_up_failed", email=email, error=str(exc))
            raise UpstreamServiceException(str(exc)) from exc
        return record.uid

    async def sign_out(self, user_id: str) -> None:
        self._ensure_initialized()
        await run_in_threadpool(fb_auth.revoke_refresh_tokens, user_id)

    async def delete_account(self, user_id: str) -> None:
        self._ensure_initialized()
        try:
            await run_in_threadpool(fb_auth.delete_user, user_id)
        except fb_auth.UserNotFoundError:
            logger.info("identity_account_already_gone", user_id=user_id)
            return
        logger.info("identity_account_deleted", user_id=user_id)


@lru_cache(maxsize=1)
def get_identity_provider() -> IdentityProvider:
    settings = get_settings()
    return FirebaseIdentityProvider(
        web_api_key=settings.FIREBASE_WEB_API_KEY,
        toolkit_url=settings.FIREBASE_IDENTITY_TOOLKIT_URL,
        check_revoked=settings.FIREBASE_CHECK_REVOKED,
    )
