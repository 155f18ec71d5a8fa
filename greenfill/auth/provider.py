"""Hosted auth provider adapter.

Talks to a GoTrue-compatible REST API (the hosted auth service behind the
kiosk). The backend uses it with the service key to create users and to
verify bearer tokens; the kiosk uses it with the anon key to sign in/out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from greenfill.core.errors import AuthProviderError, InvalidCredentials, Unauthorized, UpstreamFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    phone: Optional[str] = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user: AuthUser

    @property
    def email(self) -> str:
        return self.user.email


class AuthProvider(Protocol):
    """What the backend and the kiosk need from the auth service."""

    async def create_user(self, email: str, password: str, phone: Optional[str] = None) -> AuthUser:
        """Create an already-confirmed account. Raises AuthProviderError."""
        ...

    async def get_user(self, access_token: str) -> AuthUser:
        """Resolve a bearer token. Raises Unauthorized."""
        ...

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Raises InvalidCredentials on any refusal."""
        ...

    async def sign_out(self, access_token: str) -> None:
        ...


def _json_object(resp: httpx.Response) -> dict[str, Any]:
    try:
        body = resp.json()
    except ValueError as exc:
        raise UpstreamFailure(f"Auth provider sent a non-JSON body (HTTP {resp.status_code})") from exc
    if not isinstance(body, dict):
        raise UpstreamFailure(f"Auth provider sent an unexpected body (HTTP {resp.status_code})")
    return body


def _user_from_payload(data: Any) -> AuthUser:
    if not isinstance(data, dict) or not data.get("id"):
        raise UpstreamFailure("Auth provider response has no user")
    metadata = data.get("user_metadata") or {}
    return AuthUser(
        id=str(data["id"]),
        email=data.get("email") or "",
        phone=metadata.get("phone") or data.get("phone") or None,
    )


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    for key in ("msg", "message", "error_description", "error"):
        if isinstance(body, dict) and body.get(key):
            return str(body[key])
    return f"HTTP {resp.status_code}"


class GoTrueAuthProvider:
    """AuthProvider over the hosted service's /auth/v1 REST endpoints."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        service_key: str = "",
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._anon_key = anon_key
        self._service_key = service_key
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/auth/v1",
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GoTrueAuthProvider:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def _headers(self, key: str, bearer: str | None = None) -> dict[str, str]:
        return {"apikey": key, "Authorization": f"Bearer {bearer or key}"}

    # -- Backend (service key) ------------------------------------------------

    async def create_user(self, email: str, password: str, phone: Optional[str] = None) -> AuthUser:
        if not self._service_key:
            raise AuthProviderError("Service key is not configured")

        resp = await self._client.post(
            "/admin/users",
            headers=self._headers(self._service_key),
            json={
                "email": email,
                "password": password,
                "user_metadata": {"phone": phone},
                # No mail server: accounts are confirmed on creation
                "email_confirm": True,
            },
        )
        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.warning("Auth provider refused sign-up for %s: %s", email, message)
            raise AuthProviderError(message, status_code=resp.status_code)

        return _user_from_payload(_json_object(resp))

    async def get_user(self, access_token: str) -> AuthUser:
        resp = await self._client.get(
            "/user",
            headers=self._headers(self._service_key or self._anon_key, bearer=access_token),
        )
        if resp.status_code >= 400:
            raise Unauthorized(_error_message(resp))
        return _user_from_payload(_json_object(resp))

    # -- Kiosk (anon key) -----------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        resp = await self._client.post(
            "/token",
            params={"grant_type": "password"},
            headers=self._headers(self._anon_key),
            json={"email": email, "password": password},
        )
        if resp.status_code >= 400:
            logger.info("Sign-in refused (HTTP %d)", resp.status_code)
            raise InvalidCredentials()

        body = _json_object(resp)
        if not body.get("access_token"):
            raise UpstreamFailure("Auth provider response has no access token")
        return AuthSession(
            access_token=str(body["access_token"]),
            user=_user_from_payload(body.get("user")),
        )

    async def sign_out(self, access_token: str) -> None:
        resp = await self._client.post(
            "/logout",
            headers=self._headers(self._anon_key, bearer=access_token),
        )
        if resp.status_code >= 400:
            logger.warning("Sign-out returned HTTP %d: %s", resp.status_code, _error_message(resp))
