"""Auth Adapter used by the kiosk.

Sign-up goes through our backend (which holds the service key); sign-in
and sign-out go straight to the hosted auth provider with the anon key.
The adapter keeps the current session in memory.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from greenfill.auth.provider import AuthProvider, AuthSession
from greenfill.core.errors import AuthProviderError, UpstreamFailure

logger = logging.getLogger(__name__)


class AuthAdapter:
    """Signs users up/in/out and hands out the bearer credential."""

    def __init__(self, provider: AuthProvider, api: httpx.AsyncClient, anon_key: str) -> None:
        self._provider = provider
        self._api = api
        self._anon_key = anon_key
        self._session: Optional[AuthSession] = None

    async def sign_up(self, email: str, phone: str, password: str) -> str:
        """Create an account; returns the new user id.

        The backend passes the provider's refusal message through, so
        AuthProviderError.args[0] is safe to show on the form.
        """
        resp = await self._api.post(
            "signup",
            headers={"Authorization": f"Bearer {self._anon_key}"},
            json={"email": email, "phone": phone, "password": password},
        )
        data = json_body(resp)
        if resp.status_code >= 400:
            raise AuthProviderError(data.get("error") or "Registration failed", status_code=resp.status_code)
        user = data.get("user")
        if not isinstance(user, dict) or not user.get("id"):
            raise UpstreamFailure("Sign-up response has no user")
        return str(user["id"])

    async def sign_in(self, identifier: str, password: str) -> AuthSession:
        """Raises InvalidCredentials with a uniform message on refusal."""
        session = await self._provider.sign_in_with_password(identifier, password)
        self._session = session
        return session

    async def sign_out(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        try:
            await self._provider.sign_out(session.access_token)
        except (UpstreamFailure, httpx.HTTPError) as exc:
            # The local session is gone either way
            logger.warning("Sign-out with auth provider failed: %s", exc)

    def current_session(self) -> Optional[AuthSession]:
        return self._session

    def restore(self, session: AuthSession) -> None:
        """Adopt a session persisted elsewhere (remember-me)"""
        self._session = session

    def forget(self) -> None:
        """Drop a credential the backend no longer accepts"""
        self._session = None


def json_body(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
