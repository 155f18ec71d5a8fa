"""Shared fixtures: throwaway ledger database, in-memory auth provider, in-process API."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
import pytest

from greenfill.auth.provider import AuthSession, AuthUser
from greenfill.client.auth import AuthAdapter
from greenfill.client.ledger import RefillLedgerClient
from greenfill.config import get_settings
from greenfill.core.clock import SimClock
from greenfill.core.errors import AuthProviderError, InvalidCredentials, Unauthorized
from greenfill.core.kiosk import Kiosk
from greenfill.db.database import get_session_factory, init_db, make_engine, make_session_factory
from greenfill.main import app as greenfill_app, get_auth_provider, get_ledger
from greenfill.refills.ledger import RefillLedger


PASSWORD = "secret123"


class FakeAuthProvider:
    """In-memory stand-in for the hosted auth service."""

    def __init__(self) -> None:
        self.users: dict[str, tuple[str, AuthUser]] = {}
        self.tokens: dict[str, AuthUser] = {}
        self.signed_out: list[str] = []

    async def create_user(self, email: str, password: str, phone: Optional[str] = None) -> AuthUser:
        if email in self.users:
            raise AuthProviderError("A user with this email address has already been registered", 422)
        user = AuthUser(id=str(uuid.uuid4()), email=email, phone=phone)
        self.users[email] = (password, user)
        return user

    async def get_user(self, access_token: str) -> AuthUser:
        if access_token not in self.tokens:
            raise Unauthorized("invalid JWT")
        return self.tokens[access_token]

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        known = self.users.get(email)
        if known is None or known[0] != password:
            raise InvalidCredentials()
        token = f"token-{uuid.uuid4().hex}"
        self.tokens[token] = known[1]
        return AuthSession(access_token=token, user=known[1])

    async def sign_out(self, access_token: str) -> None:
        self.tokens.pop(access_token, None)
        self.signed_out.append(access_token)


class TickingNow:
    """Strictly increasing timestamps so newest-first ordering is deterministic."""

    def __init__(self) -> None:
        self._t = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._t += timedelta(minutes=1)
        return self._t


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------

@pytest.fixture
async def session_factory(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await init_db(engine)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def auth_provider() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture
def ledger(session_factory) -> RefillLedger:
    return RefillLedger(session_factory, now=TickingNow())


@pytest.fixture
def app(session_factory, auth_provider, ledger):
    greenfill_app.dependency_overrides[get_session_factory] = lambda: session_factory
    greenfill_app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    greenfill_app.dependency_overrides[get_ledger] = lambda: ledger
    yield greenfill_app
    greenfill_app.dependency_overrides.clear()


@pytest.fixture
def api_base_url() -> str:
    return f"http://testserver{get_settings().service_prefix}/"


@pytest.fixture
async def api(app, api_base_url):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=api_base_url) as client:
        yield client


@pytest.fixture
async def signed_in(auth_provider) -> AuthSession:
    """A registered user with a live bearer token."""
    await auth_provider.create_user("aina@example.com", PASSWORD, phone="+60 12-345 6789")
    return await auth_provider.sign_in_with_password("aina@example.com", PASSWORD)


@pytest.fixture
def auth_headers(signed_in) -> dict[str, str]:
    return {"Authorization": f"Bearer {signed_in.access_token}"}


# ---------------------------------------------------------------------------
# Kiosk
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> SimClock:
    return SimClock()


@pytest.fixture
def kiosk(auth_provider, api, clock) -> Kiosk:
    """Kiosk wired to the in-process backend, on simulated time."""
    return Kiosk(
        auth=AuthAdapter(auth_provider, api, anon_key="anon-key"),
        ledger=RefillLedgerClient(api),
        clock=clock,
    )
