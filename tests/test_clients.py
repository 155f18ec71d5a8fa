"""Kiosk-side HTTP clients: status mapping and request shapes."""

import json

import httpx
import pytest

from greenfill.client.auth import AuthAdapter
from greenfill.client.ledger import RefillLedgerClient
from greenfill.core.catalog import voucher_by_id
from greenfill.core.errors import AuthProviderError, Unauthorized, UpstreamFailure


def _api(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api.test/make-server/")


class TestRefillLedgerClient:

    @pytest.mark.asyncio
    async def test_record_refill_sends_idempotency_key(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["key"] = request.headers.get("Idempotency-Key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "pointsEarned": 7})

        async with _api(handler) as api:
            points = await RefillLedgerClient(api).record_refill(
                "jwt", "Lifebuoy", 150, 7.5, "KK3", "e-wallet", idempotency_key="order-1",
            )

        assert points == 7
        assert seen["path"] == "/make-server/add-refill"
        assert seen["key"] == "order-1"
        assert "pointsEarned" not in seen["body"]

    @pytest.mark.asyncio
    async def test_401_is_unauthorized(self):
        async with _api(lambda r: httpx.Response(401, json={"error": "Unauthorized"})) as api:
            with pytest.raises(Unauthorized):
                await RefillLedgerClient(api).list_history("expired")

    @pytest.mark.asyncio
    async def test_500_is_upstream_failure(self):
        async with _api(lambda r: httpx.Response(500, json={"error": "Failed to fetch refill history"})) as api:
            with pytest.raises(UpstreamFailure, match="Failed to fetch refill history"):
                await RefillLedgerClient(api).list_history("jwt")

    @pytest.mark.asyncio
    async def test_no_credential_never_sent(self):
        calls = []
        async with _api(lambda r: calls.append(r) or httpx.Response(200, json={})) as api:
            with pytest.raises(Unauthorized):
                await RefillLedgerClient(api).get_profile("")
        assert calls == []

    @pytest.mark.asyncio
    async def test_redeem_posts_voucher_cost(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "message": "ok", "remainingPoints": 25})

        async with _api(handler) as api:
            remaining = await RefillLedgerClient(api).redeem_voucher("jwt", voucher_by_id("2"))

        assert remaining == 25
        assert seen["body"] == {"voucherId": "2", "pointsUsed": 100}


class TestAuthAdapter:

    @pytest.mark.asyncio
    async def test_sign_up_uses_anon_key(self, auth_provider):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"success": True, "user": {"id": "u-9", "email": "a@b.co"}})

        async with _api(handler) as api:
            user_id = await AuthAdapter(auth_provider, api, anon_key="anon").sign_up("a@b.co", "012", "secret123")

        assert user_id == "u-9"
        assert seen["auth"] == "Bearer anon"

    @pytest.mark.asyncio
    async def test_sign_up_error_message_from_backend(self, auth_provider):
        async with _api(lambda r: httpx.Response(400, json={"error": "Email rate limit exceeded"})) as api:
            with pytest.raises(AuthProviderError, match="Email rate limit exceeded"):
                await AuthAdapter(auth_provider, api, anon_key="anon").sign_up("a@b.co", "012", "secret123")

    @pytest.mark.asyncio
    async def test_sign_up_reply_without_user_is_upstream_failure(self, auth_provider):
        async with _api(lambda r: httpx.Response(200, json={"success": True})) as api:
            with pytest.raises(UpstreamFailure):
                await AuthAdapter(auth_provider, api, anon_key="anon").sign_up("a@b.co", "012", "secret123")

    @pytest.mark.asyncio
    async def test_session_lifecycle(self, auth_provider):
        await auth_provider.create_user("aina@example.com", "secret123")
        async with _api(lambda r: httpx.Response(404)) as api:
            adapter = AuthAdapter(auth_provider, api, anon_key="anon")
            assert adapter.current_session() is None

            session = await adapter.sign_in("aina@example.com", "secret123")
            assert adapter.current_session() == session

            await adapter.sign_out()
            assert adapter.current_session() is None
            assert auth_provider.signed_out == [session.access_token]
