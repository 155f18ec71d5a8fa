"""GoTrue adapter request shapes and error mapping, against a mocked transport."""

import json

import httpx
import pytest

from greenfill.auth.provider import GoTrueAuthProvider
from greenfill.core.errors import AuthProviderError, InvalidCredentials, Unauthorized, UpstreamFailure


USER = {"id": "u-1", "email": "aina@example.com", "user_metadata": {"phone": "012"}}


def _provider(handler, service_key="service-key") -> GoTrueAuthProvider:
    return GoTrueAuthProvider(
        base_url="https://auth.example.com/",
        anon_key="anon-key",
        service_key=service_key,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_create_user_is_auto_confirmed():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=USER)

    async with _provider(handler) as provider:
        user = await provider.create_user("aina@example.com", "secret123", phone="012")

    assert seen["path"] == "/auth/v1/admin/users"
    assert seen["auth"] == "Bearer service-key"
    assert seen["body"]["email_confirm"] is True
    assert seen["body"]["user_metadata"] == {"phone": "012"}
    assert user.id == "u-1"
    assert user.phone == "012"


@pytest.mark.asyncio
async def test_create_user_error_keeps_provider_message():
    def handler(request):
        return httpx.Response(422, json={"msg": "Password should be at least 6 characters"})

    async with _provider(handler) as provider:
        with pytest.raises(AuthProviderError) as exc:
            await provider.create_user("aina@example.com", "123")

    assert str(exc.value) == "Password should be at least 6 characters"
    assert exc.value.status_code == 422


@pytest.mark.asyncio
async def test_create_user_needs_service_key():
    async with _provider(lambda r: httpx.Response(200, json=USER), service_key="") as provider:
        with pytest.raises(AuthProviderError):
            await provider.create_user("aina@example.com", "secret123")


@pytest.mark.asyncio
async def test_get_user_with_bearer():
    def handler(request):
        if request.headers["Authorization"] != "Bearer user-token":
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(200, json=USER)

    async with _provider(handler) as provider:
        assert (await provider.get_user("user-token")).email == "aina@example.com"
        with pytest.raises(Unauthorized):
            await provider.get_user("forged")


@pytest.mark.asyncio
async def test_sign_in_password_grant():
    def handler(request):
        assert request.url.path == "/auth/v1/token"
        assert request.url.params["grant_type"] == "password"
        assert request.headers["apikey"] == "anon-key"
        return httpx.Response(200, json={"access_token": "jwt", "user": USER})

    async with _provider(handler) as provider:
        session = await provider.sign_in_with_password("aina@example.com", "secret123")

    assert session.access_token == "jwt"
    assert session.email == "aina@example.com"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"error": "invalid_grant", "error_description": "Invalid login credentials"},
    {"error": "invalid_grant", "error_description": "Email not confirmed"},
])
async def test_sign_in_refusal_is_uniform(body):
    async with _provider(lambda r: httpx.Response(400, json=body)) as provider:
        with pytest.raises(InvalidCredentials) as exc:
            await provider.sign_in_with_password("aina@example.com", "wrong")

    assert str(exc.value) == "Invalid credentials"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(200, json={"token_type": "bearer", "user": USER}),
    httpx.Response(200, json={"access_token": "jwt"}),
    httpx.Response(200, text="<html>gateway</html>"),
])
async def test_sign_in_malformed_body_is_upstream_failure(response):
    async with _provider(lambda r: response) as provider:
        with pytest.raises(UpstreamFailure) as exc:
            await provider.sign_in_with_password("aina@example.com", "secret123")

    assert not isinstance(exc.value, InvalidCredentials)


@pytest.mark.asyncio
async def test_sign_out_failure_is_not_raised(caplog):
    async with _provider(lambda r: httpx.Response(500, text="boom")) as provider:
        await provider.sign_out("jwt")
    assert "Sign-out returned HTTP 500" in caplog.text
