from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from soundboard.errors import UpstreamExchangeFailure
from soundboard.services.oauth import DiscordOAuthClient

from conftest import DISCORD_USER


def _client(handler) -> DiscordOAuthClient:
    return DiscordOAuthClient(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:3000/auth/callback",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.anyio("asyncio")
async def test_exchange_code_sends_form_and_fetches_user() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/api/oauth2/token":
            return httpx.Response(200, json={"access_token": "discord-access"})
        return httpx.Response(200, json=DISCORD_USER)

    user = await _client(handler).exchange_code("the-code")

    assert user == DISCORD_USER
    token_request, user_request = requests
    assert token_request.method == "POST"
    form = parse_qs(token_request.content.decode())
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["the-code"]
    assert form["redirect_uri"] == ["http://localhost:3000/auth/callback"]
    assert user_request.headers["Authorization"] == "Bearer discord-access"


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize(
    "handler",
    [
        lambda request: httpx.Response(400, text="invalid_grant"),
        lambda request: httpx.Response(200, json={"token_type": "Bearer"}),
        lambda request: httpx.Response(200, text="<html>"),
        lambda request: httpx.Response(200, json=["not", "an", "object"]),
    ],
)
async def test_exchange_code_failures(handler) -> None:
    with pytest.raises(UpstreamExchangeFailure):
        await _client(handler).exchange_code("the-code")


@pytest.mark.anyio("asyncio")
async def test_exchange_code_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(UpstreamExchangeFailure):
        await _client(handler).exchange_code("the-code")


@pytest.mark.anyio("asyncio")
async def test_user_lookup_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/oauth2/token":
            return httpx.Response(200, json={"access_token": "discord-access"})
        return httpx.Response(401, text="unauthorized")

    with pytest.raises(UpstreamExchangeFailure):
        await _client(handler).exchange_code("the-code")
