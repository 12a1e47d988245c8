"""Discord OAuth2 code exchange used by the login callback."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from soundboard.errors import UpstreamExchangeFailure

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api"
OAUTH_SCOPE = "identify"


class DiscordOAuthClient:
    """Exchange authorization codes for the identity of the signed-in user."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        api_base: str = DISCORD_API_BASE,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def redirect_uri(self) -> str:
        return self._redirect_uri

    def authorize_url(self) -> str:
        url = httpx.URL(
            f"{self._api_base}/oauth2/authorize",
            params={
                "response_type": "code",
                "scope": OAUTH_SCOPE,
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
                "prompt": "consent",
            },
        )
        return str(url)

    async def exchange_code(self, code: str) -> dict[str, Any]:
        """Trade *code* for an access token and fetch ``/users/@me`` with it."""

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                token_response = await client.post(
                    f"{self._api_base}/oauth2/token",
                    data={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self._redirect_uri,
                        "scope": OAUTH_SCOPE,
                    },
                )
            except httpx.HTTPError as exc:
                logger.warning("Discord token exchange request failed", exc_info=True)
                raise UpstreamExchangeFailure("Discord token exchange failed.") from exc
            if token_response.is_error:
                raise UpstreamExchangeFailure(
                    f"Discord token exchange failed: {token_response.text}"
                )
            access_token = self._json(token_response).get("access_token")
            if not access_token:
                raise UpstreamExchangeFailure("Discord token exchange returned no access token.")

            try:
                user_response = await client.get(
                    f"{self._api_base}/users/@me",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.HTTPError as exc:
                logger.warning("Discord user lookup request failed", exc_info=True)
                raise UpstreamExchangeFailure("Discord user fetch failed.") from exc
            if user_response.is_error:
                raise UpstreamExchangeFailure(f"Discord user fetch failed: {user_response.text}")
            return self._json(user_response)

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamExchangeFailure("Discord returned an invalid response.") from exc
        if not isinstance(payload, dict):
            raise UpstreamExchangeFailure("Discord returned an invalid response.")
        return payload
