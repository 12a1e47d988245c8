"""FastAPI dependencies for the API layer."""

from fastapi.requests import HTTPConnection

from soundboard.core.security import SessionTokenService
from soundboard.realtime.hub import BroadcastHub
from soundboard.services.oauth import DiscordOAuthClient


def get_hub(connection: HTTPConnection) -> BroadcastHub:
    return connection.app.state.hub


def get_tokens(connection: HTTPConnection) -> SessionTokenService:
    return connection.app.state.tokens


def get_oauth(connection: HTTPConnection) -> DiscordOAuthClient:
    return connection.app.state.oauth


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the credential of an ``Authorization: Bearer`` header."""

    if not authorization:
        return None
    scheme, _, credential = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credential.strip():
        return None
    return credential.strip()
