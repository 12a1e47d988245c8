"""Stateless session tokens signed with HMAC-SHA256."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError

from soundboard.schemas.users import UserSnapshot

TOKEN_SEPARATOR = "."


@dataclass(slots=True, frozen=True)
class Session:
    """Identity recovered from a verified session token."""

    user: UserSnapshot
    created_at: int


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


class SessionTokenService:
    """Sign and verify bearer tokens of the form ``payload.signature``.

    Tokens carry the user snapshot and the issue time. Nothing is stored
    server-side: a token stays valid for as long as the signing secret does.
    """

    def __init__(self, secret: str | bytes) -> None:
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)

    def _signature(self, encoded_payload: str) -> str:
        digest = hmac.new(self._secret, encoded_payload.encode("utf-8"), hashlib.sha256).digest()
        return _b64encode(digest)

    def sign(self, user: UserSnapshot | Mapping[str, Any], *, issued_at: int | None = None) -> str:
        """Return a signed token binding *user*."""

        snapshot = user if isinstance(user, UserSnapshot) else UserSnapshot.from_discord(user)
        payload = {
            "user": snapshot.to_public(),
            "iat": issued_at if issued_at is not None else int(time.time() * 1000),
        }
        encoded = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        return f"{encoded}{TOKEN_SEPARATOR}{self._signature(encoded)}"

    def verify(self, token: Any) -> Session | None:
        """Return the session bound to *token*, or ``None`` when it is not valid."""

        if isinstance(token, bytes):
            try:
                token = token.decode("utf-8")
            except UnicodeDecodeError:
                return None
        if not isinstance(token, str) or not token:
            return None

        parts = token.split(TOKEN_SEPARATOR)
        if len(parts) != 2:
            return None
        encoded, signature = parts
        if not encoded or not signature:
            return None

        try:
            expected = self._signature(encoded).encode("ascii")
            provided = signature.encode("utf-8")
        except UnicodeEncodeError:
            return None
        if len(provided) != len(expected):
            return None
        if not hmac.compare_digest(provided, expected):
            return None

        try:
            parsed = json.loads(_b64decode(encoded).decode("utf-8"))
            user = UserSnapshot.model_validate(parsed["user"])
            created_at = int(parsed["iat"])
        except (binascii.Error, ValueError, UnicodeDecodeError, KeyError, TypeError, ValidationError):
            return None
        return Session(user=user, created_at=created_at)
