from __future__ import annotations

import base64
import json

from soundboard.core.security import SessionTokenService
from soundboard.schemas.users import UserSnapshot

from conftest import DISCORD_USER, NOW_MS, SECRET


def _flip(char: str) -> str:
    return "B" if char == "A" else "A"


def test_sign_and_verify_returns_snapshot(tokens: SessionTokenService) -> None:
    token = tokens.sign(DISCORD_USER, issued_at=NOW_MS)

    session = tokens.verify(token)

    assert session is not None
    assert session.created_at == NOW_MS
    assert session.user == UserSnapshot(
        id="4242", username="tester", global_name="Test User", discriminator=None, avatar="abc123"
    )


def test_payload_is_base64url_json_without_padding(tokens: SessionTokenService) -> None:
    token = tokens.sign(DISCORD_USER, issued_at=NOW_MS)
    encoded, signature = token.split(".")

    assert "=" not in token
    decoded = json.loads(base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4)))
    assert decoded["iat"] == NOW_MS
    assert decoded["user"]["globalName"] == "Test User"
    assert len(signature) == 43


def test_every_single_character_change_is_rejected(tokens: SessionTokenService) -> None:
    token = tokens.sign(DISCORD_USER, issued_at=NOW_MS)

    for index, char in enumerate(token):
        if char == ".":
            continue
        tampered = token[:index] + _flip(char) + token[index + 1 :]
        assert tokens.verify(tampered) is None, index


def test_payload_swap_is_rejected(tokens: SessionTokenService) -> None:
    first = tokens.sign(DISCORD_USER, issued_at=NOW_MS)
    second = tokens.sign({**DISCORD_USER, "id": "1"}, issued_at=NOW_MS)

    forged = first.split(".")[0] + "." + second.split(".")[1]

    assert tokens.verify(forged) is None


def test_other_secret_is_rejected() -> None:
    token = SessionTokenService("other").sign(DISCORD_USER)

    assert SessionTokenService(SECRET).verify(token) is None


def test_malformed_tokens_are_rejected(tokens: SessionTokenService) -> None:
    token = tokens.sign(DISCORD_USER)

    for value in (None, "", 42, "abc", "a.b.c", token + ".", "." + token.split(".")[1], "é.é"):
        assert tokens.verify(value) is None


def test_signed_garbage_payload_is_rejected(tokens: SessionTokenService) -> None:
    encoded = base64.urlsafe_b64encode(b'{"user": {"id": "1"}}').rstrip(b"=").decode()
    token = f"{encoded}.{tokens._signature(encoded)}"

    assert tokens.verify(token) is None


def test_bytes_token_is_accepted(tokens: SessionTokenService) -> None:
    token = tokens.sign(DISCORD_USER)

    assert tokens.verify(token.encode()) is not None
