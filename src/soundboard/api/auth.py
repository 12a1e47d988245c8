"""Discord OAuth2 login endpoints."""

from __future__ import annotations

import html
import json
import logging

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import ValidationError

from soundboard.api.deps import extract_bearer_token, get_oauth, get_tokens
from soundboard.core.security import SessionTokenService
from soundboard.errors import UpstreamExchangeFailure
from soundboard.schemas.users import UserSnapshot
from soundboard.services.oauth import DiscordOAuthClient

router = APIRouter()

logger = logging.getLogger(__name__)

_CALLBACK_PAGE = """<!doctype html>
<html>
  <body style="background:#0b0d11;color:#f7f7f7;font-family:Arial;padding:24px;">
    <h2>Discord login complete</h2>
    <p>You can close this window.</p>
    <script>
      (function () {
        const payload = __PAYLOAD__;
        if (window.opener) {
          window.opener.postMessage(payload, "*");
          window.close();
        } else {
          const pre = document.createElement("pre");
          pre.textContent = JSON.stringify(payload);
          document.body.appendChild(pre);
        }
      })();
    </script>
  </body>
</html>
"""


def _error_page(message: str, status_code: int) -> HTMLResponse:
    return HTMLResponse(f"<p>{html.escape(message)}</p>", status_code=status_code)


@router.get("/login")
def login(oauth: DiscordOAuthClient = Depends(get_oauth)) -> RedirectResponse:
    """Send the browser to the Discord consent screen."""

    return RedirectResponse(oauth.authorize_url(), status_code=status.HTTP_302_FOUND)


@router.get("/callback", response_class=HTMLResponse)
async def callback(
    code: str | None = None,
    error: str | None = None,
    oauth: DiscordOAuthClient = Depends(get_oauth),
    tokens: SessionTokenService = Depends(get_tokens),
) -> HTMLResponse:
    """Finish the login and hand ``{token, user}`` to the opener window."""

    if error:
        return _error_page(f"Discord login failed: {error}", status.HTTP_400_BAD_REQUEST)
    if not code:
        return _error_page("Missing authorization code.", status.HTTP_400_BAD_REQUEST)

    try:
        profile = await oauth.exchange_code(code)
        user = UserSnapshot.from_discord(profile)
    except UpstreamExchangeFailure as exc:
        logger.warning("Discord login failed: %s", exc.message)
        return _error_page(f"Error during Discord login: {exc.message}", status.HTTP_502_BAD_GATEWAY)
    except ValidationError:
        logger.warning("Discord returned an incomplete user profile")
        return _error_page(
            "Error during Discord login: incomplete user profile.", status.HTTP_502_BAD_GATEWAY
        )

    token = tokens.sign(user)
    payload = json.dumps({"token": token, "user": user.to_public()}).replace("</", "<\\/")
    logger.info("User signed in", extra={"user_id": user.id})
    return HTMLResponse(_CALLBACK_PAGE.replace("__PAYLOAD__", payload))


@router.get("/session")
def read_session(
    token: str | None = None,
    authorization: str | None = Header(default=None),
    tokens: SessionTokenService = Depends(get_tokens),
) -> JSONResponse:
    """Report the user bound to a session token."""

    session = tokens.verify(token or extract_bearer_token(authorization))
    if session is None:
        return JSONResponse(
            {"ok": False, "error": "Invalid session"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return JSONResponse({"ok": True, "user": session.user.to_public()})
