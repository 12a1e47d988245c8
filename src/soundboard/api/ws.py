"""Websocket endpoint for soundboard observers."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket
from fastapi.websockets import WebSocketDisconnect

from soundboard.api.deps import get_hub
from soundboard.realtime.hub import BroadcastHub, Observer

router = APIRouter(tags=["ws"])

logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def observer_endpoint(websocket: WebSocket, hub: BroadcastHub = Depends(get_hub)) -> None:
    await websocket.accept()
    observer = Observer(websocket)
    await hub.connect(observer)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await hub.handle_command(observer, raw)
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.debug("Observer connection closed: %s", exc)
    finally:
        await hub.disconnect(observer)
