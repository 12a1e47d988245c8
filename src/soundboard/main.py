import copy
import logging
import logging.config

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from soundboard.api.metrics import router as metrics_router
from soundboard.api.routes import router as api_router
from soundboard.api.ws import router as ws_router
from soundboard.config import Settings, get_settings
from soundboard.core.security import SessionTokenService
from soundboard.realtime.hub import BroadcastHub
from soundboard.services.history import HistoryBuffer
from soundboard.services.oauth import DiscordOAuthClient
from soundboard.services.sounds import SoundLibrary
from soundboard.voice.transport import VoiceTransport


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        }
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }
    },
    "root": {
        "handlers": ["default"],
        "level": "INFO",
    },
    "loggers": {
        "discord": {
            "handlers": ["default"],
            "level": "WARNING",
            "propagate": False,
        }
    },
}

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    config = copy.deepcopy(LOGGING_CONFIG)
    config["root"]["level"] = level.upper()
    logging.config.dictConfig(config)


def _default_transport(settings: Settings) -> VoiceTransport:
    from soundboard.voice.discord_transport import DiscordVoiceTransport

    return DiscordVoiceTransport(
        token=settings.discord_token,
        room_ids=settings.room_ids,
        discover_rooms=bool(settings.discover_rooms),
        connect_timeout=settings.voice_connect_timeout_seconds,
    )


def create_app(
    settings: Settings | None = None,
    *,
    transport: VoiceTransport | None = None,
    oauth: DiscordOAuthClient | None = None,
) -> FastAPI:
    """Build the soundboard application around a voice transport."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    transport = transport or _default_transport(settings)
    oauth = oauth or DiscordOAuthClient(
        client_id=settings.discord_client_id,
        client_secret=settings.discord_client_secret,
        redirect_uri=settings.redirect_uri,
    )
    tokens = SessionTokenService(settings.signing_secret)
    hub = BroadcastHub(
        sounds=SoundLibrary(settings.sound_dirs),
        tokens=tokens,
        history=HistoryBuffer(settings.history_limit),
        transport=transport,
        room_ids=settings.room_ids,
        volume=settings.default_volume,
        heartbeat_interval=settings.heartbeat_interval_seconds,
    )

    app = FastAPI(title=settings.app_name, debug=settings.debug)
    app.state.settings = settings
    app.state.transport = transport
    app.state.oauth = oauth
    app.state.tokens = tokens
    app.state.hub = hub

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.cors_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["system"])
    def health_check() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok", "environment": settings.environment}

    @app.on_event("startup")
    async def _startup() -> None:
        await hub.start()
        await transport.start()
        logger.info(
            "Soundboard started",
            extra={"rooms": list(hub.coordinator.rooms), "redirect_uri": oauth.redirect_uri},
        )

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await transport.stop()
        await hub.stop()

    app.include_router(api_router)
    app.include_router(ws_router)
    app.include_router(metrics_router)
    return app


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Serving soundboard on %s:%s", settings.http_host, settings.http_port)
    uvicorn.run(
        "soundboard.main:create_app",
        factory=True,
        host=settings.http_host,
        port=settings.http_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
