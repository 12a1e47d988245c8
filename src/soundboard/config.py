from functools import lru_cache
from math import isfinite
from pathlib import Path
from typing import Annotated, Any

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_HISTORY_LIMIT = 200
DEFAULT_VOLUME = 0.5


def _split_csv(value: Any) -> Any:
    if value in (None, Ellipsis):
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return [item for item in value if str(item).strip()]
    return value


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Soundboard Hub", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    discord_token: str = Field(..., description="Bot token used by the voice transport")
    discord_client_id: str = Field(..., description="OAuth2 application client id")
    discord_client_secret: str = Field(..., description="OAuth2 application client secret")
    session_secret: str | None = Field(
        default=None,
        description="Key for signing session tokens; defaults to the OAuth client secret",
    )

    room_ids: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        validation_alias=AliasChoices("room_ids", "discord_guild_ids"),
        description="Rooms (guild ids) the soundboard is allowed to play into",
    )
    discover_rooms: bool | None = Field(
        default=None,
        description="Derive the room set from joined guilds; defaults to true when no rooms are configured",
    )

    http_host: str = Field(default="0.0.0.0")
    http_port: int = Field(default=3000)
    oauth_redirect_uri: str | None = Field(default=None)
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["*"], description="List of allowed CORS origins"
    )

    sound_dirs: Annotated[list[Path], NoDecode] = Field(
        default_factory=lambda: [Path("sounds").resolve()],
        validation_alias=AliasChoices("sound_dir", "sound_dirs"),
        description="Directories searched for playable clips",
    )
    history_limit: int = Field(
        default=DEFAULT_HISTORY_LIMIT,
        description="History capacity; 0 keeps every entry",
    )
    default_volume: float = Field(default=DEFAULT_VOLUME)

    heartbeat_interval_seconds: float = Field(default=30.0)
    voice_connect_timeout_seconds: float = Field(default=10.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def signing_secret(self) -> str:
        return self.session_secret or self.discord_client_secret

    @property
    def redirect_uri(self) -> str:
        return self.oauth_redirect_uri or f"http://localhost:{self.http_port}/auth/callback"

    @field_validator("discord_token", "discord_client_id", "discord_client_secret", mode="after")
    @classmethod
    def require_credential(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("room_ids", "cors_origins", mode="before")
    @classmethod
    def split_list(cls, value: Any) -> Any:
        items = _split_csv(value)
        if isinstance(items, list):
            return [str(item).strip() for item in items]
        return items

    @field_validator("room_ids", mode="after")
    @classmethod
    def drop_duplicate_rooms(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @field_validator("sound_dirs", mode="before")
    @classmethod
    def resolve_sound_dirs(cls, value: Any) -> list[Path]:
        items = _split_csv(value)
        if not isinstance(items, list) or not items:
            items = ["sounds"]
        return [Path(item).expanduser().resolve() for item in items]

    @field_validator("history_limit", mode="before")
    @classmethod
    def coerce_history_limit(cls, value: Any) -> int:
        try:
            limit = int(value)
        except (TypeError, ValueError):
            return DEFAULT_HISTORY_LIMIT
        return limit if limit >= 0 else DEFAULT_HISTORY_LIMIT

    @field_validator("default_volume", mode="after")
    @classmethod
    def clamp_default_volume(cls, value: float) -> float:
        if not isfinite(value):
            return DEFAULT_VOLUME
        return max(0.0, min(1.0, value))

    @model_validator(mode="after")
    def check_room_source(self) -> "Settings":
        if self.discover_rooms is None:
            self.discover_rooms = not self.room_ids
        if not self.room_ids and not self.discover_rooms:
            raise ValueError("ROOM_IDS must be set when DISCOVER_ROOMS is disabled")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
