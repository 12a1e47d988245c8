"""Identity snapshot shared by session tokens, history entries and acks."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserSnapshot(BaseModel):
    """Public subset of a Discord user returned to clients."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )

    id: str = Field(..., description="Discord user id")
    username: str = Field(..., description="Unique Discord username")
    global_name: str | None = Field(default=None, description="Display name shown in Discord")
    discriminator: str | None = Field(default=None, description="Legacy four digit tag")
    avatar: str | None = Field(default=None, description="Avatar hash")

    @classmethod
    def from_discord(cls, user: Mapping[str, Any]) -> "UserSnapshot":
        """Normalize a raw ``/users/@me`` payload (or an existing snapshot)."""

        discriminator = user.get("discriminator")
        if discriminator in (None, "", "0", 0):
            discriminator = None
        return cls(
            id=user.get("id"),
            username=user.get("username"),
            global_name=user.get("global_name") or user.get("globalName"),
            discriminator=discriminator,
            avatar=user.get("avatar"),
        )

    def to_public(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
