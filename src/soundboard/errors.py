"""Error taxonomy shared by the realtime core and the HTTP boundary."""

from __future__ import annotations


class SoundboardError(Exception):
    """Base class for errors reported back to a single requester."""

    code = "error"
    default_message = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0])


class AuthenticationRequired(SoundboardError):
    code = "authentication_required"
    default_message = "Sign in with Discord first."


class NotConnected(SoundboardError):
    code = "not_connected"
    default_message = "Bot is not connected to a voice channel. Use /join first."


class ClipNotFound(SoundboardError):
    code = "clip_not_found"
    default_message = "Sound not found."


class InvalidVolume(SoundboardError):
    code = "invalid_volume"
    default_message = "Invalid volume value."


class NoRoomsConfigured(SoundboardError):
    code = "no_rooms_configured"
    default_message = "No servers are configured."


class MalformedMessage(SoundboardError):
    code = "malformed_message"
    default_message = "Invalid JSON payload."


class UnknownCommand(SoundboardError):
    code = "unknown_command"
    default_message = "Unknown message type."


class UpstreamExchangeFailure(SoundboardError):
    """Raised when the identity provider rejects or fails a code exchange."""

    code = "upstream_exchange_failure"
    default_message = "Discord login failed."


__all__ = [
    "SoundboardError",
    "AuthenticationRequired",
    "NotConnected",
    "ClipNotFound",
    "InvalidVolume",
    "NoRoomsConfigured",
    "MalformedMessage",
    "UnknownCommand",
    "UpstreamExchangeFailure",
]
