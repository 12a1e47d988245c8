"""Core helpers shared across the realtime and HTTP layers."""

from .security import Session, SessionTokenService

__all__ = ["Session", "SessionTokenService"]
