"""Voice transport interfaces and the Discord implementation."""

from .transport import Playback, TransportListener, VoiceTransport

__all__ = ["Playback", "TransportListener", "VoiceTransport"]
