"""Discord soundboard with a websocket control hub."""

__version__ = "0.1.0"
