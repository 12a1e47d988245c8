"""Monitoring helpers and metric registry for the service."""

from . import metrics, registry

__all__ = ["metrics", "registry"]
