"""Metric definitions for the realtime hub and playback."""

from __future__ import annotations

from .registry import registry

observer_connections = registry.gauge(
    "soundboard_observers",
    "Number of websocket observers currently connected.",
)

commands_total = registry.counter(
    "soundboard_commands_total",
    "Observer commands processed by the hub.",
    label_names=("command", "outcome"),
)

events_broadcast_total = registry.counter(
    "soundboard_events_broadcast_total",
    "Events fanned out to all observers.",
    label_names=("type",),
)

heartbeat_terminations_total = registry.counter(
    "soundboard_heartbeat_terminations_total",
    "Observers disconnected because they missed a liveness probe.",
)

playback_total = registry.counter(
    "soundboard_playback_total",
    "Playback lifecycle transitions.",
    label_names=("outcome",),
)
