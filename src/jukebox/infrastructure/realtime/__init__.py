"""Realtime fan-out to UI observers over WebSockets."""

from .broadcaster import StateBroadcaster

__all__ = ["StateBroadcaster"]
