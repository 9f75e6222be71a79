"""
Code Room Server Package

This package provides the server side of the collaborative code rooms:
the room relay that tracks membership and fans out events, and the
WebSocket server that feeds it.
"""

from .room_relay import (
    RoomRelay,
    Room,
    Participant,
)
from .websocket_server import WebSocketServer

__all__ = [
    "RoomRelay",
    "Room",
    "Participant",
    "WebSocketServer",
]
