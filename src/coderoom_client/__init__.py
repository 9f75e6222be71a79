"""
Code Room Client Package

This package provides the client side of the collaborative code rooms:
the CodeRoomClient for talking to the relay and the request messages it
sends.
"""

from .service import CodeRoomClient
from .protocol import (
    BaseRequest,
    JoinRequest,
    CodeUpdateRequest,
    ChatMessageRequest,
)

__all__ = [
    "CodeRoomClient",
    "BaseRequest",
    "JoinRequest",
    "CodeUpdateRequest",
    "ChatMessageRequest",
]
