"""
Protocol Messages for Code Room Clients

This module defines the request structures a client sends to the relay.

Message Format:
    All messages are flat JSON objects with a "type" key:
    {
        "type": "join",
        "roomId": "...",
        "userId": 7,
        "username": "..."
    }
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


class BaseRequest:
    """
    Base class for request schemas.

    Subclasses set _message_type and implement _fields().
    """

    _message_type: str = ""

    def _fields(self) -> Dict[str, Any]:
        raise NotImplementedError("Subclasses must define _fields")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"type": self._message_type, **self._fields()}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


@dataclass
class JoinRequest(BaseRequest):
    """
    Request to join a code room.

    Attributes:
        room_id: Room to join
        user_id: Id of the joining user
        username: Display name of the joining user
    """

    room_id: str
    user_id: Union[int, str]
    username: str

    _message_type = "join"

    def _fields(self) -> Dict[str, Any]:
        return {
            "roomId": self.room_id,
            "userId": self.user_id,
            "username": self.username,
        }


@dataclass
class CodeUpdateRequest(BaseRequest):
    """
    Full editor contents to share with the room.

    Attributes:
        room_id: Room the update is for
        code: Current code text
        language: Editor language tag
    """

    room_id: str
    code: str
    language: Optional[str] = None

    _message_type = "code_update"

    def _fields(self) -> Dict[str, Any]:
        return {
            "roomId": self.room_id,
            "code": self.code,
            "language": self.language,
        }


@dataclass
class ChatMessageRequest(BaseRequest):
    """A chat line for the room."""

    room_id: str
    message: str

    _message_type = "chat_message"

    def _fields(self) -> Dict[str, Any]:
        return {"roomId": self.room_id, "message": self.message}
