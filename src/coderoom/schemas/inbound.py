"""
Inbound Event Decoding

Turns a raw WebSocket frame into one of the typed events the relay
understands.

Message Format:
    Every frame is a single JSON object with a "type" key:
    {"type": "join", "roomId": "...", "userId": 7, "username": "..."}
    {"type": "code_update", "code": "...", "language": "python"}
    {"type": "chat_message", "message": "..."}
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..utils.validation import (
    validate_code,
    validate_message_content,
    validate_room_id,
    validate_user_id,
)


class MalformedEventError(ValueError):
    """Raised when an inbound frame cannot be turned into a relay event."""


@dataclass(frozen=True)
class JoinEvent:
    """
    Request to join a code room.

    Attributes:
        room_id: Room to join (created on first join)
        user_id: Id established by the upstream session layer
        username: Display name shown to other participants
    """

    room_id: str
    user_id: Union[int, str]
    username: str


@dataclass(frozen=True)
class CodeUpdateEvent:
    """
    New editor contents from a participant.

    Attributes:
        code: Full code text (last write wins)
        language: Editor language tag, may be None
        room_id: Optional room the sender believes it is in
    """

    code: str
    language: Optional[str] = None
    room_id: Optional[str] = None


@dataclass(frozen=True)
class ChatMessageEvent:
    """A chat line from a participant."""

    message: str
    room_id: Optional[str] = None


InboundEvent = Union[JoinEvent, CodeUpdateEvent, ChatMessageEvent]


def _check(result) -> None:
    is_valid, error = result
    if not is_valid:
        raise MalformedEventError(error)


def _optional_room_id(data: Dict[str, Any]) -> Optional[str]:
    room_id = data.get("roomId")
    if room_id is None:
        return None
    _check(validate_room_id(room_id))
    return room_id


def _parse_join(data: Dict[str, Any]) -> JoinEvent:
    room_id = data.get("roomId")
    user_id = data.get("userId")
    username = data.get("username")

    _check(validate_room_id(room_id))
    _check(validate_user_id(user_id))
    if not isinstance(username, str) or not username.strip():
        raise MalformedEventError("username must be a non-empty string")

    return JoinEvent(room_id=room_id, user_id=user_id, username=username)


def _parse_code_update(data: Dict[str, Any]) -> CodeUpdateEvent:
    code = data.get("code")
    language = data.get("language")

    _check(validate_code(code))
    if language is not None and not isinstance(language, str):
        raise MalformedEventError("language must be a string")

    return CodeUpdateEvent(
        code=code, language=language, room_id=_optional_room_id(data)
    )


def _parse_chat_message(data: Dict[str, Any]) -> ChatMessageEvent:
    message = data.get("message")
    _check(validate_message_content(message))
    return ChatMessageEvent(message=message, room_id=_optional_room_id(data))


_PARSERS = {
    "join": _parse_join,
    "code_update": _parse_code_update,
    "chat_message": _parse_chat_message,
}


def parse_event(raw: Union[str, bytes]) -> InboundEvent:
    """
    Decode a raw frame into a typed inbound event.

    Args:
        raw: Text frame, or binary frame holding UTF-8 JSON

    Returns:
        The decoded JoinEvent, CodeUpdateEvent or ChatMessageEvent

    Raises:
        MalformedEventError: If the frame is undecodable, not a JSON
            object, of unknown type, or missing required fields
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedEventError(f"Frame is not valid UTF-8: {e}")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedEventError(f"Invalid JSON: {e}")

    if not isinstance(data, dict):
        raise MalformedEventError("Event must be a JSON object")

    event_type = data.get("type")
    parser = _PARSERS.get(event_type) if isinstance(event_type, str) else None
    if parser is None:
        raise MalformedEventError(f"Unknown event type: {event_type!r}")

    return parser(data)
