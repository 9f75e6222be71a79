"""
Outbound Event Schema Definitions

Contains functions for creating the event envelopes the relay sends to
room participants. Envelopes are flat JSON objects with camelCase keys.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

UserId = Union[int, str]


def utc_timestamp() -> str:
    """Return the current time as an ISO 8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


def create_room_info_event(
    room_id: str,
    user_count: int,
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a room_info acknowledgment sent only to the joining connection.

    Args:
        room_id: Room the connection joined
        user_count: Member count after the join
        timestamp: Optional ISO 8601 timestamp (defaults to now)

    Returns:
        dict: Event envelope
    """
    return {
        "type": "room_info",
        "roomId": room_id,
        "userCount": user_count,
        "timestamp": timestamp or utc_timestamp(),
    }


def create_user_joined_event(
    user_id: UserId,
    username: str,
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a user_joined presence event.

    Args:
        user_id: Id of the joining user
        username: Display name of the joining user
        timestamp: Optional ISO 8601 timestamp (defaults to now)

    Returns:
        dict: Event envelope
    """
    return {
        "type": "user_joined",
        "userId": user_id,
        "username": username,
        "timestamp": timestamp or utc_timestamp(),
    }


def create_user_left_event(
    user_id: UserId,
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a user_left presence event."""
    return {
        "type": "user_left",
        "userId": user_id,
        "timestamp": timestamp or utc_timestamp(),
    }


def create_code_update_event(
    code: str,
    language: Optional[str],
    user_id: UserId,
    username: str,
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a code_update event carrying the full editor contents.

    Args:
        code: Current code text
        language: Language tag of the editor, may be None
        user_id: Id of the sender
        username: Display name of the sender
        timestamp: Optional ISO 8601 timestamp (defaults to now)

    Returns:
        dict: Event envelope
    """
    return {
        "type": "code_update",
        "code": code,
        "language": language,
        "userId": user_id,
        "username": username,
        "timestamp": timestamp or utc_timestamp(),
    }


def create_chat_message_event(
    message: str,
    user_id: UserId,
    username: str,
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a chat_message event."""
    return {
        "type": "chat_message",
        "message": message,
        "userId": user_id,
        "username": username,
        "timestamp": timestamp or utc_timestamp(),
    }
