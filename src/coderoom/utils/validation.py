"""
Validation Utilities

Contains utility functions for validating inbound event fields.
"""

from typing import Any, Tuple, Optional

# Field validation constants
MAX_MESSAGE_LENGTH = 5000
MAX_CODE_LENGTH = 200_000
MAX_ROOM_ID_LENGTH = 128


def validate_room_id(room_id: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate a room identifier.

    Args:
        room_id: The room identifier to validate

    Returns:
        tuple: (is_valid, error_message)
    """
    if not isinstance(room_id, str) or not room_id.strip():
        return False, "roomId must be a non-empty string"

    if len(room_id) > MAX_ROOM_ID_LENGTH:
        return (
            False,
            f"roomId too long (max {MAX_ROOM_ID_LENGTH} characters)",
        )

    return True, None


def validate_user_id(user_id: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate a user identifier.

    User ids come from the upstream session layer as integers or strings.
    Booleans are rejected even though they subclass int.
    """
    if isinstance(user_id, bool):
        return False, "userId must be an integer or string"
    if isinstance(user_id, int):
        return True, None
    if isinstance(user_id, str) and user_id.strip():
        return True, None
    return False, "userId must be an integer or string"


def validate_message_content(content: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate chat message content.

    Args:
        content: The message content to validate

    Returns:
        tuple: (is_valid, error_message)
            - is_valid: True if content is valid, False otherwise
            - error_message: Error message if invalid, None if valid
    """
    if not isinstance(content, str):
        return False, "Message content must be a string"

    if not content:
        return False, "Message content cannot be empty"

    if len(content) > MAX_MESSAGE_LENGTH:
        return (
            False,
            f"Message content too long (max {MAX_MESSAGE_LENGTH} characters)",
        )

    return True, None


def validate_code(code: Any) -> Tuple[bool, Optional[str]]:
    """Validate a code payload. Empty code is allowed (a cleared editor)."""
    if not isinstance(code, str):
        return False, "code must be a string"

    if len(code) > MAX_CODE_LENGTH:
        return False, f"code too long (max {MAX_CODE_LENGTH} characters)"

    return True, None
