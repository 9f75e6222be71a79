"""
Utilities for the Code Room Server

This module contains utility functions for validating inbound event fields.
"""

from .validation import (
    MAX_CODE_LENGTH,
    MAX_MESSAGE_LENGTH,
    MAX_ROOM_ID_LENGTH,
    validate_code,
    validate_message_content,
    validate_room_id,
    validate_user_id,
)

__all__ = [
    "MAX_CODE_LENGTH",
    "MAX_MESSAGE_LENGTH",
    "MAX_ROOM_ID_LENGTH",
    "validate_code",
    "validate_message_content",
    "validate_room_id",
    "validate_user_id",
]
