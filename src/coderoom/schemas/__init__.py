"""
Schemas for the Code Room Server

This module contains the inbound event types with their decoder and the
builders for outbound event envelopes.
"""

from .events import (
    create_chat_message_event,
    create_code_update_event,
    create_room_info_event,
    create_user_joined_event,
    create_user_left_event,
    utc_timestamp,
)
from .inbound import (
    ChatMessageEvent,
    CodeUpdateEvent,
    InboundEvent,
    JoinEvent,
    MalformedEventError,
    parse_event,
)

__all__ = [
    "create_chat_message_event",
    "create_code_update_event",
    "create_room_info_event",
    "create_user_joined_event",
    "create_user_left_event",
    "utc_timestamp",
    "ChatMessageEvent",
    "CodeUpdateEvent",
    "InboundEvent",
    "JoinEvent",
    "MalformedEventError",
    "parse_event",
]
