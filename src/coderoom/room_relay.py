"""
Room Relay for Collaborative Code Rooms

This module owns the in-memory registry of code rooms on this process and
fans out presence, code and chat events to the participants of each room.

Rooms exist implicitly: the first join creates one and the last departure
deletes it. Nothing is persisted. Participants are identified by their
connection handle, so two connections sharing a user id are still distinct
members.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from websockets.protocol import State

from .outbox import Outbox
from .schemas import (
    create_chat_message_event,
    create_code_update_event,
    create_room_info_event,
    create_user_joined_event,
    create_user_left_event,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Participant:
    """
    One live connection's identity within a room.

    Compared and hashed by object identity. The identity fields are supplied
    by the joining client and are not verified here.

    Attributes:
        connection: The connection handle used to deliver events
        user_id: User id established by the upstream session layer
        username: Display name shown to other participants
    """

    connection: Any
    user_id: Union[int, str]
    username: str


@dataclass
class Room:
    """
    A named, ephemeral group of live connections.

    Attributes:
        room_id: Opaque room identifier
        participants: Connection handle -> Participant
        created_at: ISO 8601 timestamp when the room was created
    """

    room_id: str
    participants: Dict[Any, Participant] = field(default_factory=dict)
    created_at: str = ""

    def __post_init__(self):
        """Initialize the creation timestamp if not set."""
        if not self.created_at:
            self.created_at = datetime.now(timezone.utc).isoformat()

    @property
    def user_count(self) -> int:
        """Number of connections currently in the room."""
        return len(self.participants)

    def to_dict(self) -> Dict[str, Any]:
        """Convert room to dictionary for diagnostics."""
        return {
            "roomId": self.room_id,
            "userCount": self.user_count,
            "createdAt": self.created_at,
        }


class RoomRelay:
    """
    Maintains room membership and delivers events to the right audience.

    A single instance is created at process start and shared by every
    connection handler. The registry is only mutated through join() and
    leave(), always under an asyncio lock. Events are queued on each
    recipient's Outbox while the lock is held, so no operation waits on a
    peer and a recipient sees events in the order the registry saw them.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        # connection -> room_id, enforces one room per connection
        self._memberships: Dict[Any, str] = {}
        self._outboxes: Dict[Any, Outbox] = {}
        self._lock = asyncio.Lock()
        logger.info("RoomRelay initialized")

    # ------------------------------------------------------------------
    # Registry lifecycle edges
    # ------------------------------------------------------------------

    def _get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id)
            self._rooms[room_id] = room
            logger.info(f"Created room {room_id}")
        return room

    def _prune_if_empty(self, room_id: str) -> bool:
        room = self._rooms.get(room_id)
        if room is not None and not room.participants:
            del self._rooms[room_id]
            logger.info(f"Deleted empty room {room_id}")
            return True
        return False

    def _remove(
        self, connection: Any
    ) -> Optional[Tuple[str, Participant, List[Any]]]:
        """
        Drop a connection from the registry. Caller must hold the lock.

        Returns:
            (room_id, removed participant, remaining connections) or None
            if the connection was not registered. The remaining list is
            empty when the room was deleted.
        """
        room_id = self._memberships.pop(connection, None)
        if room_id is None:
            return None

        room = self._rooms.get(room_id)
        if room is None:
            return None

        participant = room.participants.pop(connection, None)
        if participant is None:
            return None

        if self._prune_if_empty(room_id):
            return room_id, participant, []
        return room_id, participant, list(room.participants)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def join(self, room_id: str, participant: Participant) -> int:
        """
        Add a participant to a room, creating the room if needed.

        Existing members receive user_joined; the joiner receives
        room_info with the member count after the join. A connection that
        is already registered is treated as an overwrite: in the same room
        its record is replaced and only room_info is re-sent, in another
        room it leaves the old one first.

        Args:
            room_id: Room identifier
            participant: The joining participant

        Returns:
            int: Member count after the join
        """
        connection = participant.connection

        async with self._lock:
            current_room_id = self._memberships.get(connection)
            if current_room_id == room_id:
                room = self._rooms[room_id]
                room.participants[connection] = participant
                logger.info(
                    f"User {participant.user_id} re-joined room {room_id} "
                    f"on the same connection"
                )
            else:
                if current_room_id is not None:
                    departed = self._remove(connection)
                    if departed is not None and departed[2]:
                        self._deliver(
                            departed[2],
                            create_user_left_event(departed[1].user_id),
                        )
                room = self._get_or_create(room_id)
                self._deliver(
                    list(room.participants),
                    create_user_joined_event(
                        participant.user_id, participant.username
                    ),
                )
                room.participants[connection] = participant
                self._memberships[connection] = room_id
                logger.info(
                    f"User {participant.user_id} ({participant.username}) "
                    f"joined room {room_id}"
                )

            user_count = room.user_count
            self._deliver(
                [connection], create_room_info_event(room_id, user_count)
            )
        return user_count

    async def relay_code_update(
        self,
        room_id: str,
        sender: Participant,
        code: str,
        language: Optional[str] = None,
    ) -> int:
        """
        Broadcast new editor contents to every member except the sender.

        Does nothing if the sender is not a member of room_id.

        Returns:
            int: Number of recipients the event was queued for
        """
        async with self._lock:
            recipients = self._recipients(room_id, sender, include_sender=False)
            if recipients is None:
                return 0
            event = create_code_update_event(
                code, language, sender.user_id, sender.username
            )
            return self._deliver(recipients, event)

    async def relay_chat_message(
        self, room_id: str, sender: Participant, message: str
    ) -> int:
        """
        Broadcast a chat line to every member, the sender included.

        Does nothing if the sender is not a member of room_id.

        Returns:
            int: Number of recipients the event was queued for
        """
        async with self._lock:
            recipients = self._recipients(room_id, sender, include_sender=True)
            if recipients is None:
                return 0
            event = create_chat_message_event(
                message, sender.user_id, sender.username
            )
            return self._deliver(recipients, event)

    async def leave(self, connection: Any) -> Optional[Participant]:
        """
        Remove a connection from whatever room it belongs to.

        Idempotent. Remaining members receive user_left; if the room is now
        empty it is deleted and nothing is sent. Anything still queued for
        the departing connection is discarded.

        Args:
            connection: The connection handle of the departing participant

        Returns:
            The removed Participant, or None if it was not registered
        """
        async with self._lock:
            outbox = self._outboxes.pop(connection, None)
            if outbox is not None:
                outbox.close()

            removed = self._remove(connection)
            if removed is None:
                return None

            room_id, participant, remaining = removed
            if remaining:
                self._deliver(
                    remaining, create_user_left_event(participant.user_id)
                )

        logger.info(f"User {participant.user_id} left room {room_id}")
        return participant

    async def prune_closed(self) -> int:
        """
        Leave every participant whose connection is closing or closed.

        Returns:
            int: Number of participants removed
        """
        async with self._lock:
            stale = [
                connection
                for connection in self._memberships
                if getattr(connection, "state", None)
                in (State.CLOSING, State.CLOSED)
            ]

        pruned = 0
        for connection in stale:
            if await self.leave(connection) is not None:
                pruned += 1

        if pruned:
            logger.info(f"Pruned {pruned} closed connections")
        return pruned

    async def flush(self, connection: Any = None):
        """
        Wait until queued events have been handed to the transport.

        Args:
            connection: Only wait for this connection's queue if given
        """
        if connection is not None:
            outbox = self._outboxes.get(connection)
            outboxes = [outbox] if outbox is not None else []
        else:
            outboxes = list(self._outboxes.values())
        for outbox in outboxes:
            await outbox.flush()

    async def shutdown(self):
        """Stop every writer and drop undelivered events."""
        async with self._lock:
            for outbox in self._outboxes.values():
                outbox.close()
            self._outboxes.clear()
        logger.info("RoomRelay shut down")

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def room_of(self, connection: Any) -> Optional[str]:
        """Return the room id a connection belongs to, or None."""
        return self._memberships.get(connection)

    def get_room_size(self, room_id: str) -> int:
        """Return the number of members in a room (0 if absent)."""
        room = self._rooms.get(room_id)
        return room.user_count if room else 0

    def has_room(self, room_id: str) -> bool:
        """Return True if the room currently exists."""
        return room_id in self._rooms

    def list_rooms(self) -> List[Dict[str, Any]]:
        """
        Get a snapshot of all live rooms.

        Returns:
            List of room dictionaries with roomId, userCount and createdAt
        """
        return [room.to_dict() for room in self._rooms.values()]

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _recipients(
        self, room_id: str, sender: Participant, include_sender: bool
    ) -> Optional[List[Any]]:
        """Snapshot a room's connections. Caller must hold the lock."""
        sender_connection = sender.connection
        if self._memberships.get(sender_connection) != room_id:
            logger.debug(
                f"Ignoring event from user {sender.user_id}: "
                f"not a member of room {room_id}"
            )
            return None

        room = self._rooms[room_id]
        if include_sender:
            return list(room.participants)
        return [
            connection
            for connection in room.participants
            if connection is not sender_connection
        ]

    def _deliver(self, connections: Iterable[Any], event: Dict[str, Any]) -> int:
        """
        Queue one event on each connection's outbox. Caller must hold the lock.

        Returns:
            int: Number of outboxes that accepted the event
        """
        message_json = json.dumps(event)
        queued = 0
        for connection in connections:
            outbox = self._outboxes.get(connection)
            if outbox is None:
                outbox = Outbox(connection)
                self._outboxes[connection] = outbox
            if outbox.put(message_json):
                queued += 1
            else:
                logger.debug(
                    f"Skipped {event['type']} to connection {id(connection)}"
                )
        return queued
