"""
WebSocket Server for Code Rooms

Accepts WebSocket connections from code-room clients, decodes their frames
and drives the RoomRelay. One receive loop runs per connection; closing the
connection always removes it from its room before the loop returns.
"""

import logging
from typing import Dict, Optional, Set, Union

import websockets
from websockets.asyncio.server import ServerConnection, serve

from .room_relay import Participant, RoomRelay
from .schemas import (
    ChatMessageEvent,
    CodeUpdateEvent,
    JoinEvent,
    MalformedEventError,
    parse_event,
)

logger = logging.getLogger(__name__)


class WebSocketServer:
    """
    WebSocket server for handling code-room connections.

    The server is a thin transport adapter: it owns no room state. Each
    connection's participant record lives in _participants from its join
    until it closes.
    """

    def __init__(self, relay: RoomRelay, host: str, port: int):
        """
        Initialize the WebSocket server.

        Args:
            relay: The shared room relay
            host: Host address to bind to
            port: Port to listen on
        """
        self.relay = relay
        self.host = host
        self.port = port
        self.clients: Set[ServerConnection] = set()
        self.server = None
        self._participants: Dict[ServerConnection, Participant] = {}

    async def start(self):
        """Start the WebSocket server."""
        self.server = await serve(self.handle_client, self.host, self.port)
        logger.info(f"WebSocket server started on ws://{self.host}:{self.port}")

    async def stop(self):
        """Stop the WebSocket server."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            logger.info("WebSocket server stopped")

    async def handle_client(self, websocket: ServerConnection):
        """
        Handle a client connection until it closes.

        Args:
            websocket: The WebSocket connection
        """
        self.clients.add(websocket)
        client_id = id(websocket)
        logger.info(f"Client {client_id} connected")

        try:
            async for message in websocket:
                await self.process_message(websocket, message)
        except websockets.exceptions.ConnectionClosed:
            logger.info(f"Client {client_id} disconnected")
        finally:
            await self.handle_client_disconnect(websocket)
            self.clients.discard(websocket)

    async def handle_client_disconnect(self, websocket: ServerConnection):
        """
        Remove a closed connection from its room.

        Args:
            websocket: The WebSocket connection
        """
        self._participants.pop(websocket, None)
        participant = await self.relay.leave(websocket)
        if participant is not None:
            logger.info(
                f"Client {id(websocket)} (user {participant.user_id}) "
                f"removed from its room"
            )

    async def process_message(
        self, websocket: ServerConnection, message: Union[str, bytes]
    ):
        """
        Process an incoming frame from a client.

        Malformed frames are dropped with a warning. The connection stays
        open and nothing is sent back.

        Args:
            websocket: The WebSocket connection
            message: The raw frame (JSON text)
        """
        try:
            event = parse_event(message)
        except MalformedEventError as e:
            logger.warning(f"Dropping malformed event from {id(websocket)}: {e}")
            return

        try:
            if isinstance(event, JoinEvent):
                await self.handle_join(websocket, event)
            elif isinstance(event, CodeUpdateEvent):
                await self.handle_code_update(websocket, event)
            elif isinstance(event, ChatMessageEvent):
                await self.handle_chat_message(websocket, event)
        except websockets.exceptions.ConnectionClosed:
            raise
        except Exception:
            logger.exception(
                f"Error processing {type(event).__name__} "
                f"from {id(websocket)}"
            )

    async def handle_join(self, websocket: ServerConnection, event: JoinEvent):
        """
        Handle a join event.

        Args:
            websocket: The WebSocket connection
            event: The decoded join event
        """
        participant = Participant(
            connection=websocket,
            user_id=event.user_id,
            username=event.username,
        )
        self._participants[websocket] = participant
        user_count = await self.relay.join(event.room_id, participant)
        logger.info(
            f"Room {event.room_id} now has {user_count} participant(s)"
        )

    async def handle_code_update(
        self, websocket: ServerConnection, event: CodeUpdateEvent
    ):
        """
        Handle a code_update event.

        Args:
            websocket: The WebSocket connection
            event: The decoded code update
        """
        target = self._target_room(websocket, event.room_id)
        if target is None:
            return
        room_id, participant = target
        await self.relay.relay_code_update(
            room_id, participant, event.code, event.language
        )

    async def handle_chat_message(
        self, websocket: ServerConnection, event: ChatMessageEvent
    ):
        """
        Handle a chat_message event.

        Args:
            websocket: The WebSocket connection
            event: The decoded chat message
        """
        target = self._target_room(websocket, event.room_id)
        if target is None:
            return
        room_id, participant = target
        await self.relay.relay_chat_message(room_id, participant, event.message)

    def _target_room(
        self, websocket: ServerConnection, requested_room_id: Optional[str]
    ):
        """
        Resolve the room and participant for a code or chat event.

        Returns None when the connection has not joined yet. A roomId that
        names a different room is passed through so the relay ignores it.
        """
        participant = self._participants.get(websocket)
        if participant is None:
            logger.debug(
                f"Ignoring event from {id(websocket)} before join"
            )
            return None

        room_id = requested_room_id or self.relay.room_of(websocket)
        if room_id is None:
            return None
        return room_id, participant
