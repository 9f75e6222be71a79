"""
Client Service for Code Rooms

This module provides the client that talks to the code room relay over a
WebSocket: joining a room, sharing editor contents, chatting, and
receiving the events the relay fans out.

Architecture:
    - Uses WebSocket for real-time bidirectional communication
    - Supports dependency injection for the network layer (for testability)
    - Async/await pattern for non-blocking I/O operations

Usage:
    client = CodeRoomClient("ws://localhost:8080")
    await client.connect()
    await client.join("room-42", 7, "alice")
    client.on("code_update", render_code)
    await client.handle_events()
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Union

import websockets

from .protocol import ChatMessageRequest, CodeUpdateRequest, JoinRequest

logger = logging.getLogger(__name__)

EventCallback = Callable[[Dict[str, Any]], None]


class CodeRoomClient:
    """
    Client for a single code room connection.

    The relay expects one connection per room, so a client joins at most
    one room. Joining again replaces the current room.

    Attributes:
        server_url: WebSocket URL of the relay (e.g., ws://localhost:8080)
        websocket: Active WebSocket connection (None if not connected)
        room_id: Room joined on this connection, if any
    """

    def __init__(
        self,
        server_url: str,
        websocket_factory: Optional[Callable] = None,
    ):
        """
        Initialize the client.

        Args:
            server_url: WebSocket URL of the relay
            websocket_factory: Optional factory for creating WebSocket
                             connections (for dependency injection/testing)
        """
        self.server_url = server_url
        self.websocket = None
        self.room_id: Optional[str] = None
        self.user_id: Optional[Union[int, str]] = None
        self.username: Optional[str] = None
        self._websocket_factory = websocket_factory or websockets.connect
        self._callbacks: Dict[str, List[EventCallback]] = {}
        self._connected = False

        logger.info(f"CodeRoomClient initialized for relay: {server_url}")

    async def connect(self) -> None:
        """
        Establish the WebSocket connection to the relay.

        Raises:
            ConnectionError: If connection fails
        """
        try:
            logger.info(f"Connecting to {self.server_url}...")
            self.websocket = await self._websocket_factory(self.server_url)
            self._connected = True
            logger.info("Successfully connected to relay")
        except Exception as e:
            logger.error(f"Failed to connect to relay: {e}")
            raise ConnectionError(
                f"Could not connect to {self.server_url}: {e}"
            ) from e

    async def disconnect(self) -> None:
        """Close the WebSocket connection. The relay removes us from the room."""
        if self.websocket:
            await self.websocket.close()
            self.websocket = None
            self._connected = False
            self.room_id = None
            logger.info("Disconnected from relay")

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to the relay."""
        return self._connected and self.websocket is not None

    def on(self, event_type: str, callback: EventCallback) -> None:
        """
        Register a callback for an event type (e.g. "code_update").

        Args:
            event_type: Outbound event type sent by the relay
            callback: Called with the decoded event dict
        """
        self._callbacks.setdefault(event_type, []).append(callback)

    async def join(
        self, room_id: str, user_id: Union[int, str], username: str
    ) -> None:
        """
        Join a code room. The relay answers with a room_info event.

        Raises:
            ConnectionError: If not connected to the relay
        """
        await self._send(JoinRequest(room_id, user_id, username).to_json())
        self.room_id = room_id
        self.user_id = user_id
        self.username = username
        logger.info(f"Sent join for room {room_id} as {username}")

    async def send_code_update(
        self, code: str, language: Optional[str] = None
    ) -> None:
        """
        Share the current editor contents with the other participants.

        Raises:
            ConnectionError: If not connected to the relay
            RuntimeError: If no room has been joined
        """
        room_id = self._require_room()
        await self._send(CodeUpdateRequest(room_id, code, language).to_json())

    async def send_chat_message(self, message: str) -> None:
        """
        Send a chat line. The relay echoes it back to this client too.

        Raises:
            ConnectionError: If not connected to the relay
            RuntimeError: If no room has been joined
        """
        room_id = self._require_room()
        await self._send(ChatMessageRequest(room_id, message).to_json())

    async def receive_event(self) -> Dict[str, Any]:
        """
        Wait for the next event from the relay.

        Returns:
            The decoded event dict

        Raises:
            ConnectionError: If not connected to the relay
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to the relay")
        return json.loads(await self.websocket.recv())

    async def handle_events(self) -> None:
        """
        Dispatch incoming events to registered callbacks until the relay
        closes the connection.
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to the relay")

        logger.info("Starting event handler loop")

        try:
            async for raw in self.websocket:
                try:
                    event = json.loads(raw)
                except json.JSONDecodeError as e:
                    logger.warning(f"Ignoring undecodable event: {e}")
                    continue
                self._dispatch(event)
        except websockets.exceptions.ConnectionClosed:
            logger.warning("Connection closed by relay")
        finally:
            self._connected = False

    def _dispatch(self, event: Any) -> None:
        if not isinstance(event, dict):
            logger.warning(f"Ignoring event that is not a JSON object: {event!r}")
            return
        event_type = event.get("type")
        callbacks = self._callbacks.get(event_type, [])
        if not callbacks:
            logger.debug(f"No callback for event type {event_type}")
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Callback for {event_type} failed")

    def _require_room(self) -> str:
        if not self.is_connected:
            raise ConnectionError("Not connected to the relay")
        if self.room_id is None:
            raise RuntimeError("Join a room before sending room events")
        return self.room_id

    async def _send(self, payload: str) -> None:
        if not self.is_connected:
            raise ConnectionError("Not connected to the relay")
        await self.websocket.send(payload)
