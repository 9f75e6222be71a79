"""
Outbound Queues for Room Connections

Each connection gets a bounded queue drained by its own writer task, so
putting a message never waits on the peer. A peer that stops reading only
stalls its own writer; once its queue is full further messages to it are
dropped.
"""

import asyncio
import logging
from typing import Any

import websockets

logger = logging.getLogger(__name__)

# Messages buffered per connection before new ones are dropped
OUTBOX_MAX_SIZE = 256


class Outbox:
    """
    Ordered, non-blocking delivery to a single connection.

    Attributes:
        connection: The connection handle messages are sent on
        closed: True once the connection closed or the outbox was shut
    """

    def __init__(self, connection: Any, max_size: int = OUTBOX_MAX_SIZE):
        """
        Initialize the outbox.

        Args:
            connection: The connection handle to write to
            max_size: Queue bound before messages are dropped
        """
        self.connection = connection
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self._task = None

    def put(self, message: str) -> bool:
        """
        Queue a message for delivery without waiting.

        Must be called from a running event loop.

        Returns:
            bool: True if queued, False if closed or full
        """
        if self.closed:
            return False

        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                f"Outbox for connection {id(self.connection)} is full, "
                f"dropping message"
            )
            return False

        if self._task is None:
            self._task = asyncio.create_task(self._run())
        return True

    async def flush(self):
        """Wait until every queued message has been sent or discarded."""
        await self._queue.join()

    def close(self):
        """Stop the writer and discard anything still queued."""
        self.closed = True
        if self._task is not None:
            self._task.cancel()
        self._discard()

    def _discard(self):
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def _run(self):
        while True:
            message = await self._queue.get()
            try:
                await self.connection.send(message)
            except websockets.exceptions.ConnectionClosed:
                logger.debug(
                    f"Connection {id(self.connection)} closed, "
                    f"discarding its outbox"
                )
                self.closed = True
                self._discard()
                return
            except Exception as e:
                logger.warning(
                    f"Failed to deliver to connection "
                    f"{id(self.connection)}: {e}"
                )
            finally:
                self._queue.task_done()
