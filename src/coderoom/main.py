#!/usr/bin/env python3
"""
Code Room Relay Server

Real-time relay for collaborative code rooms.
"""

import asyncio
import logging
import os
import sys

from .room_relay import RoomRelay
from .websocket_server import WebSocketServer

logger = logging.getLogger(__name__)

# Seconds between sweeps for connections that closed without a clean leave
CLEANUP_INTERVAL = 60


def configure_logging(level_name: str = "INFO"):
    """Configure root logging for the server process."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def run_server(ws_host: str, ws_port: int, cleanup_interval: float):
    """
    Run the relay with its WebSocket server.

    Args:
        ws_host: WebSocket host address to bind to
        ws_port: WebSocket port to listen on
        cleanup_interval: Seconds between closed-connection sweeps
    """
    relay = RoomRelay()
    ws_server = WebSocketServer(relay, ws_host, ws_port)

    await ws_server.start()

    logger.info("Code room relay is ready")
    logger.info(f"WebSocket server listening on ws://{ws_host}:{ws_port}")

    cleanup_task = asyncio.create_task(
        closed_connection_cleanup(relay, cleanup_interval)
    )

    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Server shutdown requested")
    finally:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
        await ws_server.stop()
        await relay.shutdown()
        logger.info("Code room relay stopped")


async def closed_connection_cleanup(
    relay: RoomRelay, interval: float = CLEANUP_INTERVAL
):
    """
    Periodic task to remove participants whose connection already closed.

    Args:
        relay: The room relay
        interval: Seconds between sweeps
    """
    logger.info("Starting closed connection cleanup task")

    while True:
        try:
            await asyncio.sleep(interval)
            pruned = await relay.prune_closed()
            if pruned:
                logger.info(f"Cleanup removed {pruned} participant(s)")
            rooms = relay.list_rooms()
            logger.debug(f"{len(rooms)} active room(s): {rooms}")
        except asyncio.CancelledError:
            logger.info("Closed connection cleanup task cancelled")
            raise
        except Exception as e:
            logger.error(f"Error in closed connection cleanup: {e}")


def main():
    """Main entry point for the relay server."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
    logger.info("Starting code room relay server...")

    ws_host = os.environ.get("WEBSOCKET_HOST", "0.0.0.0")
    ws_port = int(os.environ.get("WEBSOCKET_PORT", "8080"))
    cleanup_interval = float(
        os.environ.get("CLEANUP_INTERVAL", str(CLEANUP_INTERVAL))
    )

    try:
        asyncio.run(run_server(ws_host, ws_port, cleanup_interval))
    except KeyboardInterrupt:
        logger.info("Shutting down code room relay...")
        sys.exit(0)


if __name__ == "__main__":
    main()
