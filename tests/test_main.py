import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from coderoom import main as server_main


@pytest.mark.asyncio
async def test_cleanup_task_prunes_until_cancelled():
    relay = MagicMock()
    relay.prune_closed = AsyncMock(return_value=1)
    relay.list_rooms = MagicMock(return_value=[])

    task = asyncio.create_task(
        server_main.closed_connection_cleanup(relay, interval=0)
    )
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert relay.prune_closed.await_count >= 1


@pytest.mark.asyncio
async def test_cleanup_task_survives_errors():
    relay = MagicMock()
    relay.prune_closed = AsyncMock(side_effect=[RuntimeError("boom"), 0, 0])
    relay.list_rooms = MagicMock(return_value=[])

    task = asyncio.create_task(
        server_main.closed_connection_cleanup(relay, interval=0)
    )
    while relay.prune_closed.await_count < 2:
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


def test_main_reads_environment(monkeypatch):
    monkeypatch.setenv("WEBSOCKET_HOST", "127.0.0.1")
    monkeypatch.setenv("WEBSOCKET_PORT", "9001")
    monkeypatch.setenv("CLEANUP_INTERVAL", "5")

    run_server = MagicMock(return_value="coroutine")
    with patch.object(server_main, "run_server", run_server), \
            patch.object(server_main.asyncio, "run") as mock_run, \
            patch.object(server_main, "configure_logging"):
        server_main.main()

    run_server.assert_called_once_with("127.0.0.1", 9001, 5.0)
    mock_run.assert_called_once_with("coroutine")


def test_main_defaults_cleanup_interval(monkeypatch):
    monkeypatch.delenv("CLEANUP_INTERVAL", raising=False)
    monkeypatch.delenv("WEBSOCKET_HOST", raising=False)
    monkeypatch.delenv("WEBSOCKET_PORT", raising=False)

    run_server = MagicMock(return_value="coroutine")
    with patch.object(server_main, "run_server", run_server), \
            patch.object(server_main.asyncio, "run"), \
            patch.object(server_main, "configure_logging"):
        server_main.main()

    run_server.assert_called_once_with(
        "0.0.0.0", 8080, float(server_main.CLEANUP_INTERVAL)
    )


@pytest.mark.asyncio
async def test_run_server_shuts_relay_down_on_cancel():
    relay = MagicMock()
    relay.shutdown = AsyncMock()
    relay.prune_closed = AsyncMock(return_value=0)
    relay.list_rooms = MagicMock(return_value=[])
    ws_server = MagicMock()
    ws_server.start = AsyncMock()
    ws_server.stop = AsyncMock()

    with patch.object(server_main, "RoomRelay", return_value=relay), \
            patch.object(server_main, "WebSocketServer",
                         return_value=ws_server):
        task = asyncio.create_task(
            server_main.run_server("127.0.0.1", 0, 60)
        )
        while not ws_server.start.await_count:
            await asyncio.sleep(0)
        task.cancel()
        await task

    ws_server.stop.assert_awaited_once()
    relay.shutdown.assert_awaited_once()
