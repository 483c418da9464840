"""End-to-end wiring tests for ChatPlaysServer."""

import asyncio
import sys
from unittest.mock import AsyncMock

import pytest

from chat_plays.config_manager import validate_config
from chat_plays.server import ChatPlaysServer


def _server(config_data, executor):
    server = ChatPlaysServer(validate_config(config_data), executor=executor)
    server.monitor.start_monitoring = AsyncMock(return_value=True)
    server.monitor.stop_monitoring = AsyncMock()
    return server


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestChatPlaysServer:
    def test_channel_owner_has_admin_standing(self, sample_config, mock_executor):
        server = _server(sample_config, mock_executor)
        assert server.moderation.has_admin_standing("Streamer")
        assert server.obs is None
        assert server.overlay is None
        assert server.watchdog is None

    @pytest.mark.asyncio
    async def test_vote_reaches_executor_and_exit_stops_everything(
        self, sample_config, mock_executor
    ):
        server = _server(sample_config, mock_executor)
        task = asyncio.create_task(server.run())
        await asyncio.sleep(0.01)

        server.command_handler.handle_message(
            {"platform": "twitch", "author": "viewer", "message": "esc"}
        )
        for _ in range(200):
            if mock_executor.execute.await_count:
                break
            await asyncio.sleep(0.01)

        executed = mock_executor.execute.await_args.args[0]
        assert executed.command_id == "esc"

        server.request_exit(3)
        assert await asyncio.wait_for(task, timeout=2) == 3
        server.monitor.stop_monitoring.assert_awaited_once()
        assert server.schedulers.tasks == []

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell")
    async def test_watchdog_exit_ends_run(self, sample_config, mock_executor):
        sample_config["watchdog_config"] = {"probe_command": "exit 1", "interval": 0.01}
        server = _server(sample_config, mock_executor)

        assert await asyncio.wait_for(server.run(), timeout=5) == 0
        server.monitor.stop_monitoring.assert_awaited_once()
