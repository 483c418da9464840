"""Tests for the heartbeat/reconnect state machine."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from chat_plays.chat_monitor.keepalive import ConnectionKeepalive, KeepaliveState


def _keepalive(interval=10.0, timeout=0.05, send=None, reconnect=None):
    return ConnectionKeepalive(
        send_heartbeat=send or AsyncMock(),
        reconnect=reconnect or AsyncMock(),
        interval=interval,
        timeout=timeout,
    )


class TestConnectionKeepalive:
    @pytest.mark.asyncio
    async def test_pong_cancels_deadline(self):
        reconnect = AsyncMock()
        keepalive = _keepalive(reconnect=reconnect)

        await keepalive.heartbeat()
        assert keepalive.state == KeepaliveState.AWAITING_PONG

        keepalive.on_pong()
        assert keepalive.state == KeepaliveState.IDLE

        await asyncio.sleep(0.1)
        reconnect.assert_not_called()

    @pytest.mark.asyncio
    async def test_missed_deadline_reconnects_exactly_once(self):
        reconnect = AsyncMock()
        keepalive = _keepalive(reconnect=reconnect)

        await keepalive.heartbeat()
        await asyncio.sleep(0.1)
        await asyncio.sleep(0.1)

        reconnect.assert_awaited_once()
        assert keepalive.reconnect_attempts == 1
        assert keepalive.state == KeepaliveState.IDLE

    @pytest.mark.asyncio
    async def test_new_heartbeat_replaces_pending_deadline(self):
        reconnect = AsyncMock()
        keepalive = _keepalive(reconnect=reconnect)

        await keepalive.heartbeat()
        await keepalive.heartbeat()
        await asyncio.sleep(0.15)

        reconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_send_failure_still_leads_to_reconnect(self):
        send = AsyncMock(side_effect=OSError("broken pipe"))
        reconnect = AsyncMock()
        keepalive = _keepalive(send=send, reconnect=reconnect)

        await keepalive.heartbeat()
        await asyncio.sleep(0.1)

        reconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_reconnect_is_not_raised(self):
        reconnect = AsyncMock(side_effect=ConnectionRefusedError("refused"))
        keepalive = _keepalive(reconnect=reconnect)

        await keepalive.heartbeat()
        await asyncio.sleep(0.1)

        assert keepalive.reconnect_attempts == 1
        assert keepalive.state == KeepaliveState.IDLE

    @pytest.mark.asyncio
    async def test_interval_loop_sends_heartbeats(self):
        send = AsyncMock()
        keepalive = _keepalive(interval=0.01, timeout=5.0, send=send)

        keepalive.start()
        await asyncio.sleep(0.06)
        keepalive.stop()

        assert send.await_count >= 2
        assert keepalive.state == KeepaliveState.IDLE

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_deadline(self):
        reconnect = AsyncMock()
        keepalive = _keepalive(reconnect=reconnect)

        await keepalive.heartbeat()
        keepalive.stop()
        await asyncio.sleep(0.1)

        reconnect.assert_not_called()
