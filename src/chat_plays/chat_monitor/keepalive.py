"""
Heartbeat / reconnect state machine for the upstream chat connection.

Every ``interval`` seconds a heartbeat (IRC PING) is sent and a deadline
timer is armed. An acknowledgment (PONG) before the deadline cancels the
timer. If the deadline elapses, exactly one reconnect attempt is made;
a failed reconnect is logged and left to the next cycle.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from loguru import logger

HEARTBEAT_INTERVAL = 8 * 60
HEARTBEAT_TIMEOUT = 5 * 60


class KeepaliveState(str, Enum):
    IDLE = "idle"
    AWAITING_PONG = "awaiting_pong"


class ConnectionKeepalive:
    """Drives heartbeats for a single connection."""

    def __init__(
        self,
        send_heartbeat: Callable[[], Awaitable[None]],
        reconnect: Callable[[], Awaitable[None]],
        interval: float = HEARTBEAT_INTERVAL,
        timeout: float = HEARTBEAT_TIMEOUT,
    ):
        self._send_heartbeat = send_heartbeat
        self._reconnect = reconnect
        self.interval = interval
        self.timeout = timeout
        self._interval_task: Optional[asyncio.Task] = None
        self._deadline_task: Optional[asyncio.Task] = None
        self.reconnect_attempts = 0

    @property
    def state(self) -> KeepaliveState:
        if self._deadline_task is not None and not self._deadline_task.done():
            return KeepaliveState.AWAITING_PONG
        return KeepaliveState.IDLE

    def start(self) -> None:
        """(Re)start the heartbeat schedule, dropping any pending deadline."""
        self.stop()
        self._interval_task = asyncio.create_task(
            self._heartbeat_loop(), name="keepalive_heartbeat"
        )
        logger.debug(
            f"[Keepalive] Heartbeat every {self.interval}s, timeout {self.timeout}s"
        )

    def stop(self) -> None:
        if self._interval_task is not None and not self._interval_task.done():
            self._interval_task.cancel()
        self._interval_task = None
        self._clear_deadline()

    def on_pong(self) -> None:
        """Heartbeat acknowledged before the deadline."""
        if self.state == KeepaliveState.AWAITING_PONG:
            logger.debug("[Keepalive] PONG received")
        self._clear_deadline()

    async def heartbeat(self) -> None:
        """Send one heartbeat and arm its deadline."""
        self._clear_deadline()
        self._deadline_task = asyncio.create_task(
            self._deadline(), name="keepalive_deadline"
        )
        try:
            await self._send_heartbeat()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # The deadline stays armed; a dead socket ends in a reconnect
            logger.warning(f"[Keepalive] Failed to send heartbeat: {e}")

    def _clear_deadline(self) -> None:
        task = self._deadline_task
        self._deadline_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.heartbeat()

    async def _deadline(self) -> None:
        await asyncio.sleep(self.timeout)
        logger.warning(
            f"[Keepalive] No PONG within {self.timeout}s, reconnecting"
        )
        self._deadline_task = None
        self.reconnect_attempts += 1
        try:
            await self._reconnect()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[Keepalive] Reconnect failed: {e}")
