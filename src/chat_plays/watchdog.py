"""
Liveness watchdog for the externally driven program.

Probes the target every ``interval`` seconds. A missing target is
relaunched when a relaunch command is configured; otherwise, and whenever
the probe itself fails, the broadcast is stopped and the process exits.
"""

import asyncio
import sys
from typing import Awaitable, Callable, Optional, Protocol

from loguru import logger

from .exceptions import ProbeError
from .runtime_state import RuntimeState

WATCHDOG_INTERVAL = 5.0

# Shell exit codes for "cannot execute" / "command not found"
_SHELL_FAILURE_CODES = (126, 127)


class TargetProbe(Protocol):
    @property
    def can_relaunch(self) -> bool: ...

    async def is_alive(self) -> bool: ...

    async def relaunch(self) -> None: ...


class BroadcastControl(Protocol):
    def is_live(self) -> bool: ...

    def stop(self) -> None: ...


class ShellTargetProbe:
    """
    Probe and relaunch the target with shell commands.

    When the probe prints something, the target is alive if the output
    starts with ``0`` (the convention of window-check scripts). When it
    prints nothing, the exit status decides.
    """

    def __init__(
        self,
        probe_command: str,
        relaunch_command: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.probe_command = probe_command
        self.relaunch_command = relaunch_command or None
        self._timeout = timeout

    @property
    def can_relaunch(self) -> bool:
        return self.relaunch_command is not None

    async def _run(self, command: str) -> tuple[int, str]:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), self._timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        return process.returncode, stdout.decode(errors="replace").strip()

    async def is_alive(self) -> bool:
        try:
            returncode, output = await self._run(self.probe_command)
        except (OSError, asyncio.TimeoutError) as e:
            raise ProbeError(self.probe_command, str(e) or type(e).__name__) from e

        if returncode in _SHELL_FAILURE_CODES:
            raise ProbeError(self.probe_command, f"exit status {returncode}")
        if output:
            return output.startswith("0")
        return returncode == 0

    async def relaunch(self) -> None:
        if self.relaunch_command is None:
            return
        returncode, _ = await self._run(self.relaunch_command)
        if returncode != 0:
            logger.warning(f"[Watchdog] Relaunch command exited with {returncode}")


class ProcessWatchdog:
    """Periodic liveness check with relaunch-or-shutdown policy."""

    def __init__(
        self,
        probe: TargetProbe,
        state: RuntimeState,
        broadcast: Optional[BroadcastControl] = None,
        interval: float = WATCHDOG_INTERVAL,
        on_exit: Callable[[int], None] = sys.exit,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._probe = probe
        self._state = state
        self._broadcast = broadcast
        self.interval = interval
        self._on_exit = on_exit
        self._sleep = sleep

    async def run(self) -> None:
        """Probe until the target is gone for good."""
        while await self.check():
            await self._sleep(self.interval)

    async def check(self) -> bool:
        """
        Probe once and apply the policy.

        Returns:
            bool: True if probing should continue
        """
        try:
            alive = await self._probe.is_alive()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[Watchdog] Error in liveness probe, closing stream and exiting: {e}")
            await self.shutdown()
            return False

        if alive:
            return True

        if self._probe.can_relaunch:
            logger.info("[Watchdog] Window not found, relaunching.")
            try:
                await self._probe.relaunch()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[Watchdog] Relaunch failed: {e}")
            return True

        logger.warning("[Watchdog] Window not found, no launch command specified, exiting...")
        await self.shutdown()
        return False

    async def shutdown(self) -> None:
        """Stop the broadcast if it is live, then exit with success status."""
        if self._state.streaming:
            if self._broadcast is not None:
                try:
                    await asyncio.to_thread(self._broadcast.stop)
                    logger.info("[Watchdog] Broadcast stopped")
                except Exception as e:
                    logger.error(f"[Watchdog] Failed to stop broadcast: {e}")
            self._state.mark_stream_stopped()
        self._on_exit(0)
