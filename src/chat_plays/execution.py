"""
Action execution.

An ``ActionExecutor`` turns an ``Action`` into simulated input on the
driven program. The default executor runs the action's shell command
(xdotool, AutoHotkey, ...) through an asyncio subprocess.
"""

import asyncio
from typing import Optional, Protocol

from loguru import logger

from .events import EventBus
from .exceptions import ActionExecutionError
from .voting import Action


class ActionExecutor(Protocol):
    async def execute(self, action: Action, events: Optional[EventBus] = None) -> None: ...


class ShellActionExecutor:
    """
    Runs ``action.shell_command`` once per repetition.

    Repetitions are ``action.repeat_delay`` ms apart. A non-zero exit status
    or a timeout raises ``ActionExecutionError``.
    """

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout

    async def execute(self, action: Action, events: Optional[EventBus] = None) -> None:
        if not action.shell_command:
            logger.debug(f"[Executor] '{action.description}' has no command, nothing to run")
            return

        for index in range(action.repeat):
            if index:
                await asyncio.sleep(action.repeat_delay / 1000)
            await self._run_once(action)

    async def _run_once(self, action: Action) -> None:
        process = await asyncio.create_subprocess_shell(
            action.shell_command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), self._timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise ActionExecutionError(action.description) from None

        if process.returncode != 0:
            logger.debug(
                f"[Executor] '{action.shell_command}' stderr: "
                f"{stderr.decode(errors='replace').strip()}"
            )
            raise ActionExecutionError(action.description, process.returncode)
