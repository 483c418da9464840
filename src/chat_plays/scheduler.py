"""
Per-channel-type action scheduler.

One ``ActionScheduler`` runs per channel type as its own asyncio task.
Each iteration selects an action (fresh winner, or a continuation of the
last action), clears the vote queue, executes it and waits for both the
execution and the ``min_delay`` floor before selecting again. When nothing
qualifies it reports an idle tick and waits ``IDLE_DELAY_MS``.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from loguru import logger

from .events import EventBus, EventType
from .execution import ActionExecutor
from .voting import Action, TypeOptions, VoteResolver

IDLE_DELAY_MS = 500

Sleep = Callable[[float], Awaitable[None]]


class SchedulerState(str, Enum):
    STARTING = "starting"
    SELECTING = "selecting"
    EXECUTING = "executing"
    IDLE_WAIT = "idle_wait"


class ActionScheduler:
    """Strictly sequential execution loop for a single channel type."""

    def __init__(
        self,
        channel_type: str,
        resolver: VoteResolver,
        executor: ActionExecutor,
        events: EventBus,
        idle_delay_ms: int = IDLE_DELAY_MS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.channel_type = channel_type
        self._resolver = resolver
        self._executor = executor
        self._events = events
        self._idle_delay_ms = idle_delay_ms
        self._sleep = sleep
        self.last_action: Optional[Action] = None
        self.state = SchedulerState.STARTING
        self._tag = f"[Scheduler:{channel_type}]"

    async def run(self) -> None:
        """Run the start action (if any), then loop until cancelled."""
        await self.start()
        while True:
            try:
                await self.step()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"{self._tag} Iteration failed, continuing: {e}")
                await self._sleep(self._idle_delay_ms / 1000)

    async def start(self) -> None:
        self.state = SchedulerState.STARTING
        try:
            start_action = self._resolver.get_options_for_type(self.channel_type).start_action
            if start_action is not None:
                logger.info(f"{self._tag} Running start action: {start_action.description}")
                await self._executor.execute(start_action, self._events)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{self._tag} Start action failed: {e}")
        self.state = SchedulerState.SELECTING

    def select(self) -> Optional[Action]:
        """
        Pick the action for the next iteration.

        A fresh winner always takes precedence. Otherwise the last action is
        re-run if it is continuous or global repeat is on, and it may be
        re-run at all (``can_be_global_continuous``).
        """
        self.state = SchedulerState.SELECTING
        winner = self._resolver.get_most_popular_action(self.channel_type)
        if winner is not None and winner.action is not None:
            return winner.action

        last = self.last_action
        repeat_enabled = self._resolver.get_state().repeat_enabled
        if (
            last is not None
            and (last.continuous or repeat_enabled)
            and last.can_be_global_continuous
        ):
            return last
        return None

    async def step(self) -> Optional[Action]:
        """
        Run one full iteration.

        Returns:
            Optional[Action]: The executed action, or None for an idle tick
        """
        action = self.select()
        options = self._resolver.get_options_for_type(self.channel_type)
        if action is None:
            await self._idle()
            return None
        await self._execute(action, options)
        return action

    async def _idle(self) -> None:
        self.state = SchedulerState.IDLE_WAIT
        self._events.publish(
            EventType.COMMAND,
            {"type": self.channel_type, "idle": True, "delay": self._idle_delay_ms},
        )
        await self._sleep(self._idle_delay_ms / 1000)

    async def _execute(self, action: Action, options: TypeOptions) -> None:
        self.state = SchedulerState.EXECUTING
        self._resolver.clear_command_queue(self.channel_type)

        delay = max(options.min_delay or 0, action.delay())
        logger.info(f"{self._tag} executing {action.description}")
        self._events.publish(
            EventType.COMMAND,
            {"type": self.channel_type, "description": action.description, "delay": delay},
        )
        self.last_action = action

        pending: List[Awaitable] = [self._executor.execute(action, self._events)]
        if options.min_delay:
            pending.append(self._sleep(options.min_delay / 1000))

        # Wait for every awaitable so the min_delay floor holds even on failure
        results = await asyncio.gather(*pending, return_exceptions=True)
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(
                    f"{self._tag} Caught error while executing '{action.description}': {result}"
                )


class SchedulerManager:
    """Starts one ``ActionScheduler`` task per channel type."""

    def __init__(
        self,
        resolver: VoteResolver,
        executor: ActionExecutor,
        events: EventBus,
        idle_delay_ms: int = IDLE_DELAY_MS,
    ):
        self._resolver = resolver
        self._executor = executor
        self._events = events
        self._idle_delay_ms = idle_delay_ms
        self.schedulers: Dict[str, ActionScheduler] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def start(self) -> None:
        # Channel types are enumerated once
        for channel_type in self._resolver.get_command_types():
            scheduler = ActionScheduler(
                channel_type,
                self._resolver,
                self._executor,
                self._events,
                idle_delay_ms=self._idle_delay_ms,
            )
            self.schedulers[channel_type] = scheduler
            self._tasks[channel_type] = asyncio.create_task(
                scheduler.run(), name=f"scheduler_{channel_type}"
            )
        logger.info(f"Listening for commands on {list(self.schedulers)}")

    @property
    def tasks(self) -> List[asyncio.Task]:
        return list(self._tasks.values())

    async def stop(self) -> None:
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()
