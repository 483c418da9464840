"""
Application wiring.

Builds every component from the loaded ``Config`` and runs the chat
monitor, one scheduler per channel type, the watchdog and the optional
OBS/overlay integrations as tasks on a single event loop.
"""

import asyncio
from typing import List, Optional

from loguru import logger

from .chat_monitor import TwitchChatMonitor
from .classifier import CommandClassifier
from .command_handler import ChatCommandHandler
from .config_manager import Config
from .events import Event, EventBus
from .execution import ActionExecutor, ShellActionExecutor
from .moderation import JsonUserList, ModerationLists, PrivilegedCommandHandler
from .obs import OBSService
from .overlay import OverlayConnectionManager, OverlayServer
from .runtime_state import RuntimeState
from .scheduler import SchedulerManager
from .voting import VoteTally
from .watchdog import ProcessWatchdog, ShellTargetProbe


class ChatPlaysServer:
    """Owns all long-lived components and their tasks."""

    def __init__(self, config: Config, executor: Optional[ActionExecutor] = None):
        self.config = config
        self.state = RuntimeState()
        self.events = EventBus()
        self.resolver = VoteTally.from_config(config, self.state)
        self.executor = executor or ShellActionExecutor()

        twitch = config.twitch_config
        moderation = config.moderation_config
        self.moderation = ModerationLists(
            blacklist=JsonUserList(moderation.blacklist_path, name="blacklist"),
            whitelist=JsonUserList(moderation.whitelist_path, name="whitelist"),
            admins=[*moderation.admins, twitch.channel.lstrip("#")],
        )
        self.classifier = CommandClassifier(
            moderation=self.moderation,
            filtered_commands=config.command_config.filtered_commands,
            throttled_commands=config.command_config.throttled_commands,
        )
        self.command_handler = ChatCommandHandler(
            classifier=self.classifier,
            resolver=self.resolver,
            events=self.events,
            state=self.state,
            privileged=PrivilegedCommandHandler(self.moderation),
            console=config.console_config,
            reply=self._reply,
        )
        self.monitor = TwitchChatMonitor(
            nick=twitch.nick,
            password=twitch.password,
            channel=twitch.channel,
            message_callback=self.command_handler.handle_message,
            server=twitch.server,
            port=twitch.port,
            max_retries=twitch.max_retries,
            retry_interval=twitch.retry_interval,
            keepalive_interval=twitch.keepalive_interval,
            keepalive_timeout=twitch.keepalive_timeout,
        )
        self.schedulers = SchedulerManager(self.resolver, self.executor, self.events)

        self.obs: Optional[OBSService] = None
        if config.obs_config.enabled:
            obs_config = config.obs_config
            self.obs = OBSService(
                self.state,
                host=obs_config.host,
                port=obs_config.port,
                password=obs_config.password,
                max_retries=obs_config.max_retries,
                retry_interval=obs_config.retry_interval,
            )

        self.overlay: Optional[OverlayServer] = None
        if config.overlay_config.enabled:
            self.overlay = OverlayServer(
                OverlayConnectionManager(),
                host=config.overlay_config.host,
                port=config.overlay_config.port,
            )

        self.watchdog: Optional[ProcessWatchdog] = None
        watchdog = config.watchdog_config
        if watchdog.probe_command:
            self.watchdog = ProcessWatchdog(
                ShellTargetProbe(
                    watchdog.probe_command,
                    watchdog.relaunch_command,
                    timeout=watchdog.timeout,
                ),
                self.state,
                broadcast=self.obs,
                interval=watchdog.interval,
                on_exit=self.request_exit,
            )

        self.exit_code = 0
        self._exit_event = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

    async def _reply(self, text: str) -> None:
        await self.monitor.send_message(text)

    def request_exit(self, code: int = 0) -> None:
        self.exit_code = code
        self._exit_event.set()

    @staticmethod
    def _log_event(event: Event) -> None:
        logger.debug(f"[Events] {event.type.value}: {event.data}")

    async def _connect_obs(self) -> None:
        if self.obs is not None and not await self.obs.connect():
            logger.warning("[OBS] Integration disabled for this run")

    async def run(self) -> int:
        """Run until an exit is requested. Returns the exit status."""
        self.events.add_listener(self._log_event, name="console")

        if self.overlay is not None:
            self.events.add_listener(self.overlay.manager.on_event, name="overlay")
            self._tasks.append(asyncio.create_task(self.overlay.serve(), name="overlay"))

        if self.obs is not None:
            self._tasks.append(asyncio.create_task(self._connect_obs(), name="obs_connect"))

        await self.monitor.start_monitoring()
        self.schedulers.start()

        if self.watchdog is not None:
            self._tasks.append(asyncio.create_task(self.watchdog.run(), name="watchdog"))
        else:
            logger.info("[Watchdog] No probe command configured, watchdog disabled")

        try:
            await self._exit_event.wait()
        finally:
            await self.shutdown()
        return self.exit_code

    async def shutdown(self) -> None:
        logger.info("Shutting down...")
        await self.monitor.stop_monitoring()
        await self.schedulers.stop()
        if self.overlay is not None:
            self.overlay.stop()

        current = asyncio.current_task()
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()
        await asyncio.gather(
            *(task for task in self._tasks if task is not current),
            return_exceptions=True,
        )
        self._tasks.clear()

        await self.events.close()
        if self.obs is not None and self.obs.is_connected:
            self.obs.disconnect()
