"""
Chat line pipeline.

chat line -> moderation gate -> classifier -> vote resolver, with observer
events for every line and every accepted vote. Privileged moderation
commands are evaluated independently of the main classification.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Set

from loguru import logger

from .chat_monitor import ChatMessage
from .classifier import Classification, CommandClassifier
from .config_manager import ConsoleConfig
from .events import EventBus, EventType
from .moderation import PrivilegedCommandHandler
from .runtime_state import RuntimeState
from .voting import VoteResolver

REPEAT_ON = "repeat"
REPEAT_OFF = "repeatoff"


class ChatCommandHandler:
    """Turns chat messages into votes and moderation actions."""

    def __init__(
        self,
        classifier: CommandClassifier,
        resolver: VoteResolver,
        events: EventBus,
        state: RuntimeState,
        privileged: Optional[PrivilegedCommandHandler] = None,
        console: Optional[ConsoleConfig] = None,
        reply: Optional[Callable[[str], Awaitable[None]]] = None,
    ):
        self._classifier = classifier
        self._resolver = resolver
        self._events = events
        self._state = state
        self._privileged = privileged
        self._console = console or ConsoleConfig()
        self._reply = reply
        self._reply_tasks: Set[asyncio.Task] = set()

    def handle_message(self, message: ChatMessage) -> None:
        """Message callback for chat monitors."""
        sender = message.get("author", "")
        text = message.get("message", "").strip()

        classification = self.handle_vote(sender, text)
        self._events.publish(
            EventType.MESSAGE,
            {
                "name": message.get("display_name") or sender,
                "message": text,
                "match": classification is not None,
            },
        )
        self.handle_privileged(sender, text)

    def handle_vote(self, sender: str, text: str) -> Optional[Classification]:
        """
        Classify a line and queue it as a vote.

        Returns:
            Optional[Classification]: The rule hit, even when a filter or
            throttle kept it from being queued
        """
        matched = self._classifier.match(sender, text)
        if matched is None:
            return None

        self._print_to_console(sender, text)

        result = self._classifier.admit(sender, matched)
        if result is None:
            return matched

        if result.command_id in (REPEAT_ON, REPEAT_OFF):
            self._toggle_repeat(result.command_id == REPEAT_ON)
            return result

        queued = self._resolver.queue_command(result.command_id, result.params)
        if queued:
            self._events.publish(
                EventType.VOTE,
                {
                    "count": queued.count,
                    "id": queued.command_id,
                    "description": queued.action.description,
                    "group": queued.action.group,
                },
            )
        return result

    def handle_privileged(self, sender: str, text: str) -> Optional[str]:
        if self._privileged is None:
            return None
        reply = self._privileged.handle(sender, text)
        if reply and self._reply is not None:
            task = asyncio.create_task(self._send_reply(reply))
            self._reply_tasks.add(task)
            task.add_done_callback(self._reply_tasks.discard)
        return reply

    def _toggle_repeat(self, enabled: bool) -> None:
        if self._state.set_repeat(enabled):
            self._events.publish(EventType.REPEAT_TOGGLE, {"enabled": enabled})

    async def _send_reply(self, text: str) -> None:
        try:
            await self._reply(text)
        except Exception as e:
            logger.warning(f"Failed to send chat reply: {e}")

    def _print_to_console(self, sender: str, text: str) -> None:
        if not self._console.print_to_console:
            return
        max_name = self._console.max_char_name
        max_command = self._console.max_char_command
        logger.info(f"{sender[:max_name]:<{max_name}} {text[:max_command]:>{max_command}}")
