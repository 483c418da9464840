"""
Process-wide runtime state shared by the scheduler loops and the watchdog.

All loops run on one asyncio event loop, so mutations only happen inside a
task's own non-suspended turn. Callbacks arriving from other threads (the
OBS event client) must hop onto the loop with ``call_soon_threadsafe``.
"""

from dataclasses import dataclass

from loguru import logger


@dataclass
class RuntimeState:
    """Mutable flags read by every scheduler loop."""

    repeat_enabled: bool = False
    streaming: bool = False

    def set_repeat(self, enabled: bool) -> bool:
        """
        Set the global repeat toggle.

        Returns:
            bool: True if the value changed
        """
        if self.repeat_enabled == enabled:
            return False
        self.repeat_enabled = enabled
        logger.info(f"Global repeat {'enabled' if enabled else 'disabled'}")
        return True

    def observe_stream(self, live: bool) -> None:
        """Record the broadcast status reported by the streaming software."""
        if self.streaming != live:
            logger.info(f"Stream is currently {'LIVE' if live else 'OFF'}")
        self.streaming = live

    def mark_stream_stopped(self) -> None:
        """Record that we stopped the broadcast ourselves."""
        self.streaming = False
