"""
OBS WebSocket integration service.

Connects to OBS Studio via obsws-python to observe whether the stream is
live and to stop it during an orderly shutdown. Connection attempts are
bounded; after the last failure the integration stays disabled for the
rest of the run.
"""

import asyncio
from typing import Optional

from loguru import logger

from ..runtime_state import RuntimeState

try:
    import obsws_python as obs

    OBS_AVAILABLE = True
except ImportError:
    OBS_AVAILABLE = False
    logger.warning(
        "obsws-python not installed. OBS integration will not be available. "
        "Install with: pip install obsws-python"
    )


class OBSService:
    """
    Service for interacting with OBS Studio via WebSocket.

    Provides:
    - Bounded connection retries
    - Stream status observation into ``RuntimeState.streaming``
    - Stopping the stream
    """

    def __init__(
        self,
        state: RuntimeState,
        host: str = "localhost",
        port: int = 4455,
        password: str = "",
        timeout: int = 5,
        max_retries: int = 3,
        retry_interval: float = 2.0,
    ):
        self._state = state
        self._host = host
        self._port = port
        self._password = password
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._retry_interval = retry_interval
        self._client: Optional[object] = None
        self._event_client: Optional[object] = None
        self._connected = False
        self._disabled = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def is_connected(self) -> bool:
        """Whether the service is currently connected to OBS."""
        return self._connected

    @property
    def is_disabled(self) -> bool:
        """True once all connection attempts were used up."""
        return self._disabled

    def _create_client(self) -> object:
        return obs.ReqClient(
            host=self._host,
            port=self._port,
            password=self._password,
            timeout=self._timeout,
        )

    async def connect(self) -> bool:
        """
        Connect to OBS WebSocket server, retrying a bounded number of times.

        Returns:
            True if connection successful, False otherwise.
        """
        if not OBS_AVAILABLE:
            logger.error("[OBS] obsws-python is not installed. Cannot connect to OBS.")
            self._disabled = True
            return False

        self._loop = asyncio.get_running_loop()
        logger.info(f"[OBS] Connecting to {self._host}:{self._port}...")

        for attempt in range(1, self._max_retries + 1):
            try:
                self._client = await asyncio.to_thread(self._create_client)
                break
            except Exception as e:
                if attempt >= self._max_retries:
                    logger.warning(f"[OBS] Connection failed ({e}). Not retrying.")
                    self._disabled = True
                    self._client = None
                    return False
                logger.warning(
                    f"[OBS] Connection failed, retrying {attempt} of {self._max_retries}"
                )
                await asyncio.sleep(self._retry_interval)

        self._connected = True
        logger.success(f"[OBS] Connected to OBS WebSocket at {self._host}:{self._port}")

        self._state.observe_stream(await asyncio.to_thread(self.is_live))
        await asyncio.to_thread(self._subscribe_stream_events)
        return True

    def _subscribe_stream_events(self) -> None:
        try:
            self._event_client = obs.EventClient(
                host=self._host,
                port=self._port,
                password=self._password,
                timeout=self._timeout,
            )
            self._event_client.callback.register(self.on_stream_state_changed)
        except Exception as e:
            logger.warning(f"[OBS] Could not subscribe to stream events: {e}")
            self._event_client = None

    def on_stream_state_changed(self, data) -> None:
        """
        OBS event callback; runs on the obsws-python event thread.

        The state update is handed to the asyncio loop.
        """
        live = bool(getattr(data, "output_active", False))
        logger.info(f"[OBS] Stream {'started' if live else 'stopped'}.")
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._state.observe_stream, live)
        else:
            self._state.observe_stream(live)

    def is_live(self) -> bool:
        """
        Query OBS for the stream status; falls back to the last observed value.

        Blocking; call it from a worker thread.
        """
        if not self._connected or self._client is None:
            return self._state.streaming
        try:
            return bool(self._client.get_stream_status().output_active)
        except Exception as e:
            logger.error(f"[OBS] Error getting stream status: {e}")
            self._handle_connection_error(e)
            return self._state.streaming

    def stop(self) -> None:
        """Stop the stream. Blocking; call it from a worker thread."""
        if not self._connected or self._client is None:
            logger.warning("[OBS] Not connected, cannot stop stream")
            return
        self._client.stop_stream()
        logger.info("[OBS] Stream stop requested")

    def disconnect(self) -> None:
        """Disconnect from OBS WebSocket server."""
        for client in (self._event_client, self._client):
            if client is None:
                continue
            try:
                client.disconnect()
            except Exception as e:
                logger.debug(f"[OBS] Error during disconnect: {e}")
        self._event_client = None
        self._client = None
        self._connected = False
        logger.info("[OBS] Disconnected from OBS WebSocket")

    def _handle_connection_error(self, error: Exception) -> None:
        """
        Handle connection errors, marking as disconnected if necessary.

        Args:
            error: The exception that occurred.
        """
        error_str = str(error).lower()
        connection_errors = [
            "connection",
            "closed",
            "refused",
            "reset",
            "broken pipe",
            "timeout",
        ]
        if any(keyword in error_str for keyword in connection_errors):
            logger.warning("[OBS] Connection lost. Marking as disconnected.")
            self._connected = False
