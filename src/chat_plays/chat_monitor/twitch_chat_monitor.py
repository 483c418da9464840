"""
Twitch chat monitoring implementation.

Speaks plain IRC over an asyncio stream to the Twitch chat server. Server
PINGs are answered immediately; our own PINGs are driven by
``ConnectionKeepalive`` so a silently dead socket is detected and replaced.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from loguru import logger

from ..exceptions import ChatConnectionError
from .chat_monitor_interface import ChatMonitorInterface, ChatMessage
from .keepalive import HEARTBEAT_INTERVAL, HEARTBEAT_TIMEOUT, ConnectionKeepalive

# Upper bound in seconds on the wait between reconnect attempts
MAX_RETRY_INTERVAL = 300


@dataclass
class IRCLine:
    """A parsed IRC protocol line."""

    command: str
    params: List[str] = field(default_factory=list)
    prefix: str = ""
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def nick(self) -> str:
        return self.prefix.split("!", 1)[0]

    @property
    def trailing(self) -> str:
        return self.params[-1] if self.params else ""


def parse_irc_line(raw: str) -> Optional[IRCLine]:
    """
    Parse a single IRC line (with optional IRCv3 tags).

    Returns:
        Optional[IRCLine]: Parsed line, or None for blank input
    """
    line = raw.rstrip("\r\n")
    if not line.strip():
        return None

    tags: Dict[str, str] = {}
    if line.startswith("@"):
        tag_str, _, line = line[1:].partition(" ")
        for item in tag_str.split(";"):
            key, _, value = item.partition("=")
            tags[key] = value

    prefix = ""
    if line.startswith(":"):
        prefix, _, line = line[1:].partition(" ")

    trailing = None
    if line.startswith(":"):
        line, trailing = "", line[1:]
    elif " :" in line:
        line, _, trailing = line.partition(" :")

    parts = line.split()
    if not parts:
        return None
    params = parts[1:]
    if trailing is not None:
        params.append(trailing)

    return IRCLine(command=parts[0].upper(), params=params, prefix=prefix, tags=tags)


class TwitchChatMonitor(ChatMonitorInterface):
    """
    Twitch IRC chat monitor.
    """

    def __init__(
        self,
        nick: str,
        password: str,
        channel: str,
        message_callback: Callable[[ChatMessage], None],
        server: str = "irc.chat.twitch.tv",
        port: int = 6667,
        max_retries: int = 10,
        retry_interval: int = 60,
        keepalive_interval: float = HEARTBEAT_INTERVAL,
        keepalive_timeout: float = HEARTBEAT_TIMEOUT,
        connect_timeout: float = 10.0,
    ):
        """
        Initialize Twitch chat monitor.

        Args:
            nick: Bot account login
            password: OAuth token (``oauth:`` prefix is added if missing)
            channel: Channel to join, with or without '#'
            message_callback: Function to call when a new message is received
            server: IRC server host
            port: IRC server port
            max_retries: Consecutive failures after which the outage is logged as an error
            retry_interval: Base interval between retry attempts in seconds, growing
                linearly up to MAX_RETRY_INTERVAL
            keepalive_interval: Seconds between our PINGs
            keepalive_timeout: Seconds to wait for PONG before reconnecting
            connect_timeout: Seconds allowed for the TCP connect
        """
        super().__init__(message_callback, max_retries, retry_interval)
        self.nick = nick.lower()
        self.password = password
        self.channel = "#" + channel.lstrip("#").lower()
        self.server = server
        self.port = port
        self.connect_timeout = connect_timeout

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._connect_lock = asyncio.Lock()
        self._monitoring_task: Optional[asyncio.Task] = None
        self._connected = False
        self.keepalive = ConnectionKeepalive(
            send_heartbeat=self._send_ping,
            reconnect=self.reconnect,
            interval=keepalive_interval,
            timeout=keepalive_timeout,
        )

    @property
    def owner(self) -> str:
        return self.channel[1:]

    async def _open_connection(self) -> None:
        logger.info(f"[Twitch] Connecting to {self.server}:{self.port}...")
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(self.server, self.port),
            timeout=self.connect_timeout,
        )
        self._reader, self._writer = reader, writer

        password = self.password
        if password and not password.startswith("oauth:"):
            password = f"oauth:{password}"
        if password:
            await self._send_raw(f"PASS {password}")
        await self._send_raw(f"NICK {self.nick}")
        await self._send_raw("CAP REQ :twitch.tv/tags")
        await self._send_raw(f"JOIN {self.channel}")

    async def _close_connection(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        self._connected = False
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, ConnectionError) as e:
            logger.debug(f"[Twitch] Error while closing socket: {e}")

    async def reconnect(self) -> None:
        """Replace the current connection with a fresh one."""
        logger.info("[Twitch] Reconnecting...")
        async with self._connect_lock:
            await self._close_connection()
            await self._open_connection()

    async def _send_raw(self, line: str) -> None:
        writer = self._writer
        if writer is None:
            raise ChatConnectionError("Not connected")
        writer.write(f"{line}\r\n".encode("utf-8"))
        await writer.drain()

    async def _send_ping(self) -> None:
        await self._send_raw("PING :empty")

    async def send_message(self, text: str) -> None:
        await self._send_raw(f"PRIVMSG {self.channel} :{text}")

    async def handle_line(self, raw: str) -> None:
        """Dispatch a single line received from the server."""
        line = parse_irc_line(raw)
        if line is None:
            return

        if line.command == "PING":
            await self._send_raw(f"PONG :{line.trailing}")
        elif line.command == "PONG":
            self.keepalive.on_pong()
        elif line.command == "001":
            self._connected = True
            self.retry_count = 0
            logger.success(f"[Twitch] Connected! Joined {self.channel}")
            self.keepalive.start()
        elif line.command == "PRIVMSG":
            self._on_privmsg(line)
        elif line.command == "RECONNECT":
            logger.warning("[Twitch] Server requested reconnect")
            await self._close_connection()
        elif line.command == "NOTICE":
            logger.warning(f"[Twitch] NOTICE: {line.trailing}")

    def _on_privmsg(self, line: IRCLine) -> None:
        if not line.params or line.params[0].lower() != self.channel:
            return

        author = line.nick.lower()
        badges = {}
        for badge in filter(None, line.tags.get("badges", "").split(",")):
            name, _, version = badge.partition("/")
            badges[name] = version

        message = self.format_message(
            platform="twitch",
            author=author,
            message=line.trailing,
            display_name=line.tags.get("display-name") or author,
            user_id=line.tags.get("user-id", ""),
            is_moderator=line.tags.get("mod") == "1",
            is_owner=author == self.owner or "broadcaster" in badges,
            badges=badges,
        )

        try:
            self.message_callback(message)
        except Exception as e:
            logger.error(f"[Twitch] Error in message callback: {e}")

    async def _monitoring_loop(self) -> None:
        """Main loop: keep a connection open and dispatch incoming lines."""
        logger.info("[Twitch] Starting monitoring loop")

        while self.is_running:
            try:
                async with self._connect_lock:
                    if self._reader is None:
                        await self._open_connection()
                reader = self._reader

                raw = await reader.readline()
                if not raw:
                    if reader is not self._reader:
                        # Replaced by reconnect()
                        continue
                    raise ChatConnectionError("Connection closed by server")

                await self.handle_line(raw.decode("utf-8", errors="replace"))

            except asyncio.CancelledError:
                logger.info("[Twitch] Monitoring loop cancelled")
                break
            except Exception as e:
                logger.error(f"[Twitch] Connection error: {e}")
                self.keepalive.stop()
                await self._close_connection()
                self.retry_count += 1

                delay = min(self.retry_interval * self.retry_count, MAX_RETRY_INTERVAL)
                if self.retry_count == self.max_retries:
                    logger.error(
                        f"[Twitch] {self.max_retries} connection attempts failed in a row, "
                        f"still retrying every {delay}s at most"
                    )
                else:
                    logger.debug(f"[Twitch] Retry {self.retry_count} in {delay}s")
                await asyncio.sleep(delay)

        logger.info("[Twitch] Monitoring loop stopped")

    async def start_monitoring(self) -> bool:
        """
        Start monitoring Twitch chat messages.

        Returns:
            bool: True if monitoring started successfully
        """
        if self.is_running:
            logger.warning("[Twitch] Monitor is already running")
            return True

        if not self.nick or not self.channel.strip("#"):
            logger.error("[Twitch] Nick and channel must be configured")
            return False

        logger.info("=" * 60)
        logger.info("[Twitch] Starting chat monitor")
        logger.info(f"[Twitch] Channel: {self.channel}")
        logger.info("=" * 60)

        self.is_running = True
        self.retry_count = 0
        self._monitoring_task = asyncio.create_task(
            self._monitoring_loop(), name="twitch_monitor"
        )
        return True

    async def stop_monitoring(self) -> None:
        """Stop monitoring Twitch chat messages."""
        logger.info("[Twitch] Stopping chat monitor")
        self.is_running = False
        self.keepalive.stop()

        if self._monitoring_task and not self._monitoring_task.done():
            self._monitoring_task.cancel()
            try:
                await self._monitoring_task
            except asyncio.CancelledError:
                pass

        await self._close_connection()
        logger.info("[Twitch] Chat monitor stopped")

    def is_connected(self) -> bool:
        return self._connected and self._writer is not None
