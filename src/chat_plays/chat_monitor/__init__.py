"""
Chat monitoring module.

Connects to the upstream chat, keeps the connection alive and forwards
every chat line to the command pipeline.
"""

from .chat_monitor_interface import ChatMonitorInterface, ChatMessage
from .keepalive import ConnectionKeepalive, KeepaliveState
from .twitch_chat_monitor import TwitchChatMonitor, IRCLine, parse_irc_line

__all__ = [
    "ChatMonitorInterface",
    "ChatMessage",
    "ConnectionKeepalive",
    "KeepaliveState",
    "TwitchChatMonitor",
    "IRCLine",
    "parse_irc_line",
]
