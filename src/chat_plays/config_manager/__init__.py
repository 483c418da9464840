# config_manager/__init__.py
from .channels import ActionConfig, ChannelTypeConfig
from .commands import CommandConfig, ModerationConfig
from .integrations import OBSConfig, OverlayConfig, WatchdogConfig
from .main import Config
from .system import ConsoleConfig, SystemConfig
from .twitch import TwitchConfig
from .utils import read_config, read_yaml, validate_config

__all__ = [
    "ActionConfig",
    "ChannelTypeConfig",
    "CommandConfig",
    "Config",
    "ConsoleConfig",
    "ModerationConfig",
    "OBSConfig",
    "OverlayConfig",
    "SystemConfig",
    "TwitchConfig",
    "WatchdogConfig",
    "read_config",
    "read_yaml",
    "validate_config",
]
