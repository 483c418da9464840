# config_manager/main.py
from typing import Dict

from pydantic import BaseModel, Field, model_validator

from .channels import ActionConfig, ChannelTypeConfig
from .commands import CommandConfig, ModerationConfig
from .integrations import OBSConfig, OverlayConfig, WatchdogConfig
from .system import ConsoleConfig, SystemConfig
from .twitch import TwitchConfig


class Config(BaseModel):
    """
    Main configuration for the application.
    """

    system_config: SystemConfig = Field(default_factory=SystemConfig, alias="system_config")
    twitch_config: TwitchConfig = Field(default_factory=TwitchConfig, alias="twitch_config")
    console_config: ConsoleConfig = Field(default_factory=ConsoleConfig, alias="console_config")
    command_config: CommandConfig = Field(default_factory=CommandConfig, alias="command_config")
    moderation_config: ModerationConfig = Field(
        default_factory=ModerationConfig, alias="moderation_config"
    )
    obs_config: OBSConfig = Field(default_factory=OBSConfig, alias="obs_config")
    overlay_config: OverlayConfig = Field(default_factory=OverlayConfig, alias="overlay_config")
    watchdog_config: WatchdogConfig = Field(default_factory=WatchdogConfig, alias="watchdog_config")
    channel_types: Dict[str, ChannelTypeConfig] = Field(
        default_factory=dict, alias="channel_types"
    )
    actions: Dict[str, ActionConfig] = Field(default_factory=dict, alias="actions")

    @model_validator(mode="after")
    def check_action_types(self):
        for command_id, action in self.actions.items():
            if action.type not in self.channel_types:
                raise ValueError(
                    f"Action '{command_id}' uses unknown channel type '{action.type}'"
                )
        for name, channel in self.channel_types.items():
            if channel.start_action and channel.start_action not in self.actions:
                raise ValueError(
                    f"start_action '{channel.start_action}' of '{name}' is not a known action"
                )
        return self
