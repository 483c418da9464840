# config_manager/twitch.py
from pydantic import BaseModel, Field, model_validator


class TwitchConfig(BaseModel):
    """Configuration for the Twitch IRC connection."""

    server: str = Field("irc.chat.twitch.tv", alias="server")
    port: int = Field(6667, alias="port")
    nick: str = Field("", alias="nick")
    # OAuth token from https://twitchapps.com/tmi
    password: str = Field("", alias="password")
    channel: str = Field("", alias="channel")
    keepalive_interval: float = Field(480.0, alias="keepalive_interval", gt=0)
    keepalive_timeout: float = Field(300.0, alias="keepalive_timeout", gt=0)
    max_retries: int = Field(10, alias="max_retries", ge=1)
    retry_interval: int = Field(60, alias="retry_interval", ge=0)

    @model_validator(mode="after")
    def check_port(self):
        if self.port < 0 or self.port > 65535:
            raise ValueError("Port must be between 0 and 65535")
        return self
