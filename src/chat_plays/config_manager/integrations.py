# config_manager/integrations.py
from typing import Optional

from pydantic import BaseModel, Field


class OBSConfig(BaseModel):
    """OBS WebSocket connection used to observe and stop the stream."""

    enabled: bool = Field(False, alias="enabled")
    host: str = Field("localhost", alias="host")
    port: int = Field(4455, alias="port")
    password: str = Field("", alias="password")
    max_retries: int = Field(3, alias="max_retries", ge=1)
    retry_interval: float = Field(2.0, alias="retry_interval", ge=0)


class OverlayConfig(BaseModel):
    """WebSocket endpoint broadcasting events to stream overlays."""

    enabled: bool = Field(False, alias="enabled")
    host: str = Field("localhost", alias="host")
    port: int = Field(3456, alias="port")


class WatchdogConfig(BaseModel):
    """Liveness probe of the driven program."""

    # Empty disables the watchdog
    probe_command: str = Field("", alias="probe_command")
    relaunch_command: Optional[str] = Field(None, alias="relaunch_command")
    interval: float = Field(5.0, alias="interval", gt=0)
    timeout: float = Field(30.0, alias="timeout", gt=0)
