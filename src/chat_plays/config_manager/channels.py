# config_manager/channels.py
from typing import Optional

from pydantic import BaseModel, Field


class ChannelTypeConfig(BaseModel):
    """Options of one independently scheduled command stream."""

    # Floor in ms between successive action starts
    min_delay: Optional[int] = Field(None, alias="min_delay", ge=0)
    # Action id to run once before the loop starts
    start_action: Optional[str] = Field(None, alias="start_action")
    # Delay in ms between repetitions of a counted action (e.g. "left 3")
    repeat_delay: int = Field(0, alias="repeat_delay", ge=0)


class ActionConfig(BaseModel):
    """Catalog entry for a command id."""

    type: str = Field(..., alias="type")
    description: str = Field("", alias="description")
    group: str = Field("", alias="group")
    # Shell command template, e.g. "xdotool key F{3}"
    command: str = Field("", alias="command")
    # Index of the captured param holding the repeat count
    count_group: Optional[int] = Field(None, alias="count_group", ge=0)
    continuous: bool = Field(False, alias="continuous")
    can_be_global_continuous: bool = Field(True, alias="can_be_global_continuous")
