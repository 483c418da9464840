# config_manager/commands.py
from typing import Dict, List

from pydantic import BaseModel, Field


class CommandConfig(BaseModel):
    """Filtering and throttling of classified commands."""

    # Commands that never reach the program, e.g. ["democracy", "anarchy"]
    filtered_commands: List[str] = Field([], alias="filtered_commands")
    # Minimum ms between accepted votes of a command, e.g. {"esc": 30000}
    throttled_commands: Dict[str, int] = Field({}, alias="throttled_commands")


class ModerationConfig(BaseModel):
    """Sender block/allow lists."""

    blacklist_path: str = Field("data/blacklist.json", alias="blacklist_path")
    whitelist_path: str = Field("data/whitelist.json", alias="whitelist_path")
    # Users with administrator standing; the channel owner always has it
    admins: List[str] = Field([], alias="admins")
