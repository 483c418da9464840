# config_manager/system.py
from pydantic import BaseModel, Field, field_validator


class SystemConfig(BaseModel):
    """System configuration settings."""

    conf_version: str = Field("v1.0.0", alias="conf_version")
    log_level: str = Field("INFO", alias="log_level")

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level


class ConsoleConfig(BaseModel):
    """Console output of accepted chat commands."""

    print_to_console: bool = Field(True, alias="print_to_console")
    # Maximum characters to show for a person's name
    max_char_name: int = Field(8, alias="max_char_name", ge=1)
    # Maximum characters to show for a command, e.g. democracy => democra
    max_char_command: int = Field(10, alias="max_char_command", ge=1)
