# config_manager/utils.py
import os
import re
from typing import Any, Dict

import chardet
import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from .main import Config


def read_yaml(config_path: str) -> Dict[str, Any]:
    """
    Read the specified YAML configuration file with environment variable substitution
    and guess encoding. Return the configuration data as a dictionary.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Configuration data as a dictionary.

    Raises:
        FileNotFoundError: If the configuration file is not found.
        IOError: If the configuration file cannot be read.
    """

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    content = load_text_file_with_guess_encoding(config_path)
    if not content:
        raise IOError(f"Failed to read configuration file: {config_path}")

    # Replace environment variables
    pattern = re.compile(r"\$\{(\w+)\}")

    def replacer(match):
        env_var = match.group(1)
        return os.getenv(env_var, match.group(0))

    content = pattern.sub(replacer, content)

    try:
        return yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.critical(f"Error parsing YAML file: {e}")
        raise e


def _format_validation_error(error: ValidationError) -> str:
    """
    Format a pydantic ValidationError as one line per failing field.

    Args:
        error: Pydantic ValidationError

    Returns:
        Formatted error message
    """
    error_messages = []

    for err in error.errors():
        location = " -> ".join(str(loc) for loc in err["loc"])
        error_type = err["type"]
        msg = err["msg"]
        input_value = err.get("input", "N/A")

        if error_type == "missing":
            error_messages.append(
                f"  - '{location}': required field is missing. "
                f"Add it to conf.yaml."
            )
        elif error_type in ("string_type", "int_type", "bool_type", "float_type"):
            error_messages.append(
                f"  - '{location}': {msg}. Current value: {input_value}"
            )
        elif error_type == "value_error":
            error_messages.append(f"  - '{location}': {msg}")
        else:
            error_messages.append(f"  - '{location}': {msg} (type: {error_type})")

    return "\n".join(error_messages)


def validate_config(config_data: dict) -> Config:
    """
    Validate configuration data against the Config model.

    Args:
        config_data: Configuration dictionary

    Returns:
        Validated Config object

    Raises:
        ValidationError: If validation fails
    """
    try:
        return Config(**config_data)
    except ValidationError as e:
        formatted_errors = _format_validation_error(e)

        logger.critical(
            "\n"
            + "=" * 60
            + "\nConfiguration Validation Error\n"
            + "=" * 60
            + f"\n\nErrors found:\n{formatted_errors}\n"
            + "\nHow to fix:\n"
            + "  1. Open conf.yaml and correct the fields above.\n"
            + "  2. Compare with conf.default.yaml.\n"
            + "=" * 60
        )

        logger.debug(f"Original validation error: {e}")
        logger.debug(f"Configuration data keys: {list(config_data.keys())}")

        raise e


def read_config(config_path: str = "conf.yaml") -> Config:
    """Load ``.env``, read the YAML file and validate it."""
    load_dotenv()
    return validate_config(read_yaml(config_path))


def load_text_file_with_guess_encoding(file_path: str) -> str | None:
    """
    Load a text file with guessed encoding.

    Parameters:
    - file_path (str): The path to the text file.

    Returns:
    - str: The content of the text file or None if an error occurred.
    """
    encodings = ["utf-8", "utf-8-sig", "gbk", "gb2312", "ascii", "cp936"]

    for encoding in encodings:
        try:
            with open(file_path, "r", encoding=encoding) as file:
                return file.read()
        except UnicodeDecodeError:
            continue
    # If common encodings fail, try chardet to guess the encoding
    try:
        with open(file_path, "rb") as file:
            raw_data = file.read()
        detected = chardet.detect(raw_data)
        if detected["encoding"]:
            return raw_data.decode(detected["encoding"])
    except Exception as e:
        logger.error(f"Error detecting encoding for config file {file_path}: {e}")
    return None
