import argparse
import asyncio
import os
import sys

from loguru import logger
from pydantic import ValidationError

from chat_plays.config_manager import read_config
from chat_plays.server import ChatPlaysServer


def init_logger(console_log_level: str = "INFO") -> None:
    logger.remove()
    # Console output
    logger.add(
        sys.stderr,
        level=console_log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        colorize=True,
    )

    # File output
    logger.add(
        "logs/debug_{time:YYYY-MM-DD}.log",
        rotation="10 MB",
        retention="30 days",
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
        backtrace=True,
        diagnose=True,
    )


def parse_args():
    parser = argparse.ArgumentParser(description="Chat Plays Server")
    parser.add_argument(
        "--config", default="conf.yaml", help="Path to the configuration file"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser.parse_args()


async def _run(config) -> int:
    server = ChatPlaysServer(config)
    return await server.run()


def run(config_path: str, verbose: bool) -> int:
    config = read_config(config_path)
    init_logger("DEBUG" if verbose else config.system_config.log_level)
    logger.info(f"Loaded configuration from {os.path.abspath(config_path)}")
    logger.info("Connecting...")
    return asyncio.run(_run(config))


def main() -> None:
    args = parse_args()
    init_logger("DEBUG" if args.verbose else "INFO")
    try:
        code = run(args.config, args.verbose)
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
        code = 0
    except (FileNotFoundError, ValidationError) as e:
        logger.error(f"Failed to load configuration: {e}")
        code = 1
    sys.exit(code or 0)


if __name__ == "__main__":
    main()
