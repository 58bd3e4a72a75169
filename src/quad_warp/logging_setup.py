"""Route loguru output according to the logging section of the config."""

from __future__ import annotations

import sys

from loguru import logger

from quad_warp.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> int:
    """Replace loguru's default sink with the configured one and return its handler id."""
    logger.remove()
    target = config.output.strip()
    if target.lower() == "stdout":
        sink = sys.stdout
    elif target.lower() == "stderr":
        sink = sys.stderr
    else:
        sink = target
    handler_id = logger.add(sink, level=config.level)
    logger.debug(f"Logging configured at {config.level} to {target}")
    return handler_id
