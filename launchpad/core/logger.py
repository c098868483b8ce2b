"""
Structured logging for the launchpad engine

Engine modules log through get_logger(__name__); the simulator CLI calls
setup_logging() once with the LogConfig read from YAML. Reserve and fee
amounts are wei-sized integers, so the JSON renderer writes any integer a
double cannot hold exactly as a decimal string.
"""

import logging
import sys
from typing import List

import structlog
from structlog.typing import EventDict, Processor

from launchpad.core.config import LogConfig


# Largest integer a JSON consumer parsing into IEEE doubles reads back exactly
MAX_SAFE_INTEGER = 2**53 - 1


def stringify_wei(logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render integers beyond MAX_SAFE_INTEGER as strings"""
    for key, value in event_dict.items():
        if isinstance(value, int) and not isinstance(value, bool) and abs(value) > MAX_SAFE_INTEGER:
            event_dict[key] = str(value)
    return event_dict


def setup_logging(config: LogConfig) -> None:
    """
    Route structlog through stdlib logging with the configured renderer

    Args:
        config: Level, "json" or "console" format, optional log file
    """
    numeric_level = getattr(logging, config.level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.output_file:
        handlers.append(logging.FileHandler(config.output_file))

    logging.basicConfig(format="%(message)s", level=numeric_level, handlers=handlers, force=True)

    processors: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    if config.format == "json":
        processors.append(stringify_wei)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
