"""Centralized logging configuration for Cadence.

Every module gets its logger through ``cadence.logger.get_logger``; this module
decides the levels and attaches one shared console handler.
"""

import logging
import sys
from typing import Optional

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "cadence": logging.INFO,
    "cadence.engine": logging.INFO,  # Set to DEBUG to see every rejected sample
    "cadence.detection": logging.INFO,
    "cadence.core": logging.INFO,
    "cadence.audio": logging.INFO,
    "cadence.services": logging.INFO,
    "cadence.cli": logging.INFO,
    # Libraries/third-party
    "aubio": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'cadence' log levels with this level (e.g., "DEBUG").
    """
    global _console_handler

    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        _console_handler.setFormatter(formatter)

    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("cadence"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)

        # Child loggers ("cadence.detection.smoother") propagate up to the
        # configured package loggers, so only those carry the handler.
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        if module_name in ("cadence", ""):
            logger.addHandler(_console_handler)
            logger.propagate = False

    logging.getLogger("cadence").info("Logging configuration complete")
