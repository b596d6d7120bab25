"""
Configuration and logging setup.

Library code takes its settings as explicit arguments; only the driver
reads the environment, through `BinderyConfig.from_env`.
"""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_DELIMITER = "."
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class BinderyConfig:
    delimiter: str = DEFAULT_DELIMITER
    log_level: int = logging.WARNING
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'BinderyConfig':
        """Reads BINDERY_DELIMITER, BINDERY_LOG_LEVEL, BINDERY_DEBUG and BINDERY_LOG_FILE."""
        env = os.environ if environ is None else environ
        delimiter = env.get("BINDERY_DELIMITER") or DEFAULT_DELIMITER
        level_name = (env.get("BINDERY_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level in BINDERY_LOG_LEVEL: {level_name!r}")
        if env.get("BINDERY_DEBUG"):
            level = logging.DEBUG
        return cls(delimiter=delimiter, log_level=level, log_file=env.get("BINDERY_LOG_FILE") or None)


def setup_logging(level: int = logging.WARNING, log_file: Optional[str] = None) -> None:
    """
    Configures the logger for the 'bindery' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
    """
    logger = logging.getLogger("bindery")
    logger.setLevel(level)

    # Avoid duplicate handlers when called more than once
    if logger.handlers:
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized.")
