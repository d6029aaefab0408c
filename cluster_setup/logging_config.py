"""Logging configuration for cluster setup."""

import logging
import sys
from pathlib import Path

from cluster_setup.exceptions import ConfigurationError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Third-party loggers held at WARNING unless verbose.
# ansible-runner logs every playbook event at INFO.
QUIET_LOGGERS = ("ansible_runner", "urllib3")


def parse_level(level: str) -> int:
    """Map a level name to its logging constant.

    Raises:
        ConfigurationError: If the name is not a standard level
    """
    name = str(level).strip().upper()
    if name not in LOG_LEVELS:
        raise ConfigurationError(
            f"Unknown log level '{level}'", f"Use one of: {', '.join(LOG_LEVELS)}"
        )
    return getattr(logging, name)


def setup_logging(level: str = "INFO", log_file: Path | None = None, verbose: bool = False) -> None:
    """Configure the root logger for a cluster-setup run.

    The console only shows warnings and errors, since step results are
    printed by the CLI itself. ``--verbose`` lowers both the console and the
    third-party loggers to DEBUG. The log file, when given, records
    everything at ``level`` or above.

    Args:
        level: Level name for the root logger and the log file
        log_file: Optional path to log file
        verbose: If True, log DEBUG everywhere

    Raises:
        ConfigurationError: If ``level`` is not a standard level name
    """
    root_level = logging.DEBUG if verbose else parse_level(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else max(root_level, logging.WARNING))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(root_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            logging.warning(f"Cannot write log file {log_file}: {e}")

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger, e.g. ``get_logger(__name__)``."""
    return logging.getLogger(name)
