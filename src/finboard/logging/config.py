"""Logging setup for the Finboard CLI, API server and refresh job.

Console output goes to stderr so command output on stdout stays clean. File
output is opt-in through the ``logging`` settings section.
"""

import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

from finboard.config import LoggingConfig as LoggingSettings

_QUIET_LOGGERS = {
    "urllib3": logging.WARNING,
    "plaid": logging.INFO,
    "uvicorn.access": logging.WARNING,
}


@dataclass
class LoggingConfig:
    """Resolved handler options for ``setup_logging``.

    The defaults match the ``logging`` settings section, so a process that
    could not load its settings still logs to stderr at INFO.
    """

    level: str = "INFO"
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    cli_format_string: str = "%(message)s"
    log_to_file: bool = False
    log_file_path: Path = Path("logs/finboard.log")
    max_file_size_mb: int = 50
    backup_count: int = 5
    force_reconfigure: bool = False

    @classmethod
    def from_settings(cls, settings: LoggingSettings) -> "LoggingConfig":
        """Build handler options from the ``logging`` section of FinboardSettings."""
        return cls(
            level=settings.level,
            log_to_file=settings.log_to_file,
            log_file_path=settings.log_file_path,
            max_file_size_mb=settings.max_file_size_mb,
            backup_count=settings.backup_count,
        )


def _console_handler(config: LoggingConfig, cli_mode: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    fmt = config.cli_format_string if cli_mode else config.format_string
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _file_handler(config: LoggingConfig) -> logging.Handler:
    config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        config.log_file_path,
        maxBytes=config.max_file_size_mb * 1024 * 1024,
        backupCount=config.backup_count,
    )
    handler.setFormatter(logging.Formatter(config.format_string))
    return handler


def setup_logging(
    config: LoggingConfig | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
) -> None:
    """Configure the root logger once per process.

    Args:
        config: Handler options. Defaults to ``LoggingConfig()``.
        cli_mode: Print bare messages on the console instead of full records
        verbose: Log at DEBUG regardless of the configured level
    """
    config = config or LoggingConfig()
    level = logging.DEBUG if verbose else getattr(logging, config.level)

    handlers = [_console_handler(config, cli_mode)]
    if config.log_to_file:
        handlers.append(_file_handler(config))

    logging.basicConfig(level=level, handlers=handlers, force=config.force_reconfigure)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
