"""Unified logging for rpinode with console and file output."""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console()

# Log file configuration
LOG_DIR = Path("/var/log/rpinode")
LOG_FILE = LOG_DIR / "rpinode.log"

# Track if file logging has been set up
_file_logging_configured = False


def setup_file_logging(log_file: str = None, verbose: bool = False):
    """Set up file logging for a provisioning run.

    Args:
        log_file: Path to log file (defaults to /var/log/rpinode/rpinode.log)
        verbose: Enable debug-level logging

    Note:
        Creates log directory if it doesn't exist.
        Falls back to /tmp if /var/log/rpinode is not writable.
    """
    global _file_logging_configured

    if _file_logging_configured:
        return

    target_log_file = Path(log_file) if log_file else LOG_FILE

    try:
        target_log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target_log_file)
    except PermissionError:
        # Unprivileged runs (status, tests) cannot write to /var/log
        target_log_file = Path("/tmp/rpinode.log")
        file_handler = logging.FileHandler(target_log_file)

    root_logger = logging.getLogger("rpinode")
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    file_formatter = logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    _file_logging_configured = True

    root_logger.info(f"rpinode logging initialized: {target_log_file}")


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance with console output.

    Every record is rendered with a timestamp, so each provisioning step
    shows up as a timestamped status line.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger with Rich console handler

    Note:
        File logging must be enabled separately via setup_file_logging()
    """
    logger = logging.getLogger(name)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console,
            show_path=False,
            log_time_format="[%Y-%m-%d %H:%M:%S]",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

        # Level is set on the package logger; module loggers inherit it
        package_logger = logging.getLogger("rpinode")
        if package_logger.level == logging.NOTSET:
            package_logger.setLevel(logging.INFO)

    return logger
