"""Logging configuration for workmux"""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE = Path(".workmux") / "workmux.log"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Configure logging for the application.

    Log records go to stderr so they never mix with `workmux path` output.

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages with timestamps and
            mirror everything into ~/.workmux/workmux.log
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = RichHandler(
        console=Console(stderr=True),
        level=level,
        show_time=debug,
        show_path=False,
        markup=False,
    )
    console_handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    root_logger.addHandler(console_handler)

    if debug:
        log_file = Path.home() / LOG_FILE
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w")  # Overwrite each run
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, named without the package prefix (e.g. "workflow.create")."""
    for prefix in ("workmux.", "services."):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return logging.getLogger(name)
