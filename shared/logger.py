"""Logging setup shared by all tools."""

import logging

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_FORMAT = "%(message)s"
DATE_FORMAT = "[%X]"


def setup_logger(name: str, level: str = "INFO") -> logging.Logger:
    """
    Configure logging for a tool entry point.

    The rich handler is attached to the root logger once, so every module
    logger obtained through get_logger() shares it. Log records go to
    stderr and leave stdout to command output.

    Args:
        name: Logger name (usually __name__ of the calling CLI module)
        level: Log level name (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)

    # boto3 is chatty at DEBUG
    for noisy in ("boto3", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""
    return logging.getLogger(name)
