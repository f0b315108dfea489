"""Set up logging with rich formatting."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logger(name: str = "frontline", *, level: int | str = logging.WARNING) -> logging.Logger:
    """Attach a rich handler writing to stderr to the package logger."""
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    logger = logging.getLogger(name)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    # Clear existing handlers to prevent duplication
    logger.handlers.clear()
    logger.addHandler(handler)
    return logger
