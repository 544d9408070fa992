"""Logging configuration for git-bisect-ci."""

import logging
import sys
from typing import Optional, TextIO

LOGGER_NAME = "git-bisect-ci"


class Colors:
    """ANSI color codes for log output.

    ``Colors.init(stream)`` disables them when the stream is not a terminal.
    """

    _COLOR_ATTRS = ("RESET", "DIM", "RED", "YELLOW", "CYAN", "WHITE", "BG_RED")

    RESET = "\033[0m"
    DIM = "\033[2m"

    RED = "\033[31m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BG_RED = "\033[41m"

    @classmethod
    def disable(cls):
        """Disable colors (set all codes to empty strings)."""
        for attr in cls._COLOR_ATTRS:
            setattr(cls, attr, "")

    @classmethod
    def init(cls, stream: Optional[TextIO] = None):
        """Disable colors unless ``stream`` (default stderr) is a TTY."""
        stream = stream or sys.stderr
        if not (hasattr(stream, "isatty") and stream.isatty()):
            cls.disable()


class ColoredFormatter(logging.Formatter):
    """Formatter that colors each record according to its level."""

    def level_color(self, levelno: int) -> str:
        return {
            logging.DEBUG: Colors.DIM,
            logging.INFO: Colors.CYAN,
            logging.WARNING: Colors.YELLOW,
            logging.ERROR: Colors.RED,
            logging.CRITICAL: Colors.BG_RED + Colors.WHITE,
        }.get(levelno, Colors.RESET)

    def format(self, record):
        text = super().format(record)
        color = self.level_color(record.levelno)
        if not color:
            return text
        return f"{color}{text}{Colors.RESET}"


def setup_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """Set up logging with optional verbose mode.

    Results are printed on stdout, so log records go to stderr.

    Args:
        verbose: If True, show DEBUG level messages with level prefix.
                 If False, show INFO+ messages without prefix.
        stream: Stream to log to (default: stderr).

    Returns:
        Configured logger instance.
    """
    stream = stream or sys.stderr
    logger = logging.getLogger(LOGGER_NAME)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()
    logger.propagate = False

    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    fmt = "%(levelname)s %(message)s" if verbose else "%(message)s"
    handler.setFormatter(ColoredFormatter(fmt))

    logger.addHandler(handler)
    return logger
