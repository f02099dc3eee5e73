"""
Logging configuration module.

Console output goes to stdout, which cron mails or captures, so level colors
are only applied when stdout is a terminal. An optional log file always
records DEBUG, including the engine events routed through
``autoaclsync.events``.
"""

import logging
import sys
from pathlib import Path

TIMESTAMP = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
VERBOSE_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
FILE_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s"

# Third-party loggers that are only interesting when something breaks
QUIET_LOGGERS = ("openpyxl",)


class LevelColorFormatter(logging.Formatter):
    """Formatter that colors the level name (and dims the logger name)."""

    RESET = "\033[0m"
    DIM = "\033[2m"

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m\033[37m",
        logging.INFO: "\033[36m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[1m\033[37m\033[41m",
    }

    def __init__(self, fmt: str, datefmt: str | None = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        # The record is shared with the file handler, so put it back as found
        levelname, name = record.levelname, record.name
        color = self.LEVEL_COLORS.get(record.levelno, "")
        record.levelname = f"{color}{levelname:8}{self.RESET}"
        record.name = f"{self.DIM}{name}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname, record.name = levelname, name


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Console level. At DEBUG the logger name is shown as well.
        log_file: Optional log file, always written at DEBUG.
    """
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(
        LevelColorFormatter(
            VERBOSE_FORMAT if level <= logging.DEBUG else CONSOLE_FORMAT,
            datefmt=TIMESTAMP,
            use_colors=sys.stdout.isatty(),
        )
    )
    handlers: list[logging.Handler] = [console]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=TIMESTAMP))
        handlers.append(file_handler)

    # Root passes everything, the handlers filter
    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Console log level %s%s", logging.getLevelName(level), f", log file {log_file}" if log_file else "")
