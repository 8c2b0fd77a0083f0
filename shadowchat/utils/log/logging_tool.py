import logging
from functools import partial
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler
from rich.style import Style
from rich.theme import Theme

from .common import LogType

for _log_type in LogType:
    logging.addLevelName(_log_type.value, _log_type.name)

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

RELAY_THEME = Theme(
    {
        "logging.level.success": Style(color="green", bold=True),
        "logging.level.system": Style(color="bright_blue"),
        "logging.level.failure": Style(color="red", bold=True),
        "success": Style(color="green", bold=True),
        "system": Style(color="bright_blue"),
        "failure": Style(color="red", bold=True),
    }
)


class RichLoggerConfig:
    """Process-wide logging setup: a rich console handler and an optional file.

    There is one instance per process; ``configure`` may be called again to
    change the level or the file.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._ready = False
        return cls._instance

    def __init__(self):
        if self._ready:
            return
        self._ready = True
        self.console = Console(theme=RELAY_THEME)
        self.level = logging.INFO
        self.log_file: Optional[str] = None
        self.configure()

    def configure(
        self,
        level: Union[str, int] = "INFO",
        log_file: Optional[str] = None,
        enable_file: bool = False,
    ) -> None:
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO
        self.level = level
        self.log_file = log_file if enable_file else None

        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        root.setLevel(level)

        console_handler = RichHandler(
            console=self.console,
            show_time=False,
            rich_tracebacks=True,
            markup=True,
        )
        console_handler.setLevel(level)
        root.addHandler(console_handler)

        if self.log_file:
            Path(self.log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_file, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            root.addHandler(file_handler)


rich_logger = RichLoggerConfig()


def configure(
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
    enable_file: bool = False,
) -> None:
    """(Re)configure relay logging."""
    rich_logger.configure(level=level, log_file=log_file, enable_file=enable_file)


def _log_styled(logger: logging.Logger, log_type: LogType, message, *args, **kwargs):
    if logger.isEnabledFor(log_type.value):
        tag = log_type.label
        logger._log(log_type.value, f"[{tag}]{message}[/{tag}]", args, **kwargs)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """A standard logger with ``success``, ``failure`` and ``system`` methods."""
    logger = logging.getLogger(name)
    for log_type in LogType:
        setattr(logger, log_type.label, partial(_log_styled, logger, log_type))
    return logger
