"""
Logging setup for ReportCite.

Modules log through logging.getLogger(__name__); setup_logging() attaches a
colored stderr handler (and optionally a plain file handler) to the root
logger once, at application start.
"""

import datetime
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

import termcolor

__appname__ = "reportcite"

if os.name == "nt":  # Windows
    import colorama

    colorama.init()


COLORS = {
    "WARNING": "yellow",
    "INFO": "white",
    "DEBUG": "blue",
    "CRITICAL": "red",
    "ERROR": "red",
}

CONSOLE_FORMAT = (
    "%(asctime2)s [%(levelname2)s] %(module2)s:%(funcName2)s:%(lineno2)s"
    " - %(message2)s"
)
FILE_FORMAT = (
    "%(asctime)s [%(levelname)s] %(module)s:%(funcName)s:%(lineno)d - %(message)s"
)


class ColoredFormatter(logging.Formatter):
    def __init__(self, fmt, use_color=True):
        logging.Formatter.__init__(self, fmt)
        self.use_color = use_color

    def format(self, record):
        levelname = record.levelname
        message = record.getMessage()
        asctime = datetime.datetime.fromtimestamp(record.created)
        if self.use_color and levelname in COLORS:

            def colored(text):
                return termcolor.colored(
                    text,
                    color=COLORS[levelname],
                    attrs=["bold"],
                )

            record.levelname2 = colored("{:<7}".format(levelname))
            record.message2 = colored(message)
            record.asctime2 = termcolor.colored(str(asctime), color="green")
            record.module2 = termcolor.colored(record.module, color="cyan")
            record.funcName2 = termcolor.colored(record.funcName, color="cyan")
            record.lineno2 = termcolor.colored(str(record.lineno), color="cyan")
        else:
            record.levelname2 = "{:<7}".format(levelname)
            record.message2 = message
            record.asctime2 = str(asctime)
            record.module2 = record.module
            record.funcName2 = record.funcName
            record.lineno2 = str(record.lineno)
        return logging.Formatter.format(self, record)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    use_color: Optional[bool] = None,
) -> logging.Logger:
    """Configure the root logger; safe to call more than once."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError("Unknown log level")
    if use_color is None:
        use_color = sys.stderr.isatty()

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        if getattr(handler, "_reportcite", False):
            root.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, use_color=use_color))
    stream_handler._reportcite = True
    root.addHandler(stream_handler)

    if log_file is not None:
        log_path = Path(log_file).expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler._reportcite = True
        root.addHandler(file_handler)

    return logging.getLogger(__appname__)
