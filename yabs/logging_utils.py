import logging
import pathlib
import sys
from logging.handlers import RotatingFileHandler
import typing

from uvicorn.logging import DefaultFormatter

LOG_FORMAT = "%(levelprefix)s %(message)s"

#: Colours are only used when the console is a terminal.
console_formatter = DefaultFormatter(fmt=LOG_FORMAT, use_colors=None)
file_formatter = DefaultFormatter(
    fmt="[%(asctime)s] [%(process)s] | %(levelprefix)s %(message)s",
    use_colors=False,
)


def config_file_log(log_file: pathlib.Path) -> logging.Handler:
    handler = RotatingFileHandler(
        filename=log_file,
        maxBytes=16777215,
        backupCount=3,
    )
    handler.setFormatter(file_formatter)
    return handler


def config_logging(
    verbose: bool = False,
    log_file: typing.Optional[pathlib.Path] = None,
) -> None:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    handlers: list[logging.Handler] = [console_handler]
    if log_file is not None:
        handlers.append(config_file_log(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=handlers,
        force=True,
    )
