import logging
import pathlib
import typing
from logging.handlers import RotatingFileHandler

import pytest

from ..logging_utils import config_logging


@pytest.fixture
def root_logger() -> typing.Iterator[logging.Logger]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_config_logging__console_only(root_logger: logging.Logger) -> None:
    config_logging()
    assert root_logger.level == logging.INFO
    assert len(root_logger.handlers) == 1


def test_config_logging__log_file(root_logger: logging.Logger, tmp_path: pathlib.Path) -> None:
    log_file = tmp_path / 'yabs.log'
    config_logging(verbose=True, log_file=log_file)

    assert root_logger.level == logging.DEBUG
    file_handler, = [h for h in root_logger.handlers if isinstance(h, RotatingFileHandler)]

    logging.getLogger('yabs.test').debug('Skipping main.js (up to date)')
    file_handler.flush()

    content = log_file.read_text()
    assert 'DEBUG' in content
    assert 'Skipping main.js (up to date)' in content
    assert '\x1b[' not in content
