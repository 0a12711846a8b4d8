import logging
import logging.handlers
from pathlib import Path

import pytest

from stocklab.models.config import LoggingConfig
from stocklab.utils.logging_config import ColoredFormatter, setup_logging, setup_logging_from_config


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.handlers.RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_setup_logging_with_rotating_file(tmp_path: Path, restore_root_logger):
    log_file = tmp_path / "logs" / "stocklab.log"

    root = setup_logging(level="debug", log_file=str(log_file), colored=True)
    logging.getLogger("stocklab.test").debug("hello file")
    for handler in root.handlers:
        handler.flush()

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 2
    assert isinstance(root.handlers[0].formatter, ColoredFormatter)
    file_handler = root.handlers[1]
    assert isinstance(file_handler, logging.handlers.RotatingFileHandler)
    assert not isinstance(file_handler.formatter, ColoredFormatter)
    assert "hello file" in log_file.read_text(encoding="utf-8")


def test_setup_logging_from_config(restore_root_logger):
    root = setup_logging_from_config(LoggingConfig(level="warning"))

    assert root.level == logging.WARNING
    assert len(root.handlers) == 1


def test_colored_formatter_wraps_message():
    formatter = ColoredFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("x", logging.ERROR, __file__, 1, "boom", None, None)

    text = formatter.format(record)

    assert text.startswith(ColoredFormatter.COLORS["ERROR"])
    assert text.endswith(ColoredFormatter.COLORS["RESET"])
    assert "ERROR boom" in text


def test_logging_config_rejects_unknown_level():
    with pytest.raises(ValueError, match="Log level must be one of"):
        LoggingConfig(level="verbose")


def test_logger_levels_override_named_loggers(restore_root_logger):
    name = "stocklab.test.quiet"
    config = LoggingConfig(level="debug", logger_levels={name: "warning"})

    try:
        root = setup_logging_from_config(config)

        assert root.level == logging.DEBUG
        assert logging.getLogger(name).level == logging.WARNING
    finally:
        logging.getLogger(name).setLevel(logging.NOTSET)


def test_level_argument_overrides_config(restore_root_logger):
    root = setup_logging_from_config(LoggingConfig(level="error"), level="DEBUG")

    assert root.level == logging.DEBUG


def test_logging_config_rejects_unknown_logger_level():
    with pytest.raises(ValueError, match="Log level for stocklab must be one of"):
        LoggingConfig(logger_levels={"stocklab": "loud"})
