import logging
import os
import sys
from typing import Optional, Union

from tinyknn.constants import DEFAULT_LOG_FORMAT

PACKAGE_LOGGER_NAME = "tinyknn"

def setup_logger(
    name: str,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None
) -> logging.Logger:
    if log_format is None:
        log_format = DEFAULT_LOG_FORMAT
    if isinstance(level, str):
        level = level.upper()
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(console_handler)
    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(log_format))
        logger.addHandler(file_handler)
    return logger

def configure_logging(config=None) -> None:
    """Re-apply the ``logging`` config section to every tinyknn logger."""
    if config is None:
        from tinyknn.utils.config import get_config
        config = get_config()
    section = config.get("logging", default={})
    names = [
        name for name in list(logging.root.manager.loggerDict)
        if name == PACKAGE_LOGGER_NAME or name.startswith(PACKAGE_LOGGER_NAME + ".")
    ]
    for name in names:
        setup_logger(
            name,
            level=section.get("level", logging.INFO),
            log_file=section.get("log_file"),
            log_format=section.get("format")
        )
