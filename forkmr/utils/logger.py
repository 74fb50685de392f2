import logging
from typing import Optional

from forkmr.utils.config import get_settings

ROOT_LOGGER = "forkmr"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(get_settings().log_level.upper())
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Retrieve a logger for the specified module.

    Module loggers live under the 'forkmr' package logger, which owns the
    single StreamHandler (timestamped format) and the configured level.

    Args:
        name (Optional[str]): Name of the logger (usually the module name).

    Returns:
        logging.Logger: Logger instance.
    """
    root = _configure_root()
    if not name or name == ROOT_LOGGER:
        return root
    return logging.getLogger(name)


def setup_logger(level: Optional[str] = None) -> logging.Logger:
    """
    Initialize the package logger, optionally overriding its level.

    Typically called once at CLI start-up.

    Returns:
        logging.Logger: Package logger.
    """
    logger = _configure_root()
    if level:
        logger.setLevel(level.upper())
    logger.debug("forkmr logger initialized")
    return logger
