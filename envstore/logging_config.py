"""
Logging configuration for envstore.

Quiet by default: only warnings (such as a captured environment that could
not be saved) reach the console. Debug output and the operations log are
scoped to the ``envstore`` logger and never touch other libraries' loggers.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "envstore"
OPS_LOG_FILENAME = "envstore-ops.log"
OPS_LOG_MAX_BYTES = 1_000_000
OPS_LOG_BACKUPS = 3

_DEBUG_HANDLER_NAME = "envstore-debug"


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging for interactive use.

    Only envstore warnings get through; with no handler configured they go
    to stderr through the logging module's last-resort handler.

    Args:
        quiet: If True, suppress info/debug output and Python warnings.
            If False, leave logging untouched.
    """
    if not quiet:
        return
    warnings.filterwarnings("ignore")
    logging.getLogger(LOGGER_NAME).setLevel(logging.WARNING)


def enable_debug_mode() -> logging.Handler:
    """
    Send envstore debug output to stderr.

    Calling it again reuses the handler already installed.
    """
    warnings.filterwarnings("default")

    env_logger = logging.getLogger(LOGGER_NAME)
    env_logger.setLevel(logging.DEBUG)
    for handler in env_logger.handlers:
        if handler.get_name() == _DEBUG_HANDLER_NAME:
            return handler

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_DEBUG_HANDLER_NAME)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    ))
    env_logger.addHandler(handler)
    return handler


def configure_ops_log(store_path) -> RotatingFileHandler:
    """Record saves, deletes and order changes in {store_path}/envstore-ops.log.

    The store directory must already exist. One handler per log file: a
    second call for the same store returns the handler already attached.
    Detach it with remove_ops_log().
    """
    log_path = (Path(store_path) / OPS_LOG_FILENAME).absolute()
    env_logger = logging.getLogger(LOGGER_NAME)
    for handler in env_logger.handlers:
        if isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename) == log_path:
            return handler

    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=OPS_LOG_MAX_BYTES,
        backupCount=OPS_LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    env_logger.addHandler(handler)
    # INFO must reach the file even in quiet mode
    if env_logger.level == logging.NOTSET or env_logger.level > logging.INFO:
        env_logger.setLevel(logging.INFO)
    return handler


def remove_ops_log(handler: logging.Handler) -> None:
    logging.getLogger(LOGGER_NAME).removeHandler(handler)
    handler.close()
