"""
Error types and error logging for envstore.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class EnvStoreError(Exception):
    """Base class for all envstore errors."""


class NotFound(EnvStoreError, LookupError):
    """The requested environment has no record file."""

    def __init__(self, name: str):
        super().__init__(f"environment {name!r} not found")
        self.name = name


class EmptyStore(EnvStoreError):
    """Selection was requested but the store holds no environments."""

    def __init__(self):
        super().__init__("no environments specified")


class CaptureFailed(EnvStoreError):
    """The capture handler could not produce a new environment."""

    def __init__(self, name: str, cause: BaseException):
        super().__init__(f"failed to enter environment {name!r}: {cause}")
        self.name = name


class DecodeFailed(EnvStoreError):
    """A record file could not be decrypted or deserialized."""


class SelectionFailed(EnvStoreError):
    """The selection presenter was cancelled or returned no usable choice."""


class ConfigDirUnavailable(EnvStoreError):
    """The current user's home directory could not be resolved."""


class InvalidName(EnvStoreError, ValueError):
    """An environment name cannot be mapped to a record file."""


class PersistenceWarning(UserWarning):
    """A captured environment could not be saved; it is only held in memory."""

    def __init__(self, name: str, cause: BaseException):
        super().__init__(f"failed to save environment {name!r}: {cause}")
        self.name = name
        self.cause = cause


ERROR_LOG_FILENAME = "envstore-errors.log"
ERROR_LOG_MODE = 0o600


def _error_log_path(store_path: Optional[Path] = None) -> Path:
    """Error log next to the store; without one, in the store named by ENVSTORE_HOME_DIR."""
    if store_path is not None:
        return Path(store_path) / ERROR_LOG_FILENAME
    home_dir = os.environ.get("ENVSTORE_HOME_DIR", ".envstore")
    return Path.home() / home_dir / ERROR_LOG_FILENAME


def format_error_entry(exc: BaseException, context: str = "") -> str:
    """One error log entry: a timestamped headline, then the full traceback."""
    timestamp = datetime.now(timezone.utc).isoformat()
    headline = f"{type(exc).__name__}: {exc}"
    if context:
        headline = f"{context}: {headline}"
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return f"\n{'=' * 60}\n[{timestamp}] {headline}\n{trace}"


def log_exception(exc: Exception, context: str = "", store_path: Optional[Path] = None) -> Path:
    """
    Append ``exc`` with its traceback (and chained causes) to the error log.

    The log holds record names and paths, so it is created owner-only. If it
    cannot be written, the failure is ignored; the caller still reports the
    error on the terminal.

    Args:
        exc: The exception that occurred
        context: Command or operation, e.g. "envstore show"
        store_path: Store directory; defaults to the one named by ENVSTORE_HOME_DIR

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path(store_path)
    entry = format_error_entry(exc, context)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, ERROR_LOG_MODE)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.write(entry)
    except OSError:
        pass
    return log_path
