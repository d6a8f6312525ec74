"""
File naming and directory helpers for environment stores.

Layout:
    <home>/<home_dir_name>/<name>.json    one file per environment
    <home>/<home_dir_name>/env-order      ordering metadata
"""

import os
import re
import stat
from pathlib import Path
from typing import Callable

from .errors import ConfigDirUnavailable, InvalidName

ENV_FILE_SUFFIX = ".json"
ORDER_FILENAME = "env-order"
DEFAULT_HOME_DIR_NAME = ".envstore"

MAX_NAME_LENGTH = 200

# Path separators and control characters would escape or corrupt the store directory
_NAME_BLOCKED_RE = re.compile(r"[/\\\x00-\x1f\x7f]")


def validate_name(name: str) -> None:
    """Validate an environment name: length and no characters that break the file mapping."""
    if not name or len(name) > MAX_NAME_LENGTH:
        raise InvalidName(f"environment name must be 1-{MAX_NAME_LENGTH} characters")
    if name in (".", ".."):
        raise InvalidName(f"environment name is reserved: {name!r}")
    if _NAME_BLOCKED_RE.search(name):
        raise InvalidName(f"environment name contains invalid characters: {name!r}")
    # "x.json" would share a record file with "x"
    if name.endswith(ENV_FILE_SUFFIX):
        raise InvalidName(f"environment name must not end in {ENV_FILE_SUFFIX!r}: {name!r}")


def env_file_name(name: str) -> str:
    """Record file name for ``name``; already suffixed names are returned unchanged."""
    if name.endswith(ENV_FILE_SUFFIX):
        return name
    return name + ENV_FILE_SUFFIX


def env_name(file_name: str) -> str:
    """Bare environment name for a record file name."""
    if file_name.endswith(ENV_FILE_SUFFIX):
        return file_name[: -len(ENV_FILE_SUFFIX)]
    return file_name


def is_env_file_name(file_name: str) -> bool:
    return file_name.endswith(ENV_FILE_SUFFIX) and file_name != ORDER_FILENAME


def resolve_store_dir(home_dir_name: str, home: Callable[[], Path] = Path.home) -> Path:
    """
    Resolve the store directory for ``home_dir_name``.

    Raises:
        ConfigDirUnavailable: If the home directory cannot be determined
    """
    try:
        root = home()
    except (KeyError, OSError, RuntimeError) as e:
        raise ConfigDirUnavailable(f"cannot determine home directory: {e}") from e
    if not root:
        raise ConfigDirUnavailable("cannot determine home directory")
    return Path(root) / home_dir_name


def default_home_dir_name() -> str:
    """Store directory name, honoring ENVSTORE_HOME_DIR."""
    return os.environ.get("ENVSTORE_HOME_DIR") or DEFAULT_HOME_DIR_NAME


def is_file(path: Path) -> bool:
    """
    True if ``path`` exists and is not a directory.

    A missing path is False; any other stat failure propagates.
    """
    try:
        st = path.stat()
    except (FileNotFoundError, NotADirectoryError):
        return False
    return not stat.S_ISDIR(st.st_mode)
