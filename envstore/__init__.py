"""
envstore

A local, per-user store of named environments: small configuration or
credential bundles, each kept in its own (optionally encrypted) file.

Quick Start:
    from envstore import EnvironmentStore

    store = EnvironmentStore(".myapp", key_source=lambda: b"passphrase",
                             enter_env=lambda name: {"url": input("URL: ")})
    env = store.create_or_read("prod")   # prompts on first use
    env = store.read("prod")             # NotFound if it was never saved
    name, env = store.select_environment()

CLI Usage:
    envstore list
    envstore show prod --create
    envstore order pin

Default Store:
    ~/.envstore/ (override with ENVSTORE_HOME_DIR or --home-dir).

Environment Variables:
    ENVSTORE_HOME_DIR  - Store directory name below the home directory
    ENVSTORE_KEY       - Passphrase for encrypted environments (configurable)
    ENVSTORE_VERBOSE   - Set to 1 for debug logging
"""

from .codec import JsonCodec
from .errors import (
    CaptureFailed,
    ConfigDirUnavailable,
    DecodeFailed,
    EmptyStore,
    EnvStoreError,
    InvalidName,
    NotFound,
    PersistenceWarning,
    SelectionFailed,
)
from .order import EnvOrder, OrderStore
from .store import EnvironmentStore

__version__ = "0.1.0"
__all__ = [
    "EnvironmentStore",
    "OrderStore",
    "EnvOrder",
    "JsonCodec",
    "EnvStoreError",
    "NotFound",
    "EmptyStore",
    "CaptureFailed",
    "DecodeFailed",
    "SelectionFailed",
    "ConfigDirUnavailable",
    "InvalidName",
    "PersistenceWarning",
]
