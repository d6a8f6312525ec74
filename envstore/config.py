"""
Configuration management for environment stores.

The configuration is stored as a TOML file in the store directory.
It says where key material comes from and how environments are titled.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import tomli_w

CONFIG_FILENAME = "envstore.toml"
CONFIG_VERSION = 1

DEFAULT_KEY_ENV = "ENVSTORE_KEY"
DEFAULT_TITLE_FORMAT = "{name}"


@dataclass
class CryptoConfig:
    """Where the encryption key comes from."""
    key_env: str = DEFAULT_KEY_ENV
    prompt: bool = False

    def key_from_env(self) -> Optional[bytes]:
        """Key bytes from the configured environment variable, or None if unset."""
        value = os.environ.get(self.key_env) if self.key_env else None
        if value is None:
            return None
        return value.encode("utf-8")


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    crypto: CryptoConfig = field(default_factory=CryptoConfig)
    title_format: str = DEFAULT_TITLE_FORMAT

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def format_title(self, name: str, path: Path) -> str:
        """Render ``title_format`` for one environment file."""
        try:
            return self.title_format.format(name=name, path=path, file=path.name)
        except (KeyError, IndexError, ValueError, AttributeError, TypeError):
            return name


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Validate version
    version = data.get("store", {}).get("version", 1)
    if not isinstance(version, int) or version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    crypto = data.get("crypto", {})
    key_env = crypto.get("key_env", DEFAULT_KEY_ENV)
    prompt = crypto.get("prompt", False)
    if not isinstance(key_env, str) or not isinstance(prompt, bool):
        raise ValueError(f"Invalid [crypto] section in {config_path}")

    title_format = data.get("display", {}).get("title_format", DEFAULT_TITLE_FORMAT)
    if not isinstance(title_format, str):
        raise ValueError(f"Invalid [display] title_format in {config_path}")

    return StoreConfig(
        path=store_path,
        version=version,
        created=data.get("store", {}).get("created", ""),
        crypto=CryptoConfig(key_env=key_env, prompt=prompt),
        title_format=title_format,
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "crypto": {
            "key_env": config.crypto.key_env,
            "prompt": config.crypto.prompt,
        },
        "display": {
            "title_format": config.title_format,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_default_config(store_path: Path) -> StoreConfig:
    """
    Load existing config, or return defaults without writing anything.

    This is the main entry point for config management; reading a store
    must not create files in it.
    """
    if (store_path / CONFIG_FILENAME).exists():
        return load_config(store_path)
    return StoreConfig(path=store_path)
