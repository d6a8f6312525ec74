"""
Protocol definitions for the collaborators of EnvironmentStore.

The store never encrypts, prompts or renders anything itself. It talks to:
- KeySource: key material for the codec (empty bytes = no encryption)
- Codec: serialize+encrypt a record to a file, and back
- EnterEnvHandler: interactive capture of a record that does not exist yet
- GetEnvFileTitle: optional human readable title for a record file
- SelectionPresenter: asks the user to pick one of a list of titles
- WarningSink: receives non-fatal persistence warnings
"""

from pathlib import Path
from typing import Any, Protocol, TypeVar

from .errors import PersistenceWarning

T = TypeVar("T")


class KeySource(Protocol):
    """Return the key bytes used to encrypt or decrypt a record.

    Raises on failure. An empty result disables encryption.
    """

    def __call__(self) -> bytes: ...


class EnterEnvHandler(Protocol[T]):
    """Produce a new record for ``name``.

    The handler either returns a fully populated value or raises. The store
    never persists anything when the handler raises, so a partially entered
    value is never written.
    """

    def __call__(self, name: str) -> T: ...


class GetEnvFileTitle(Protocol):
    """Return the display title for the record ``name`` stored at ``path``."""

    def __call__(self, name: str, path: Path) -> str: ...


class SelectionPresenter(Protocol):
    """Ask the user to choose one of ``items`` and return its index.

    Cancellation is reported by raising; the store propagates it unchanged.
    """

    def __call__(self, label: str, items: list[str]) -> int: ...


class WarningSink(Protocol):
    def __call__(self, warning: PersistenceWarning) -> None: ...


class Codec(Protocol[T]):
    """
    Byte-level persistence of a single record.

    Implemented by:
    - JsonCodec (JSON, AES-GCM when a key is given)
    - test doubles in tests/conftest.py
    """

    def write(self, path: Path, value: T, key: bytes) -> None: ...

    def read(self, path: Path, key: bytes) -> T: ...


def empty_key() -> bytes:
    """Key source used when none is configured."""
    return b""


def identity_title(name: str, path: Path) -> str:
    return name


def coerce_index(value: Any, size: int) -> int:
    """Validate a presenter result against the number of items shown."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"selection index must be an int, got {type(value).__name__}")
    if not 0 <= value < size:
        raise IndexError(f"selection index {value} out of range 0..{size - 1}")
    return value
