"""
Shared pytest fixtures for envstore tests.

Provides a synthetic home directory and collaborator doubles so tests never
touch the real user store or prompt on a terminal.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from envstore.errors import PersistenceWarning
from envstore.store import EnvironmentStore

HOME_DIR_NAME = ".envtest"


class RecordingCodec:
    """
    Codec double: plain JSON files, remembers the keys it was handed.

    Set fail_write to simulate a failing encrypted write.
    """

    def __init__(self):
        self.writes: list[tuple[str, bytes]] = []
        self.reads: list[tuple[str, bytes]] = []
        self.fail_write = False

    def write(self, path: Path, value: Any, key: bytes) -> None:
        self.writes.append((Path(path).name, key))
        if self.fail_write:
            raise OSError("simulated write failure")
        Path(path).write_text(json.dumps(value))

    def read(self, path: Path, key: bytes) -> Any:
        self.reads.append((Path(path).name, key))
        return json.loads(Path(path).read_text())


class ScriptedPresenter:
    """Selection presenter double returning a fixed answer (or raising it)."""

    def __init__(self, answer=0):
        self.answer = answer
        self.calls: list[tuple[str, list[str]]] = []

    def __call__(self, label: str, items: list[str]) -> int:
        self.calls.append((label, list(items)))
        if isinstance(self.answer, BaseException):
            raise self.answer
        return self.answer


class WarningCollector:
    def __init__(self):
        self.warnings: list[PersistenceWarning] = []

    def __call__(self, warning: PersistenceWarning) -> None:
        self.warnings.append(warning)


@pytest.fixture
def home(tmp_path) -> Path:
    """Synthetic home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def codec() -> RecordingCodec:
    return RecordingCodec()


@pytest.fixture
def presenter() -> ScriptedPresenter:
    return ScriptedPresenter()


@pytest.fixture
def warnings_seen() -> WarningCollector:
    return WarningCollector()


@pytest.fixture
def make_store(home, codec, presenter, warnings_seen):
    """Factory for stores rooted in the synthetic home; keyword args override collaborators."""

    def _make(**kwargs) -> EnvironmentStore:
        kwargs.setdefault("home", lambda: home)
        kwargs.setdefault("codec", codec)
        kwargs.setdefault("presenter", presenter)
        kwargs.setdefault("warn", warnings_seen)
        return EnvironmentStore(HOME_DIR_NAME, **kwargs)

    return _make


@pytest.fixture
def store(make_store) -> EnvironmentStore:
    return make_store()


def write_env(store: EnvironmentStore, name: str, value: Any = None) -> Path:
    """Put a record file in place without going through the store (no order update)."""
    store.dir.mkdir(parents=True, exist_ok=True)
    path = store.dir / f"{name}.json"
    path.write_text(json.dumps(value if value is not None else {"name": name}))
    return path


def read_order_file(store: EnvironmentStore) -> dict:
    return json.loads((store.dir / "env-order").read_text())
