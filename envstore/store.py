"""
Environment store: named, individually encrypted records in a per-user directory.

- read(): decrypt an existing environment
- create_or_read(): read, or capture a new environment on first use
- select_environment(): let the user pick from the ordered list
- delete_environment(): remove a record file

Every successful access moves the environment to the front of the ordering
metadata (unless the order is pinned), so the next listing shows the most
recently used environments first.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Generic, Optional, TypeVar

from .codec import JsonCodec
from .errors import CaptureFailed, EmptyStore, NotFound, PersistenceWarning, SelectionFailed
from .order import EnvOrder, OrderStore
from .paths import (
    env_file_name,
    env_name,
    is_env_file_name,
    is_file,
    resolve_store_dir,
    validate_name,
)
from .protocol import (
    Codec,
    EnterEnvHandler,
    GetEnvFileTitle,
    KeySource,
    SelectionPresenter,
    WarningSink,
    coerce_index,
    empty_key,
    identity_title,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SELECT_LABEL = "Select environment"


def log_warning(warning: PersistenceWarning) -> None:
    """Default warning sink."""
    logger.warning("%s", warning)


class EnvironmentStore(Generic[T]):
    """
    Per-user store of named environments.

    Args:
        home_dir_name: Store directory name below the home directory
        codec: Record persistence; defaults to JsonCodec()
        key_source: Key material for the codec; defaults to an empty key
        enter_env: Capture handler used by create_or_read()
        get_title: Display title for a record file; defaults to the bare name
        presenter: Selection UI; defaults to a numbered terminal prompt
        warn: Sink for non-fatal persistence warnings
        home: Home directory lookup

    Raises:
        ConfigDirUnavailable: If ``home`` fails
    """

    def __init__(
        self,
        home_dir_name: str,
        *,
        codec: Optional[Codec[T]] = None,
        key_source: Optional[KeySource] = None,
        enter_env: Optional[EnterEnvHandler[T]] = None,
        get_title: Optional[GetEnvFileTitle] = None,
        presenter: Optional[SelectionPresenter] = None,
        warn: Optional[WarningSink] = None,
        home: Callable[[], Path] = Path.home,
    ):
        self._dir = resolve_store_dir(home_dir_name, home)
        self._order = OrderStore(self._dir)
        self._codec: Codec[T] = codec if codec is not None else JsonCodec()
        self.key_source: KeySource = key_source or empty_key
        self.enter_env = enter_env
        self.get_title: GetEnvFileTitle = get_title or identity_title
        if presenter is None:
            from .prompts import terminal_presenter
            presenter = terminal_presenter
        self.presenter: SelectionPresenter = presenter
        self.warn: WarningSink = warn or log_warning

    @property
    def dir(self) -> Path:
        """The store directory (may not exist yet)."""
        return self._dir

    @property
    def order(self) -> OrderStore:
        return self._order

    def env_file_path(self, name: str) -> Path:
        """Record file for ``name``. Raises InvalidName for unusable names."""
        validate_name(name)
        return self._dir / env_file_name(name)

    def exists(self, name: str) -> bool:
        return is_file(self.env_file_path(name))

    # -------------------------------------------------------------------------
    # Read / write
    # -------------------------------------------------------------------------

    def read(self, name: str) -> T:
        """
        Read an existing environment.

        Raises:
            NotFound: If there is no record file for ``name``
            DecodeFailed: If the codec cannot decrypt or parse it
        """
        return self._create_or_read(name, None)

    def create_or_read(self, name: str) -> T:
        """
        Read ``name``, or capture it with the enter_env handler if it does not exist.

        A captured environment that cannot be saved is still returned; the
        failure goes to the warning sink.

        Raises:
            NotFound: If ``name`` does not exist and no handler is configured
            CaptureFailed: If the handler raised (nothing is saved)
            DecodeFailed: If the existing record cannot be decrypted or parsed
        """
        return self._create_or_read(name, self.enter_env)

    def write(self, name: str, value: T) -> None:
        """Replace the environment ``name`` with ``value``. Raises on failure."""
        path = self.env_file_path(name)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._codec.write(path, value, self.key_source())
        logger.info("Saved environment %r", name)
        self._bring_to_front(name)

    def _create_or_read(self, name: str, enter_env: Optional[EnterEnvHandler[T]]) -> T:
        path = self.env_file_path(name)

        if not is_file(path):
            if enter_env is None:
                raise NotFound(name)
            logger.info("Environment %r does not exist yet, capturing it", name)
            try:
                value = enter_env(name)
            except Exception as e:
                raise CaptureFailed(name, e) from e
            self._save_captured(name, path, value)
            self._bring_to_front(name)
            return value

        value = self._codec.read(path, self.key_source())
        logger.debug("Read environment %r from %s", name, path)
        self._bring_to_front(name)
        return value

    def _save_captured(self, name: str, path: Path, value: T) -> None:
        """Persist a freshly captured environment; failures only warn."""
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.warn(PersistenceWarning(name, e))
            return
        try:
            self._codec.write(path, value, self.key_source())
        except Exception as e:
            self.warn(PersistenceWarning(name, e))
            return
        logger.info("Saved environment %r", name)

    def _bring_to_front(self, name: str) -> None:
        try:
            self._order.bring_to_front(name)
        except OSError as e:
            logger.debug("Cannot update order file %s: %s", self._order.path, e)

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def _scan(self) -> list[os.DirEntry]:
        """Directory entries sorted by name; a missing directory is empty."""
        try:
            with os.scandir(self._dir) as it:
                entries = list(it)
        except FileNotFoundError:
            return []
        return sorted(entries, key=lambda e: e.name)

    def environment_files(self) -> list[Path]:
        """
        Record files in display order.

        Files ranked in the order metadata come first, in rank order; the rest
        follow by name. The sort is stable, so unranked files never move
        relative to each other.
        """
        files = [
            Path(entry.path)
            for entry in self._scan()
            if is_env_file_name(entry.name) and not entry.is_dir()
        ]
        order = self._order.load()
        if order.order:
            ranks = order.rank()
            files.sort(key=lambda p: ranks.get(p.name, sys.maxsize))
        return files

    def environment_names(self) -> list[str]:
        """Bare environment names in display order."""
        return [env_name(p.name) for p in self.environment_files()]

    def _title(self, path: Path) -> str:
        return self.get_title(env_name(path.name), path.absolute())

    def list_environments(self) -> list[str]:
        """Display titles of all environments, in display order."""
        return [self._title(p) for p in self.environment_files()]

    # -------------------------------------------------------------------------
    # Selection / deletion
    # -------------------------------------------------------------------------

    def select_environment(self, label: str = SELECT_LABEL) -> tuple[str, T]:
        """
        Ask the presenter for an environment and read it.

        Returns:
            (name, value) of the chosen environment

        Raises:
            EmptyStore: If there are no environments
            SelectionFailed: If the presenter returns an unusable index;
                presenter errors propagate unchanged
        """
        files = self.environment_files()
        if not files:
            raise EmptyStore()

        index = self.presenter(label, [self._title(p) for p in files])
        try:
            index = coerce_index(index, len(files))
        except (TypeError, IndexError) as e:
            raise SelectionFailed(str(e)) from e

        name = env_name(files[index].name)
        return name, self.read(name)

    def delete_environment(self, name: str) -> None:
        """
        Delete the record file of ``name``.

        The order metadata keeps its entry; see OrderStore.prune().

        Raises:
            NotFound: If there is no record file for ``name``
        """
        path = self.env_file_path(name)
        if not is_file(path):
            raise NotFound(name)
        path.unlink()
        logger.info("Deleted environment %r", name)

    def load_order(self) -> EnvOrder:
        return self._order.load()

    def prune_order(self) -> list[str]:
        """Drop order entries of deleted environments. Returns the removed file names."""
        return self._order.prune(p.name for p in self.environment_files())
