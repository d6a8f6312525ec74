"""
Ordering metadata for an environment store.

The ``env-order`` file remembers which environments were used most recently
so listings and selection prompts show them first. It is an optimization,
never a source of truth: a missing, empty or corrupt file reads as an empty,
unpinned order, and write failures are left to the caller to ignore.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from .paths import ORDER_FILENAME, env_file_name, env_name, validate_name

logger = logging.getLogger(__name__)


@dataclass
class EnvOrder:
    """Ordering metadata: record file names, most recent first, and a pin flag."""
    fixed: bool = False
    order: list[str] = field(default_factory=list)

    def rank(self) -> dict[str, int]:
        """Position of each file name in the order list."""
        ranks: dict[str, int] = {}
        for i, name in enumerate(self.order):
            ranks.setdefault(name, i)
        return ranks

    def to_dict(self) -> dict:
        return {"fixed": self.fixed, "order": list(self.order)}


def _parse_order(data: str) -> Optional[EnvOrder]:
    """Parse ordering JSON, or None when the content has the wrong shape."""
    try:
        raw = json.loads(data)
    except ValueError:
        return None
    if not isinstance(raw, dict):
        return None
    fixed = raw.get("fixed", False)
    order = raw.get("order")
    if order is None:
        order = []
    if not isinstance(fixed, bool) or not isinstance(order, list):
        return None
    if not all(isinstance(name, str) for name in order):
        return None
    return EnvOrder(fixed=fixed, order=order)


def move_to_front(order: list[str], name: str) -> list[str]:
    """Return ``order`` with ``name`` first and no other occurrence of it."""
    return [name] + [entry for entry in order if entry != name]


class OrderStore:
    """
    Reads and writes the ``env-order`` file of one store directory.

    Concurrent writers are last-writer-wins; there is no locking.
    """

    def __init__(self, store_dir: Path):
        self._dir = Path(store_dir)

    @property
    def path(self) -> Path:
        return self._dir / ORDER_FILENAME

    def load(self) -> EnvOrder:
        """Load ordering metadata; absence or corruption yields an empty order."""
        try:
            data = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("No usable order file at %s: %s", self.path, e)
            return EnvOrder()
        order = _parse_order(data)
        if order is None:
            logger.debug("Ignoring malformed order file at %s", self.path)
            return EnvOrder()
        return order

    def save(self, order: EnvOrder) -> None:
        """Write ordering metadata. Raises OSError on failure."""
        self.path.write_text(json.dumps(order.to_dict()), encoding="utf-8")

    def bring_to_front(self, name: str) -> EnvOrder:
        """
        Mark ``name`` (bare or suffixed) as most recently used.

        No-op while the order is fixed. Entries for deleted environments are
        kept; see prune().

        Returns:
            The ordering metadata now in effect
        """
        order = self.load()
        if order.fixed:
            return order
        order.order = move_to_front(order.order, env_file_name(name))
        self.save(order)
        return order

    def set_fixed(self, fixed: bool) -> EnvOrder:
        """Pin or unpin the current order."""
        order = self.load()
        order.fixed = fixed
        self.save(order)
        return order

    def set_order(self, names: Iterable[str]) -> EnvOrder:
        """
        Replace the order with ``names`` (bare or suffixed).

        The first occurrence of a duplicate wins.

        Raises:
            InvalidName: If a name cannot be mapped to a record file
        """
        seen: list[str] = []
        for name in names:
            bare = env_name(name)
            validate_name(bare)
            file_name = env_file_name(bare)
            if file_name not in seen:
                seen.append(file_name)
        order = self.load()
        order.order = seen
        self.save(order)
        return order

    def prune(self, existing: Iterable[str]) -> list[str]:
        """
        Drop entries whose environment is not in ``existing`` (bare or suffixed names).

        Only runs when asked; listing and access never prune.

        Returns:
            The removed file names
        """
        keep = {env_file_name(name) for name in existing}
        order = self.load()
        removed = [entry for entry in order.order if entry not in keep]
        if removed:
            order.order = [entry for entry in order.order if entry in keep]
            self.save(order)
        return removed
