"""JSON document cache of last-known open status."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping

from relieffinder.models import CacheDocument, CacheEntry
from relieffinder.utils.files import atomic_write_json, read_json

LOGGER = logging.getLogger(__name__)

_LOCKS: dict[Path, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.Lock()
        return lock


class CacheStore:
    """Persistence layer for the open-status cache document."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> CacheDocument:
        """Return the persisted document, or an empty one if it is missing or corrupt."""
        try:
            if not self.path.exists():
                return {}
            raw = read_json(self.path)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable open-status cache %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            LOGGER.warning("Ignoring open-status cache %s: expected an object", self.path)
            return {}

        document: CacheDocument = {}
        for item_id, data in raw.items():
            if not isinstance(data, dict):
                LOGGER.warning("Dropping malformed cache entry %s from %s", item_id, self.path)
                continue
            document[str(item_id)] = CacheEntry.from_dict(data)
        return document

    snapshot = load

    @staticmethod
    def merge(document: CacheDocument, updates: Mapping[str, CacheEntry]) -> CacheDocument:
        merged = dict(document)
        merged.update(updates)
        return merged

    def persist(self, document: CacheDocument) -> bool:
        """Rewrite the whole document; failures are logged, never raised."""
        payload = {item_id: entry.to_dict() for item_id, entry in document.items()}
        try:
            atomic_write_json(self.path, payload)
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.warning("Failed to write open-status cache %s: %s", self.path, exc)
            return False
        return True

    @contextmanager
    def transaction(self) -> Iterator[CacheDocument]:
        """Hold the document lock and yield the latest on-disk state."""
        with _lock_for(self.path):
            yield self.load()

    def commit(self, updates: Mapping[str, CacheEntry]) -> bool:
        """Merge *updates* into the current document and persist it atomically."""
        with self.transaction() as current:
            return self.persist(self.merge(current, updates))
