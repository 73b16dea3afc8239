"""
Full-file JSON persistence shared by all watcher stores.

Contract:
- load() hydrates the in-memory structures from the whole file; a missing file
  means "start empty". A subclass may report that it migrated a legacy shape,
  in which case the current shape is written back immediately.
- Every mutation changes memory first, then save() synchronously rewrites the
  entire file before the mutating call returns. No append writes, no locking:
  exactly one live process owns the file.
- Reads only touch memory.
- path=None gives a memory-only store with the same API.

Document shape: {"<storeKey>": [[key, value], ...], ..., "lastUpdated": ISO-8601}.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import InvalidOperation
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from wallet_watcher.core.exceptions import StoreCorruptError, StorePersistenceError
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)

V = TypeVar("V")


def to_pairs(mapping: dict[str, V], encode: Callable[[V], Any] = lambda v: v) -> list[list[Any]]:
    """Encode a mapping as an ordered list of [key, value] pairs."""
    return [[key, encode(value)] for key, value in mapping.items()]


def from_pairs(pairs: Iterable[Any] | None, decode: Callable[[Any], V] = lambda v: v) -> dict[str, V]:
    """Decode a list of [key, value] pairs back into an insertion-ordered dict."""
    out: dict[str, V] = {}
    for pair in pairs or []:
        key, value = pair
        out[str(key)] = decode(value)
    return out


class JsonFileStore:
    """Base class; subclasses implement _reset, _hydrate and _serialize."""

    store_name = "store"

    def __init__(self, path: str | Path | None) -> None:
        self._path = Path(path).resolve() if path is not None else None
        self._reset()

    @property
    def path(self) -> Path | None:
        return self._path

    def _reset(self) -> None:
        raise NotImplementedError

    def _hydrate(self, data: dict[str, Any]) -> bool:
        """Populate memory from a parsed document; return True if a legacy shape was migrated."""
        raise NotImplementedError

    def _serialize(self) -> dict[str, Any]:
        raise NotImplementedError

    def _count(self) -> int:
        return 0

    def load(self) -> None:
        """Hydrate from disk; absent file → empty store."""
        self._reset()
        if self._path is None:
            return
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("store_file_absent", store=self.store_name, path=str(self._path))
            return
        except OSError as e:
            raise StoreCorruptError(str(self._path), e) from e
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value must be an object")
            migrated = self._hydrate(data)
        except (ValueError, TypeError, KeyError, AttributeError, InvalidOperation) as e:
            self._reset()
            raise StoreCorruptError(str(self._path), e) from e
        logger.info(
            "store_loaded",
            store=self.store_name,
            path=str(self._path),
            entries=self._count(),
            migrated=migrated,
        )
        if migrated:
            self.save()

    def save(self) -> None:
        """Rewrite the whole backing file from memory."""
        if self._path is None:
            return
        document = self._serialize()
        document["lastUpdated"] = datetime.now(timezone.utc).isoformat()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("store_write_failed", store=self.store_name, path=str(self._path), error=str(e))
            raise StorePersistenceError(str(self._path), e) from e
