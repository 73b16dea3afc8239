"""
Persistent stores — full-file JSON documents owned by a single process.

Each store hydrates memory at startup and rewrites its whole file on every
mutation. Pass path=None for a memory-only store (tests, volatile cursors).
"""

from wallet_watcher.storage.cursor_store import CursorStore
from wallet_watcher.storage.expectation_store import ExpectationStore
from wallet_watcher.storage.json_store import JsonFileStore
from wallet_watcher.storage.snapshot_store import SnapshotStore
from wallet_watcher.storage.wallet_store import UserStats, WalletInfo, WalletStore

__all__ = [
    "CursorStore",
    "ExpectationStore",
    "JsonFileStore",
    "SnapshotStore",
    "UserStats",
    "WalletInfo",
    "WalletStore",
]
