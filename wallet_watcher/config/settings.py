"""
Application settings.

Loads configuration from environment variables (and .env via config.env),
validates ranges, and exposes a frozen WatcherSettings dataclass used by the
runtime to wire the stores, ledger client, notifier and reconciliation loop.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from wallet_watcher.config.env import (
    env_flag,
    get_das_rpc_url,
    get_solana_rpc_url,
    load_watcher_env,
)

DEFAULT_POLL_INTERVAL_SEC = 300.0
DEFAULT_ACTIVITY_WINDOW = 50
DEFAULT_ITEM_DELAY_SEC = 0.5
DEFAULT_WALLET_DELAY_SEC = 1.0
DEFAULT_RPC_TIMEOUT_SEC = 15.0
MIN_POLL_INTERVAL_SEC = 1.0
MAX_ACTIVITY_WINDOW = 1000

WALLET_STORE_FILE = "walletMappings.json"
SNAPSHOT_STORE_FILE = "previousBalances.json"
EXPECTATION_STORE_FILE = "expectedPayments.json"
CURSOR_STORE_FILE = "walletCursors.json"


@dataclass(frozen=True)
class WatcherSettings:
    """
    Runtime configuration.

    poll_interval_sec: Seconds between reconciliation ticks.
    activity_window: Number of most-recent activity items fetched per address per tick.
    item_delay_sec / wallet_delay_sec: Backpressure delays for the notification channel.
    persist_cursors: True keeps cursors on disk across restarts; False keeps them in memory only.
    notify_webhook_url: When set, notifications are POSTed there; otherwise they are logged.
    """

    rpc_url: str
    das_rpc_url: str
    data_dir: Path = Path(".")
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC
    activity_window: int = DEFAULT_ACTIVITY_WINDOW
    item_delay_sec: float = DEFAULT_ITEM_DELAY_SEC
    wallet_delay_sec: float = DEFAULT_WALLET_DELAY_SEC
    rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC
    persist_cursors: bool = True
    notify_webhook_url: str | None = None

    def __post_init__(self) -> None:
        if not self.rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if not (1 <= self.activity_window <= MAX_ACTIVITY_WINDOW):
            raise ValueError(f"activity_window must be between 1 and {MAX_ACTIVITY_WINDOW}")
        object.__setattr__(
            self, "poll_interval_sec", max(MIN_POLL_INTERVAL_SEC, float(self.poll_interval_sec))
        )
        object.__setattr__(self, "item_delay_sec", max(0.0, float(self.item_delay_sec)))
        object.__setattr__(self, "wallet_delay_sec", max(0.0, float(self.wallet_delay_sec)))

    @property
    def wallet_store_path(self) -> Path:
        return self.data_dir / WALLET_STORE_FILE

    @property
    def snapshot_store_path(self) -> Path:
        return self.data_dir / SNAPSHOT_STORE_FILE

    @property
    def expectation_store_path(self) -> Path:
        return self.data_dir / EXPECTATION_STORE_FILE

    @property
    def cursor_store_path(self) -> Path | None:
        return self.data_dir / CURSOR_STORE_FILE if self.persist_cursors else None


def get_settings() -> WatcherSettings:
    """Build settings from the environment with defaults."""
    load_watcher_env()
    webhook = (os.getenv("NOTIFY_WEBHOOK_URL") or "").strip() or None
    return WatcherSettings(
        rpc_url=get_solana_rpc_url(),
        das_rpc_url=get_das_rpc_url(),
        data_dir=Path((os.getenv("DATA_DIR") or ".").strip() or "."),
        poll_interval_sec=float(os.getenv("POLL_INTERVAL_SEC", str(DEFAULT_POLL_INTERVAL_SEC))),
        activity_window=int(os.getenv("ACTIVITY_WINDOW", str(DEFAULT_ACTIVITY_WINDOW))),
        item_delay_sec=float(os.getenv("ITEM_DELAY_SEC", str(DEFAULT_ITEM_DELAY_SEC))),
        wallet_delay_sec=float(os.getenv("WALLET_DELAY_SEC", str(DEFAULT_WALLET_DELAY_SEC))),
        rpc_timeout_sec=float(os.getenv("RPC_TIMEOUT_SEC", str(DEFAULT_RPC_TIMEOUT_SEC))),
        persist_cursors=env_flag("PERSIST_CURSORS", True),
        notify_webhook_url=webhook,
    )
