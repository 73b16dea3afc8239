"""
Cursor tracker — "new since last check" over an append-only activity feed.

Per address, the tracker remembers the id of the most recent activity item
already reconciled. Each call fetches a bounded newest-first window, collects
items until the remembered id, returns them oldest-first and advances the
cursor to the newest id.

- First observation seeds the cursor to the current head and returns nothing.
- If the remembered id is not in the window (more activity than one window
  since the last check), everything in the window is returned and older items
  are skipped; a cursor_window_exhausted warning is logged.
- Feed errors never propagate: the call returns [] and the error is kept for
  the caller (pop_error) so it can be surfaced once per address per tick.
"""

from __future__ import annotations

from wallet_watcher.solana_listener.client import LedgerSource
from wallet_watcher.solana_listener.models import ActivityItem
from wallet_watcher.storage.cursor_store import CursorStore
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)

DEFAULT_ACTIVITY_WINDOW = 50


class CursorTracker:
    def __init__(
        self,
        ledger: LedgerSource,
        store: CursorStore,
        *,
        window: int = DEFAULT_ACTIVITY_WINDOW,
    ) -> None:
        if window < 1:
            raise ValueError("window must be positive")
        self._ledger = ledger
        self._store = store
        self._window = window
        self._errors: dict[str, Exception] = {}

    @property
    def window(self) -> int:
        return self._window

    def cursor_for(self, address: str) -> str | None:
        return self._store.get(address)

    def pop_error(self, address: str) -> Exception | None:
        """Return and clear the feed error recorded by the last new_since(address)."""
        return self._errors.pop(address, None)

    def forget(self, address: str) -> None:
        self._errors.pop(address, None)
        self._store.delete(address)

    async def new_since(self, address: str) -> list[ActivityItem]:
        """New activity for address since the cursor, oldest-first."""
        self._errors.pop(address, None)
        try:
            window = await self._ledger.list_recent_activity(address, self._window)
        except Exception as e:
            self._errors[address] = e
            logger.warning("cursor_feed_fetch_failed", wallet_id=address, error=str(e))
            return []

        last_seen = self._store.get(address)
        if last_seen is None:
            head = window[0].id if window else ""
            self._store.set(address, head)
            logger.info("cursor_seeded", wallet_id=address, head=head[:16] or None)
            return []

        new_items: list[ActivityItem] = []
        found = False
        for item in window:
            if item.id == last_seen:
                found = True
                break
            new_items.append(item)

        if not new_items:
            return []

        if not found and last_seen and len(window) >= self._window:
            logger.warning(
                "cursor_window_exhausted",
                wallet_id=address,
                window=self._window,
                last_seen=last_seen[:16],
            )

        self._store.set(address, new_items[0].id)
        new_items.reverse()
        logger.info(
            "cursor_advanced",
            wallet_id=address,
            new_items=len(new_items),
            head=new_items[-1].id[:16],
        )
        return new_items
