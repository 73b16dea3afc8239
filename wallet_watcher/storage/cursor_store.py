"""
Cursor store — address → last reconciled activity id (transaction signature).

File-backed when cursors are persisted across restarts; memory-only
(path=None) reproduces volatile cursors that are re-seeded on every start.
"""

from __future__ import annotations

from typing import Any

from wallet_watcher.storage.json_store import JsonFileStore, from_pairs, to_pairs


class CursorStore(JsonFileStore):
    store_name = "cursors"

    def _reset(self) -> None:
        self._cursors: dict[str, str] = {}

    def _hydrate(self, data: dict[str, Any]) -> bool:
        self._cursors = from_pairs(data.get("cursors"), str)
        return False

    def _serialize(self) -> dict[str, Any]:
        return {"cursors": to_pairs(self._cursors)}

    def _count(self) -> int:
        return len(self._cursors)

    def get(self, address: str) -> str | None:
        return self._cursors.get(address)

    def set(self, address: str, activity_id: str) -> None:
        if self._cursors.get(address) == activity_id:
            return
        self._cursors[address] = activity_id
        self.save()

    def delete(self, address: str) -> None:
        if self._cursors.pop(address, None) is not None:
            self.save()
