"""
Snapshot store — last-known AssetSnapshot per watched address.

Current record shape is AssetSnapshot.to_dict(). Files written by the earlier
camelCase layout ({"solBalance", "tokenBalances", "nftAssets", "timestamp"})
are detected per record, migrated on load and rewritten in the current shape.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from wallet_watcher.balances.models import (
    DEFAULT_TOKEN_DECIMALS,
    AssetSnapshot,
    CollectibleItem,
    FungibleHolding,
    parse_timestamp,
)
from wallet_watcher.storage.json_store import JsonFileStore, from_pairs, to_pairs


def _is_legacy_record(record: dict[str, Any]) -> bool:
    return "solBalance" in record or "tokenBalances" in record or "nftAssets" in record


def _migrate_legacy_record(record: dict[str, Any]) -> AssetSnapshot:
    fungible: dict[str, FungibleHolding] = {}
    for mint, token in (record.get("tokenBalances") or {}).items():
        amount = Decimal(str(token.get("amount") or 0))
        if amount <= 0:
            continue
        fungible[mint] = FungibleHolding(
            amount=amount,
            decimals=int(token.get("decimals", DEFAULT_TOKEN_DECIMALS)),
            name=token.get("name"),
            symbol=token.get("symbol"),
        )
    collectibles = [CollectibleItem.from_dict(n) for n in record.get("nftAssets") or []]
    snapshot = AssetSnapshot(
        native_balance=Decimal(str(record.get("solBalance") or 0)),
        fungible=fungible,
        collectibles=collectibles,
        total_assets=int(record.get("totalAssets") or len(collectibles)),
    )
    captured_at = parse_timestamp(record.get("timestamp"))
    if captured_at is not None:
        snapshot.captured_at = captured_at
    return snapshot


class SnapshotStore(JsonFileStore):
    store_name = "snapshots"

    def _reset(self) -> None:
        self._snapshots: dict[str, AssetSnapshot] = {}

    def _hydrate(self, data: dict[str, Any]) -> bool:
        migrated = False
        snapshots: dict[str, AssetSnapshot] = {}
        for address, record in from_pairs(data.get("balances")).items():
            if _is_legacy_record(record):
                snapshots[address] = _migrate_legacy_record(record)
                migrated = True
            else:
                snapshots[address] = AssetSnapshot.from_dict(record)
        self._snapshots = snapshots
        return migrated

    def _serialize(self) -> dict[str, Any]:
        return {"balances": to_pairs(self._snapshots, lambda s: s.to_dict())}

    def _count(self) -> int:
        return len(self._snapshots)

    def get(self, address: str) -> AssetSnapshot | None:
        return self._snapshots.get(address)

    def put(self, address: str, snapshot: AssetSnapshot) -> None:
        self._snapshots[address] = snapshot
        self.save()

    def delete(self, address: str) -> None:
        if self._snapshots.pop(address, None) is not None:
            self.save()

    def addresses(self) -> list[str]:
        return list(self._snapshots)
