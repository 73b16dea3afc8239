"""
Balance snapshots and the snapshot differ.
"""

from wallet_watcher.balances.differ import diff, is_significant
from wallet_watcher.balances.models import (
    AssetSnapshot,
    BalanceDelta,
    CollectibleItem,
    EnrichedHoldings,
    FungibleChange,
    FungibleHolding,
)

__all__ = [
    "AssetSnapshot",
    "BalanceDelta",
    "CollectibleItem",
    "EnrichedHoldings",
    "FungibleChange",
    "FungibleHolding",
    "diff",
    "is_significant",
]
