"""
Balance service — captures AssetSnapshots from the ledger.

Native balance, SPL token accounts and the DAS indexer view are fetched
concurrently and merged: token-account amounts win, DAS supplies display
metadata and holdings the token-account query did not return.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

from wallet_watcher.balances.models import AssetSnapshot, EnrichedHoldings, FungibleHolding
from wallet_watcher.core.exceptions import LedgerRPCError
from wallet_watcher.solana_listener.client import LedgerSource
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)


def merge_holdings(
    rpc_holdings: dict[str, FungibleHolding],
    das_holdings: dict[str, FungibleHolding],
) -> dict[str, FungibleHolding]:
    merged = {mint: replace(h) for mint, h in rpc_holdings.items()}
    for mint, das in das_holdings.items():
        if mint in merged:
            merged[mint].name = das.name
            merged[mint].symbol = das.symbol
        else:
            merged[mint] = replace(das)
    return {mint: h for mint, h in merged.items() if h.amount > 0}


class BalanceService:
    def __init__(self, ledger: LedgerSource) -> None:
        self._ledger = ledger

    async def _enriched_or_empty(self, address: str) -> EnrichedHoldings:
        try:
            return await self._ledger.get_enriched_holdings(address)
        except LedgerRPCError as e:
            logger.warning("enriched_holdings_unavailable", wallet_id=address, error=str(e))
            return EnrichedHoldings()

    async def capture_snapshot(self, address: str) -> AssetSnapshot:
        """
        Current holdings of address.

        Raises LedgerRPCError if the native balance or token accounts cannot be
        read. An indexer failure only drops metadata and collectibles.
        """
        native, rpc_holdings, enriched = await asyncio.gather(
            self._ledger.get_native_balance(address),
            self._ledger.get_fungible_holdings(address),
            self._enriched_or_empty(address),
        )
        snapshot = AssetSnapshot(
            native_balance=native,
            fungible=merge_holdings(rpc_holdings, enriched.fungible),
            collectibles=list(enriched.collectibles),
            total_assets=enriched.total_assets,
        )
        logger.debug(
            "balance_snapshot_captured",
            wallet_id=address,
            native_balance=snapshot.native_balance,
            token_count=len(snapshot.fungible),
            collectible_count=snapshot.collectible_count,
        )
        return snapshot
