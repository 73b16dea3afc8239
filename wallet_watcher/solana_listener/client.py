"""
Ledger client — JSON-RPC access to a Solana node and a DAS indexer.

Responsibilities:
- getSignaturesForAddress for the activity feed (newest-first).
- getTransaction for per-activity balance detail.
- getBalance / getTokenAccountsByOwner for native and SPL token holdings.
- getAssetsByOwner (DAS) for token metadata and non-fungible items.

Transport and RPC errors raise LedgerRPCError; callers decide whether to fail soft.
"""

from __future__ import annotations

import itertools
from decimal import Decimal
from typing import Any, Protocol

import httpx

from wallet_watcher.balances.models import (
    DEFAULT_TOKEN_DECIMALS,
    CollectibleItem,
    EnrichedHoldings,
    FungibleHolding,
)
from wallet_watcher.core.exceptions import LedgerRPCError
from wallet_watcher.solana_listener.models import ActivityDetail, ActivityItem
from wallet_watcher.solana_listener.parser import lamports_to_sol, parse_activity_detail
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)

SPL_TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
DAS_PAGE_LIMIT = 1000
DEFAULT_TIMEOUT_SEC = 15.0

FUNGIBLE_INTERFACES = frozenset({"FungibleToken", "FungibleAsset"})
NON_FUNGIBLE_INTERFACES = frozenset({"NonFungibleToken", "NonFungible", "V1_NFT", "ProgrammableNFT"})


class LedgerSource(Protocol):
    """Read interface the reconciliation core needs from the ledger."""

    async def list_recent_activity(self, address: str, limit: int) -> list[ActivityItem]: ...

    async def get_activity_detail(self, signature: str) -> ActivityDetail | None: ...

    async def get_native_balance(self, address: str) -> Decimal: ...

    async def get_fungible_holdings(self, address: str) -> dict[str, FungibleHolding]: ...

    async def get_enriched_holdings(self, address: str) -> EnrichedHoldings: ...


def _raw_to_ui(raw: Any, decimals: int) -> Decimal:
    return Decimal(int(raw or 0)).scaleb(-decimals)


def _collection_of(asset: dict[str, Any]) -> str | None:
    for group in asset.get("grouping") or []:
        if isinstance(group, dict) and group.get("group_key") == "collection":
            return group.get("group_value")
    return None


def _image_of(asset: dict[str, Any]) -> str | None:
    content = asset.get("content") or {}
    files = content.get("files") or []
    if files and isinstance(files[0], dict) and files[0].get("uri"):
        return files[0]["uri"]
    return (content.get("metadata") or {}).get("image") or (content.get("links") or {}).get("image")


def parse_das_assets(items: list[dict[str, Any]]) -> EnrichedHoldings:
    """Split DAS getAssetsByOwner items into fungible holdings and collectibles."""
    fungible: dict[str, FungibleHolding] = {}
    collectibles: list[CollectibleItem] = []
    for asset in items:
        if not isinstance(asset, dict) or "id" not in asset:
            continue
        interface = asset.get("interface")
        metadata = (asset.get("content") or {}).get("metadata") or {}
        if interface in FUNGIBLE_INTERFACES:
            token_info = asset.get("token_info") or {}
            raw_decimals = token_info.get("decimals")
            decimals = DEFAULT_TOKEN_DECIMALS if raw_decimals is None else int(raw_decimals)
            amount = _raw_to_ui(token_info.get("balance"), decimals)
            if amount > 0:
                fungible[asset["id"]] = FungibleHolding(
                    amount=amount,
                    decimals=decimals,
                    name=metadata.get("name") or "Unknown Token",
                    symbol=metadata.get("symbol") or "UNK",
                )
        elif interface in NON_FUNGIBLE_INTERFACES:
            collectibles.append(
                CollectibleItem(
                    id=asset["id"],
                    name=metadata.get("name") or "Unknown NFT",
                    collection=_collection_of(asset),
                    image=_image_of(asset),
                )
            )
    return EnrichedHoldings(fungible=fungible, collectibles=collectibles, total_assets=len(items))


class LedgerClient:
    """
    Async JSON-RPC client over one shared httpx.AsyncClient.

    rpc_url serves the standard Solana methods; das_rpc_url serves
    getAssetsByOwner (Helius-style endpoints serve both).
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        das_rpc_url: str | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.rstrip("/")
        self._das_rpc_url = (das_rpc_url or rpc_url).rstrip("/")
        self._ids = itertools.count(1)
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec), transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _call(self, method: str, params: Any, *, url: str | None = None) -> Any:
        """Perform one JSON-RPC call; raise LedgerRPCError on transport or RPC error."""
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._http.post(url or self._rpc_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise LedgerRPCError(method, str(e)) from e
        if "error" in data:
            err = data["error"] or {}
            message = err.get("message", str(err)) if isinstance(err, dict) else str(err)
            code = err.get("code") if isinstance(err, dict) else None
            raise LedgerRPCError(method, message, code)
        return data.get("result")

    async def list_recent_activity(self, address: str, limit: int) -> list[ActivityItem]:
        """Most recent signatures for address, newest first."""
        result = await self._call("getSignaturesForAddress", [address, {"limit": limit}])
        items: list[ActivityItem] = []
        for raw in result if isinstance(result, list) else []:
            if not isinstance(raw, dict) or "signature" not in raw:
                continue
            try:
                items.append(ActivityItem.from_rpc_item(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("client_skip_signature_item", error=str(e))
        return items

    async def get_activity_detail(self, signature: str) -> ActivityDetail | None:
        result = await self._call(
            "getTransaction",
            [signature, {"encoding": "json", "maxSupportedTransactionVersion": 0}],
        )
        if not isinstance(result, dict):
            return None
        return parse_activity_detail(result, signature=signature)

    async def get_native_balance(self, address: str) -> Decimal:
        result = await self._call("getBalance", [address])
        value = result.get("value") if isinstance(result, dict) else result
        return lamports_to_sol(int(value or 0))

    async def get_fungible_holdings(self, address: str) -> dict[str, FungibleHolding]:
        """SPL token accounts owned by address, summed per mint; zero balances skipped."""
        result = await self._call(
            "getTokenAccountsByOwner",
            [address, {"programId": SPL_TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}],
        )
        holdings: dict[str, FungibleHolding] = {}
        for account in (result or {}).get("value") or []:
            info = (((account.get("account") or {}).get("data") or {}).get("parsed") or {}).get("info") or {}
            token_amount = info.get("tokenAmount") or {}
            mint = info.get("mint")
            if not mint:
                continue
            decimals = int(token_amount.get("decimals") or 0)
            amount = _raw_to_ui(token_amount.get("amount"), decimals)
            if amount <= 0:
                continue
            if mint in holdings:
                holdings[mint].amount += amount
            else:
                holdings[mint] = FungibleHolding(amount=amount, decimals=decimals)
        return holdings

    async def get_enriched_holdings(self, address: str) -> EnrichedHoldings:
        result = await self._call(
            "getAssetsByOwner",
            {"ownerAddress": address, "page": 1, "limit": DAS_PAGE_LIMIT},
            url=self._das_rpc_url,
        )
        items = (result or {}).get("items") or []
        return parse_das_assets(items)
