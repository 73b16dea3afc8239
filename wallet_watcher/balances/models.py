"""
Data models for wallet balance snapshots and their deltas.

Amounts are Decimal throughout (SOL for the native balance, UI units for
tokens) so deltas are exact; they serialize as strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

DEFAULT_TOKEN_DECIMALS = 9


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(raw: str | None) -> datetime | None:
    """Parse an ISO-8601 string (with or without trailing Z) into an aware datetime."""
    if not raw:
        return None
    value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class FungibleHolding:
    """Balance of one fungible token (mint) in UI units."""

    amount: Decimal
    decimals: int = DEFAULT_TOKEN_DECIMALS
    name: str | None = None
    symbol: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"amount": str(self.amount), "decimals": self.decimals}
        if self.name is not None:
            out["name"] = self.name
        if self.symbol is not None:
            out["symbol"] = self.symbol
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FungibleHolding":
        return cls(
            amount=Decimal(str(data.get("amount", "0"))),
            decimals=int(data.get("decimals", DEFAULT_TOKEN_DECIMALS)),
            name=data.get("name"),
            symbol=data.get("symbol"),
        )


@dataclass(frozen=True)
class CollectibleItem:
    """Non-fungible item held by a wallet; identity is the asset id."""

    id: str
    name: str
    collection: str | None = None
    image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "collection": self.collection,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CollectibleItem":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "Unknown NFT",
            collection=data.get("collection"),
            image=data.get("image"),
        )


@dataclass
class EnrichedHoldings:
    """Indexer view of a wallet: fungible holdings with metadata, collectibles, total asset count."""

    fungible: dict[str, FungibleHolding] = field(default_factory=dict)
    collectibles: list[CollectibleItem] = field(default_factory=list)
    total_assets: int = 0


@dataclass
class AssetSnapshot:
    """
    Point-in-time capture of a wallet's holdings.

    fungible never contains zero-amount entries (pruned at capture).
    """

    native_balance: Decimal
    fungible: dict[str, FungibleHolding] = field(default_factory=dict)
    collectibles: list[CollectibleItem] = field(default_factory=list)
    total_assets: int = 0
    captured_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.native_balance < 0:
            raise ValueError("native_balance must be non-negative")
        for mint, holding in self.fungible.items():
            if holding.amount < 0:
                raise ValueError(f"fungible amount for {mint} must be non-negative")
        self.fungible = {m: h for m, h in self.fungible.items() if h.amount != 0}

    @property
    def collectible_count(self) -> int:
        return len(self.collectibles)

    def to_dict(self) -> dict[str, Any]:
        return {
            "native_balance": str(self.native_balance),
            "fungible": {mint: h.to_dict() for mint, h in self.fungible.items()},
            "collectibles": [c.to_dict() for c in self.collectibles],
            "total_assets": self.total_assets,
            "captured_at": self.captured_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AssetSnapshot":
        return cls(
            native_balance=Decimal(str(data.get("native_balance", "0"))),
            fungible={
                mint: FungibleHolding.from_dict(h)
                for mint, h in (data.get("fungible") or {}).items()
            },
            collectibles=[CollectibleItem.from_dict(c) for c in data.get("collectibles") or []],
            total_assets=int(data.get("total_assets") or 0),
            captured_at=parse_timestamp(data.get("captured_at")) or _utcnow(),
        )


@dataclass(frozen=True)
class FungibleChange:
    """Signed change of one token between two snapshots."""

    change: Decimal
    previous_amount: Decimal
    current_amount: Decimal
    decimals: int


@dataclass
class BalanceDelta:
    """
    Difference between two snapshots of the same wallet.

    When is_first_observation is True the delta is a baseline: native_change is
    zero, fungible_changes and added/removed are empty, and baseline holds the
    current snapshot.
    """

    is_first_observation: bool
    native_change: Decimal = Decimal(0)
    fungible_changes: dict[str, FungibleChange] = field(default_factory=dict)
    added: list[CollectibleItem] = field(default_factory=list)
    removed: list[CollectibleItem] = field(default_factory=list)
    previous_captured_at: datetime | None = None
    baseline: AssetSnapshot | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_first_observation": self.is_first_observation,
            "native_change": str(self.native_change),
            "fungible_changes": {
                mint: {
                    "change": str(c.change),
                    "previous_amount": str(c.previous_amount),
                    "current_amount": str(c.current_amount),
                    "decimals": c.decimals,
                }
                for mint, c in self.fungible_changes.items()
            },
            "added": [c.to_dict() for c in self.added],
            "removed": [c.to_dict() for c in self.removed],
            "previous_captured_at": (
                self.previous_captured_at.isoformat() if self.previous_captured_at else None
            ),
        }
