"""
Data models for ledger listener output.

ActivityItem is one entry of getSignaturesForAddress (the unit the cursor walks),
ActivityDetail the subset of getTransaction needed to compute a wallet's
balance changes, and ActivitySummary the per-wallet result of parsing it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class ActivityItem:
    """
    Normalized transaction signature info from getSignaturesForAddress.

    id is the transaction signature; err is None for successful transactions.
    """

    id: str
    slot: int = 0
    block_time: int | None = None
    err: Any = None
    memo: str | None = None
    confirmation_status: str | None = None

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "ActivityItem":
        """Build from a single getSignaturesForAddress result item."""
        return cls(
            id=item["signature"],
            slot=int(item.get("slot") or 0),
            block_time=item.get("blockTime"),
            err=item.get("err"),
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class TokenBalanceEntry:
    """One pre/post token balance row of a transaction (raw integer amount)."""

    account_index: int
    mint: str
    owner: str | None
    raw_amount: int
    decimals: int

    @property
    def amount(self) -> Decimal:
        return Decimal(self.raw_amount).scaleb(-self.decimals)

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "TokenBalanceEntry":
        ui = item.get("uiTokenAmount") or {}
        return cls(
            account_index=int(item.get("accountIndex", -1)),
            mint=item["mint"],
            owner=item.get("owner"),
            raw_amount=int(ui.get("amount") or 0),
            decimals=int(ui.get("decimals") or 0),
        )


@dataclass
class ActivityDetail:
    """
    Balance-relevant fields of a confirmed transaction.

    pre_balances / post_balances are lamports indexed like account_keys.
    """

    signature: str
    account_keys: list[str]
    pre_balances: list[int]
    post_balances: list[int]
    pre_token_balances: list[TokenBalanceEntry] = field(default_factory=list)
    post_token_balances: list[TokenBalanceEntry] = field(default_factory=list)
    success: bool = True
    fee_lamports: int = 0
    block_time: int | None = None


@dataclass
class ActivitySummary:
    """Per-wallet outcome of one transaction."""

    signature: str
    timestamp: datetime
    success: bool
    native_change: Decimal
    fungible_changes: dict[str, Decimal]
    fee: Decimal
    activity_type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "signature": self.signature,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "native_change": str(self.native_change),
            "fungible_changes": {m: str(c) for m, c in self.fungible_changes.items()},
            "fee": str(self.fee),
            "activity_type": self.activity_type,
        }
