"""
Wallet store — address ↔ owner mapping.

Two views are persisted: userWallets (user → [addresses]) and walletUsers
(address → user). walletUsers is authoritative; userWallets is rebuilt from it
when missing or when it was written in the legacy shape (per-user object
instead of array), and the file is rewritten in the current shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from wallet_watcher.storage.json_store import JsonFileStore, from_pairs, to_pairs
from wallet_watcher.utils.wallet_utils import short_address


@dataclass(frozen=True)
class WalletInfo:
    address: str
    short_address: str


@dataclass(frozen=True)
class UserStats:
    user_id: str
    wallet_count: int
    wallets: list[WalletInfo]


class WalletStore(JsonFileStore):
    store_name = "wallets"

    def _reset(self) -> None:
        self._user_wallets: dict[str, list[str]] = {}
        self._wallet_users: dict[str, str] = {}

    def _hydrate(self, data: dict[str, Any]) -> bool:
        legacy = False
        stored: dict[str, set[str]] = {}
        for user_id, wallets in from_pairs(data.get("userWallets")).items():
            if isinstance(wallets, list):
                if wallets:
                    stored[user_id] = {str(w) for w in wallets}
            else:
                legacy = True
        self._wallet_users = from_pairs(data.get("walletUsers"), str)

        rebuilt: dict[str, list[str]] = {}
        for address, user_id in self._wallet_users.items():
            rebuilt.setdefault(user_id, []).append(address)
        self._user_wallets = rebuilt
        return legacy or stored != {u: set(w) for u, w in rebuilt.items()}

    def _serialize(self) -> dict[str, Any]:
        return {
            "userWallets": to_pairs(self._user_wallets, list),
            "walletUsers": to_pairs(self._wallet_users),
        }

    def _count(self) -> int:
        return len(self._wallet_users)

    def add(self, user_id: str, address: str) -> None:
        """Assign address to user_id (caller validates ownership conflicts)."""
        previous = self._wallet_users.get(address)
        if previous is not None and previous != user_id:
            self._drop_from_user(previous, address)
        wallets = self._user_wallets.setdefault(user_id, [])
        if address not in wallets:
            wallets.append(address)
        self._wallet_users[address] = user_id
        self.save()

    def remove(self, user_id: str, address: str) -> None:
        self._drop_from_user(user_id, address)
        self._wallet_users.pop(address, None)
        self.save()

    def _drop_from_user(self, user_id: str, address: str) -> None:
        wallets = self._user_wallets.get(user_id)
        if wallets is None:
            return
        if address in wallets:
            wallets.remove(address)
        if not wallets:
            del self._user_wallets[user_id]

    def user_wallets(self, user_id: str) -> list[str]:
        return list(self._user_wallets.get(user_id, []))

    def owner_of(self, address: str) -> str | None:
        return self._wallet_users.get(address)

    def all_wallets(self) -> list[str]:
        return list(self._wallet_users)

    def all_users(self) -> list[str]:
        return list(self._user_wallets)

    def has_wallet(self, address: str) -> bool:
        return address in self._wallet_users

    def total_wallet_count(self) -> int:
        return len(self._wallet_users)

    def user_stats(self, user_id: str) -> UserStats:
        wallets = self.user_wallets(user_id)
        return UserStats(
            user_id=user_id,
            wallet_count=len(wallets),
            wallets=[WalletInfo(address=w, short_address=short_address(w)) for w in wallets],
        )
