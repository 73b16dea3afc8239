"""
Pytest fixtures for Wallet Watcher tests.

Stores are file-backed under tmp_path; the ledger is an in-memory fake and the
notifier records every call so tests can assert on the reconciliation flow.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from wallet_watcher.balances.models import EnrichedHoldings, FungibleHolding
from wallet_watcher.core.exceptions import LedgerRPCError
from wallet_watcher.solana_listener.models import ActivityDetail, ActivityItem, TokenBalanceEntry
from wallet_watcher.storage import CursorStore, ExpectationStore, SnapshotStore, WalletStore

# Valid Solana pubkeys (base58, 32 bytes)
VALID_WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
VALID_WALLET_2 = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
SENDER = "11111111111111111111111111111111"

LAMPORTS = 1_000_000_000


def make_detail(
    signature: str,
    wallet: str = VALID_WALLET,
    *,
    pre_lamports: int = 0,
    post_lamports: int = 0,
    pre_tokens: dict[str, int] | None = None,
    post_tokens: dict[str, int] | None = None,
    token_decimals: int = 6,
    success: bool = True,
    fee: int = 5000,
    block_time: int = 1_700_000_000,
) -> ActivityDetail:
    """ActivityDetail where the wallet is account 0 and SENDER is account 1."""

    def entries(tokens: dict[str, int] | None) -> list[TokenBalanceEntry]:
        return [
            TokenBalanceEntry(
                account_index=2 + i,
                mint=mint,
                owner=wallet,
                raw_amount=raw,
                decimals=token_decimals,
            )
            for i, (mint, raw) in enumerate((tokens or {}).items())
        ]

    return ActivityDetail(
        signature=signature,
        account_keys=[wallet, SENDER],
        pre_balances=[pre_lamports, 10 * LAMPORTS],
        post_balances=[post_lamports, 9 * LAMPORTS],
        pre_token_balances=entries(pre_tokens),
        post_token_balances=entries(post_tokens),
        success=success,
        fee_lamports=fee,
        block_time=block_time,
    )


class FakeLedger:
    """
    In-memory ledger. feeds[address] is newest-first; details by signature;
    holdings per address are (native, fungible, collectibles).
    """

    def __init__(self) -> None:
        self.feeds: dict[str, list[ActivityItem]] = {}
        self.details: dict[str, ActivityDetail] = {}
        self.native: dict[str, Decimal] = {}
        self.fungible: dict[str, dict[str, FungibleHolding]] = {}
        self.enriched: dict[str, EnrichedHoldings] = {}
        self.fail_feed: set[str] = set()
        self.fail_detail: set[str] = set()
        self.fail_balance: set[str] = set()
        self.fail_enriched: set[str] = set()
        self.feed_calls: list[tuple[str, int]] = []

    def push(self, address: str, detail: ActivityDetail) -> None:
        """Append a new activity at the head of the feed."""
        self.feeds.setdefault(address, []).insert(0, ActivityItem(id=detail.signature))
        self.details[detail.signature] = detail

    def set_holdings(
        self,
        address: str,
        native: str,
        fungible: dict[str, FungibleHolding] | None = None,
        enriched: EnrichedHoldings | None = None,
    ) -> None:
        self.native[address] = Decimal(native)
        self.fungible[address] = dict(fungible or {})
        self.enriched[address] = enriched or EnrichedHoldings()

    async def list_recent_activity(self, address: str, limit: int) -> list[ActivityItem]:
        self.feed_calls.append((address, limit))
        if address in self.fail_feed:
            raise LedgerRPCError("getSignaturesForAddress", "connection refused")
        return list(self.feeds.get(address, []))[:limit]

    async def get_activity_detail(self, signature: str) -> ActivityDetail | None:
        if signature in self.fail_detail:
            raise LedgerRPCError("getTransaction", "timeout")
        return self.details.get(signature)

    async def get_native_balance(self, address: str) -> Decimal:
        if address in self.fail_balance:
            raise LedgerRPCError("getBalance", "timeout")
        return self.native.get(address, Decimal(0))

    async def get_fungible_holdings(self, address: str) -> dict[str, FungibleHolding]:
        return {
            mint: FungibleHolding(h.amount, h.decimals, h.name, h.symbol)
            for mint, h in self.fungible.get(address, {}).items()
        }

    async def get_enriched_holdings(self, address: str) -> EnrichedHoldings:
        if address in self.fail_enriched:
            raise LedgerRPCError("getAssetsByOwner", "Method not found", -32601)
        return self.enriched.get(address, EnrichedHoldings())


class RecordingNotifier:
    """Notifier that records calls; activity notifications return msg-<n> ids."""

    def __init__(self) -> None:
        self.activity: list[tuple[str, str, object, str]] = []
        self.balance_changes: list[tuple[str, str, str | None]] = []
        self.matches: list[tuple[object, str]] = []
        self.errors: list[tuple[str, str, Exception]] = []

    async def on_activity_detected(self, address, owner_id, activity, summary):
        self.activity.append((address, owner_id, activity, summary))
        return f"msg-{len(self.activity)}"

    async def on_significant_balance_change(self, address, owner_id, comparison):
        self.balance_changes.append((address, owner_id, comparison))

    async def on_expectation_matched(self, match, signature):
        self.matches.append((match, signature))

    async def on_reconciliation_error(self, address, owner_id, error):
        self.errors.append((address, owner_id, error))


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def wallet_store(data_dir):
    store = WalletStore(data_dir / "walletMappings.json")
    store.load()
    return store


@pytest.fixture
def snapshot_store(data_dir):
    store = SnapshotStore(data_dir / "previousBalances.json")
    store.load()
    return store


@pytest.fixture
def expectation_store(data_dir):
    store = ExpectationStore(data_dir / "expectedPayments.json")
    store.load()
    return store


@pytest.fixture
def cursor_store(data_dir):
    store = CursorStore(data_dir / "walletCursors.json")
    store.load()
    return store


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def notifier():
    return RecordingNotifier()
