"""
Tests for the JSON store contract and the wallet / snapshot stores,
including migration of legacy on-disk shapes.
"""

from __future__ import annotations

import json
from decimal import Decimal

import pytest

from conftest import USDC_MINT, VALID_WALLET, VALID_WALLET_2
from wallet_watcher.balances import AssetSnapshot, CollectibleItem, FungibleHolding
from wallet_watcher.core.exceptions import StoreCorruptError, StorePersistenceError
from wallet_watcher.storage import CursorStore, ExpectationStore, SnapshotStore, WalletStore


def test_absent_file_starts_empty(tmp_path):
    """load() on a missing file is an empty store and creates nothing."""
    store = WalletStore(tmp_path / "walletMappings.json")
    store.load()
    assert store.all_wallets() == []
    assert not (tmp_path / "walletMappings.json").exists()


def test_corrupt_file_raises_and_is_not_overwritten(tmp_path):
    """Unparseable JSON raises StoreCorruptError; the file keeps its bytes."""
    path = tmp_path / "walletCursors.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreCorruptError):
        CursorStore(path).load()
    assert path.read_text(encoding="utf-8") == "{not json"


_PAYMENT = {"id": "p1", "userId": "u1", "walletAddress": VALID_WALLET, "expectedAmount": "1.5"}


@pytest.mark.parametrize(
    "store_cls, document",
    [
        (ExpectationStore, {"expectedPayments": [["p1", dict(_PAYMENT, expectedAmount="abc")]]}),
        (SnapshotStore, {"balances": [[VALID_WALLET, [1, 2]]]}),
        (SnapshotStore, {"balances": [[VALID_WALLET, {"native_balance": "1", "captured_at": 5}]]}),
    ],
    ids=["bad-amount", "non-object-record", "non-string-timestamp"],
)
def test_corrupt_values_raise_store_corrupt_error(tmp_path, store_cls, document):
    """Well-formed JSON with unreadable values is treated like a corrupt file."""
    path = tmp_path / "store.json"
    raw = json.dumps(document)
    path.write_text(raw, encoding="utf-8")
    with pytest.raises(StoreCorruptError):
        store_cls(path).load()
    assert path.read_text(encoding="utf-8") == raw


def test_failed_load_leaves_store_empty(tmp_path):
    """Payments hydrated before a bad note are discarded with the rest of the file."""
    path = tmp_path / "expectedPayments.json"
    bad_note = {"id": "n1", "userId": "u1", "transactionSignature": "s1", "dateCreated": 5}
    path.write_text(
        json.dumps({"expectedPayments": [["p1", _PAYMENT]], "paymentNotes": [["s1", bad_note]]}),
        encoding="utf-8",
    )
    store = ExpectationStore(path)
    with pytest.raises(StoreCorruptError):
        store.load()
    assert store.get_expected_payment("p1") is None


def test_write_failure_raises_persistence_error(tmp_path):
    """A store whose path is a directory cannot be written."""
    path = tmp_path / "is_a_dir"
    path.mkdir()
    store = CursorStore(path)
    with pytest.raises(StorePersistenceError):
        store.set(VALID_WALLET, "sig")
    # memory keeps the mutation (no rollback)
    assert store.get(VALID_WALLET) == "sig"


def test_memory_only_store_writes_nothing(tmp_path):
    """path=None keeps state in memory with the same API."""
    store = CursorStore(None)
    store.load()
    store.set(VALID_WALLET, "sig")
    assert store.get(VALID_WALLET) == "sig"
    assert list(tmp_path.iterdir()) == []


def test_wallet_store_persists_both_views(wallet_store):
    """userWallets and walletUsers are written as ordered pair lists."""
    wallet_store.add("u1", VALID_WALLET)
    wallet_store.add("u1", VALID_WALLET_2)
    raw = json.loads(wallet_store.path.read_text(encoding="utf-8"))
    assert raw["userWallets"] == [["u1", [VALID_WALLET, VALID_WALLET_2]]]
    assert raw["walletUsers"] == [[VALID_WALLET, "u1"], [VALID_WALLET_2, "u1"]]

    wallet_store.remove("u1", VALID_WALLET)
    reloaded = WalletStore(wallet_store.path)
    reloaded.load()
    assert reloaded.user_wallets("u1") == [VALID_WALLET_2]
    assert reloaded.owner_of(VALID_WALLET) is None
    stats = reloaded.user_stats("u1")
    assert stats.wallet_count == 1
    assert stats.wallets[0].short_address == f"{VALID_WALLET_2[:8]}...{VALID_WALLET_2[-8:]}"


def test_wallet_store_migrates_legacy_object_values(tmp_path):
    """userWallets written as objects is rebuilt from walletUsers and rewritten as arrays."""
    path = tmp_path / "walletMappings.json"
    path.write_text(
        json.dumps(
            {
                "userWallets": [["u1", {VALID_WALLET: True}]],
                "walletUsers": [[VALID_WALLET, "u1"]],
                "lastUpdated": "2024-01-01T00:00:00Z",
            }
        ),
        encoding="utf-8",
    )
    store = WalletStore(path)
    store.load()
    assert store.user_wallets("u1") == [VALID_WALLET]
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["userWallets"] == [["u1", [VALID_WALLET]]]


def test_wallet_store_rebuilds_missing_user_view(tmp_path):
    """A file with only walletUsers loads and gains userWallets."""
    path = tmp_path / "walletMappings.json"
    path.write_text(json.dumps({"walletUsers": [[VALID_WALLET, "u9"]]}), encoding="utf-8")
    store = WalletStore(path)
    store.load()
    assert store.user_wallets("u9") == [VALID_WALLET]
    assert json.loads(path.read_text(encoding="utf-8"))["userWallets"] == [["u9", [VALID_WALLET]]]


def test_snapshot_round_trip(snapshot_store):
    """Snapshots persist Decimal amounts exactly and reload equal."""
    snapshot = AssetSnapshot(
        native_balance=Decimal("2.000000001"),
        fungible={USDC_MINT: FungibleHolding(Decimal("12.5"), 6, "USD Coin", "USDC")},
        collectibles=[CollectibleItem("nft1", "Mad Lad #1", "coll", None)],
        total_assets=3,
    )
    snapshot_store.put(VALID_WALLET, snapshot)
    reloaded = SnapshotStore(snapshot_store.path)
    reloaded.load()
    got = reloaded.get(VALID_WALLET)
    assert got.native_balance == Decimal("2.000000001")
    assert got.fungible[USDC_MINT].amount == Decimal("12.5")
    assert got.fungible[USDC_MINT].symbol == "USDC"
    assert got.collectibles[0].id == "nft1"
    assert got.captured_at == snapshot.captured_at


def test_snapshot_store_migrates_legacy_records(tmp_path):
    """camelCase solBalance/tokenBalances/nftAssets records are migrated and rewritten."""
    path = tmp_path / "previousBalances.json"
    legacy = {
        "solBalance": 1.25,
        "tokenBalances": {
            USDC_MINT: {"amount": 3, "decimals": 6, "name": "USD Coin", "symbol": "USDC"},
            "deadmint": {"amount": 0, "decimals": 6},
        },
        "nftCount": 1,
        "nftAssets": [{"id": "nft1", "name": "Ape"}],
        "timestamp": "2024-05-01T10:00:00.000Z",
    }
    path.write_text(json.dumps({"balances": [[VALID_WALLET, legacy]]}), encoding="utf-8")
    store = SnapshotStore(path)
    store.load()
    snap = store.get(VALID_WALLET)
    assert snap.native_balance == Decimal("1.25")
    assert list(snap.fungible) == [USDC_MINT]
    assert snap.collectibles[0].name == "Ape"
    assert snap.captured_at.year == 2024

    record = json.loads(path.read_text(encoding="utf-8"))["balances"][0][1]
    assert "solBalance" not in record
    assert record["native_balance"] == "1.25"
