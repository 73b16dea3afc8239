"""
Tests for the transaction parser: raw getTransaction payloads to per-wallet summaries.
"""

from __future__ import annotations

from decimal import Decimal

from conftest import BONK_MINT, LAMPORTS, SENDER, USDC_MINT, VALID_WALLET, VALID_WALLET_2, make_detail
from wallet_watcher.solana_listener.parser import (
    ACTIVITY_OTHER,
    ACTIVITY_RECEIVED_SOL,
    ACTIVITY_RECEIVED_TOKENS,
    ACTIVITY_SENT_SOL,
    ACTIVITY_TOKEN_SWAP,
    parse_activity_detail,
    summarize_activity,
)


def _raw_tx() -> dict:
    return {
        "slot": 250_000_000,
        "blockTime": 1_700_000_000,
        "transaction": {
            "signatures": ["sigRaw"],
            "message": {"accountKeys": [SENDER, VALID_WALLET]},
        },
        "meta": {
            "err": None,
            "fee": 5000,
            "preBalances": [5 * LAMPORTS, 1 * LAMPORTS],
            "postBalances": [4 * LAMPORTS - 5000, 2 * LAMPORTS],
            "preTokenBalances": [
                {"accountIndex": 2, "mint": USDC_MINT, "owner": VALID_WALLET,
                 "uiTokenAmount": {"amount": "1000000", "decimals": 6}},
            ],
            "postTokenBalances": [
                {"accountIndex": 2, "mint": USDC_MINT, "owner": VALID_WALLET,
                 "uiTokenAmount": {"amount": "3500000", "decimals": 6}},
                {"accountIndex": 3, "mint": USDC_MINT, "owner": SENDER,
                 "uiTokenAmount": {"amount": "1", "decimals": 6}},
            ],
            "loadedAddresses": {"writable": [VALID_WALLET_2], "readonly": []},
        },
    }


def test_parse_activity_detail_from_raw():
    """Account keys include loaded addresses; signature falls back to the payload."""
    detail = parse_activity_detail(_raw_tx())
    assert detail.signature == "sigRaw"
    assert detail.account_keys == [SENDER, VALID_WALLET, VALID_WALLET_2]
    assert detail.success is True
    assert detail.fee_lamports == 5000
    assert detail.post_token_balances[0].amount == Decimal("3.5")


def test_parse_activity_detail_without_meta_is_none():
    """A payload with no meta has nothing to reconcile."""
    raw = _raw_tx()
    del raw["meta"]
    assert parse_activity_detail(raw) is None


def test_summarize_received_sol_and_tokens():
    """Receiver sees +1 SOL and +2.5 USDC; sender's token rows are ignored."""
    summary = summarize_activity(parse_activity_detail(_raw_tx()), VALID_WALLET)
    assert summary.success is True
    assert summary.native_change == Decimal("1")
    assert summary.fungible_changes == {USDC_MINT: Decimal("2.5")}
    assert summary.fee == Decimal("0.000005")
    assert summary.activity_type == ACTIVITY_RECEIVED_SOL
    assert summary.timestamp.year == 2023


def test_summarize_sent_sol():
    """The fee payer's native change is negative."""
    summary = summarize_activity(parse_activity_detail(_raw_tx()), SENDER)
    assert summary.native_change == Decimal("-1.000005")
    assert summary.activity_type == ACTIVITY_SENT_SOL


def test_token_only_activity_types():
    """Without a native change the type follows the sign mix of token changes."""
    received = make_detail("s1", pre_tokens={USDC_MINT: 0}, post_tokens={USDC_MINT: 5_000_000})
    assert summarize_activity(received, VALID_WALLET).activity_type == ACTIVITY_RECEIVED_TOKENS

    swap = make_detail(
        "s2",
        pre_tokens={USDC_MINT: 5_000_000, BONK_MINT: 0},
        post_tokens={USDC_MINT: 0, BONK_MINT: 7_000_000},
    )
    summary = summarize_activity(swap, VALID_WALLET)
    assert summary.activity_type == ACTIVITY_TOKEN_SWAP
    assert summary.fungible_changes == {USDC_MINT: Decimal("-5"), BONK_MINT: Decimal("7")}


def test_wallet_not_in_account_keys():
    """An unrelated wallet gets an empty, unsuccessful summary."""
    summary = summarize_activity(make_detail("s1", pre_lamports=0, post_lamports=LAMPORTS), VALID_WALLET_2)
    assert summary.success is False
    assert summary.native_change == 0
    assert summary.fungible_changes == {}
    assert summary.activity_type == ACTIVITY_OTHER
