"""
Solana transaction parser — raw getTransaction payloads to per-wallet summaries.

parse_activity_detail() extracts the balance-relevant fields of a transaction
(account keys incl. loaded addresses, lamport and token balances, fee, status).
summarize_activity() turns that detail into the signed native and token changes
seen by one wallet, plus a coarse activity type. Purely structural; no I/O.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from wallet_watcher.solana_listener.models import (
    ActivityDetail,
    ActivitySummary,
    TokenBalanceEntry,
)
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)

LAMPORTS_PER_SOL = Decimal(1_000_000_000)

ACTIVITY_RECEIVED_SOL = "Received SOL"
ACTIVITY_SENT_SOL = "Sent SOL"
ACTIVITY_TOKEN_SWAP = "Token Swap"
ACTIVITY_RECEIVED_TOKENS = "Received Tokens"
ACTIVITY_SENT_TOKENS = "Sent Tokens"
ACTIVITY_OTHER = "Other Transaction"


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / LAMPORTS_PER_SOL


def _get_account_keys(
    message: dict[str, Any],
    meta: dict[str, Any] | None = None,
) -> list[str]:
    """
    Resolve accountKeys to a list of base58 strings (handles json vs jsonParsed).
    For versioned transactions, appends meta.loadedAddresses (writable + readonly).
    """
    keys = message.get("accountKeys") or message.get("staticAccountKeys")
    if not keys:
        return []
    if isinstance(keys[0], str):
        out = list(keys)
    else:
        out = [k.get("pubkey", "") for k in keys if isinstance(k, dict)]
    loaded = (meta or {}).get("loadedAddresses") or {}
    for role in ("writable", "readonly"):
        for addr in loaded.get(role) or []:
            out.append(addr if isinstance(addr, str) else str(addr))
    return out


def _get_message_and_meta(raw: dict[str, Any]) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """Return (transaction.message, meta) from getTransaction-style result."""
    tx_obj = raw.get("transaction")
    if not tx_obj or not isinstance(tx_obj, dict):
        return None, None
    message = tx_obj.get("message")
    if not message or not isinstance(message, dict):
        return None, None
    meta = raw.get("meta")
    if not isinstance(meta, dict):
        meta = None
    return message, meta


def _token_entries(items: list[dict[str, Any]] | None) -> list[TokenBalanceEntry]:
    out: list[TokenBalanceEntry] = []
    for item in items or []:
        try:
            out.append(TokenBalanceEntry.from_rpc_item(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("parser_skip_token_balance", error=str(e))
    return out


def parse_activity_detail(raw: dict[str, Any], signature: str | None = None) -> ActivityDetail | None:
    """
    Parse a raw getTransaction result into an ActivityDetail.

    Returns None if the payload has no message or no meta (nothing to reconcile).
    """
    message, meta = _get_message_and_meta(raw)
    if not message or meta is None:
        return None
    account_keys = _get_account_keys(message, meta)
    if not account_keys:
        return None

    if signature is None:
        sigs = (raw.get("transaction") or {}).get("signatures") or []
        signature = sigs[0] if sigs else ""

    block_time = raw.get("blockTime")
    if block_time is not None and not isinstance(block_time, int):
        try:
            block_time = int(block_time)
        except (TypeError, ValueError):
            block_time = None

    return ActivityDetail(
        signature=signature,
        account_keys=account_keys,
        pre_balances=[int(b) for b in meta.get("preBalances") or []],
        post_balances=[int(b) for b in meta.get("postBalances") or []],
        pre_token_balances=_token_entries(meta.get("preTokenBalances")),
        post_token_balances=_token_entries(meta.get("postTokenBalances")),
        success=meta.get("err") is None,
        fee_lamports=int(meta.get("fee") or 0),
        block_time=block_time,
    )


def _owned_token_amounts(entries: list[TokenBalanceEntry], address: str) -> dict[str, Decimal]:
    amounts: dict[str, Decimal] = {}
    for entry in entries:
        if entry.owner != address:
            continue
        amounts[entry.mint] = amounts.get(entry.mint, Decimal(0)) + entry.amount
    return amounts


def determine_activity_type(native_change: Decimal, fungible_changes: dict[str, Decimal]) -> str:
    """Coarse label: native direction first, then the sign mix of token changes."""
    if native_change > 0:
        return ACTIVITY_RECEIVED_SOL
    if native_change < 0:
        return ACTIVITY_SENT_SOL
    if fungible_changes:
        has_positive = any(c > 0 for c in fungible_changes.values())
        has_negative = any(c < 0 for c in fungible_changes.values())
        if has_positive and has_negative:
            return ACTIVITY_TOKEN_SWAP
        if has_positive:
            return ACTIVITY_RECEIVED_TOKENS
        if has_negative:
            return ACTIVITY_SENT_TOKENS
    return ACTIVITY_OTHER


def summarize_activity(detail: ActivityDetail, address: str) -> ActivitySummary:
    """
    Compute the changes one wallet saw in a transaction.

    If the wallet is not among the account keys, the summary carries no
    changes and success=False.
    """
    timestamp = (
        datetime.fromtimestamp(detail.block_time, tz=timezone.utc)
        if detail.block_time
        else datetime.now(timezone.utc)
    )
    fee = lamports_to_sol(detail.fee_lamports)
    try:
        index = detail.account_keys.index(address)
    except ValueError:
        return ActivitySummary(
            signature=detail.signature,
            timestamp=timestamp,
            success=False,
            native_change=Decimal(0),
            fungible_changes={},
            fee=Decimal(0),
            activity_type=ACTIVITY_OTHER,
        )

    pre = detail.pre_balances[index] if index < len(detail.pre_balances) else 0
    post = detail.post_balances[index] if index < len(detail.post_balances) else 0
    native_change = lamports_to_sol(post - pre)

    pre_tokens = _owned_token_amounts(detail.pre_token_balances, address)
    post_tokens = _owned_token_amounts(detail.post_token_balances, address)
    fungible_changes: dict[str, Decimal] = {}
    for mint in list(pre_tokens) + [m for m in post_tokens if m not in pre_tokens]:
        change = post_tokens.get(mint, Decimal(0)) - pre_tokens.get(mint, Decimal(0))
        if change != 0:
            fungible_changes[mint] = change

    return ActivitySummary(
        signature=detail.signature,
        timestamp=timestamp,
        success=detail.success,
        native_change=native_change,
        fungible_changes=fungible_changes,
        fee=fee,
        activity_type=determine_activity_type(native_change, fungible_changes),
    )
