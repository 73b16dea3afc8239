"""
Solana ledger listener package.

JSON-RPC client for the activity feed and holdings, the transaction parser
that turns raw getTransaction payloads into per-wallet summaries, and the
cursor tracker that yields only activity not yet reconciled.
"""

from wallet_watcher.solana_listener.client import LedgerClient, LedgerSource
from wallet_watcher.solana_listener.cursor import CursorTracker
from wallet_watcher.solana_listener.models import (
    ActivityDetail,
    ActivityItem,
    ActivitySummary,
    TokenBalanceEntry,
)
from wallet_watcher.solana_listener.parser import parse_activity_detail, summarize_activity

__all__ = [
    "ActivityDetail",
    "ActivityItem",
    "ActivitySummary",
    "CursorTracker",
    "LedgerClient",
    "LedgerSource",
    "TokenBalanceEntry",
    "parse_activity_detail",
    "summarize_activity",
]
