"""
Wallet Watcher — incremental reconciliation agent for watched Solana wallets.

Polls the ledger for new activity on each watched wallet, diffs balance
snapshots, matches incoming payments against user-declared expectations, and
forwards the results to a notifier. Modular layout: listener (cursor + RPC
client), balances (snapshots + differ), expectations (matcher + lifecycle),
storage (JSON file stores), alerts (notifiers) and agent worker (loop + runtime).
"""

__version__ = "0.1.0"
