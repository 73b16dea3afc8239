"""
Main entrypoint: Wallet Watcher reconciliation process.

Loads settings from the environment / .env, wires the JSON stores, ledger
client and notifier, then runs reconciliation ticks until SIGINT/SIGTERM.

Env: SOLANA_RPC_URL (or HELIUS_API_KEY), DAS_RPC_URL, DATA_DIR, POLL_INTERVAL_SEC,
NOTIFY_WEBHOOK_URL, PERSIST_CURSORS, LOG_LEVEL, etc.

Commands (add wallet, expect payment, notes): py -m wallet_watcher.tools.watch_cli --help
"""

import sys

from wallet_watcher.agent_worker.runtime import main

if __name__ == "__main__":
    sys.exit(main())
