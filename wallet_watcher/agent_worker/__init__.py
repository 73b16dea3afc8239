"""
Agent worker package — the long-running watcher process.

Owns the reconciliation loop (cursor → summary → matcher → snapshot diff →
notifier) and the runtime that schedules its ticks and handles shutdown.
"""

from wallet_watcher.agent_worker.reconciler import ReconcileStats, ReconciliationLoop
from wallet_watcher.agent_worker.runtime import WatcherComponents, build_components, main, run

__all__ = [
    "ReconcileStats",
    "ReconciliationLoop",
    "WatcherComponents",
    "build_components",
    "main",
    "run",
]
