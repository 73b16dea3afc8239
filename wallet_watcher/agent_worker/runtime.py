"""
Persistent watcher process: wires the components and drives reconciliation ticks.

An APScheduler AsyncIOScheduler runs ReconciliationLoop.tick on an interval
(POLL_INTERVAL_SEC), first fire immediately. The job is registered with
max_instances=1 and coalesce=True; the loop keeps its own single-flight guard
as well. SIGINT/SIGTERM stop scheduling; a tick in flight runs to completion
before the ledger client is closed.

Usage: python -m wallet_watcher.agent_worker.runtime
"""

from __future__ import annotations

import asyncio
import signal
import sys
from dataclasses import dataclass
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from wallet_watcher.agent_worker.reconciler import ReconciliationLoop
from wallet_watcher.alerts.notifier import LoggingNotifier, Notifier, WebhookNotifier
from wallet_watcher.balances.service import BalanceService
from wallet_watcher.config import WatcherSettings, get_settings
from wallet_watcher.config.env import mask_rpc_url
from wallet_watcher.solana_listener.client import LedgerClient
from wallet_watcher.solana_listener.cursor import CursorTracker
from wallet_watcher.storage import CursorStore, ExpectationStore, SnapshotStore, WalletStore
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)

RECONCILE_JOB_ID = "wallet_watcher_reconcile"
SHUTDOWN_POLL_SEC = 0.2


@dataclass
class WatcherComponents:
    """Everything one watcher process owns; built once by build_components."""

    settings: WatcherSettings
    wallet_store: WalletStore
    snapshot_store: SnapshotStore
    expectation_store: ExpectationStore
    cursor_store: CursorStore
    ledger: LedgerClient
    balance_service: BalanceService
    tracker: CursorTracker
    notifier: Notifier
    loop: ReconciliationLoop

    async def aclose(self) -> None:
        await self.ledger.aclose()
        if isinstance(self.notifier, WebhookNotifier):
            await self.notifier.aclose()


def build_notifier(settings: WatcherSettings) -> Notifier:
    if settings.notify_webhook_url:
        return WebhookNotifier(settings.notify_webhook_url)
    return LoggingNotifier()


def build_components(settings: WatcherSettings) -> WatcherComponents:
    """Load the stores from settings.data_dir and wire the reconciliation loop."""
    wallet_store = WalletStore(settings.wallet_store_path)
    snapshot_store = SnapshotStore(settings.snapshot_store_path)
    expectation_store = ExpectationStore(settings.expectation_store_path)
    cursor_store = CursorStore(settings.cursor_store_path)
    for store in (wallet_store, snapshot_store, expectation_store, cursor_store):
        store.load()

    ledger = LedgerClient(
        settings.rpc_url,
        das_rpc_url=settings.das_rpc_url,
        timeout_sec=settings.rpc_timeout_sec,
    )
    balance_service = BalanceService(ledger)
    tracker = CursorTracker(ledger, cursor_store, window=settings.activity_window)
    notifier = build_notifier(settings)
    loop = ReconciliationLoop(
        wallet_store,
        snapshot_store,
        expectation_store,
        tracker,
        ledger,
        balance_service,
        notifier,
        item_delay_sec=settings.item_delay_sec,
        wallet_delay_sec=settings.wallet_delay_sec,
    )
    return WatcherComponents(
        settings=settings,
        wallet_store=wallet_store,
        snapshot_store=snapshot_store,
        expectation_store=expectation_store,
        cursor_store=cursor_store,
        ledger=ledger,
        balance_service=balance_service,
        tracker=tracker,
        notifier=notifier,
        loop=loop,
    )


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))


async def run(settings: WatcherSettings) -> None:
    """Run the watcher until SIGINT/SIGTERM."""
    components = build_components(settings)
    stop = asyncio.Event()
    _install_signal_handlers(stop)

    scheduler = AsyncIOScheduler(timezone=timezone.utc)
    scheduler.add_job(
        components.loop.tick,
        "interval",
        seconds=settings.poll_interval_sec,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(timezone.utc),
        id=RECONCILE_JOB_ID,
    )
    scheduler.start()
    logger.info(
        "watcher_started",
        rpc_url=mask_rpc_url(settings.rpc_url),
        wallet_count=components.wallet_store.total_wallet_count(),
        poll_interval_sec=settings.poll_interval_sec,
        activity_window=settings.activity_window,
        persist_cursors=settings.persist_cursors,
        notifier=type(components.notifier).__name__,
        data_dir=str(settings.data_dir),
    )

    try:
        await stop.wait()
        logger.info("watcher_shutdown_signal")
    finally:
        scheduler.shutdown(wait=False)
        while components.loop.is_running:
            await asyncio.sleep(SHUTDOWN_POLL_SEC)
        await components.aclose()
        stats = components.loop.stats
        logger.info(
            "watcher_stopped",
            ticks=stats.ticks,
            items_processed=stats.items_processed,
            matches=stats.matches,
        )


def main() -> int:
    settings = get_settings()
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("watcher_interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
