"""
Reconciliation loop: one tick checks every watched wallet for new activity.

Per tick:
  lazy expiry of overdue expectations and stale recent-notification slots
  → wallets sequentially (wallet_delay_sec between them)
  → cursor tracker yields new activity oldest-first
  → per item (item_delay_sec between them):
       activity detail → summary (+ snapshot when it can be captured)
       → notifier (recent-notification slot)
       → expectation matcher on incoming amounts → mark received, note, notifier
       → diff → snapshot store → notifier if significant

Exception isolation: a failing item is logged and the next item runs; a
failing wallet is reported through on_reconciliation_error and the next
wallet runs. Ticks are single-flight: a tick started while another is still
running is skipped. Balance capture and comparison failures never block
the activity notification or matching of that item.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from wallet_watcher.alerts.notifier import Notifier
from wallet_watcher.balances.differ import diff
from wallet_watcher.balances.models import AssetSnapshot
from wallet_watcher.balances.formatting import activity_summary_text, comparison_text
from wallet_watcher.balances.service import BalanceService
from wallet_watcher.expectations.models import (
    EXPECTED_NOTE_PREFIX,
    ExpectationMatch,
    PaymentNote,
    RecentNotification,
    generate_id,
)
from wallet_watcher.solana_listener.client import LedgerSource
from wallet_watcher.solana_listener.cursor import CursorTracker
from wallet_watcher.solana_listener.models import ActivityItem, ActivitySummary
from wallet_watcher.solana_listener.parser import summarize_activity
from wallet_watcher.storage.expectation_store import ExpectationStore
from wallet_watcher.storage.snapshot_store import SnapshotStore
from wallet_watcher.storage.wallet_store import WalletStore
from wallet_watcher.utils.wallet_utils import short_address
from wallet_watcher.watcher_logging import bind_wallet, get_logger

logger = get_logger(__name__)

DEFAULT_ITEM_DELAY_SEC = 0.5
DEFAULT_WALLET_DELAY_SEC = 1.0


@dataclass
class ReconcileStats:
    """Mutable counters for heartbeat and status output."""

    ticks: int = 0
    skipped_ticks: int = 0
    items_processed: int = 0
    item_errors: int = 0
    wallet_errors: int = 0
    matches: int = 0
    last_tick_at: datetime | None = None
    last_tick_duration_sec: float | None = None
    last_error: str | None = None


class ReconciliationLoop:
    def __init__(
        self,
        wallet_store: WalletStore,
        snapshot_store: SnapshotStore,
        expectation_store: ExpectationStore,
        tracker: CursorTracker,
        ledger: LedgerSource,
        balance_service: BalanceService,
        notifier: Notifier,
        *,
        item_delay_sec: float = DEFAULT_ITEM_DELAY_SEC,
        wallet_delay_sec: float = DEFAULT_WALLET_DELAY_SEC,
    ) -> None:
        self._wallets = wallet_store
        self._snapshots = snapshot_store
        self._expectations = expectation_store
        self._tracker = tracker
        self._ledger = ledger
        self._balances = balance_service
        self._notifier = notifier
        self._item_delay = max(0.0, item_delay_sec)
        self._wallet_delay = max(0.0, wallet_delay_sec)
        self._running = False
        self.stats = ReconcileStats()

    @property
    def is_running(self) -> bool:
        return self._running

    async def tick(self, now: datetime | None = None) -> bool:
        """
        Run one reconciliation pass over all watched wallets.

        Returns False when skipped because another tick is still in flight.
        """
        if self._running:
            self.stats.skipped_ticks += 1
            logger.info("reconcile_tick_skipped", skipped_ticks=self.stats.skipped_ticks)
            return False

        self._running = True
        started = time.monotonic()
        now = now or datetime.now(timezone.utc)
        try:
            self._housekeeping(now)
            addresses = self._wallets.all_wallets()
            logger.info("reconcile_tick_start", wallet_count=len(addresses))
            for index, address in enumerate(addresses):
                if index and self._wallet_delay:
                    await asyncio.sleep(self._wallet_delay)
                await self._check_wallet(address, now)
        finally:
            self._running = False
            elapsed = time.monotonic() - started
            self.stats.ticks += 1
            self.stats.last_tick_at = now
            self.stats.last_tick_duration_sec = round(elapsed, 2)
            logger.info(
                "reconcile_tick_done",
                tick=self.stats.ticks,
                items_processed=self.stats.items_processed,
                item_errors=self.stats.item_errors,
                wallet_errors=self.stats.wallet_errors,
                duration_sec=round(elapsed, 2),
            )
        return True

    def _housekeeping(self, now: datetime) -> None:
        try:
            self._expectations.expire_overdue(now)
            self._expectations.prune_recent_notifications(now)
        except Exception as e:
            self.stats.last_error = str(e)
            logger.exception("reconcile_housekeeping_failed", error=str(e))

    async def _check_wallet(self, address: str, now: datetime) -> None:
        owner_id = self._wallets.owner_of(address)
        if owner_id is None:
            return
        log = bind_wallet(address)
        try:
            items = await self._tracker.new_since(address)
            feed_error = self._tracker.pop_error(address)
            if feed_error is not None:
                await self._report_error(address, owner_id, feed_error)
                return
            for index, item in enumerate(items):
                if index and self._item_delay:
                    await asyncio.sleep(self._item_delay)
                try:
                    await self._reconcile_item(address, owner_id, item, now)
                    self.stats.items_processed += 1
                except Exception as e:
                    self.stats.item_errors += 1
                    self.stats.last_error = str(e)
                    log.exception("reconcile_item_failed", signature=item.id[:16], error=str(e))
        except Exception as e:
            log.exception("reconcile_wallet_failed", error=str(e))
            await self._report_error(address, owner_id, e)

    async def _report_error(self, address: str, owner_id: str, error: Exception) -> None:
        self.stats.wallet_errors += 1
        self.stats.last_error = str(error)
        try:
            await self._notifier.on_reconciliation_error(address, owner_id, error)
        except Exception as e:
            logger.exception("reconcile_error_report_failed", wallet_id=address, error=str(e))

    async def _reconcile_item(
        self, address: str, owner_id: str, item: ActivityItem, now: datetime
    ) -> None:
        detail = await self._ledger.get_activity_detail(item.id)
        if detail is None:
            logger.warning("reconcile_activity_missing", wallet_id=address, signature=item.id[:16])
            return
        activity = summarize_activity(detail, address)
        display_name = short_address(address)
        try:
            snapshot = await self._balances.capture_snapshot(address)
        except Exception as e:
            logger.warning(
                "balance_snapshot_failed", wallet_id=address, signature=item.id[:16], error=str(e)
            )
            snapshot = None

        summary = activity_summary_text(display_name, activity, snapshot)
        message_id = await self._notifier.on_activity_detected(address, owner_id, activity, summary)
        if message_id:
            self._expectations.set_recent_notification(
                RecentNotification(
                    user_id=owner_id,
                    signature=activity.signature,
                    message_id=message_id,
                    address=address,
                    timestamp=now,
                )
            )

        if activity.success:
            await self._match_incoming(address, activity)

        if snapshot is not None:
            await self._compare_balances(address, owner_id, display_name, snapshot)

    async def _compare_balances(
        self, address: str, owner_id: str, display_name: str, snapshot: AssetSnapshot
    ) -> None:
        try:
            previous = self._snapshots.get(address)
            delta = diff(previous, snapshot)
            self._snapshots.put(address, snapshot)
            comparison = comparison_text(display_name, delta, snapshot)
            if comparison is not None:
                await self._notifier.on_significant_balance_change(address, owner_id, comparison)
        except Exception as e:
            logger.exception("balance_comparison_failed", wallet_id=address, error=str(e))

    async def _match_incoming(self, address: str, activity: ActivitySummary) -> None:
        incoming: list[tuple[Decimal, str | None]] = []
        if activity.native_change > 0:
            incoming.append((activity.native_change, None))
        for mint, change in activity.fungible_changes.items():
            if change > 0:
                incoming.append((change, mint))

        for amount, asset_id in incoming:
            found = self._expectations.find_match(address, amount, asset_id)
            if found is not None:
                await self._record_match(address, found, activity.signature)

    async def _record_match(self, address: str, found: ExpectationMatch, signature: str) -> None:
        payment = self._expectations.mark_received(found.expectation.id)
        self.stats.matches += 1
        logger.info(
            "expectation_matched",
            wallet_id=address,
            expectation_id=payment.id,
            user_id=payment.user_id,
            signature=signature[:16],
            observed_amount=found.observed_amount,
            variance=found.variance,
            is_exact=found.is_exact,
        )
        if self._expectations.note_for_transaction(signature) is None:
            self._expectations.add_payment_note(
                PaymentNote(
                    id=generate_id(),
                    user_id=payment.user_id,
                    address=address,
                    signature=signature,
                    note=EXPECTED_NOTE_PREFIX + payment.note,
                    is_expected_payment=True,
                    expected_payment_id=payment.id,
                )
            )
        await self._notifier.on_expectation_matched(found, signature)
