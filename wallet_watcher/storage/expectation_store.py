"""
Expectation store — expected payments, payment notes, recent-notification index.

All three collections live in one document and are rewritten together.
Insertion order of expected payments is preserved on disk (list of pairs) and
is the order the matcher uses for first-match tie-breaking.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from wallet_watcher.core.exceptions import DuplicateNoteError, NotAuthorizedError, NotFoundError
from wallet_watcher.expectations import lifecycle
from wallet_watcher.expectations.matcher import match
from wallet_watcher.expectations.models import (
    RECENT_NOTIFICATION_TTL,
    ExpectationMatch,
    ExpectedPayment,
    PaymentNote,
    PaymentStatus,
    RecentNotification,
)
from wallet_watcher.storage.json_store import JsonFileStore, from_pairs, to_pairs
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)


class ExpectationStore(JsonFileStore):
    store_name = "expectations"

    def _reset(self) -> None:
        self._payments: dict[str, ExpectedPayment] = {}
        self._notes: dict[str, PaymentNote] = {}
        self._recent: dict[str, RecentNotification] = {}

    def _hydrate(self, data: dict[str, Any]) -> bool:
        self._payments = from_pairs(data.get("expectedPayments"), ExpectedPayment.from_dict)
        self._notes = from_pairs(data.get("paymentNotes"), PaymentNote.from_dict)
        self._recent = from_pairs(data.get("recentTransactionMessages"), RecentNotification.from_dict)
        return False

    def _serialize(self) -> dict[str, Any]:
        return {
            "expectedPayments": to_pairs(self._payments, lambda p: p.to_dict()),
            "paymentNotes": to_pairs(self._notes, lambda n: n.to_dict()),
            "recentTransactionMessages": to_pairs(self._recent, lambda r: r.to_dict()),
        }

    def _count(self) -> int:
        return len(self._payments) + len(self._notes)

    # Expected payments

    def add_expected_payment(self, payment: ExpectedPayment) -> None:
        self._payments[payment.id] = payment
        self.save()
        logger.info(
            "expectation_added",
            expectation_id=payment.id,
            user_id=payment.user_id,
            wallet_id=payment.address,
            amount=payment.amount,
            asset_id=payment.asset_id,
        )

    def remove_expected_payment(self, user_id: str, payment_id: str) -> ExpectedPayment:
        """Delete an expectation in any status; only its owner may do so."""
        payment = self._payments.get(payment_id)
        if payment is None:
            raise NotFoundError(f"Expected payment {payment_id} not found")
        if payment.user_id != user_id:
            raise NotAuthorizedError(f"Expected payment {payment_id} belongs to another user")
        del self._payments[payment_id]
        self.save()
        logger.info("expectation_removed", expectation_id=payment_id, user_id=user_id)
        return payment

    def expected_payments(self, user_id: str) -> list[ExpectedPayment]:
        return [p for p in self._payments.values() if p.user_id == user_id]

    def all_expected_payments(self) -> list[ExpectedPayment]:
        return list(self._payments.values())

    def get_expected_payment(self, payment_id: str) -> ExpectedPayment | None:
        return self._payments.get(payment_id)

    def find_match(
        self, address: str, amount: Decimal, asset_id: str | None = None
    ) -> ExpectationMatch | None:
        return match(self._payments.values(), address, amount, asset_id)

    def mark_received(self, payment_id: str) -> ExpectedPayment:
        payment = self._payments.get(payment_id)
        if payment is None:
            raise NotFoundError(f"Expected payment {payment_id} not found")
        lifecycle.transition(payment, PaymentStatus.RECEIVED)
        self.save()
        return payment

    def expire_overdue(self, now: datetime | None = None) -> int:
        """Mark pending expectations past their due time as expired; one write if any changed."""
        now = now or datetime.now(timezone.utc)
        expired = 0
        for payment in self._payments.values():
            if lifecycle.is_overdue(payment, now):
                lifecycle.transition(payment, PaymentStatus.EXPIRED)
                expired += 1
        if expired:
            self.save()
            logger.info("expectations_expired", count=expired)
        return expired

    # Payment notes

    def add_payment_note(self, note: PaymentNote) -> None:
        """Attach a note; at most one note per transaction signature."""
        existing = self.note_for_transaction(note.signature)
        if existing is not None:
            raise DuplicateNoteError(
                f"A note already exists for transaction {note.signature}"
            )
        self._notes[note.id] = note
        self.save()
        logger.info(
            "payment_note_added",
            note_id=note.id,
            user_id=note.user_id,
            signature=note.signature[:16],
            is_expected_payment=note.is_expected_payment,
        )

    def payment_notes(self, user_id: str) -> list[PaymentNote]:
        return [n for n in self._notes.values() if n.user_id == user_id]

    def note_for_transaction(self, signature: str) -> PaymentNote | None:
        for note in self._notes.values():
            if note.signature == signature:
                return note
        return None

    # Recent-notification index

    def set_recent_notification(self, notification: RecentNotification) -> None:
        self._recent[notification.user_id] = notification
        self.save()

    def recent_notification(
        self, user_id: str, now: datetime | None = None
    ) -> RecentNotification | None:
        """The user's last transaction notification, if still inside the follow-up window."""
        entry = self._recent.get(user_id)
        if entry is None:
            return None
        if not entry.is_fresh(now or datetime.now(timezone.utc)):
            return None
        return entry

    def clear_recent_notification(self, user_id: str) -> None:
        if self._recent.pop(user_id, None) is not None:
            self.save()

    def prune_recent_notifications(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        stale = [
            user_id
            for user_id, entry in self._recent.items()
            if now - entry.timestamp > RECENT_NOTIFICATION_TTL
        ]
        for user_id in stale:
            del self._recent[user_id]
        if stale:
            self.save()
            logger.info("recent_notifications_pruned", count=len(stale))
        return len(stale)
