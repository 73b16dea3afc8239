"""
Tests for the expectation store: persistence, ownership-gated removal,
lifecycle transitions, note uniqueness and the recent-notification window.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from conftest import VALID_WALLET
from wallet_watcher.core.exceptions import (
    DuplicateNoteError,
    InvalidTransitionError,
    NotAuthorizedError,
    NotFoundError,
)
from wallet_watcher.expectations import ExpectedPayment, PaymentNote, PaymentStatus, RecentNotification
from wallet_watcher.storage import ExpectationStore

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _payment(pid: str, amount: str = "1.0", *, user_id: str = "u1", due_at=None) -> ExpectedPayment:
    return ExpectedPayment(
        id=pid,
        user_id=user_id,
        address=VALID_WALLET,
        amount=Decimal(amount),
        note=f"invoice {pid}",
        due_at=due_at,
    )


def _note(nid: str, signature: str, user_id: str = "u1") -> PaymentNote:
    return PaymentNote(id=nid, user_id=user_id, address=VALID_WALLET, signature=signature, note="rent")


def test_payments_round_trip_through_file(expectation_store):
    """Expected payments persist with Decimal amounts as strings and reload in order."""
    expectation_store.add_expected_payment(_payment("p1", "1.5"))
    expectation_store.add_expected_payment(_payment("p2", "0.000000001"))

    raw = json.loads(expectation_store.path.read_text(encoding="utf-8"))
    assert raw["expectedPayments"][0][0] == "p1"
    assert raw["expectedPayments"][0][1]["expectedAmount"] == "1.5"
    assert "lastUpdated" in raw

    reloaded = ExpectationStore(expectation_store.path)
    reloaded.load()
    assert [p.id for p in reloaded.all_expected_payments()] == ["p1", "p2"]
    assert reloaded.get_expected_payment("p2").amount == Decimal("0.000000001")


def test_remove_requires_owner(expectation_store):
    """Removal is gated by ownership; unknown ids are NotFound."""
    expectation_store.add_expected_payment(_payment("p1"))
    with pytest.raises(NotAuthorizedError):
        expectation_store.remove_expected_payment("someone-else", "p1")
    with pytest.raises(NotFoundError):
        expectation_store.remove_expected_payment("u1", "missing")
    removed = expectation_store.remove_expected_payment("u1", "p1")
    assert removed.id == "p1"
    assert expectation_store.expected_payments("u1") == []


def test_mark_received_is_one_way(expectation_store):
    """pending → received once; a second transition is rejected."""
    expectation_store.add_expected_payment(_payment("p1"))
    expectation_store.mark_received("p1")
    assert expectation_store.get_expected_payment("p1").status is PaymentStatus.RECEIVED
    with pytest.raises(InvalidTransitionError):
        expectation_store.mark_received("p1")


def test_received_expectation_no_longer_matches(expectation_store):
    """After mark_received the same amount finds no match."""
    expectation_store.add_expected_payment(_payment("p1", "2"))
    found = expectation_store.find_match(VALID_WALLET, Decimal("2"))
    expectation_store.mark_received(found.expectation.id)
    assert expectation_store.find_match(VALID_WALLET, Decimal("2")) is None


def test_expire_overdue_only_touches_pending_past_due(expectation_store):
    """Overdue pending → expired; received and not-yet-due stay unchanged."""
    expectation_store.add_expected_payment(_payment("late", due_at=NOW - timedelta(days=1)))
    expectation_store.add_expected_payment(_payment("future", due_at=NOW + timedelta(days=1)))
    expectation_store.add_expected_payment(_payment("paid", due_at=NOW - timedelta(days=2)))
    expectation_store.mark_received("paid")

    assert expectation_store.expire_overdue(NOW) == 1
    assert expectation_store.get_expected_payment("late").status is PaymentStatus.EXPIRED
    assert expectation_store.get_expected_payment("future").status is PaymentStatus.PENDING
    assert expectation_store.get_expected_payment("paid").status is PaymentStatus.RECEIVED
    assert expectation_store.expire_overdue(NOW) == 0


def test_duplicate_note_for_signature_rejected(expectation_store):
    """Second note for the same signature raises and leaves the first intact."""
    expectation_store.add_payment_note(_note("n1", "sigA"))
    with pytest.raises(DuplicateNoteError):
        expectation_store.add_payment_note(_note("n2", "sigA"))
    assert [n.id for n in expectation_store.payment_notes("u1")] == ["n1"]
    assert expectation_store.note_for_transaction("sigA").id == "n1"


def test_recent_notification_window(expectation_store):
    """The slot is valid for 30 minutes; later lookups return None and pruning drops it."""
    expectation_store.set_recent_notification(
        RecentNotification(user_id="u1", signature="sigA", message_id="m1", address=VALID_WALLET, timestamp=NOW)
    )
    assert expectation_store.recent_notification("u1", NOW + timedelta(minutes=29)).signature == "sigA"
    assert expectation_store.recent_notification("u1", NOW + timedelta(minutes=31)) is None
    assert expectation_store.prune_recent_notifications(NOW + timedelta(minutes=31)) == 1
    assert expectation_store.recent_notification("u1", NOW) is None


def test_new_notification_overwrites_slot(expectation_store):
    """One slot per user: a newer notification replaces the older one."""
    for sig in ("sigA", "sigB"):
        expectation_store.set_recent_notification(
            RecentNotification(user_id="u1", signature=sig, message_id=sig, address=VALID_WALLET, timestamp=NOW)
        )
    assert expectation_store.recent_notification("u1", NOW).signature == "sigB"
