"""
Command service — the user-facing command surface over the stores.

Every command validates its input and raises a ValidationError subclass on
rejection; nothing reaches the stores unless it is valid. Callers (the CLI,
a chat adapter) render the returned objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from wallet_watcher.balances.models import parse_timestamp
from wallet_watcher.core.exceptions import (
    DuplicateNoteError,
    DuplicateWalletError,
    InvalidAddressError,
    NoRecentNotificationError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from wallet_watcher.expectations.models import (
    MAX_NOTE_LENGTH,
    ExpectedPayment,
    PaymentNote,
    PaymentStatus,
    generate_id,
)
from wallet_watcher.solana_listener.cursor import CursorTracker
from wallet_watcher.storage.expectation_store import ExpectationStore
from wallet_watcher.storage.snapshot_store import SnapshotStore
from wallet_watcher.storage.wallet_store import UserStats, WalletStore
from wallet_watcher.utils.wallet_utils import is_valid_wallet
from wallet_watcher.watcher_logging import get_logger

logger = get_logger(__name__)

DEFAULT_NOTE_LIST_LIMIT = 10


@dataclass
class ExpectedPaymentsByStatus:
    pending: list[ExpectedPayment] = field(default_factory=list)
    received: list[ExpectedPayment] = field(default_factory=list)
    expired: list[ExpectedPayment] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.pending) + len(self.received) + len(self.expired)


@dataclass
class NoteListing:
    """One page of payment notes, newest first, plus the count before the limit."""

    notes: list[PaymentNote]
    total: int


def parse_amount(raw: str | Decimal | int | float, what: str = "amount") -> Decimal:
    """Parse a user-supplied amount into a finite Decimal."""
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid {what}: {raw!r}") from e
    if not value.is_finite():
        raise ValidationError(f"Invalid {what}: {raw!r}")
    return value


def parse_due_date(raw: str | None) -> datetime | None:
    """YYYY-MM-DD (midnight UTC) or a full ISO-8601 timestamp; None/empty → no due date."""
    if raw is None or not raw.strip():
        return None
    try:
        return parse_timestamp(raw.strip())
    except ValueError as e:
        raise ValidationError("Invalid due date format! Use YYYY-MM-DD format.") from e


def _check_note_text(text: str) -> str:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Note must not be empty")
    if len(text) > MAX_NOTE_LENGTH:
        raise ValidationError(f"Note too long! Keep notes under {MAX_NOTE_LENGTH} characters.")
    return text


class CommandService:
    def __init__(
        self,
        wallet_store: WalletStore,
        snapshot_store: SnapshotStore,
        expectation_store: ExpectationStore,
        tracker: CursorTracker | None = None,
    ) -> None:
        self._wallets = wallet_store
        self._snapshots = snapshot_store
        self._expectations = expectation_store
        self._tracker = tracker

    # Watched wallets

    def add_wallet(self, user_id: str, address: str) -> None:
        address = (address or "").strip()
        if not is_valid_wallet(address):
            raise InvalidAddressError("Invalid Solana wallet address! Please provide a valid address.")
        owner = self._wallets.owner_of(address)
        if owner == user_id:
            raise DuplicateWalletError("You are already monitoring this wallet!")
        if owner is not None:
            raise DuplicateWalletError("This wallet is already being monitored by another user!")
        self._wallets.add(user_id, address)
        logger.info("wallet_added", wallet_id=address, user_id=user_id)

    def remove_wallet(self, user_id: str, address: str) -> None:
        """Stop watching address; its snapshot and cursor are dropped too."""
        address = (address or "").strip()
        owner = self._wallets.owner_of(address)
        if owner is None:
            raise NotFoundError("This wallet is not being monitored!")
        if owner != user_id:
            raise NotAuthorizedError("You can only remove wallets that you added!")
        self._wallets.remove(user_id, address)
        self._snapshots.delete(address)
        if self._tracker is not None:
            self._tracker.forget(address)
        logger.info("wallet_removed", wallet_id=address, user_id=user_id)

    def list_wallets(self, user_id: str) -> list[str]:
        return self._wallets.user_wallets(user_id)

    def wallet_stats(self, user_id: str) -> UserStats:
        return self._wallets.user_stats(user_id)

    # Expected payments

    def expect_payment(
        self,
        user_id: str,
        address: str,
        amount: str | Decimal | int | float,
        note: str,
        *,
        asset_id: str | None = None,
        tolerance: str | Decimal | int | float | None = None,
        due_date: str | None = None,
    ) -> ExpectedPayment:
        address = (address or "").strip()
        if not is_valid_wallet(address):
            raise InvalidAddressError("Invalid Solana wallet address!")
        if self._wallets.owner_of(address) != user_id:
            raise NotAuthorizedError(
                "You can only expect payments on wallets you own! Add the wallet first."
            )
        target = parse_amount(amount)
        if target <= 0:
            raise ValidationError("Expected amount must be positive")
        band = parse_amount(tolerance, "tolerance") if tolerance not in (None, "") else Decimal(0)
        if band < 0:
            raise ValidationError("Tolerance must be non-negative")
        asset_id = (asset_id or "").strip() or None
        if asset_id is not None and not is_valid_wallet(asset_id):
            raise InvalidAddressError("Invalid token mint address!")

        payment = ExpectedPayment(
            id=generate_id(),
            user_id=user_id,
            address=address,
            amount=target,
            note=_check_note_text(note),
            asset_id=asset_id,
            tolerance=band,
            due_at=parse_due_date(due_date),
        )
        self._expectations.add_expected_payment(payment)
        return payment

    def list_expected_payments(self, user_id: str) -> ExpectedPaymentsByStatus:
        grouped = ExpectedPaymentsByStatus()
        for payment in self._expectations.expected_payments(user_id):
            if payment.status is PaymentStatus.PENDING:
                grouped.pending.append(payment)
            elif payment.status is PaymentStatus.RECEIVED:
                grouped.received.append(payment)
            else:
                grouped.expired.append(payment)
        return grouped

    def remove_expected_payment(self, user_id: str, payment_id: str) -> ExpectedPayment:
        return self._expectations.remove_expected_payment(user_id, payment_id.strip())

    # Payment notes

    def add_payment_note(
        self, user_id: str, signature: str, text: str, *, address: str = ""
    ) -> PaymentNote:
        """Attach a user note to a transaction; one note per signature."""
        signature = (signature or "").strip()
        if not signature:
            raise ValidationError("Transaction signature must not be empty")
        if self._expectations.note_for_transaction(signature) is not None:
            raise DuplicateNoteError(
                "A note already exists for this transaction. Each transaction can only have one note."
            )
        note = PaymentNote(
            id=generate_id(),
            user_id=user_id,
            address=address,
            signature=signature,
            note=_check_note_text(text),
        )
        self._expectations.add_payment_note(note)
        return note

    def list_payment_notes(
        self,
        user_id: str,
        *,
        search: str | None = None,
        wallet: str | None = None,
        limit: int = DEFAULT_NOTE_LIST_LIMIT,
    ) -> NoteListing:
        """User's notes, case-insensitive text/wallet substring filters, newest first."""
        notes = self._expectations.payment_notes(user_id)
        if search:
            needle = search.lower()
            notes = [n for n in notes if needle in n.note.lower()]
        if wallet:
            needle = wallet.lower()
            notes = [n for n in notes if needle in n.address.lower()]
        notes.sort(key=lambda n: n.created_at, reverse=True)
        return NoteListing(notes=notes[: max(1, limit)], total=len(notes))

    def get_transaction_note(self, user_id: str, signature: str) -> PaymentNote:
        note = self._expectations.note_for_transaction((signature or "").strip())
        if note is None:
            raise NotFoundError(f"No note found for transaction {signature}")
        if note.user_id != user_id:
            raise NotAuthorizedError("You don't have permission to view this note.")
        return note

    def add_follow_up_note(
        self, user_id: str, text: str, now: datetime | None = None
    ) -> PaymentNote:
        """
        Attach text to the user's most recent transaction notification.

        Only valid inside the follow-up window; the slot is consumed on success.
        """
        recent = self._expectations.recent_notification(user_id, now or datetime.now(timezone.utc))
        if recent is None:
            raise NoRecentNotificationError(
                "No recent transaction to add a note to. Notes can be added by replying to "
                "transaction alerts within 30 minutes, or with add-payment-note and a signature."
            )
        note = self.add_payment_note(user_id, recent.signature, text, address=recent.address)
        self._expectations.clear_recent_notification(user_id)
        return note
