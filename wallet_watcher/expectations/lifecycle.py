"""Status transitions for expected payments."""

from __future__ import annotations

from datetime import datetime

from wallet_watcher.core.exceptions import InvalidTransitionError
from wallet_watcher.expectations.models import ExpectedPayment, PaymentStatus

_ALLOWED = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.RECEIVED, PaymentStatus.EXPIRED}),
    PaymentStatus.RECEIVED: frozenset(),
    PaymentStatus.EXPIRED: frozenset(),
}


def transition(payment: ExpectedPayment, target: PaymentStatus) -> None:
    """Move payment to target; raise InvalidTransitionError for anything but pending → terminal."""
    if target not in _ALLOWED[payment.status]:
        raise InvalidTransitionError(
            f"Expected payment {payment.id}: {payment.status.value} -> {target.value} not allowed"
        )
    payment.status = target


def is_overdue(payment: ExpectedPayment, now: datetime) -> bool:
    return (
        payment.status is PaymentStatus.PENDING
        and payment.due_at is not None
        and payment.due_at < now
    )
