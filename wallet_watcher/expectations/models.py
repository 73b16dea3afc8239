"""
Data models for expected payments, payment notes and the recent-notification index.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from wallet_watcher.balances.models import parse_timestamp

MAX_NOTE_LENGTH = 500
RECENT_NOTIFICATION_TTL = timedelta(minutes=30)
EXPECTED_NOTE_PREFIX = "Expected payment: "

_ID_ALPHABET = string.digits + string.ascii_lowercase


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ID_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Base-36 millisecond timestamp followed by nine random base-36 characters."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return _base36(int(time.time() * 1000)) + suffix


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentStatus(str, Enum):
    """One-way lifecycle: pending → received | expired."""

    PENDING = "pending"
    RECEIVED = "received"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


@dataclass
class ExpectedPayment:
    """
    A user's declaration that a specific amount should arrive at one of their wallets.

    asset_id None means native SOL. tolerance 0 means exact match only.
    """

    id: str
    user_id: str
    address: str
    amount: Decimal
    note: str
    asset_id: str | None = None
    tolerance: Decimal = Decimal(0)
    created_at: datetime = field(default_factory=_utcnow)
    due_at: datetime | None = None
    status: PaymentStatus = PaymentStatus.PENDING

    def __post_init__(self) -> None:
        if self.tolerance < 0:
            raise ValueError("tolerance must be non-negative")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "walletAddress": self.address,
            "expectedAmount": str(self.amount),
            "tokenMint": self.asset_id,
            "note": self.note,
            "dateCreated": self.created_at.isoformat(),
            "dueDate": self.due_at.isoformat() if self.due_at else None,
            "status": self.status.value,
            "tolerance": str(self.tolerance),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExpectedPayment":
        return cls(
            id=str(data["id"]),
            user_id=str(data["userId"]),
            address=data["walletAddress"],
            amount=Decimal(str(data["expectedAmount"])),
            note=data.get("note") or "",
            asset_id=data.get("tokenMint") or None,
            tolerance=Decimal(str(data.get("tolerance") or 0)),
            created_at=parse_timestamp(data.get("dateCreated")) or _utcnow(),
            due_at=parse_timestamp(data.get("dueDate")),
            status=PaymentStatus(data.get("status") or PaymentStatus.PENDING.value),
        )


@dataclass
class PaymentNote:
    """Free text attached to exactly one transaction signature."""

    id: str
    user_id: str
    address: str
    signature: str
    note: str
    created_at: datetime = field(default_factory=_utcnow)
    is_expected_payment: bool = False
    expected_payment_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "userId": self.user_id,
            "walletAddress": self.address,
            "transactionSignature": self.signature,
            "note": self.note,
            "dateCreated": self.created_at.isoformat(),
            "isExpectedPayment": self.is_expected_payment,
        }
        if self.expected_payment_id:
            out["expectedPaymentId"] = self.expected_payment_id
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentNote":
        return cls(
            id=str(data["id"]),
            user_id=str(data["userId"]),
            address=data.get("walletAddress") or "",
            signature=data["transactionSignature"],
            note=data.get("note") or "",
            created_at=parse_timestamp(data.get("dateCreated")) or _utcnow(),
            is_expected_payment=bool(data.get("isExpectedPayment")),
            expected_payment_id=data.get("expectedPaymentId"),
        )


@dataclass
class RecentNotification:
    """Most recent transaction notification sent to a user (single slot per user)."""

    user_id: str
    signature: str
    message_id: str
    address: str
    timestamp: datetime = field(default_factory=_utcnow)

    def is_fresh(self, now: datetime, ttl: timedelta = RECENT_NOTIFICATION_TTL) -> bool:
        return now - self.timestamp <= ttl

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "transactionSignature": self.signature,
            "messageId": self.message_id,
            "walletAddress": self.address,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecentNotification":
        return cls(
            user_id=str(data["userId"]),
            signature=data["transactionSignature"],
            message_id=str(data.get("messageId") or ""),
            address=data.get("walletAddress") or "",
            timestamp=parse_timestamp(data.get("timestamp")) or _utcnow(),
        )


@dataclass(frozen=True)
class ExpectationMatch:
    """Result of matching an observed incoming amount against pending expectations."""

    expectation: ExpectedPayment
    observed_amount: Decimal
    variance: Decimal
    is_exact: bool
    is_within_tolerance: bool = True
