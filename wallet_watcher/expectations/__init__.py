"""
Expected payments — models, first-match matcher and one-way lifecycle.
"""

from wallet_watcher.expectations.matcher import match
from wallet_watcher.expectations.models import (
    ExpectationMatch,
    ExpectedPayment,
    PaymentNote,
    PaymentStatus,
    RecentNotification,
)

__all__ = [
    "ExpectationMatch",
    "ExpectedPayment",
    "PaymentNote",
    "PaymentStatus",
    "RecentNotification",
    "match",
]
