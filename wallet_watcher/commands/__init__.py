"""
Command surface — wallet, expected-payment and payment-note commands with validation.
"""

from wallet_watcher.commands.service import (
    CommandService,
    ExpectedPaymentsByStatus,
    NoteListing,
)

__all__ = [
    "CommandService",
    "ExpectedPaymentsByStatus",
    "NoteListing",
]
