"""
Application-level exceptions.

- LedgerRPCError: transient feed / RPC failures (recovered fail-soft by the loop).
- ValidationError and subclasses: rejected synchronously at the command boundary.
- StorePersistenceError: a store could not rewrite its backing file.
- StoreCorruptError: a store file exists but cannot be parsed (never overwritten).
- InvalidTransitionError: an expected payment was moved out of a terminal status.
"""

from __future__ import annotations


class WatcherError(Exception):
    """Base class for all wallet watcher errors."""


class LedgerRPCError(WatcherError):
    """Transport or JSON-RPC error from the ledger / indexer endpoint."""

    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        self.method = method
        self.code = code
        super().__init__(f"{method} failed: {message}" + (f" (code={code})" if code is not None else ""))


class ValidationError(WatcherError):
    """Command input rejected before it reaches the reconciliation core."""


class InvalidAddressError(ValidationError):
    """Address is not a valid Solana public key."""


class DuplicateWalletError(ValidationError):
    """Address is already watched (by this user or by another owner)."""


class DuplicateNoteError(ValidationError):
    """A payment note already exists for the transaction signature."""


class NotAuthorizedError(ValidationError):
    """The user does not own the wallet, expectation or note."""


class NotFoundError(ValidationError):
    """Referenced wallet, expectation or note does not exist."""


class NoRecentNotificationError(ValidationError):
    """No transaction notification within the follow-up window for this user."""


class StorePersistenceError(WatcherError):
    """Backing file rewrite failed; in-memory state already holds the mutation."""

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write store file {path}: {cause}")


class InvalidTransitionError(WatcherError):
    """Expected payment status change not allowed by the one-way lifecycle."""


class StoreCorruptError(WatcherError):
    """Backing file exists but is not a readable store document."""

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Store file {path} is unreadable: {cause}")
