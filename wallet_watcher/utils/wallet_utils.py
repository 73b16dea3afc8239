"""Wallet validation and display utilities."""

from solders.pubkey import Pubkey


def is_valid_wallet(w: str) -> bool:
    """Return True if w is a valid Solana wallet (Pubkey) address."""
    try:
        Pubkey.from_string(w.strip())
        return True
    except Exception:
        return False


def short_address(address: str, head: int = 8, tail: int = 8) -> str:
    """Abbreviate an address for display: first/last characters joined by '...'."""
    if len(address) <= head + tail:
        return address
    return f"{address[:head]}...{address[-tail:]}"
