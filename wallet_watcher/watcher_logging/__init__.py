"""
Structured logging for Wallet Watcher.

JSON logs with timestamp, wallet_id and event_type.
Use get_logger() in all watcher modules for aggregation-friendly output.
"""

from wallet_watcher.watcher_logging.logger import bind_wallet, get_logger

__all__ = ["bind_wallet", "get_logger"]
