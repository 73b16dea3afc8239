"""
Configuration management for the Wallet Watcher agent.

Loads and validates settings from environment variables and an optional
.env file. Exposes a single source of truth for all service configuration.
"""

from wallet_watcher.config.settings import WatcherSettings, get_settings  # noqa: F401

__all__ = ["WatcherSettings", "get_settings"]
