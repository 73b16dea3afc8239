"""
Environment variable loading for Wallet Watcher.

- SOLANA_RPC_URL: RPC endpoint (read from .env)
- HELIUS_API_KEY: Helius API key (fallback for RPC URL when SOLANA_RPC_URL is unset)
- DAS_RPC_URL: endpoint serving getAssetsByOwner (defaults to the RPC URL)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is wallet_watcher/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"

_TRUE_VALUES = ("1", "true", "yes", "on")


def load_watcher_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH, override=False)


def get_solana_rpc_url() -> str:
    """
    Resolve Solana RPC URL from env.
    Order: SOLANA_RPC_URL > HELIUS_API_KEY > public mainnet-beta.
    """
    load_watcher_env()
    url = (os.getenv("SOLANA_RPC_URL") or "").strip()
    if url:
        return url
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key:
        return HELIUS_MAINNET_URL_TEMPLATE.format(key=key)
    return MAINNET_RPC_URL


def get_das_rpc_url() -> str:
    """DAS endpoint; public RPC nodes do not serve getAssetsByOwner, so Helius-style URLs are expected."""
    load_watcher_env()
    url = (os.getenv("DAS_RPC_URL") or "").strip()
    return url or get_solana_rpc_url()


def env_flag(name: str, default: bool) -> bool:
    """Parse a boolean env var (1/true/yes/on)."""
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in _TRUE_VALUES


def mask_rpc_url(url: str) -> str:
    """Hide the api-key query value for logging."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
