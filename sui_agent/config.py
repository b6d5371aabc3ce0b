"""
Central configuration for the Sui agent core.
Loads environment variables from a .env file at import time.
"""
from __future__ import annotations

import logging
import os
from typing import Dict, Optional

from dotenv import load_dotenv

from sui_agent.errors import ConfigurationError

# --- Load .env early so everything importing config sees the vars ---
load_dotenv()

#: Environment variable names
GROQ_API_KEY_ENV = "GROQ_API_KEY"
GROQ_MODEL_ENV = "GROQ_MODEL"
LOG_LEVEL_ENV = "LOG_LEVEL"

MAINNET = "mainnet"
TESTNET = "testnet"

#: Fullnode RPC endpoints per network.
NETWORK_CONFIG: Dict[str, Dict[str, str]] = {
    MAINNET: {"fullnode": "https://fullnode.mainnet.sui.io:443"},
    TESTNET: {"fullnode": "https://fullnode.testnet.sui.io:443"},
}


def require_env(var_name: str) -> str:
    """
    Return the value of an environment variable or raise a clear error.

    Raises
    ------
    ConfigurationError
        If the environment variable is missing or empty.
    """
    try:
        value = os.environ[var_name]
    except KeyError as exc:
        raise ConfigurationError(f"Required environment variable '{var_name}' is not set.") from exc
    if not value:
        raise ConfigurationError(f"Environment variable '{var_name}' is empty.")
    return value


def get_groq_api_key() -> str:
    """
    Convenience accessor specifically for the Groq API key.
    """
    return require_env(GROQ_API_KEY_ENV)


def fullnode_url(network: str) -> str:
    """
    Fullnode RPC URL for a network name.

    Raises
    ------
    ConfigurationError
        If the network is neither mainnet nor testnet.
    """
    try:
        return NETWORK_CONFIG[network]["fullnode"]
    except KeyError as exc:
        raise ConfigurationError(f"Unsupported network '{network}'.") from exc


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the process (``LOG_LEVEL`` or INFO)."""
    resolved = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
