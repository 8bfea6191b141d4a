"""Configuration utilities for the relay service."""

from .loader import (
    DEFAULT_CHAIN_ID,
    DEFAULT_PORT,
    DEFAULT_RPC_URL,
    ChainIdentity,
    ConfigError,
    RelayerIdentity,
    ServerConfig,
    Settings,
    load_settings,
)

__all__ = [
    "ChainIdentity",
    "ConfigError",
    "DEFAULT_CHAIN_ID",
    "DEFAULT_PORT",
    "DEFAULT_RPC_URL",
    "RelayerIdentity",
    "ServerConfig",
    "Settings",
    "load_settings",
]
