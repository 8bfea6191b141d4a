"""Settings loader for the relay service."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple
from urllib.parse import urlparse

from eth_account import Account
from eth_account.signers.local import LocalAccount

from move_relayer.errors import ConfigurationError

# Mezo mainnet
DEFAULT_RPC_URL = "https://mainnet.mezo.public.validationcloud.io"
DEFAULT_CHAIN_ID = 31612
DEFAULT_PORT = 8787
DEFAULT_HOST = "0.0.0.0"
DEFAULT_LOG_LEVEL = "INFO"

_PRIVATE_KEY_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_RPC_SCHEMES = ("http", "https")

ConfigError = ConfigurationError


@dataclass(frozen=True)
class ChainIdentity:
    """The chain this deployment relays to."""

    chain_id: int
    rpc_url: str


@dataclass(frozen=True)
class RelayerIdentity:
    """The single signing credential that pays for relayed transactions."""

    account: LocalAccount = field(repr=False)

    @property
    def address(self) -> str:
        return self.account.address

    def matches(self, address: str) -> bool:
        """Case-insensitive comparison against ``address``."""
        return address.lower() == self.address.lower()


@dataclass(frozen=True)
class ServerConfig:
    """HTTP listener options."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors_origins: Tuple[str, ...] = ()

    @property
    def allows_any_origin(self) -> bool:
        return not self.cors_origins


@dataclass(frozen=True)
class Settings:
    """Typed wrapper around the environment-sourced configuration."""

    chain: ChainIdentity
    relayer: RelayerIdentity
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = DEFAULT_LOG_LEVEL

    def describe(self) -> str:
        """Return a printable summary that never includes key material."""
        origins = ", ".join(self.server.cors_origins) or "*"
        return (
            f"chain_id={self.chain.chain_id} rpc_url={self.chain.rpc_url} "
            f"relayer={self.relayer.address} private_key=[SET] "
            f"listen={self.server.host}:{self.server.port} cors={origins} log_level={self.log_level}"
        )


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_int(raw: Optional[str], *, name: str, default: int, minimum: int, maximum: Optional[int] = None) -> int:
    if raw is None:
        return default
    try:
        value = int(raw, 10)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum or (maximum is not None and value > maximum):
        bound = f"between {minimum} and {maximum}" if maximum is not None else f">= {minimum}"
        raise ConfigError(f"{name} must be {bound}, got {value}")
    return value


def _parse_rpc_url(raw: Optional[str]) -> str:
    url = raw or DEFAULT_RPC_URL
    parsed = urlparse(url)
    if parsed.scheme not in _RPC_SCHEMES or not parsed.netloc:
        raise ConfigError(f"RPC_URL must be an http(s) URL, got {url!r}")
    return url


def _load_relayer(raw: Optional[str]) -> RelayerIdentity:
    if not raw:
        raise ConfigError("RELAYER_PK environment variable is required")
    if not _PRIVATE_KEY_RE.match(raw):
        raise ConfigError("RELAYER_PK must be a 0x-prefixed 32-byte hex private key")
    try:
        account = Account.from_key(raw)
    except Exception as exc:  # eth_keys raises ValidationError for out-of-range keys
        raise ConfigError("RELAYER_PK is not a valid secp256k1 private key") from exc
    return RelayerIdentity(account=account)


def _parse_origins(raw: Optional[str]) -> Tuple[str, ...]:
    if raw is None or raw == "*":
        return ()
    return tuple(origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip())


def _parse_log_level(raw: Optional[str]) -> str:
    level = (raw or DEFAULT_LOG_LEVEL).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"LOG_LEVEL must be a logging level name, got {raw!r}")
    return level


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load and validate settings from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ

    chain = ChainIdentity(
        chain_id=_parse_int(_get(env, "CHAIN_ID"), name="CHAIN_ID", default=DEFAULT_CHAIN_ID, minimum=1),
        rpc_url=_parse_rpc_url(_get(env, "RPC_URL")),
    )
    relayer = _load_relayer(_get(env, "RELAYER_PK"))
    server = ServerConfig(
        host=_get(env, "HOST") or DEFAULT_HOST,
        port=_parse_int(_get(env, "PORT"), name="PORT", default=DEFAULT_PORT, minimum=1, maximum=65535),
        cors_origins=_parse_origins(_get(env, "CORS_ORIGIN")),
    )

    return Settings(
        chain=chain,
        relayer=relayer,
        server=server,
        log_level=_parse_log_level(_get(env, "LOG_LEVEL")),
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
