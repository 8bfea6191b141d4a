"""Core domain logic for the relay service."""

from .chain import ChainClient, WalletContract
from .fees import FeeData, FeePolicy, compute_fee_policy, compute_gas_limit
from .pipeline import RelayContext, RelayPipeline, RelayResult
from .validation import RelayRequest, parse_relay_body, validate_relay_request

__all__ = [
    "ChainClient",
    "FeeData",
    "FeePolicy",
    "RelayContext",
    "RelayPipeline",
    "RelayRequest",
    "RelayResult",
    "WalletContract",
    "compute_fee_policy",
    "compute_gas_limit",
    "parse_relay_body",
    "validate_relay_request",
]
