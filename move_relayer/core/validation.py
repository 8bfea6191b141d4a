"""Validation helpers for inbound relay requests.

Nothing in this module touches the network: every check here runs before the
pipeline contacts the node.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from web3 import Web3

from move_relayer.errors import ChainIdMismatchError, ClientInputError, PayloadTooLargeError

MAX_BODY_BYTES = 8 * 1024
MAX_MEMO_BYTES = 256
CMD_MIN = 0
CMD_MAX = 255

_DIGITS_RE = re.compile(r"^\s*\d+\s*$")


@dataclass(frozen=True)
class RelayRequest:
    """A validated request to invoke ``relayMove(cmd, memo)`` on ``wallet``."""

    wallet: str
    cmd: int
    memo: str = ""
    chain_id: Optional[int] = None


def _coerce_int(value: Any, *, field_name: str) -> int:
    """Coerce ints, integral floats and decimal digit strings; reject everything else."""
    if isinstance(value, bool):
        raise ClientInputError(f"{field_name} must be an integer, got a boolean", field=field_name)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _DIGITS_RE.match(value):
        try:
            return int(value.strip())
        except ValueError as exc:
            # int() refuses strings past the interpreter's digit limit
            raise ClientInputError(f"{field_name} is out of range", field=field_name) from exc
    raise ClientInputError(f"{field_name} must be an integer, got {value!r}", field=field_name)


def _has_bad_checksum(address: str) -> bool:
    digits = address[2:]
    mixed_case = digits != digits.lower() and digits != digits.upper()
    return mixed_case and not Web3.is_checksum_address(address)


def validate_wallet(value: Any) -> str:
    """Return the checksummed form of ``value`` or raise ``ClientInputError``.

    All-lowercase and all-uppercase addresses carry no checksum and are
    accepted. Mixed-case addresses must checksum correctly.
    """
    if value is None or value == "":
        raise ClientInputError("wallet is required", field="wallet")
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ClientInputError(f"wallet is not a valid address: {value!r}", field="wallet")
    if _has_bad_checksum(value):
        raise ClientInputError(f"wallet has an invalid checksum: {value!r}", field="wallet")
    return Web3.to_checksum_address(value)


def validate_cmd(value: Any) -> int:
    if value is None:
        raise ClientInputError("cmd is required", field="cmd")
    cmd = _coerce_int(value, field_name="cmd")
    if not CMD_MIN <= cmd <= CMD_MAX:
        raise ClientInputError(f"cmd must be between {CMD_MIN} and {CMD_MAX}, got {cmd}", field="cmd")
    return cmd


def validate_memo(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ClientInputError("memo must be a string", field="memo")
    size = len(value.encode("utf-8"))
    if size > MAX_MEMO_BYTES:
        raise ClientInputError(f"memo is {size} bytes, limit is {MAX_MEMO_BYTES}", field="memo")
    return value


def validate_chain_id(value: Any, *, expected: int) -> Optional[int]:
    """Check a client-declared chain id against the configured one."""
    if value is None:
        return None
    chain_id = _coerce_int(value, field_name="chainId")
    if chain_id != expected:
        raise ChainIdMismatchError(expected=expected, got=chain_id)
    return chain_id


def validate_relay_request(payload: Mapping[str, Any], *, expected_chain_id: int) -> RelayRequest:
    """Validate a decoded JSON body and build a ``RelayRequest``."""
    if not isinstance(payload, Mapping):
        raise ClientInputError("request body must be a JSON object", field="body")

    return RelayRequest(
        wallet=validate_wallet(payload.get("wallet")),
        cmd=validate_cmd(payload.get("cmd")),
        memo=validate_memo(payload.get("memo")),
        chain_id=validate_chain_id(payload.get("chainId"), expected=expected_chain_id),
    )


def parse_relay_body(raw: bytes, *, expected_chain_id: int, limit: int = MAX_BODY_BYTES) -> RelayRequest:
    """Enforce the byte ceiling, decode JSON and validate the relay fields."""
    if len(raw) > limit:
        raise PayloadTooLargeError(size=len(raw), limit=limit)
    if not raw.strip():
        raise ClientInputError("request body is empty", field="body")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ClientInputError(f"request body is not valid JSON: {exc}", field="body") from exc
    except ValueError as exc:
        # undecodable bytes, or an integer literal past the digit limit
        raise ClientInputError("request body could not be decoded", field="body") from exc
    return validate_relay_request(payload, expected_chain_id=expected_chain_id)


__all__ = [
    "CMD_MAX",
    "CMD_MIN",
    "MAX_BODY_BYTES",
    "MAX_MEMO_BYTES",
    "RelayRequest",
    "parse_relay_body",
    "validate_chain_id",
    "validate_cmd",
    "validate_memo",
    "validate_relay_request",
    "validate_wallet",
]
