"""Error taxonomy for the relay service.

Every failure the pipeline can report is one of the ``RelayError`` subclasses
below. Each carries a human readable ``message``, the HTTP status the request
boundary should answer with, and optional structured detail fields.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import requests
from web3.exceptions import ContractLogicError


class RelayError(Exception):
    """Base class for classified relay failures."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> Dict[str, Any]:
        """Structured fields included next to ``error`` in responses."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": False, "error": self.message}
        body.update(self.details())
        return body


class ClientInputError(RelayError):
    """Raised when the caller supplied a malformed or out-of-range field."""

    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field

    def details(self) -> Dict[str, Any]:
        return {"field": self.field} if self.field else {}


class PayloadTooLargeError(ClientInputError):
    """Raised when the request body exceeds the byte ceiling."""

    status_code = 413

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"request body of {size} bytes exceeds limit of {limit} bytes", field="body")
        self.size = size
        self.limit = limit


class ChainIdMismatchError(ClientInputError):
    """Raised when the client-declared chain id differs from the configured one."""

    def __init__(self, expected: int, got: int) -> None:
        super().__init__(f"wrong chainId: expected {expected}, got {got}", field="chainId")
        self.expected = expected
        self.got = got

    def details(self) -> Dict[str, Any]:
        return {"field": "chainId", "expected": self.expected, "got": self.got}


class AuthorizationError(RelayError):
    """Raised when the target wallet has not authorized this relayer."""

    status_code = 403

    def __init__(self, wallet: str, authorized: str, relayer: str) -> None:
        super().__init__(
            f"relayer not authorized on wallet {wallet}: wallet expects {authorized}, service is {relayer}"
        )
        self.wallet = wallet
        self.authorized = authorized
        self.relayer = relayer

    def details(self) -> Dict[str, Any]:
        return {"wallet": self.wallet, "authorizedRelayer": self.authorized, "relayer": self.relayer}


class InsufficientFundsError(RelayError):
    """Raised when the relayer balance cannot cover the worst-case transaction cost."""

    status_code = 402

    def __init__(self, have: int, need: int) -> None:
        super().__init__(f"insufficient relayer funds: have {have} wei, need {need} wei")
        self.have = have
        self.need = need

    @property
    def shortfall(self) -> int:
        return self.need - self.have

    def details(self) -> Dict[str, Any]:
        # Decimal strings: wei amounts overflow JavaScript numbers.
        return {"have": str(self.have), "need": str(self.need), "shortfall": str(self.shortfall)}


class ConfigurationError(RelayError, ValueError):
    """Raised when configuration data is invalid, missing or disagrees with the node."""

    status_code = 500

    def __init__(self, message: str, *, expected: Any = None, got: Any = None) -> None:
        super().__init__(message)
        self.expected = expected
        self.got = got

    def details(self) -> Dict[str, Any]:
        if self.expected is None and self.got is None:
            return {}
        return {"expected": self.expected, "got": self.got}


class SubmissionError(RelayError):
    """Raised when the node rejected a call or could not be reached."""

    REJECTED = "rejected"
    UNREACHABLE = "unreachable"
    UNKNOWN = "unknown"

    _STATUS_BY_KIND = {REJECTED: 502, UNREACHABLE: 503, UNKNOWN: 500}

    def __init__(self, message: str, *, kind: str = UNKNOWN, step: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.step = step

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return self._STATUS_BY_KIND.get(self.kind, 500)

    @classmethod
    def from_exception(cls, exc: BaseException, *, step: str) -> "SubmissionError":
        return cls(describe_upstream_error(exc), kind=classify_upstream_error(exc), step=step)

    def details(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"kind": self.kind}
        if self.step:
            body["step"] = self.step
        return body


CONNECTIVITY_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    ConnectionError,
    TimeoutError,
)


def _rpc_error_payload(exc: BaseException) -> Optional[Mapping[str, Any]]:
    """Return the JSON-RPC ``error`` object attached to ``exc`` if there is one."""
    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, Mapping) and isinstance(rpc_response.get("error"), Mapping):
        return rpc_response["error"]
    if exc.args and isinstance(exc.args[0], Mapping):
        payload = exc.args[0]
        if isinstance(payload.get("error"), Mapping):
            return payload["error"]
        if "message" in payload:
            return payload
    return None


def describe_upstream_error(exc: BaseException) -> str:
    """Return the most specific diagnostic text carried by ``exc``.

    Preference order: revert reason, structured JSON-RPC error message, then the
    generic exception text.
    """
    reason = getattr(exc, "reason", None)
    if isinstance(reason, str) and reason.strip():
        return reason.strip()
    if isinstance(exc, ContractLogicError):
        message = getattr(exc, "message", None) or str(exc)
        if message:
            return str(message)

    payload = _rpc_error_payload(exc)
    if payload is not None and payload.get("message"):
        return str(payload["message"])

    text = str(exc).strip()
    return text or exc.__class__.__name__


def classify_upstream_error(exc: BaseException) -> str:
    """Classify ``exc`` as a node rejection, a connectivity failure or unknown."""
    if isinstance(exc, CONNECTIVITY_ERRORS):
        return SubmissionError.UNREACHABLE
    if isinstance(exc, ContractLogicError) or _rpc_error_payload(exc) is not None:
        return SubmissionError.REJECTED
    return SubmissionError.UNKNOWN


__all__ = [
    "AuthorizationError",
    "ChainIdMismatchError",
    "ClientInputError",
    "ConfigurationError",
    "InsufficientFundsError",
    "PayloadTooLargeError",
    "RelayError",
    "SubmissionError",
    "classify_upstream_error",
    "describe_upstream_error",
]
