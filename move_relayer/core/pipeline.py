"""Relay pipeline: validate, authorize, price, fund-check and submit one move."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

from move_relayer.config import ChainIdentity, RelayerIdentity, Settings
from move_relayer.core.chain import ChainClient, WalletContract
from move_relayer.core.fees import FeePolicy, compute_fee_policy, compute_gas_limit
from move_relayer.core.utils import format_native, get_logger
from move_relayer.core.validation import RelayRequest, validate_relay_request
from move_relayer.errors import (
    AuthorizationError,
    ChainIdMismatchError,
    ClientInputError,
    ConfigurationError,
    InsufficientFundsError,
    RelayError,
    SubmissionError,
)

LOGGER = get_logger("move_relayer.pipeline")

T = TypeVar("T")


@dataclass(frozen=True)
class RelayContext:
    """Process-wide collaborators, built once at startup and shared by every request."""

    client: ChainClient
    relayer: RelayerIdentity
    chain: ChainIdentity

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[ChainClient] = None) -> "RelayContext":
        return cls(
            client=client or ChainClient.from_settings(settings),
            relayer=settings.relayer,
            chain=settings.chain,
        )

    def verify_chain(self) -> int:
        """Compare the node's chain id with the configured one."""
        live_chain_id = _upstream("chain_id", self.client.chain_id)
        if live_chain_id != self.chain.chain_id:
            raise ConfigurationError(
                f"RPC chain ID mismatch: expected {self.chain.chain_id}, node reports {live_chain_id}",
                expected=self.chain.chain_id,
                got=live_chain_id,
            )
        return live_chain_id


@dataclass(frozen=True)
class RelayResult:
    """Outcome of a successful relay."""

    transaction_hash: str
    fee_policy: FeePolicy

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": True, "hash": self.transaction_hash}


def _upstream(step: str, call: Callable[..., T], *args: Any) -> T:
    """Run a node call, turning unclassified failures into ``SubmissionError``."""
    try:
        return call(*args)
    except RelayError:
        raise
    except Exception as exc:
        raise SubmissionError.from_exception(exc, step=step) from exc


class RelayPipeline:
    """Runs the relay steps in order; any step may short-circuit with a ``RelayError``."""

    def __init__(self, context: RelayContext) -> None:
        self.context = context

    @property
    def relayer_address(self) -> str:
        return self.context.relayer.address

    def relay_payload(self, payload: Mapping[str, Any]) -> RelayResult:
        """Validate a decoded JSON body and relay it."""
        request = validate_relay_request(payload, expected_chain_id=self.context.chain.chain_id)
        return self.relay(request)

    def relay(self, request: RelayRequest) -> RelayResult:
        self._check_declared_chain(request)
        self.context.verify_chain()

        wallet = self.context.client.wallet(request.wallet)
        self._check_authorization(wallet)

        gas_limit = compute_gas_limit(lambda: wallet.estimate_relay_move(request.cmd, request.memo))
        fee_data = _upstream("fee_data", self.context.client.get_fee_data)
        fee_policy = compute_fee_policy(fee_data, gas_limit)

        self._check_funding(fee_policy)

        tx_hash = self._submit(wallet, request, fee_policy)
        LOGGER.info(
            "Relayed cmd=%s to %s gas=%s fee/gas=%s source=%s hash=%s",
            request.cmd,
            wallet.address,
            fee_policy.gas_limit,
            fee_policy.fee_per_gas,
            fee_policy.source,
            tx_hash,
        )
        return RelayResult(transaction_hash=tx_hash, fee_policy=fee_policy)

    def health(self) -> Dict[str, Any]:
        live_chain_id = _upstream("chain_id", self.context.client.chain_id)
        balance = _upstream("balance", self.context.client.get_balance, self.relayer_address)
        return {
            "ok": True,
            "relayer": self.relayer_address,
            "chainId": live_chain_id,
            "balance": str(balance),
        }

    def _check_declared_chain(self, request: RelayRequest) -> None:
        expected = self.context.chain.chain_id
        if request.chain_id is not None and request.chain_id != expected:
            raise ChainIdMismatchError(expected=expected, got=request.chain_id)

    def _check_authorization(self, wallet: WalletContract) -> None:
        if not _upstream("code", wallet.is_deployed):
            raise ClientInputError(f"wallet {wallet.address} has no contract code", field="wallet")

        authorized = _upstream("authorization", wallet.read_authorized_relayer)
        if authorized is None:
            return
        if not self.context.relayer.matches(authorized):
            LOGGER.warning("Refusing %s: authorized relayer is %s", wallet.address, authorized)
            raise AuthorizationError(wallet=wallet.address, authorized=authorized, relayer=self.relayer_address)

    def _check_funding(self, fee_policy: FeePolicy) -> None:
        need = fee_policy.worst_case_cost
        have = _upstream("balance", self.context.client.get_balance, self.relayer_address)
        if have < need:
            LOGGER.error(
                "Relayer %s underfunded: balance %s, worst case %s",
                self.relayer_address,
                format_native(have),
                format_native(need),
            )
            raise InsufficientFundsError(have=have, need=need)

    def _submit(self, wallet: WalletContract, request: RelayRequest, fee_policy: FeePolicy) -> str:
        try:
            return wallet.invoke_relay_move(request.cmd, request.memo, fee_policy)
        except Exception as exc:
            error = SubmissionError.from_exception(exc, step="submit")
            LOGGER.error("Submission to %s failed (%s): %s", wallet.address, error.kind, error.message)
            raise error from exc


__all__ = ["RelayContext", "RelayPipeline", "RelayResult"]
