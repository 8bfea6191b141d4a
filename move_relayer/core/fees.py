"""Gas limit and fee policy computation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Optional, Sequence

from move_relayer.core.utils import apply_multiplier, get_logger

LOGGER = get_logger("move_relayer.fees")

GAS_LIMIT_MULTIPLIER = Decimal("1.25")
# Refund and event bookkeeping inside the wallet that estimation does not see.
GAS_LIMIT_OVERHEAD = 40_000
FALLBACK_GAS_LIMIT = 500_000

FEE_MARKUP = Decimal("1.10")
PRIORITY_FEE_WEI = 1_000_000  # 0.001 gwei
DEFAULT_GAS_PRICE_WEI = 1_000_000_000  # 1 gwei


@dataclass(frozen=True)
class FeeData:
    """Raw fee readings from the node; any field may be missing."""

    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    base_fee_per_gas: Optional[int] = None


@dataclass(frozen=True)
class FeePolicy:
    """Gas and pricing parameters for one relayed transaction."""

    gas_limit: int
    source: str
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    gas_price: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_fee_per_gas is None and self.gas_price is None:
            raise ValueError("FeePolicy needs either max_fee_per_gas or gas_price")
        if self.max_fee_per_gas is not None and self.max_priority_fee_per_gas is None:
            raise ValueError("EIP-1559 FeePolicy needs max_priority_fee_per_gas")

    @property
    def is_eip1559(self) -> bool:
        return self.max_fee_per_gas is not None

    @property
    def fee_per_gas(self) -> int:
        """The highest per-gas price this transaction may pay."""
        if self.max_fee_per_gas is not None:
            return self.max_fee_per_gas
        return self.gas_price

    @property
    def worst_case_cost(self) -> int:
        return self.gas_limit * self.fee_per_gas

    def tx_params(self) -> Dict[str, int]:
        """Fee fields for ``build_transaction``."""
        if self.is_eip1559:
            return {
                "gas": self.gas_limit,
                "maxFeePerGas": self.max_fee_per_gas,
                "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
            }
        return {"gas": self.gas_limit, "gasPrice": self.fee_per_gas}


def gas_limit_from_estimate(estimate: int) -> int:
    """Apply the safety multiplier and flat overhead to a gas estimate."""
    return apply_multiplier(estimate, GAS_LIMIT_MULTIPLIER) + GAS_LIMIT_OVERHEAD


def compute_gas_limit(estimate_fn: Callable[[], int]) -> int:
    """Return a padded gas limit, or the fallback limit when estimation fails.

    Estimation is advisory: a revert or an unreachable node during estimation
    does not fail the relay.
    """
    try:
        estimate = int(estimate_fn())
    except Exception as exc:
        LOGGER.warning("Gas estimation failed, using fallback limit %s: %s", FALLBACK_GAS_LIMIT, exc)
        return FALLBACK_GAS_LIMIT
    gas_limit = gas_limit_from_estimate(estimate)
    LOGGER.debug("Gas estimate %s padded to %s", estimate, gas_limit)
    return gas_limit


class FeeSource:
    """A way of pricing gas from node fee data."""

    name = "base"

    def applies(self, fee_data: FeeData) -> bool:
        raise NotImplementedError

    def build(self, fee_data: FeeData, gas_limit: int) -> FeePolicy:
        raise NotImplementedError


class Eip1559FeeSource(FeeSource):
    """Applies when the node reports a max fee: markup on it, small fixed tip."""

    name = "eip1559"

    def applies(self, fee_data: FeeData) -> bool:
        return fee_data.max_fee_per_gas is not None and fee_data.max_fee_per_gas > 0

    def build(self, fee_data: FeeData, gas_limit: int) -> FeePolicy:
        max_fee = apply_multiplier(fee_data.max_fee_per_gas, FEE_MARKUP)
        return FeePolicy(
            gas_limit=gas_limit,
            source=self.name,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=min(PRIORITY_FEE_WEI, max_fee),
        )


class LegacyFeeSource(FeeSource):
    """Applies when the node only reports a single gas price."""

    name = "legacy"

    def applies(self, fee_data: FeeData) -> bool:
        return fee_data.gas_price is not None and fee_data.gas_price > 0

    def build(self, fee_data: FeeData, gas_limit: int) -> FeePolicy:
        return FeePolicy(
            gas_limit=gas_limit,
            source=self.name,
            gas_price=apply_multiplier(fee_data.gas_price, FEE_MARKUP),
        )


class DefaultFeeSource(FeeSource):
    """Always applies: a fixed gas price for nodes that report nothing usable."""

    name = "default"

    def applies(self, fee_data: FeeData) -> bool:
        return True

    def build(self, fee_data: FeeData, gas_limit: int) -> FeePolicy:
        return FeePolicy(gas_limit=gas_limit, source=self.name, gas_price=DEFAULT_GAS_PRICE_WEI)


FEE_SOURCES: Sequence[FeeSource] = (Eip1559FeeSource(), LegacyFeeSource(), DefaultFeeSource())


def compute_fee_policy(
    fee_data: FeeData,
    gas_limit: int,
    sources: Sequence[FeeSource] = FEE_SOURCES,
) -> FeePolicy:
    """Price ``gas_limit`` with the first applicable fee source."""
    for source in sources:
        if source.applies(fee_data):
            return source.build(fee_data, gas_limit)
    raise ValueError("No fee source applies to the reported fee data")


__all__ = [
    "DEFAULT_GAS_PRICE_WEI",
    "FALLBACK_GAS_LIMIT",
    "FEE_MARKUP",
    "FEE_SOURCES",
    "GAS_LIMIT_MULTIPLIER",
    "GAS_LIMIT_OVERHEAD",
    "PRIORITY_FEE_WEI",
    "DefaultFeeSource",
    "Eip1559FeeSource",
    "FeeData",
    "FeePolicy",
    "FeeSource",
    "LegacyFeeSource",
    "compute_fee_policy",
    "compute_gas_limit",
    "gas_limit_from_estimate",
]
