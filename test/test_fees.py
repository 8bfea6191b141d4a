"""Tests for gas limit padding and fee source selection."""

import pytest

from move_relayer.core.fees import (
    DEFAULT_GAS_PRICE_WEI,
    FALLBACK_GAS_LIMIT,
    GAS_LIMIT_OVERHEAD,
    PRIORITY_FEE_WEI,
    DefaultFeeSource,
    FeeData,
    FeePolicy,
    LegacyFeeSource,
    compute_fee_policy,
    compute_gas_limit,
    gas_limit_from_estimate,
)


class TestGasLimit:

    @pytest.mark.parametrize(
        "estimate, expected",
        [
            (80_000, 140_000),
            (21_000, 26_250 + GAS_LIMIT_OVERHEAD),
            (3, 3 + GAS_LIMIT_OVERHEAD),  # 3.75 floors to 3
            (0, GAS_LIMIT_OVERHEAD),
        ],
    )
    def test_multiplier_and_overhead(self, estimate, expected):
        assert gas_limit_from_estimate(estimate) == expected

    def test_monotonic_in_estimate(self):
        limits = [gas_limit_from_estimate(g) for g in range(0, 200_000, 997)]
        assert limits == sorted(limits)

    def test_successful_estimate_is_padded(self):
        assert compute_gas_limit(lambda: 80_000) == 140_000

    def test_failed_estimate_uses_fallback(self):
        def boom():
            raise ConnectionError("node down")

        assert compute_gas_limit(boom) == FALLBACK_GAS_LIMIT


class TestFeePolicy:

    def test_eip1559_preferred_when_max_fee_reported(self):
        fee_data = FeeData(gas_price=5_000_000_000, max_fee_per_gas=1_000_000_000)

        policy = compute_fee_policy(fee_data, 100_000)

        assert policy.source == "eip1559"
        assert policy.max_fee_per_gas == 1_100_000_000
        assert policy.max_priority_fee_per_gas == PRIORITY_FEE_WEI
        assert policy.worst_case_cost == 100_000 * 1_100_000_000
        assert policy.tx_params() == {
            "gas": 100_000,
            "maxFeePerGas": 1_100_000_000,
            "maxPriorityFeePerGas": PRIORITY_FEE_WEI,
        }

    def test_priority_tip_never_exceeds_max_fee(self):
        policy = compute_fee_policy(FeeData(max_fee_per_gas=500_000), 21_000)

        assert policy.max_fee_per_gas == 550_000
        assert policy.max_priority_fee_per_gas == 550_000

    def test_legacy_gas_price_when_no_max_fee(self):
        policy = compute_fee_policy(FeeData(gas_price=2_000_000_000), 50_000)

        assert policy.source == "legacy"
        assert not policy.is_eip1559
        assert policy.fee_per_gas == 2_200_000_000
        assert policy.tx_params() == {"gas": 50_000, "gasPrice": 2_200_000_000}

    def test_zero_max_fee_falls_through_to_legacy(self):
        policy = compute_fee_policy(FeeData(gas_price=10, max_fee_per_gas=0), 1)

        assert policy.source == "legacy"

    def test_default_price_when_nothing_reported(self):
        policy = compute_fee_policy(FeeData(), 60_000)

        assert policy.source == "default"
        assert policy.gas_price == DEFAULT_GAS_PRICE_WEI
        assert policy.worst_case_cost == 60_000 * DEFAULT_GAS_PRICE_WEI

    def test_sources_are_tried_in_order(self):
        policy = compute_fee_policy(
            FeeData(gas_price=7, max_fee_per_gas=9),
            1,
            sources=(DefaultFeeSource(), LegacyFeeSource()),
        )

        assert policy.source == "default"

    def test_no_applicable_source(self):
        with pytest.raises(ValueError):
            compute_fee_policy(FeeData(), 1, sources=(LegacyFeeSource(),))

    def test_fee_per_gas_prefers_max_fee(self):
        policy = FeePolicy(gas_limit=10, source="eip1559", max_fee_per_gas=5, max_priority_fee_per_gas=1)

        assert policy.fee_per_gas == 5

    def test_policy_without_any_fee_is_rejected(self):
        with pytest.raises(ValueError, match="max_fee_per_gas or gas_price"):
            FeePolicy(gas_limit=10, source="none")

    def test_eip1559_policy_requires_priority_fee(self):
        with pytest.raises(ValueError, match="max_priority_fee_per_gas"):
            FeePolicy(gas_limit=10, source="eip1559", max_fee_per_gas=5)
