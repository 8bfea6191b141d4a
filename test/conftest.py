"""Shared fixtures: a real relayer identity and mocked chain collaborators."""

from unittest.mock import MagicMock

import pytest
from web3 import Web3

from move_relayer.config import load_settings
from move_relayer.core.fees import FeeData
from move_relayer.core.pipeline import RelayContext, RelayPipeline

RELAYER_KEY = "0x" + "11" * 32
WALLET = "0x" + "ab" * 20
OTHER_RELAYER = "0x" + "cd" * 20
TX_HASH = "0x" + "12" * 32
CHAIN_ID = 31612


@pytest.fixture
def settings():
    return load_settings({"RELAYER_PK": RELAYER_KEY})


@pytest.fixture
def relayer_address(settings):
    return settings.relayer.address


@pytest.fixture
def wallet_proxy(relayer_address):
    """A wallet that authorizes our relayer and estimates 80k gas."""
    wallet = MagicMock()
    wallet.address = Web3.to_checksum_address(WALLET)
    wallet.is_deployed.return_value = True
    wallet.read_authorized_relayer.return_value = relayer_address
    wallet.estimate_relay_move.return_value = 80_000
    wallet.invoke_relay_move.return_value = TX_HASH
    return wallet


@pytest.fixture
def chain_client(wallet_proxy):
    client = MagicMock()
    client.chain_id.return_value = CHAIN_ID
    client.get_balance.return_value = 10**18
    client.get_fee_data.return_value = FeeData(
        gas_price=1_500_000_000,
        max_fee_per_gas=2_000_000_000,
        max_priority_fee_per_gas=1_000_000,
        base_fee_per_gas=999_500_000,
    )
    client.wallet.return_value = wallet_proxy
    return client


@pytest.fixture
def context(settings, chain_client):
    return RelayContext.from_settings(settings, client=chain_client)


@pytest.fixture
def pipeline(context):
    return RelayPipeline(context)
