"""Chain client and wallet contract proxy over web3.py."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from move_relayer.config import ChainIdentity, RelayerIdentity, Settings
from move_relayer.contracts import WALLET_ABI_FILE, load_contract_abi
from move_relayer.core.fees import FeeData, FeePolicy
from move_relayer.core.utils import get_logger

LOGGER = get_logger("move_relayer.chain")


_BARE_REVERT_MESSAGES = ("", "execution reverted")
_EMPTY_REVERT_DATA = (None, "", "0x")


def _http_web3(url: str) -> Web3:
    return Web3(Web3.HTTPProvider(url))


def _is_bare_revert(exc: ContractLogicError) -> bool:
    message = (getattr(exc, "message", None) or "").strip().lower()
    return getattr(exc, "data", None) in _EMPTY_REVERT_DATA and message in _BARE_REVERT_MESSAGES


class ChainClient:
    """Read and submit operations against the configured node, signing as the relayer."""

    def __init__(
        self,
        *,
        web3: Web3,
        relayer: RelayerIdentity,
        chain: ChainIdentity,
        wallet_abi: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.web3 = web3
        self.relayer = relayer
        self.chain = chain
        self.wallet_abi = wallet_abi if wallet_abi is not None else load_contract_abi(WALLET_ABI_FILE)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        web3_factory: Callable[[str], Web3] = _http_web3,
    ) -> "ChainClient":
        return cls(
            web3=web3_factory(settings.chain.rpc_url),
            relayer=settings.relayer,
            chain=settings.chain,
        )

    def chain_id(self) -> int:
        """Chain id as reported by the node right now."""
        return int(self.web3.eth.chain_id)

    def get_balance(self, address: str) -> int:
        return int(self.web3.eth.get_balance(Web3.to_checksum_address(address)))

    def get_code(self, address: str) -> bytes:
        return bytes(self.web3.eth.get_code(Web3.to_checksum_address(address)))

    def pending_nonce(self) -> int:
        return int(self.web3.eth.get_transaction_count(self.relayer.address, "pending"))

    def get_fee_data(self) -> FeeData:
        """Collect whatever fee readings the node offers.

        Nodes differ in which of these they support, so each reading is taken
        independently and a failed one is reported as missing.
        """
        gas_price = self._read_optional("eth_gasPrice", lambda: self.web3.eth.gas_price)

        base_fee = None
        block = self._read_optional("eth_getBlockByNumber", lambda: self.web3.eth.get_block("latest"))
        if block is not None:
            base_fee = block.get("baseFeePerGas")

        max_fee = None
        priority_fee = None
        if base_fee is not None:
            priority_fee = self._read_optional(
                "eth_maxPriorityFeePerGas", lambda: self.web3.eth.max_priority_fee
            )
            max_fee = int(base_fee) * 2 + int(priority_fee or 0)

        return FeeData(
            gas_price=int(gas_price) if gas_price is not None else None,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=int(priority_fee) if priority_fee is not None else None,
            base_fee_per_gas=int(base_fee) if base_fee is not None else None,
        )

    @staticmethod
    def _read_optional(label: str, read: Callable[[], Any]) -> Any:
        try:
            return read()
        except Exception as exc:
            LOGGER.warning("Fee reading %s unavailable: %s", label, exc)
            return None

    def wallet(self, address: str) -> "WalletContract":
        return WalletContract(self, address)

    def send_transaction(self, tx: Dict[str, Any]) -> str:
        """Sign ``tx`` with the relayer key and broadcast it; return the hash."""
        signed = self.relayer.account.sign_transaction(tx)
        tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)


class WalletContract:
    """The two remote capabilities of a target wallet: ``relayer()`` and ``relayMove``."""

    def __init__(self, client: ChainClient, address: str) -> None:
        self.client = client
        self.address = Web3.to_checksum_address(address)
        self.contract: Contract = client.web3.eth.contract(address=self.address, abi=client.wallet_abi)

    def is_deployed(self) -> bool:
        return len(self.client.get_code(self.address)) > 0

    def read_authorized_relayer(self) -> Optional[str]:
        """Return the wallet's declared relayer, or ``None`` if it does not expose one.

        Only empty output or a bare revert means the getter is missing. A revert
        carrying a reason or error data comes from a wallet that has the getter
        and refused, so it propagates.
        """
        try:
            value = self.contract.functions.relayer().call()
        except BadFunctionCallOutput as exc:
            LOGGER.info("Wallet %s does not expose relayer(), skipping check: %s", self.address, exc)
            return None
        except ContractLogicError as exc:
            if not _is_bare_revert(exc):
                raise
            LOGGER.info("Wallet %s does not expose relayer(), skipping check: %s", self.address, exc.message)
            return None
        return Web3.to_checksum_address(value)

    def estimate_relay_move(self, cmd: int, memo: str) -> int:
        return int(
            self.contract.functions.relayMove(cmd, memo).estimate_gas({"from": self.client.relayer.address})
        )

    def invoke_relay_move(self, cmd: int, memo: str, fee_policy: FeePolicy) -> str:
        tx = self.contract.functions.relayMove(cmd, memo).build_transaction(
            {
                "from": self.client.relayer.address,
                "nonce": self.client.pending_nonce(),
                "chainId": self.client.chain.chain_id,
                **fee_policy.tx_params(),
            }
        )
        return self.client.send_transaction(tx)


__all__ = ["ChainClient", "WalletContract"]
