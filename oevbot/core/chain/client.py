"""
Chain Client - web3 access to one EVM network.

Wraps a Web3 HTTP provider and the bidder's signing account:
- read calls and log queries (transport failures -> TransientRPCError)
- state-changing calls: build, sign, send, wait for receipt
  (reverts -> ContractRevertError)
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_account import Account
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from oevbot.core.errors import ContractRevertError, TransientRPCError
from oevbot.crypto import bytes_to_hex, checksum_address
from oevbot.utils.logger import get_logger

logger = get_logger("chain")


@dataclass(frozen=True)
class TxRecord:
    """A mined transaction."""
    tx_hash: bytes
    block_number: int

    @property
    def tx_hash_hex(self) -> str:
        return bytes_to_hex(self.tx_hash)


class ChainClient:
    """
    Web3 client bound to one network and one signer.

    Args:
        name: Network label used in logs and errors
        rpc_url: HTTP JSON-RPC endpoint
        private_key: Signer key (0x-prefixed hex)
        receipt_timeout: Seconds to wait for a transaction to be mined
        w3: Pre-built Web3 instance (overrides rpc_url)
    """

    def __init__(
        self,
        name: str,
        rpc_url: str,
        private_key: str,
        receipt_timeout: float = 120.0,
        w3: Optional[Web3] = None,
    ):
        self.name = name
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url))
        self.account = Account.from_key(private_key)
        self.receipt_timeout = receipt_timeout
        self._chain_id: Optional[int] = None

    @property
    def address(self) -> str:
        return self.account.address

    @contextmanager
    def _rpc(self, what: str):
        try:
            yield
        except (RequestException, ConnectionError, TimeoutError) as e:
            raise TransientRPCError(f"{self.name}: {what} failed: {e}") from e

    # =========================================================================
    # Reads
    # =========================================================================

    def chain_id(self) -> int:
        """Chain id of the connected network (cached)."""
        if self._chain_id is None:
            with self._rpc("eth_chainId"):
                self._chain_id = self.w3.eth.chain_id
        return self._chain_id

    def block_number(self) -> int:
        with self._rpc("eth_blockNumber"):
            return self.w3.eth.block_number

    def contract(self, address: str, abi: List[Dict[str, Any]]):
        return self.w3.eth.contract(address=checksum_address(address), abi=abi)

    def call(self, fn, what: str) -> Any:
        """Execute a view function."""
        with self._rpc(what):
            return fn.call()

    def get_logs(
        self,
        event,
        from_block: int,
        to_block: int,
        argument_filters: Dict[str, Any],
    ) -> list:
        """Fetch decoded event logs in [from_block, to_block]."""
        with self._rpc(f"eth_getLogs({event.event_name})"):
            return list(event.get_logs(
                from_block=from_block,
                to_block=to_block,
                argument_filters=argument_filters,
            ))

    # =========================================================================
    # Writes
    # =========================================================================

    def transact(self, fn, operation: str, value: int = 0) -> TxRecord:
        """
        Sign and send a contract call, then wait for it to be mined.

        Raises:
            ContractRevertError: gas estimation or execution reverted
            TransientRPCError: transport failure or receipt timeout
        """
        with self._rpc(operation):
            try:
                tx = fn.build_transaction({
                    "from": self.address,
                    "nonce": self.w3.eth.get_transaction_count(self.address),
                    "value": value,
                    "chainId": self.chain_id(),
                })
            except ContractLogicError as e:
                raise ContractRevertError(operation, str(e)) from e

            signed = self.account.sign_transaction(tx)
            tx_hash = bytes(self.w3.eth.send_raw_transaction(signed.raw_transaction))
            logger.info(f"{self.name}: {operation} sent, tx {bytes_to_hex(tx_hash)}")

            try:
                receipt = self.w3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.receipt_timeout
                )
            except TimeExhausted as e:
                raise TransientRPCError(
                    f"{self.name}: {operation} not mined within {self.receipt_timeout}s"
                ) from e

        if receipt["status"] != 1:
            raise ContractRevertError(operation, "transaction reverted", tx_hash)

        logger.debug(f"{self.name}: {operation} mined in block {receipt['blockNumber']}")
        return TxRecord(tx_hash=tx_hash, block_number=receipt["blockNumber"])
