"""
Transaction Builder - Build, sign, and send Ethereum transactions.

Uses eth-account for signing and the httpx-based JSON-RPC client for
sending.  TransactionManager owns the nonce sequence of one account so that
back-to-back transactions get consecutive nonces even while the node has
not yet seen the previous one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

from eth_account.signers.local import LocalAccount

from ..utils import Unit, bytes_to_hex, hex_to_int, remove_0x, to_checksum_address, to_wei
from .artifacts import load_abi, load_bytecode
from .codec import (
    decode_function_result,
    decode_revert_reason,
    encode_constructor_args,
    encode_function_call,
)
from .gas import TRANSFER_GAS_LIMIT, TRANSFER_GAS_PRICE, GasProvider, NodeGasProvider
from .rpc import (
    RpcError,
    eth_call,
    get_chain_id,
    get_nonce,
    send_raw_transaction,
    wait_for_receipt,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_TIMEOUT = 120.0


class TransactionError(RuntimeError):
    pass


class TransactionFailedError(TransactionError):
    """The transaction was mined but did not succeed."""

    def __init__(self, message: str, tx_hash: Optional[str] = None, receipt: Optional[dict] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash
        self.receipt = receipt


class ReceiptTimeoutError(TransactionError, TimeoutError):
    def __init__(self, message: str, tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


@dataclass
class SendResult:
    tx_hash: str
    receipt: Optional[dict] = None
    status: Optional[int] = None
    contract_address: Optional[str] = None

    @property
    def block_number(self) -> Optional[int]:
        if not self.receipt or self.receipt.get("blockNumber") is None:
            return None
        return hex_to_int(self.receipt["blockNumber"])

    @property
    def gas_used(self) -> Optional[int]:
        if not self.receipt or self.receipt.get("gasUsed") is None:
            return None
        return hex_to_int(self.receipt["gasUsed"])


def receipt_status(receipt: dict) -> int:
    """1 for success, 0 for failure (pre-Byzantium receipts count as success)."""
    status = receipt.get("status")
    if status is None:
        return 1
    return hex_to_int(status)


def _is_nonce_too_low(exc: RpcError) -> bool:
    message = exc.message.lower()
    return "nonce too low" in message or "invalid nonce" in message


def _is_already_known(exc: RpcError) -> bool:
    message = exc.message.lower()
    return "already known" in message or "known transaction" in message


class TransactionManager:
    """
    Signs and submits transactions for a single account.

    Args:
        account: eth-account LocalAccount used for signing
        rpc_url: RPC endpoint URL
        chain_id: EIP-155 chain ID (default: CHAIN_ID env or eth_chainId)
        gas_provider: Used when a send does not pass explicit gas values
        poll_interval: Receipt polling interval in seconds
        timeout: Receipt wait timeout in seconds
    """

    def __init__(
        self,
        account: LocalAccount,
        rpc_url: Optional[str] = None,
        chain_id: Optional[int] = None,
        gas_provider: Optional[GasProvider] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.account = account
        self.rpc_url = rpc_url
        self.gas_provider = gas_provider or NodeGasProvider(rpc_url=rpc_url)
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._chain_id = chain_id
        self._next_nonce: Optional[int] = None
        self._lock = threading.RLock()

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = get_chain_id(rpc_url=self.rpc_url)
        return self._chain_id

    # ---- nonce sequencing ----

    def _allocate_nonce(self) -> int:
        node_nonce = get_nonce(self.address, "pending", rpc_url=self.rpc_url)
        if self._next_nonce is None or node_nonce > self._next_nonce:
            return node_nonce
        return self._next_nonce

    def reset_nonce(self) -> None:
        """Forget the local nonce counter; the next send re-reads the node."""
        with self._lock:
            self._next_nonce = None

    # ---- sending ----

    def _broadcast_once(self, tx: dict[str, Any]) -> str:
        tx["nonce"] = self._allocate_nonce()
        signed = self.account.sign_transaction(tx)
        local_hash = bytes_to_hex(signed.hash)
        try:
            tx_hash = send_raw_transaction(bytes_to_hex(signed.raw_transaction), rpc_url=self.rpc_url)
        except RpcError as exc:
            # The node already has this exact transaction in its pool
            if not _is_already_known(exc):
                raise
            tx_hash = local_hash
        self._next_nonce = tx["nonce"] + 1
        logger.info("Sent transaction %s (nonce %d)", tx_hash, tx["nonce"])
        return tx_hash or local_hash

    def _sign_and_broadcast(self, tx: dict[str, Any]) -> str:
        with self._lock:
            try:
                return self._broadcast_once(tx)
            except RpcError as exc:
                if not _is_nonce_too_low(exc):
                    raise
                logger.warning("Nonce %d rejected (%s), resyncing with node", tx["nonce"], exc)
                self._next_nonce = None
                return self._broadcast_once(tx)

    def wait_for_receipt(self, tx_hash: str) -> dict:
        try:
            return wait_for_receipt(
                tx_hash,
                timeout=self.timeout,
                poll_interval=self.poll_interval,
                rpc_url=self.rpc_url,
            )
        except TimeoutError as exc:
            raise ReceiptTimeoutError(str(exc), tx_hash=tx_hash) from exc

    def _finish(self, tx_hash: str, wait: bool) -> SendResult:
        result = SendResult(tx_hash=tx_hash)
        if not wait:
            return result

        receipt = self.wait_for_receipt(tx_hash)
        result.receipt = receipt
        result.status = receipt_status(receipt)
        result.contract_address = receipt.get("contractAddress")

        if result.status != 1:
            raise TransactionFailedError(
                f"Transaction {tx_hash} failed (status 0, gas used {result.gas_used})",
                tx_hash=tx_hash,
                receipt=receipt,
            )
        return result

    def send_transaction(
        self,
        to: Optional[str],
        data: Union[str, bytes] = "0x",
        value: int = 0,
        gas_price: Optional[int] = None,
        gas_limit: Optional[int] = None,
        function_name: Optional[str] = None,
        wait: bool = True,
    ) -> SendResult:
        """
        Build, sign and send a transaction; ``to=None`` creates a contract.

        Raises:
            RpcError: If the node rejects the transaction
            TransactionFailedError: If the mined receipt has status 0
            ReceiptTimeoutError: If no receipt arrives within the timeout
        """
        if isinstance(data, bytes):
            data = bytes_to_hex(data)
        if value < 0:
            raise ValueError("value must be >= 0")

        tx: dict[str, Any] = {
            "data": data,
            "value": value,
            "chainId": self.chain_id,
        }
        if to is not None:
            tx["to"] = to_checksum_address(to)

        if gas_price is None:
            gas_price = self.gas_provider.gas_price(function_name)
        if gas_limit is None:
            call = {"from": self.address, "data": data, "value": hex(value)}
            if to is not None:
                call["to"] = tx["to"]
            gas_limit = self.gas_provider.gas_limit(function_name, call)

        tx["gasPrice"] = gas_price
        tx["gas"] = gas_limit

        tx_hash = self._sign_and_broadcast(tx)
        return self._finish(tx_hash, wait)

    def deploy(
        self,
        bytecode: str,
        constructor_data: bytes = b"",
        value: int = 0,
        gas_price: Optional[int] = None,
        gas_limit: Optional[int] = None,
        wait: bool = True,
    ) -> SendResult:
        """
        Send a contract creation transaction.

        Raises:
            TransactionFailedError: If the receipt carries no contract address
        """
        deploy_data = "0x" + remove_0x(bytecode) + constructor_data.hex()
        result = self.send_transaction(
            None,
            data=deploy_data,
            value=value,
            gas_price=gas_price,
            gas_limit=gas_limit,
            function_name="deploy",
            wait=wait,
        )
        if wait and not result.contract_address:
            raise TransactionFailedError(
                f"No contract address in receipt of {result.tx_hash}",
                tx_hash=result.tx_hash,
                receipt=result.receipt,
            )
        return result

    def call(self, to: str, data: str, block: str = "latest") -> str:
        """Read-only eth_call from this account; returns raw return data."""
        try:
            return eth_call({"from": self.address, "to": to, "data": data}, block, rpc_url=self.rpc_url)
        except RpcError as exc:
            reason = decode_revert_reason(exc.data)
            if reason is not None:
                raise TransactionError(f"Call to {to} reverted: {reason}") from exc
            raise


def send_funds(
    manager: TransactionManager,
    to: str,
    amount: Union[int, str, Decimal],
    unit: Union[str, Unit] = Unit.ETHER,
    gas_price: Optional[int] = None,
    gas_limit: int = TRANSFER_GAS_LIMIT,
    wait: bool = True,
) -> SendResult:
    """
    Send ether to an address.

    Args:
        manager: Sender's transaction manager
        to: Recipient address
        amount: Amount in ``unit`` (must come to a whole number of wei)
        unit: Denomination of ``amount``
        gas_price: Gas price in wei (default: 22 gwei)
        gas_limit: Gas limit (default: 21000)
    """
    value = to_wei(amount, unit)
    if gas_price is None:
        gas_price = TRANSFER_GAS_PRICE
    logger.info("Sending %s %s (%d wei) to %s", amount, Unit.parse(unit).name.lower(), value, to)
    return manager.send_transaction(
        to,
        data="0x",
        value=value,
        gas_price=gas_price,
        gas_limit=gas_limit,
        function_name="transfer",
        wait=wait,
    )


def _resolve_abi(abi: Optional[list], contract_name: Optional[str]) -> list:
    if abi is not None:
        return abi
    if contract_name is None:
        raise ValueError("Either abi or contract_name must be provided")
    return load_abi(contract_name)


def read_contract(
    manager: TransactionManager,
    contract_address: str,
    function_name: str,
    args: Optional[Sequence] = None,
    contract_name: Optional[str] = None,
    abi: Optional[list] = None,
) -> Any:
    """
    Read from a smart contract (eth_call).

    Returns:
        Decoded return value(s)
    """
    abi = _resolve_abi(abi, contract_name)
    calldata = encode_function_call(abi, function_name, args or [])
    result = manager.call(to_checksum_address(contract_address), calldata)
    return decode_function_result(abi, function_name, result, args or [])


def send_contract_tx(
    manager: TransactionManager,
    contract_address: str,
    function_name: str,
    args: Optional[Sequence] = None,
    contract_name: Optional[str] = None,
    abi: Optional[list] = None,
    value: int = 0,
    gas_provider: Optional[GasProvider] = None,
    wait: bool = True,
) -> SendResult:
    """
    Build, sign, and send a contract call transaction.

    Gas comes from ``gas_provider`` when given, else the manager's provider.
    """
    abi = _resolve_abi(abi, contract_name)
    calldata = encode_function_call(abi, function_name, args or [])

    gas_price = gas_limit = None
    if gas_provider is not None:
        gas_price = gas_provider.gas_price(function_name)
        gas_limit = gas_provider.gas_limit(
            function_name,
            {"from": manager.address, "to": contract_address, "data": calldata, "value": hex(value)},
        )

    return manager.send_transaction(
        contract_address,
        data=calldata,
        value=value,
        gas_price=gas_price,
        gas_limit=gas_limit,
        function_name=function_name,
        wait=wait,
    )


def deploy_contract(
    manager: TransactionManager,
    contract_name: Optional[str] = None,
    constructor_args: Optional[Sequence] = None,
    abi: Optional[list] = None,
    bytecode: Optional[str] = None,
    gas_provider: Optional[GasProvider] = None,
    value: int = 0,
    wait: bool = True,
) -> SendResult:
    """
    Deploy a contract to the chain.

    Appends the ABI-encoded constructor args to the creation bytecode, sends
    it, and extracts the deployed contract address from the receipt.
    """
    abi = _resolve_abi(abi, contract_name)
    if bytecode is None:
        if contract_name is None:
            raise ValueError("Either bytecode or contract_name must be provided")
        bytecode = load_bytecode(contract_name)

    constructor_data = encode_constructor_args(abi, constructor_args or [])

    gas_price = gas_limit = None
    if gas_provider is not None:
        gas_price = gas_provider.gas_price("deploy")
        gas_limit = gas_provider.gas_limit(
            "deploy",
            {"from": manager.address, "data": "0x" + remove_0x(bytecode) + constructor_data.hex()},
        )

    return manager.deploy(
        bytecode,
        constructor_data=constructor_data,
        value=value,
        gas_price=gas_price,
        gas_limit=gas_limit,
        wait=wait,
    )
