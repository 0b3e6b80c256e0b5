"""
JSON-RPC Client for Ethereum nodes.

Lightweight alternative to web3.py: uses httpx for HTTP transport.
Supports client/chain queries, balance and nonce lookups, eth_call,
raw transaction submission, receipt polling and log queries.
"""

from __future__ import annotations

import itertools
import logging
import os
import time
from typing import Any, Optional

import httpx

from ..config import DEFAULT_RPC_URL
from ..utils import hex_to_int

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_request_ids = itertools.count(1)


class RpcError(RuntimeError):
    """JSON-RPC error returned by the node."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"RPC error {self.code}: {self.message}"


class RpcTransportError(RpcError):
    """The request never produced a JSON-RPC response (HTTP/network failure)."""


def get_rpc_url() -> str:
    """Get the RPC URL from environment or default."""
    return os.environ.get("ETH_RPC_URL", DEFAULT_RPC_URL)


def _http_client() -> httpx.Client:
    return httpx.Client(timeout=DEFAULT_TIMEOUT)


def _rpc_call(method: str, params: list, rpc_url: Optional[str] = None) -> Any:
    """
    Make a JSON-RPC call.

    Args:
        method: RPC method name (e.g., "eth_call")
        params: RPC parameters
        rpc_url: RPC endpoint URL

    Returns:
        Result field from the RPC response

    Raises:
        RpcTransportError: If the HTTP request fails
        RpcError: If the node returns an error object
    """
    url = rpc_url or get_rpc_url()
    request_id = next(_request_ids)
    payload = {
        "jsonrpc": "2.0",
        "method": method,
        "params": params,
        "id": request_id,
    }

    logger.debug("-> %s %s (id=%d)", method, params, request_id)
    try:
        with _http_client() as client:
            response = client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as exc:
        raise RpcTransportError(f"{method} failed against {url}: {exc}") from exc
    except ValueError as exc:
        raise RpcTransportError(f"{method}: response is not JSON") from exc

    if not isinstance(data, dict):
        raise RpcError(f"{method}: malformed response {data!r}")

    if data.get("error") is not None:
        error = data["error"]
        if isinstance(error, dict):
            raise RpcError(
                str(error.get("message", "unknown error")),
                code=error.get("code"),
                data=error.get("data"),
            )
        raise RpcError(str(error))

    if data.get("id") != request_id:
        raise RpcError(f"{method}: response id {data.get('id')!r} != request id {request_id}")

    return data.get("result")


def _quantity(method: str, result: Any) -> int:
    """Parse a hex quantity result; a null result is an error, not zero."""
    if result is None:
        raise RpcError(f"{method}: node returned null")
    return hex_to_int(result)


def client_version(rpc_url: Optional[str] = None) -> str:
    """Get the node's client version string (web3_clientVersion)."""
    return _rpc_call("web3_clientVersion", [], rpc_url=rpc_url)


def get_chain_id(rpc_url: Optional[str] = None) -> int:
    """
    Get the chain ID.

    Priority: CHAIN_ID env var > eth_chainId from the node.
    """
    configured = os.environ.get("CHAIN_ID")
    if configured:
        return int(configured)
    return _quantity("eth_chainId", _rpc_call("eth_chainId", [], rpc_url=rpc_url))


def block_number(rpc_url: Optional[str] = None) -> int:
    return _quantity("eth_blockNumber", _rpc_call("eth_blockNumber", [], rpc_url=rpc_url))


def get_balance(address: str, block: str = "latest", rpc_url: Optional[str] = None) -> int:
    """
    Get ETH balance for an address.

    Returns:
        Balance in wei
    """
    result = _rpc_call("eth_getBalance", [address, block], rpc_url=rpc_url)
    return _quantity("eth_getBalance", result)


def get_nonce(address: str, block: str = "pending", rpc_url: Optional[str] = None) -> int:
    """
    Get transaction count for an address.

    The "pending" block includes transactions still in the node's pool,
    which is what the next nonce has to follow.
    """
    result = _rpc_call("eth_getTransactionCount", [address, block], rpc_url=rpc_url)
    return _quantity("eth_getTransactionCount", result)


def get_gas_price(rpc_url: Optional[str] = None) -> int:
    """Get current gas price in wei."""
    return _quantity("eth_gasPrice", _rpc_call("eth_gasPrice", [], rpc_url=rpc_url))


def estimate_gas(tx: dict, rpc_url: Optional[str] = None) -> int:
    """Estimate gas for a transaction call object (hex-encoded fields)."""
    return _quantity("eth_estimateGas", _rpc_call("eth_estimateGas", [tx], rpc_url=rpc_url))


def eth_call(tx: dict, block: str = "latest", rpc_url: Optional[str] = None) -> str:
    """Execute a read-only call; returns 0x-prefixed return data."""
    return _rpc_call("eth_call", [tx, block], rpc_url=rpc_url)


def send_raw_transaction(raw_tx: str, rpc_url: Optional[str] = None) -> str:
    """
    Send a signed raw transaction.

    Args:
        raw_tx: 0x-prefixed hex encoded signed transaction

    Returns:
        Transaction hash (0x-prefixed hex)
    """
    return _rpc_call("eth_sendRawTransaction", [raw_tx], rpc_url=rpc_url)


def get_transaction_receipt(tx_hash: str, rpc_url: Optional[str] = None) -> Optional[dict]:
    return _rpc_call("eth_getTransactionReceipt", [tx_hash], rpc_url=rpc_url)


def get_logs(log_filter: dict, rpc_url: Optional[str] = None) -> list[dict]:
    """Query logs matching a filter object (address, topics, fromBlock, toBlock)."""
    return _rpc_call("eth_getLogs", [log_filter], rpc_url=rpc_url) or []


def wait_for_receipt(
    tx_hash: str,
    timeout: float = 120,
    poll_interval: float = 2.0,
    rpc_url: Optional[str] = None,
) -> dict:
    """
    Wait for a transaction receipt.

    Args:
        tx_hash: Transaction hash
        timeout: Maximum wait time in seconds
        poll_interval: Polling interval in seconds
        rpc_url: RPC endpoint URL

    Returns:
        Transaction receipt dict

    Raises:
        TimeoutError: If receipt not found within timeout
    """
    start = time.monotonic()
    while True:
        receipt = get_transaction_receipt(tx_hash, rpc_url=rpc_url)
        if receipt is not None:
            return receipt
        if time.monotonic() - start >= timeout:
            break
        time.sleep(poll_interval)

    raise TimeoutError(f"Transaction {tx_hash} not confirmed within {timeout}s")
