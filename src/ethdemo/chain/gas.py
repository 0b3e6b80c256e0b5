"""
Gas Providers - decide gas price and gas limit per transaction.

StaticGasProvider returns fixed values; NodeGasProvider asks the node
(eth_gasPrice / eth_estimateGas) and pads the estimate.
"""

from __future__ import annotations

import logging
from typing import Optional

from .rpc import RpcError, estimate_gas, get_gas_price

logger = logging.getLogger(__name__)

DEFAULT_GAS_PRICE = 22_000_000_000  # 22 gwei
DEFAULT_GAS_LIMIT = 4_300_000

# A plain value transfer always costs exactly this much
TRANSFER_GAS_LIMIT = 21_000
TRANSFER_GAS_PRICE = DEFAULT_GAS_PRICE


class GasProvider:
    """Interface: gas price and gas limit for a named contract function."""

    def gas_price(self, function_name: Optional[str] = None) -> int:
        raise NotImplementedError

    def gas_limit(self, function_name: Optional[str] = None, tx: Optional[dict] = None) -> int:
        raise NotImplementedError


class StaticGasProvider(GasProvider):
    def __init__(self, gas_price: int, gas_limit: int) -> None:
        if gas_price < 0 or gas_limit <= 0:
            raise ValueError("gas price must be >= 0 and gas limit > 0")
        self._gas_price = gas_price
        self._gas_limit = gas_limit

    def gas_price(self, function_name: Optional[str] = None) -> int:
        return self._gas_price

    def gas_limit(self, function_name: Optional[str] = None, tx: Optional[dict] = None) -> int:
        return self._gas_limit

    def __repr__(self) -> str:
        return f"{type(self).__name__}(gas_price={self._gas_price}, gas_limit={self._gas_limit})"


class DefaultGasProvider(StaticGasProvider):
    def __init__(self) -> None:
        super().__init__(DEFAULT_GAS_PRICE, DEFAULT_GAS_LIMIT)


class NodeGasProvider(GasProvider):
    """
    Ask the node for the gas price and estimate the limit per transaction.

    Args:
        rpc_url: RPC endpoint URL
        multiplier: Safety margin applied to eth_estimateGas
        fallback_limit: Limit used when no call object is available or
                        estimation fails
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        multiplier: float = 1.2,
        fallback_limit: int = DEFAULT_GAS_LIMIT,
    ) -> None:
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        self.rpc_url = rpc_url
        self.multiplier = multiplier
        self.fallback_limit = fallback_limit

    def gas_price(self, function_name: Optional[str] = None) -> int:
        return get_gas_price(rpc_url=self.rpc_url)

    def gas_limit(self, function_name: Optional[str] = None, tx: Optional[dict] = None) -> int:
        if tx is None:
            return self.fallback_limit
        try:
            estimate = estimate_gas(tx, rpc_url=self.rpc_url)
        except RpcError as exc:
            # Estimation fails on would-revert calls; let the send surface that
            logger.warning("eth_estimateGas failed for %s: %s", function_name or "tx", exc)
            return self.fallback_limit
        return int(estimate * self.multiplier)
