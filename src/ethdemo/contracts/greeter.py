"""
Greeter - typed binding for the bundled Greeter.sol.

Wraps the generic codec / transaction helpers with one method per contract
function, plus decoding of the ``Modified`` event.  Creation bytecode comes
from a compiled artifact (contracts/build/Greeter.bin) when one exists,
otherwise the bundled source is compiled with solc.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..chain.artifacts import load_bytecode
from ..chain.events import DecodedEvent, events_from_receipt, query_events
from ..chain.gas import DefaultGasProvider, GasProvider
from ..chain.tx import (
    SendResult,
    TransactionManager,
    deploy_contract,
    read_contract,
    send_contract_tx,
)
from ..utils import to_checksum_address

logger = logging.getLogger(__name__)

CONTRACT_NAME = "Greeter"

GREETER_ABI: list[dict] = [
    {
        "type": "constructor",
        "inputs": [{"name": "_greeting", "type": "string"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "newGreeting",
        "inputs": [{"name": "_greeting", "type": "string"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "kill",
        "inputs": [],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "greet",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
    },
    {
        "type": "event",
        "name": "Modified",
        "anonymous": False,
        "inputs": [
            {"name": "oldGreetingIdx", "type": "string", "indexed": True},
            {"name": "newGreetingIdx", "type": "string", "indexed": True},
            {"name": "oldGreeting", "type": "string", "indexed": False},
            {"name": "newGreeting", "type": "string", "indexed": False},
        ],
    },
]


@dataclass
class ModifiedEvent:
    """
    A decoded ``Modified`` event.

    Indexed strings are only stored as the keccak256 of their value, so the
    ``*_idx`` fields hold 32-byte hashes, not the greetings themselves.
    """

    old_greeting: str
    new_greeting: str
    old_greeting_idx: bytes
    new_greeting_idx: bytes
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None

    @classmethod
    def from_decoded(cls, event: DecodedEvent) -> "ModifiedEvent":
        return cls(
            old_greeting=event.args["oldGreeting"],
            new_greeting=event.args["newGreeting"],
            old_greeting_idx=event.indexed["oldGreetingIdx"],
            new_greeting_idx=event.indexed["newGreetingIdx"],
            transaction_hash=event.transaction_hash,
            block_number=event.block_number,
        )


class Greeter:
    def __init__(
        self,
        address: str,
        manager: TransactionManager,
        gas_provider: Optional[GasProvider] = None,
    ) -> None:
        self.address = to_checksum_address(address)
        self.manager = manager
        self.gas_provider = gas_provider or DefaultGasProvider()
        self.deploy_result: Optional[SendResult] = None

    @classmethod
    def deploy(
        cls,
        manager: TransactionManager,
        greeting: str,
        gas_provider: Optional[GasProvider] = None,
        bytecode: Optional[str] = None,
    ) -> "Greeter":
        """
        Deploy a new Greeter with an initial greeting.

        Args:
            manager: Deployer's transaction manager
            greeting: Constructor argument
            gas_provider: Gas settings (default: DefaultGasProvider)
            bytecode: Creation bytecode (default: compiled artifact)
        """
        gas_provider = gas_provider or DefaultGasProvider()
        if bytecode is None:
            bytecode = load_bytecode(CONTRACT_NAME)

        result = deploy_contract(
            manager,
            constructor_args=[greeting],
            abi=GREETER_ABI,
            bytecode=bytecode,
            gas_provider=gas_provider,
        )
        logger.info("Greeter deployed at %s (tx %s)", result.contract_address, result.tx_hash)

        contract = cls(result.contract_address, manager, gas_provider)
        contract.deploy_result = result
        return contract

    @classmethod
    def load(
        cls,
        address: str,
        manager: TransactionManager,
        gas_provider: Optional[GasProvider] = None,
    ) -> "Greeter":
        return cls(address, manager, gas_provider)

    def greet(self) -> str:
        return read_contract(self.manager, self.address, "greet", [], abi=GREETER_ABI)

    def new_greeting(self, greeting: str) -> SendResult:
        return send_contract_tx(
            self.manager,
            self.address,
            "newGreeting",
            [greeting],
            abi=GREETER_ABI,
            gas_provider=self.gas_provider,
        )

    def kill(self) -> SendResult:
        return send_contract_tx(
            self.manager,
            self.address,
            "kill",
            [],
            abi=GREETER_ABI,
            gas_provider=self.gas_provider,
        )

    def get_modified_events(self, result: Union[SendResult, dict]) -> list[ModifiedEvent]:
        """Modified events emitted by this contract in a transaction receipt."""
        receipt = result.receipt if isinstance(result, SendResult) else result
        if not receipt:
            return []
        decoded = events_from_receipt(GREETER_ABI, "Modified", receipt, address=self.address)
        return [ModifiedEvent.from_decoded(e) for e in decoded]

    def modified_events(
        self,
        from_block: Union[int, str] = "earliest",
        to_block: Union[int, str] = "latest",
    ) -> list[ModifiedEvent]:
        """Modified events over a block range (eth_getLogs)."""
        decoded = query_events(
            GREETER_ABI,
            "Modified",
            self.address,
            from_block=from_block,
            to_block=to_block,
            rpc_url=self.manager.rpc_url,
        )
        return [ModifiedEvent.from_decoded(e) for e in decoded]
