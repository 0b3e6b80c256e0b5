"""
Shared fixtures: an in-memory Ethereum node that answers the JSON-RPC
methods the client uses, wired in place of the HTTP transport.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional
from unittest.mock import patch

import pytest
import rlp
from eth_abi import decode, encode
from eth_account import Account

from ethdemo.chain import artifacts, rpc
from ethdemo.chain.codec import event_topic, function_selector
from ethdemo.chain.rpc import RpcError
from ethdemo.chain.tx import TransactionManager
from ethdemo.contracts.greeter import GREETER_ABI
from ethdemo.utils import bytes_to_hex, hex_to_bytes, keccak256, remove_0x, to_checksum_address

TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_CHAIN_ID = 1337
RPC_URL = "http://fake-node:8545"

# Stand-in creation code; the fake node never executes it
GREETER_BYTECODE = "0x608060405234801561001057600080fd5b50"

MODIFIED_TOPIC = event_topic(next(e for e in GREETER_ABI if e.get("name") == "Modified"))
GREET_SELECTOR = function_selector("greet()")
NEW_GREETING_SELECTOR = function_selector("newGreeting(string)")
KILL_SELECTOR = function_selector("kill()")


class FakeNode:
    """
    Minimal EVM-less node.

    Legacy transactions are decoded with rlp.  Creation transactions whose
    data starts with ``bytecode`` deploy a Greeter; calls to that address
    implement greet / newGreeting / kill.
    """

    def __init__(self, bytecode: str = GREETER_BYTECODE) -> None:
        self.bytecode = remove_0x(bytecode)
        self.client_version = "FakeNode/v1.0.0/python"
        self.chain_id = TEST_CHAIN_ID
        self.block = 100
        self.gas_price = 1_000_000_000
        self.balances: dict[str, int] = {}
        self.nonces: dict[str, int] = {}
        self.greetings: dict[str, str] = {}
        self.receipts: dict[str, dict] = {}
        self.logs: list[dict] = []
        self.sent: list[dict] = []
        self.calls: list[tuple[str, list]] = []
        # Knobs for failure scenarios
        self.stale_nonce: Optional[int] = None
        self.send_errors: list[str] = []
        self.receipt_delay = 0
        self.revert_next = False
        self.withhold_receipts = False

    # ---- helpers ----

    def fund(self, address: str, wei: int) -> None:
        self.balances[address.lower()] = wei

    def _mine(self, tx_hash: str, sender: str, fields: dict, logs: list, contract: Optional[str]) -> None:
        self.block += 1
        status = "0x0" if self.revert_next else "0x1"
        self.revert_next = False
        block_logs = []
        for i, log in enumerate(logs if status == "0x1" else []):
            log = dict(log, blockNumber=hex(self.block), transactionHash=tx_hash, logIndex=hex(i))
            block_logs.append(log)
        self.logs.extend(block_logs)
        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "blockNumber": hex(self.block),
            "from": sender,
            "to": fields["to"],
            "contractAddress": contract,
            "gasUsed": hex(21_000),
            "status": status,
            "logs": block_logs,
        }

    def _apply(self, tx_hash: str, sender: str, fields: dict) -> None:
        logs: list[dict] = []
        contract = None
        data = fields["data"]
        to = fields["to"]

        if to is None:
            if not data.hex().startswith(self.bytecode):
                raise RpcError("invalid creation code", code=-32000)
            ctor = data[len(bytes.fromhex(self.bytecode)):]
            contract = bytes_to_hex(keccak256(sender.encode() + bytes([fields["nonce"]]))[12:])
            self.greetings[contract] = decode(["string"], ctor)[0]
        elif to in self.greetings and data[:4] == NEW_GREETING_SELECTOR:
            new = decode(["string"], data[4:])[0]
            old = self.greetings[to]
            logs.append({
                "address": to,
                "topics": [
                    MODIFIED_TOPIC,
                    bytes_to_hex(keccak256(old.encode())),
                    bytes_to_hex(keccak256(new.encode())),
                ],
                "data": bytes_to_hex(encode(["string", "string"], [old, new])),
            })
            if not self.revert_next:
                self.greetings[to] = new
        elif to in self.greetings and data[:4] == KILL_SELECTOR:
            del self.greetings[to]
        else:
            self.balances[sender] = self.balances.get(sender, 0) - fields["value"]
            self.balances[to] = self.balances.get(to, 0) + fields["value"]

        self._mine(tx_hash, sender, fields, logs, contract)

    def _send_raw(self, raw_hex: str) -> str:
        if self.send_errors:
            raise RpcError(self.send_errors.pop(0), code=-32000)

        raw = hex_to_bytes(raw_hex)
        nonce, gas_price, gas, to, value, data, v, r, s = rlp.decode(raw)
        sender = Account.recover_transaction(raw_hex).lower()
        fields = {
            "nonce": int.from_bytes(nonce, "big"),
            "gasPrice": int.from_bytes(gas_price, "big"),
            "gas": int.from_bytes(gas, "big"),
            "to": bytes_to_hex(to) if to else None,
            "value": int.from_bytes(value, "big"),
            "data": bytes(data),
            "v": int.from_bytes(v, "big"),
            "from": sender,
        }

        expected = self.nonces.get(sender, 0)
        if fields["nonce"] < expected:
            raise RpcError("nonce too low", code=-32000)
        self.nonces[sender] = fields["nonce"] + 1
        self.sent.append(fields)

        tx_hash = bytes_to_hex(keccak256(raw))
        self._apply(tx_hash, sender, fields)
        return tx_hash

    def _call(self, call: dict) -> str:
        to = call["to"].lower()
        data = hex_to_bytes(call["data"])
        if to not in self.greetings:
            return "0x"
        if data[:4] == GREET_SELECTOR:
            return bytes_to_hex(encode(["string"], [self.greetings[to]]))
        raise RpcError(
            "execution reverted",
            code=3,
            data=bytes_to_hex(bytes.fromhex("08c379a0") + encode(["string"], ["unknown selector"])),
        )

    def _receipt(self, tx_hash: str) -> Optional[dict]:
        if self.withhold_receipts:
            return None
        if self.receipt_delay > 0:
            self.receipt_delay -= 1
            return None
        return self.receipts.get(tx_hash)

    def _get_logs(self, log_filter: dict) -> list[dict]:
        address = log_filter.get("address", "").lower()
        topic0 = (log_filter.get("topics") or [None])[0]
        return [
            log for log in self.logs
            if log["address"].lower() == address and (topic0 is None or log["topics"][0] == topic0)
        ]

    # ---- JSON-RPC entry point ----

    def handle(self, method: str, params: list, rpc_url: Optional[str] = None) -> Any:
        self.calls.append((method, params))
        if method == "web3_clientVersion":
            return self.client_version
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "eth_blockNumber":
            return hex(self.block)
        if method == "eth_getBalance":
            return hex(self.balances.get(params[0].lower(), 0))
        if method == "eth_getTransactionCount":
            if self.stale_nonce is not None:
                return hex(self.stale_nonce)
            return hex(self.nonces.get(params[0].lower(), 0))
        if method == "eth_gasPrice":
            return hex(self.gas_price)
        if method == "eth_estimateGas":
            return hex(50_000)
        if method == "eth_sendRawTransaction":
            return self._send_raw(params[0])
        if method == "eth_getTransactionReceipt":
            return self._receipt(params[0])
        if method == "eth_call":
            return self._call(params[0])
        if method == "eth_getLogs":
            return self._get_logs(params[0])
        raise RpcError(f"the method {method} does not exist/is not available", code=-32601)

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)


@pytest.fixture()
def fake_node(monkeypatch: pytest.MonkeyPatch) -> FakeNode:
    node = FakeNode()
    monkeypatch.setattr(rpc, "_rpc_call", node.handle)
    return node


@pytest.fixture()
def account():
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture()
def manager(fake_node: FakeNode, account) -> TransactionManager:
    fake_node.fund(account.address, 10**18)
    return TransactionManager(
        account,
        rpc_url=RPC_URL,
        chain_id=TEST_CHAIN_ID,
        poll_interval=0,
        timeout=5,
    )


@pytest.fixture()
def ethdemo_home(tmp_path: Path):
    """Point ~/.ethdemo at a temp dir and clear wallet-related env vars."""
    home = tmp_path / ".ethdemo"
    home.mkdir()
    env_path = home / ".env"
    keys = ("PRIVATE_KEY", "KEYSTORE_PATH", "WALLET_PASSWORD", "GREETER_ADDRESS", "CHAIN_ID", "ETH_RPC_URL")
    env = {k: v for k, v in os.environ.items() if k not in keys}
    with patch.dict(os.environ, env, clear=True), \
            patch("ethdemo.config.ETHDEMO_DIR", home), \
            patch("ethdemo.config.ETHDEMO_ENV", env_path), \
            patch("ethdemo.wallet.keys.ETHDEMO_ENV", env_path), \
            patch("ethdemo.wallet.keys.KEYSTORE_DIR", home / "keystore"):
        yield home


def checksum(address: str) -> str:
    return to_checksum_address(address)


class FakeSolc:
    """Records py-solc-x calls and returns canned compiler output."""

    def __init__(self, installed: Optional[list[str]] = None, bytecode: str = GREETER_BYTECODE) -> None:
        self.installed = list(installed or [])
        self.bytecode = bytecode
        self.installs: list[str] = []
        self.compiled: list[dict] = []
        self.error: Optional[Exception] = None

    def get_installed_solc_versions(self) -> list[str]:
        return self.installed

    def install_solc(self, version: str) -> None:
        self.installs.append(version)
        self.installed.append(version)

    def compile_files(self, sources: list[str], **kwargs: Any) -> dict:
        self.compiled.append({"sources": sources, **kwargs})
        if self.error is not None:
            raise self.error
        path = sources[0]
        return {
            f"{path}:Mortal": {"abi": [], "bin": "6080604052"},
            f"{path}:Greeter": {"abi": GREETER_ABI, "bin": remove_0x(self.bytecode)},
        }


@pytest.fixture()
def fake_solc(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """No build directory and no ETHDEMO_CONTRACTS_DIR; solc calls are recorded."""

    def no_build_dir() -> Path:
        raise FileNotFoundError("Cannot find contracts/build/")

    solc = FakeSolc()
    monkeypatch.delenv("ETHDEMO_CONTRACTS_DIR", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(artifacts, "find_contracts_dir", no_build_dir)
    for name in ("get_installed_solc_versions", "install_solc", "compile_files"):
        monkeypatch.setattr(artifacts.solcx, name, getattr(solc, name))
    artifacts.load_abi.cache_clear()
    artifacts.load_bytecode.cache_clear()
    artifacts.compile_bundled.cache_clear()
    yield solc
    artifacts.load_abi.cache_clear()
    artifacts.load_bytecode.cache_clear()
    artifacts.compile_bundled.cache_clear()
